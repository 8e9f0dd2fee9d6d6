"""Product category document model."""

from typing import Optional

from beanie import Document, Indexed


class Category(Document):
    """Product category, matched by name during import."""

    name: Indexed(str)
    handle: Optional[str] = None

    class Settings:
        name = "categories"
        indexes = ["name"]

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"
