"""Image storage service: local blob storage for product images."""

import logging
from pathlib import Path

import aiofiles

from storefront.config import settings

logger = logging.getLogger(__name__)

# File extension to MIME type mapping
EXTENSION_MIME_MAP = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
}


class ImageStorageService:
    """Stores image bytes on disk and serves them under /api/images."""

    def __init__(
        self,
        storage_path: Path | None = None,
        public_url: str | None = None,
    ) -> None:
        """Initialize the image storage service.

        Args:
            storage_path: Path to store images. Defaults to config setting.
            public_url: Origin used to build image URLs. Defaults to config setting.
        """
        self.storage_path = storage_path or settings.image_storage_path
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.public_url = (public_url or settings.public_url).rstrip("/")

    async def put(self, content: bytes, filename: str, mime_type: str) -> str:
        """Write an image and return the URL it is served from.

        Args:
            content: Image bytes.
            filename: Target filename; only its final path component is used.
            mime_type: Declared MIME type (logged only, the file is served by
                extension).

        Returns:
            The absolute URL of the stored image.
        """
        safe_name = Path(filename).name
        file_path = self.storage_path / safe_name

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(content)

        logger.debug("Stored %s (%s, %d bytes)", safe_name, mime_type, len(content))
        return self.get_image_url(safe_name)

    def get_image_url(self, filename: str) -> str:
        """Get the URL for an image."""
        return f"{self.public_url}/api/images/{filename}"
