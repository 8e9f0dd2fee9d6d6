"""Catalog, inventory and relationship collaborators."""

from .interfaces import (
    BlobStorage,
    CatalogStore,
    InventoryStore,
    PartialBatchError,
    RelationshipLinker,
)
from .mongo import MongoCatalogStore, MongoInventoryStore, MongoRelationshipLinker

__all__ = [
    # Interfaces
    "BlobStorage",
    "CatalogStore",
    "InventoryStore",
    "PartialBatchError",
    "RelationshipLinker",
    # MongoDB implementation
    "MongoCatalogStore",
    "MongoInventoryStore",
    "MongoRelationshipLinker",
]
