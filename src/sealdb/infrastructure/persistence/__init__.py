"""In-memory collection cache."""

from sealdb.infrastructure.persistence.collection_cache import CollectionCache

__all__ = ["CollectionCache"]
