"""Collection stores."""

from sealdb.infrastructure.storage.base import CollectionStore
from sealdb.infrastructure.storage.encrypted_store import EncryptedStore

__all__ = [
    "CollectionStore",
    "EncryptedStore",
]
