"""In-memory mirror of every model's collection.

One cache is created per client. Reads and writes of collections go through
it; it keeps memory and the store consistent by installing a new collection
only after the store has persisted it.
"""

import asyncio
from typing import Any

from sealdb.core.logging import get_logger
from sealdb.infrastructure.storage.base import CollectionStore

logger = get_logger(__name__)


class CollectionCache:
    """Per-model cache of loaded collections with one lock per model.

    Collections are loaded lazily on first access. The lock returned by
    :meth:`lock` must be held across validate, apply and persist of a
    mutation so two writers never validate against the same snapshot.
    """

    def __init__(self, store: CollectionStore) -> None:
        """Initialize the cache.

        Args:
            store: Store used to load and persist collections.
        """
        self.store = store
        self._collections: dict[str, list[dict[str, Any]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._load_locks: dict[str, asyncio.Lock] = {}

    def lock(self, model_name: str) -> asyncio.Lock:
        """Return the mutation lock for a model."""
        if model_name not in self._locks:
            self._locks[model_name] = asyncio.Lock()
        return self._locks[model_name]

    def is_loaded(self, model_name: str) -> bool:
        return model_name in self._collections

    def loaded_models(self) -> list[str]:
        return list(self._collections)

    async def get(self, model_name: str) -> list[dict[str, Any]]:
        """Return the live collection for a model, loading it on first access.

        The returned list is owned by the cache; callers must not mutate it.

        Raises:
            CorruptionError: If the stored collection cannot be read back.
            StorageError: On I/O failure.
        """
        collection = self._collections.get(model_name)
        if collection is not None:
            return collection

        if model_name not in self._load_locks:
            self._load_locks[model_name] = asyncio.Lock()
        async with self._load_locks[model_name]:
            collection = self._collections.get(model_name)
            if collection is None:
                collection = await self.store.load(model_name)
                self._collections[model_name] = collection
                logger.info("Collection cached", model=model_name, count=len(collection))
        return collection

    async def commit(self, model_name: str, records: list[dict[str, Any]]) -> None:
        """Persist ``records`` and then install them as the model's collection.

        If the store raises, the previously installed collection is kept.
        """
        await self.store.save(model_name, records)
        self._collections[model_name] = records

    async def reload(self, model_name: str) -> list[dict[str, Any]]:
        """Discard the cached collection and load it again from the store."""
        async with self.lock(model_name):
            self._collections.pop(model_name, None)
            return await self.get(model_name)

    def clear(self) -> None:
        """Forget every cached collection."""
        self._collections.clear()
