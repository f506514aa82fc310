"""Base abstraction for collection stores."""

from abc import ABC, abstractmethod
from typing import Any


class CollectionStore(ABC):
    """Durable storage of one record collection per model.

    Stores only serialize and deserialize snapshots; they never keep a
    reference to a live collection.
    """

    @abstractmethod
    async def load(self, model_name: str) -> list[dict[str, Any]]:
        """Load a model's collection, or an empty list if none is stored."""
        ...

    @abstractmethod
    async def save(self, model_name: str, records: list[dict[str, Any]]) -> None:
        """Persist a model's whole collection, replacing the previous one."""
        ...

    @abstractmethod
    async def exists(self, model_name: str) -> bool:
        """Whether a collection has been persisted for the model."""
        ...
