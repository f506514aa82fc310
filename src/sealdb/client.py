"""Public client: one async method per operation.

Example:
    async with SealClient("schema.json", data_dir="./data") as db:
        user = await db.create("User", data={"email": "a@x.com", "age": 20})
        adults = await db.find_many("User", where={"age": {"gte": 18}}, order_by={"age": "desc"})
"""

from pathlib import Path
from typing import Any, Mapping

from sealdb.application.services.mutation_pipeline import MutationPipeline
from sealdb.application.services.query_service import QueryService
from sealdb.core.config import Settings, get_settings
from sealdb.core.exceptions import SchemaError
from sealdb.core.logging import configure_logging, get_logger
from sealdb.domain.entities.schema import SchemaDefinition
from sealdb.domain.services.schema_loader import load_schema, parse_schema
from sealdb.infrastructure.persistence.collection_cache import CollectionCache
from sealdb.infrastructure.security.key_manager import KeyManager
from sealdb.infrastructure.storage.base import CollectionStore
from sealdb.infrastructure.storage.encrypted_store import EncryptedStore

logger = get_logger(__name__)

SchemaSource = SchemaDefinition | Mapping[str, Any] | str | Path | None


def _resolve_schema(schema: SchemaSource, settings: Settings) -> SchemaDefinition:
    if isinstance(schema, SchemaDefinition):
        return schema
    if isinstance(schema, Mapping):
        return parse_schema(dict(schema))
    if isinstance(schema, (str, Path)):
        return load_schema(schema)
    if settings.schema_path is not None:
        return load_schema(settings.schema_path)
    raise SchemaError("No schema given and SEALDB_SCHEMA_PATH is not set")


class SealClient:
    """Embedded document database client.

    Args:
        schema: A :class:`SchemaDefinition`, a schema mapping, or a path to a
            JSON schema file. Defaults to ``settings.schema_path``.
        settings: Settings instance; loaded from the environment if omitted.
            Its ``log_level`` and ``log_format`` configure structlog, which
            writes to stderr only.
        data_dir: Overrides ``settings.data_dir``.
        encryption_key: Overrides ``settings.encryption_key``.
        encryption_enabled: Overrides ``settings.encryption_enabled``.
        store: Custom collection store (replaces the encrypted file store).

    Raises:
        SchemaError: If the schema is missing or invalid.
    """

    def __init__(
        self,
        schema: SchemaSource = None,
        settings: Settings | None = None,
        *,
        data_dir: str | Path | None = None,
        encryption_key: str | None = None,
        encryption_enabled: bool | None = None,
        store: CollectionStore | None = None,
    ) -> None:
        base = settings or get_settings()
        overrides: dict[str, Any] = {}
        if data_dir is not None:
            overrides["data_dir"] = Path(data_dir).expanduser()
        if encryption_key is not None:
            overrides["encryption_key"] = encryption_key
        if encryption_enabled is not None:
            overrides["encryption_enabled"] = encryption_enabled
        self.settings = Settings(**{**base.model_dump(), **overrides}) if overrides else base
        configure_logging(self.settings)

        self.schema = _resolve_schema(schema, self.settings)

        if store is None:
            key = self.settings.encryption_key
            store = EncryptedStore(
                data_dir=self.settings.data_dir,
                key_manager=KeyManager(
                    self.settings.key_path,
                    key.get_secret_value() if key is not None else None,
                ),
                encryption_enabled=self.settings.encryption_enabled,
                file_extension=self.settings.file_extension,
            )
        self.cache = CollectionCache(store)
        self.queries = QueryService(self.schema, self.cache)
        self.mutations = MutationPipeline(self.schema, self.cache)

        logger.info(
            "Client initialized",
            data_dir=str(self.settings.data_dir),
            models=self.schema.model_names,
            encryption_enabled=self.settings.encryption_enabled,
        )

    async def __aenter__(self) -> "SealClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Drop cached collections. Every committed write is already on disk."""
        self.cache.clear()

    # Writes

    async def create(self, model: str, *, data: dict[str, Any]) -> dict[str, Any]:
        return await self.mutations.create(model, data)

    async def create_many(
        self, model: str, *, data: list[dict[str, Any]], skip_duplicates: bool = False
    ) -> int:
        return await self.mutations.create_many(model, data, skip_duplicates=skip_duplicates)

    async def update(self, model: str, *, where: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
        return await self.mutations.update(model, where, data)

    async def update_many(
        self, model: str, *, where: dict[str, Any] | None = None, data: dict[str, Any]
    ) -> int:
        return await self.mutations.update_many(model, where, data)

    async def upsert(
        self,
        model: str,
        *,
        where: dict[str, Any],
        create: dict[str, Any],
        update: dict[str, Any],
    ) -> dict[str, Any]:
        return await self.mutations.upsert(model, where, create, update)

    async def delete(self, model: str, *, where: dict[str, Any]) -> dict[str, Any]:
        return await self.mutations.delete(model, where)

    async def delete_many(self, model: str, *, where: dict[str, Any] | None = None) -> int:
        return await self.mutations.delete_many(model, where)

    # Reads

    async def find_many(
        self,
        model: str,
        *,
        where: dict[str, Any] | None = None,
        order_by: Any = None,
        skip: int | None = None,
        take: int | None = None,
        select: dict[str, bool] | None = None,
    ) -> list[dict[str, Any]]:
        return await self.queries.find_many(model, where, order_by, skip, take, select)

    async def find_first(
        self,
        model: str,
        *,
        where: dict[str, Any] | None = None,
        order_by: Any = None,
        skip: int | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any] | None:
        return await self.queries.find_first(model, where, order_by, skip, select)

    async def find_unique(
        self, model: str, *, where: dict[str, Any], select: dict[str, bool] | None = None
    ) -> dict[str, Any] | None:
        return await self.queries.find_unique(model, where, select)

    async def count(self, model: str, *, where: dict[str, Any] | None = None) -> int:
        return await self.queries.count(model, where)

    # Maintenance

    async def reload(self, model: str) -> None:
        """Re-read a model's collection from disk, discarding the cached copy."""
        self.schema.get_model(model)
        await self.cache.reload(model)
