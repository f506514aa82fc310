"""Encrypted flat-file storage, one file per model."""

import asyncio
import json
from pathlib import Path
from typing import Any

from sealdb.core.exceptions import CorruptionError, StorageError
from sealdb.core.logging import get_logger
from sealdb.infrastructure.files import atomic_write_bytes
from sealdb.infrastructure.security.encryption import EncryptionService
from sealdb.infrastructure.security.key_manager import KeyManager
from sealdb.infrastructure.storage.base import CollectionStore

logger = get_logger(__name__)


class EncryptedStore(CollectionStore):
    """Store implementation persisting each collection as one encrypted file.

    Layout: ``<data_dir>/<ModelName><file_extension>`` plus the key file when
    the key is generated. With encryption disabled the file holds indented
    UTF-8 JSON instead of a Fernet token.
    """

    def __init__(
        self,
        data_dir: Path,
        key_manager: KeyManager | None = None,
        encryption_enabled: bool = True,
        file_extension: str = ".db",
    ) -> None:
        if encryption_enabled and key_manager is None:
            raise ValueError("A key manager is required when encryption is enabled")
        self.data_dir = Path(data_dir)
        self.encryption_enabled = encryption_enabled
        self.file_extension = file_extension
        self._key_manager = key_manager
        self._encryption: EncryptionService | None = None

    def path_for(self, model_name: str) -> Path:
        return self.data_dir / f"{model_name}{self.file_extension}"

    def _get_encryption(self) -> EncryptionService:
        if self._encryption is None:
            if self._key_manager is None:
                raise StorageError("Encryption is enabled but no key manager is configured")
            self._encryption = self._key_manager.build_service()
        return self._encryption

    def _encode(self, records: list[dict[str, Any]]) -> bytes:
        try:
            if self.encryption_enabled:
                payload = json.dumps(records, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
                return self._get_encryption().encrypt_bytes(payload)
            return json.dumps(records, ensure_ascii=False, indent=2).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise StorageError(f"Collection is not serializable: {e}") from e

    def _decode(self, model_name: str, raw: bytes) -> list[dict[str, Any]]:
        path = self.path_for(model_name)
        try:
            payload = self._get_encryption().decrypt_bytes(raw) if self.encryption_enabled else raw
        except CorruptionError as e:
            raise CorruptionError(f"Cannot decrypt '{path}': {e}", model=model_name) from e

        try:
            records = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptionError(f"Cannot decode '{path}': {e}", model=model_name) from e

        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise CorruptionError(f"'{path}' does not hold a list of records", model=model_name)
        return records

    def _load_sync(self, model_name: str) -> list[dict[str, Any]]:
        path = self.path_for(model_name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Cannot read '{path}': {e}", model=model_name) from e
        return self._decode(model_name, raw)

    def _save_sync(self, model_name: str, records: list[dict[str, Any]]) -> None:
        path = self.path_for(model_name)
        data = self._encode(records)
        try:
            atomic_write_bytes(path, data)
        except OSError as e:
            raise StorageError(f"Cannot write '{path}': {e}", model=model_name) from e

    async def load(self, model_name: str) -> list[dict[str, Any]]:
        """Load a model's collection.

        Returns:
            The stored records, or an empty list if no file exists.

        Raises:
            CorruptionError: If the file cannot be decrypted or decoded.
            StorageError: If the file exists but cannot be read.
        """
        records = await asyncio.to_thread(self._load_sync, model_name)
        logger.debug("Collection loaded", model=model_name, count=len(records))
        return records

    async def save(self, model_name: str, records: list[dict[str, Any]]) -> None:
        """Persist a model's collection via write-temp-then-replace.

        Raises:
            StorageError: On any I/O failure; the previous file stays intact.
        """
        await asyncio.to_thread(self._save_sync, model_name, records)
        logger.debug("Collection saved", model=model_name, count=len(records))

    async def exists(self, model_name: str) -> bool:
        return await asyncio.to_thread(self.path_for(model_name).exists)
