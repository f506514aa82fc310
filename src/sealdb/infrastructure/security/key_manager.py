"""Key lifecycle for the data directory.

A caller-supplied key always wins. Otherwise a random key is generated once,
written next to the data files, and reused for the lifetime of the directory.
Losing the key file makes existing data permanently unreadable.
"""

import stat
from pathlib import Path

from sealdb.core.exceptions import StorageError
from sealdb.core.logging import get_logger
from sealdb.infrastructure.files import atomic_write_bytes
from sealdb.infrastructure.security.encryption import EncryptionService

logger = get_logger(__name__)

KEY_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR


class KeyManager:
    """Resolves the active encryption key for one data directory."""

    def __init__(self, key_path: Path, supplied_key: str | None = None) -> None:
        """Initialize the key manager.

        Args:
            key_path: Location of the generated key file.
            supplied_key: Optional caller-supplied key.
        """
        self.key_path = key_path
        self._supplied_key = supplied_key
        self._key: str | None = None

    def get_key(self) -> str:
        """Return the active key, generating and storing it on first use.

        Raises:
            StorageError: If the key file cannot be read or written, or is empty.
        """
        if self._key is not None:
            return self._key

        if self._supplied_key is not None:
            self._key = self._supplied_key
            return self._key

        try:
            if self.key_path.exists():
                key = self.key_path.read_text(encoding="ascii").strip()
                if not key:
                    raise StorageError(f"Key file '{self.key_path}' is empty")
                logger.debug("Encryption key loaded", key_path=str(self.key_path))
            else:
                key = EncryptionService.generate_key()
                atomic_write_bytes(self.key_path, key.encode("ascii"), mode=KEY_FILE_MODE)
                logger.info("Encryption key generated", key_path=str(self.key_path))
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot access key file '{self.key_path}': {e}") from e

        self._key = key
        return key

    def build_service(self) -> EncryptionService:
        """Create the encryption service for the active key."""
        return EncryptionService(self.get_key())
