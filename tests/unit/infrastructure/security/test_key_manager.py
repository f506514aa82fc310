import os
import stat
import sys
from unittest.mock import patch

import pytest

from sealdb.core.exceptions import StorageError
from sealdb.infrastructure.security.key_manager import KeyManager


class TestKeyManager:

    def test_supplied_key_wins(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"
        key_path.write_text("stored-key")

        manager = KeyManager(key_path, supplied_key="supplied-key")

        assert manager.get_key() == "supplied-key"

    def test_supplied_key_never_writes_key_file(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"

        KeyManager(key_path, supplied_key="supplied-key").get_key()

        assert not key_path.exists()

    def test_generates_and_persists_key(self, tmp_path):
        key_path = tmp_path / "nested" / ".sealdb.key"

        key = KeyManager(key_path).get_key()

        assert key
        assert key_path.read_text() == key

    def test_generated_key_is_reused(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"

        first = KeyManager(key_path).get_key()
        second = KeyManager(key_path).get_key()

        assert first == second

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_key_file_is_owner_only(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"

        KeyManager(key_path).get_key()

        assert stat.S_IMODE(os.stat(key_path).st_mode) == 0o600

    def test_empty_key_file_raises(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"
        key_path.write_text("  \n")

        with pytest.raises(StorageError):
            KeyManager(key_path).get_key()

    def test_unreadable_key_file_raises(self, tmp_path):
        key_path = tmp_path / ".sealdb.key"
        key_path.write_text("stored-key")

        with patch("pathlib.Path.read_text", side_effect=PermissionError("denied")):
            with pytest.raises(StorageError):
                KeyManager(key_path).get_key()

    def test_build_service_uses_active_key(self, tmp_path):
        manager = KeyManager(tmp_path / ".sealdb.key", supplied_key="k")
        token = manager.build_service().encrypt_bytes(b"data")

        other = KeyManager(tmp_path / "other.key", supplied_key="k")
        assert other.build_service().decrypt_bytes(token) == b"data"
