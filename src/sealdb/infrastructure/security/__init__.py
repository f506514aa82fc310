"""Encryption primitive and key lifecycle."""

from sealdb.infrastructure.security.encryption import EncryptionService
from sealdb.infrastructure.security.key_manager import KeyManager

__all__ = ["EncryptionService", "KeyManager"]
