import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from sealdb.core.exceptions import CorruptionError


class EncryptionService:
    """
    Encryption service using Fernet symmetric (authenticated) encryption.
    """

    def __init__(self, secret_key: str):
        """
        Initialize the encryption service with a secret key.
        The secret key is hashed using SHA-256 to ensure it's a valid 32-byte Fernet key.
        """
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        key_bytes = secret_key.encode("utf-8")
        h = hashlib.sha256(key_bytes).digest()
        fernet_key = base64.urlsafe_b64encode(h)
        self._fernet = Fernet(fernet_key)

    @staticmethod
    def generate_key() -> str:
        """
        Return a fresh random key suitable for persisting in a key file.
        """
        return Fernet.generate_key().decode("ascii")

    def encrypt_bytes(self, plaintext: bytes) -> bytes:
        """
        Encrypt raw bytes and return a Fernet token.
        """
        return self._fernet.encrypt(plaintext)

    def decrypt_bytes(self, token: bytes) -> bytes:
        """
        Decrypt a Fernet token.
        Raises CorruptionError on a wrong key, truncation or tampering.
        """
        try:
            return self._fernet.decrypt(token)
        except (InvalidToken, ValueError, TypeError) as e:
            raise CorruptionError("Decryption failed: wrong key or damaged data") from e
