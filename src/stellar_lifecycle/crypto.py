"""Encryption helpers for the admin secret at rest.

Uses Fernet (AES-128-CBC with HMAC) with MASTER_KEY as the symmetric key.
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from stellar_lifecycle.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Fernet tokens start with version byte 0x80, base64-encoded as 'gAAAAA'
FERNET_PREFIX = "gAAAAA"


def generate_master_key() -> str:
    """Generate a new master encryption key.

    Returns:
        Base64-encoded 32-byte key suitable for Fernet
    """
    return Fernet.generate_key().decode()


class SecretEncryptor:
    """Encrypts and decrypts secrets using Fernet.

    Usage:
        encryptor = SecretEncryptor(master_key)
        encrypted = encryptor.encrypt("S...")
        decrypted = encryptor.decrypt(encrypted)
    """

    def __init__(self, master_key: str):
        self._fernet = Fernet(master_key.encode())

    def encrypt(self, secret: str) -> str:
        return self._fernet.encrypt(secret.encode()).decode()

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a secret.

        Raises:
            InvalidToken: If decryption fails (wrong key or corrupted data)
        """
        return self._fernet.decrypt(encrypted.encode()).decode()


def is_encrypted(value: str) -> bool:
    return value.startswith(FERNET_PREFIX)


def decrypt_secret(value: str, master_key: Optional[str]) -> str:
    """Return the plain secret, decrypting it when it is a Fernet token.

    Plain values pass through unchanged.

    Raises:
        ConfigurationError: Encrypted value without MASTER_KEY, or wrong key
    """
    if not is_encrypted(value):
        return value

    if not master_key:
        raise ConfigurationError("Admin secret is encrypted but MASTER_KEY is not set")

    try:
        return SecretEncryptor(master_key).decrypt(value)
    except InvalidToken as e:
        raise ConfigurationError("Admin secret could not be decrypted with MASTER_KEY") from e
