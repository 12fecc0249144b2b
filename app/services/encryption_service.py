"""
Encryption Service for GSP Credential Storage

Encrypts per-business GSP credentials at rest with AES-256-CBC:
- a fresh random 16-byte IV for every encryption
- stored as ``iv_hex:ciphertext_hex``
- key derived from GSP_ENCRYPTION_KEY with PBKDF2-HMAC-SHA256 and a fixed salt

The cipher sits behind ``CredentialCipher`` so the algorithm can be swapped.
"""

import logging
import os
import secrets
from typing import Optional, Protocol

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend

from app.config import settings
from app.core.exceptions import EncryptionError


logger = logging.getLogger(__name__)


class CredentialCipher(Protocol):
    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> str: ...


class EncryptionService:
    """
    AES-256-CBC cipher with PKCS7 padding.

    For production use:
    - Set GSP_ENCRYPTION_KEY in the environment
    - Keep GSP_ENCRYPTION_SALT stable, changing it orphans stored credentials
    """

    IV_SIZE = 16
    KDF_ITERATIONS = 100000
    SEPARATOR = ":"

    def __init__(self, secret_key: Optional[str] = None, salt: Optional[str] = None):
        """
        Initialize encryption service.

        Args:
            secret_key: Master secret for key derivation.
                       If not provided, uses GSP_ENCRYPTION_KEY setting.
            salt: Key derivation salt. Defaults to GSP_ENCRYPTION_SALT.
        """
        self._secret = secret_key or settings.GSP_ENCRYPTION_KEY

        if not self._secret:
            # Credentials encrypted with a random key do not survive a restart
            logger.warning(
                "GSP_ENCRYPTION_KEY not set. Using random key - stored credentials will not persist across restarts!"
            )
            self._secret = secrets.token_hex(32)

        self._salt = (salt or settings.GSP_ENCRYPTION_SALT).encode()
        self._key = self._derive_key()

    def _derive_key(self) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self._salt,
            iterations=self.KDF_ITERATIONS,
            backend=default_backend()
        )
        return kdf.derive(self._secret.encode())

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext string.

        Returns:
            ``iv_hex:ciphertext_hex``
        """
        iv = os.urandom(self.IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode()) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv), backend=default_backend()).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}{self.SEPARATOR}{ciphertext.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt an ``iv_hex:ciphertext_hex`` string.

        Raises:
            EncryptionError: malformed input, wrong key or corrupt data
        """
        try:
            iv_hex, data_hex = ciphertext.split(self.SEPARATOR, 1)
            iv = bytes.fromhex(iv_hex)
            data = bytes.fromhex(data_hex)
            if len(iv) != self.IV_SIZE:
                raise ValueError(f"IV must be {self.IV_SIZE} bytes")

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv), backend=default_backend()).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode()
        except (ValueError, UnicodeDecodeError) as e:
            raise EncryptionError(f"Decryption failed: {str(e)}") from e


# Singleton instance for global use
_encryption_service: Optional[EncryptionService] = None


def get_encryption_service() -> EncryptionService:
    """Get or create the global encryption service instance."""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
