"""Encrypted-at-rest GSP credentials."""
import json
import logging
from typing import Optional

from pydantic import ValidationError

from app.core.exceptions import EncryptionError
from app.schemas.gsp import GSPCredentials
from app.services.encryption_service import CredentialCipher


logger = logging.getLogger(__name__)


class CredentialStore:
    """Serialises credentials to JSON and runs them through the cipher."""

    def __init__(self, cipher: CredentialCipher):
        self.cipher = cipher

    def seal(self, credentials: GSPCredentials) -> str:
        data = credentials.model_dump(exclude_none=True)
        return self.cipher.encrypt(json.dumps(data, sort_keys=True))

    def load(self, blob: Optional[str]) -> Optional[GSPCredentials]:
        """
        Decrypt a stored blob.

        Returns None when nothing is stored or the blob cannot be decrypted
        or parsed; callers treat that as "no credentials configured".
        """
        if not blob:
            return None
        try:
            data = json.loads(self.cipher.decrypt(blob))
            return GSPCredentials.model_validate(data)
        except (EncryptionError, ValueError, ValidationError) as e:
            logger.error(f"Failed to decrypt GSP credentials: {e}")
            return None
