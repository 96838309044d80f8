"""
Secrets management for OAuth provider client secrets.

Provider configurations may store their client secret either as a plain
string or sealed as ``{"ciphertext": "<fernet token>"}``. Only
``open_secret`` ever produces the plaintext, and only for the duration of
one outbound call.
"""

import os
import base64
from typing import Any, Dict, Mapping, Optional, Union
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from shared.errors import ConfigurationError
from shared.logging import get_logger

logger = get_logger("oauth.secrets")

SealedSecret = Dict[str, str]
StoredSecret = Union[str, Mapping[str, Any]]


def is_sealed(secret: Any) -> bool:
    """Return True when the stored secret is a sealed mapping."""
    return isinstance(secret, Mapping) and "ciphertext" in secret


class SecretsManager:
    """
    Seals and opens provider client secrets.
    """

    def __init__(self, master_key: Optional[str] = None, salt: bytes = b'oauth_secret_salt'):
        """
        Initialize the secrets manager.

        Args:
            master_key: Master key for encryption/decryption. Without one,
                only plain (unsealed) secrets can be opened.
            salt: Salt for deriving the Fernet key from the master key
        """
        self.master_key = master_key or os.getenv("ACCESS_MASTER_KEY")
        self._salt = salt
        self._fernet = self._create_fernet() if self.master_key else None

    def _create_fernet(self) -> Fernet:
        """
        Create a Fernet cipher instance.

        Returns:
            Fernet cipher instance
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self._salt,
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(self.master_key.encode()))
        return Fernet(key)

    def seal_secret(self, secret: str) -> SealedSecret:
        """
        Seal a plaintext secret for storage.

        Args:
            secret: Secret to seal

        Returns:
            Sealed secret mapping
        """
        if self._fernet is None:
            raise ConfigurationError("Cannot seal secret without a master key")
        return {"ciphertext": self._fernet.encrypt(secret.encode()).decode()}

    def open_secret(self, secret: StoredSecret) -> str:
        """
        Open a stored secret.

        Plain strings are returned unchanged; sealed mappings are decrypted.

        Args:
            secret: Stored secret

        Returns:
            Plaintext secret
        """
        if not is_sealed(secret):
            if not isinstance(secret, str):
                raise ConfigurationError("Stored secret must be a string or sealed mapping")
            return secret

        if self._fernet is None:
            raise ConfigurationError("Sealed secret found but no master key is configured")

        try:
            return self._fernet.decrypt(secret["ciphertext"].encode()).decode()
        except InvalidToken as e:
            logger.error("Failed to open sealed secret", error=type(e).__name__)
            raise ConfigurationError("Sealed secret could not be opened") from e
