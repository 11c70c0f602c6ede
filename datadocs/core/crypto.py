"""Symmetric encryption for text revisions at rest.

Every revision body is sealed with Fernet before it reaches the database.
A single ``TextCipher`` is built at startup from ``SECRET_KEY`` and handed to
the services that need it; it holds no mutable state and is safe to share
across concurrent requests.
"""

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .config import ConfigurationError, Settings
from ..exceptions import TextDecodeError


def derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key (urlsafe base64 of 32 bytes) from an arbitrary secret."""
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class TextCipher:
    """Encrypts and decrypts revision content.

    Encryption is randomized (Fernet embeds a timestamp and random IV), so
    sealing the same plaintext twice yields different tokens. Only
    ``decrypt(encrypt(x)) == x`` is guaranteed.
    """

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    @classmethod
    def from_secret(cls, secret: Optional[str]) -> "TextCipher":
        """Build a cipher from the configured secret. Raises ConfigurationError when empty."""
        if not secret:
            raise ConfigurationError("SECRET_KEY is required to encrypt text revisions")
        return cls(derive_fernet_key(secret))

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextCipher":
        return cls.from_secret(settings.secret_key)

    def encrypt(self, plaintext: str) -> str:
        """Seal ``plaintext`` and return the token as ASCII text for storage."""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Open a token produced by :meth:`encrypt`.

        Raises:
            TextDecodeError: the token is corrupted or was sealed with another key.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError) as e:
            raise TextDecodeError() from e
