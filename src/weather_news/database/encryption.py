"""At-rest encryption for server-side session payloads.

`DatabaseSessionStore` keeps one row per login; the JSON payload naming the
signed-in user is Fernet-encrypted before it is written. A payload that no
longer decrypts (corrupt row, rotated SECRET_KEY) raises `DecryptionError`,
and the store treats that session as gone.

## Key Derivation

The encryption key is derived from the application secret using PBKDF2:
- Salt: Configurable, should be unique per deployment
- Iterations: 480,000 (OWASP recommendation for PBKDF2-HMAC-SHA256)
- Key length: 32 bytes (256 bits)

## Usage

```python
from weather_news.database.encryption import decrypt_value, encrypt_value

encrypted = encrypt_value('{"user_id": "..."}')
decrypted = decrypt_value(encrypted)
```
"""

from __future__ import annotations

import base64
import logging

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Module-level cipher instance (initialized on first use)
_fernet: Fernet | None = None


class DecryptionError(ValueError):
    """Raised when stored data cannot be decrypted with the current key."""


def _get_fernet() -> Fernet:
    """Get or create the Fernet cipher instance."""
    global _fernet

    if _fernet is None:
        from weather_news.config import get_settings

        settings = get_settings()
        _fernet = _create_fernet(
            settings.secret_key,
            settings.encryption_salt,
        )

    return _fernet


def _create_fernet(secret_key: str, salt: str) -> Fernet:
    """Create a Fernet cipher from the secret key and salt.

    Args:
        secret_key: Application secret key
        salt: Unique salt for this deployment

    Returns:
        Configured Fernet cipher
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # 256 bits for Fernet
        salt=salt.encode("utf-8"),
        iterations=480_000,
    )

    key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode("utf-8")))
    return Fernet(key)


def encrypt_value(plaintext: str) -> str:
    """Encrypt a serialized session payload for the sessions table."""
    if not plaintext:
        return ""

    fernet = _get_fernet()
    return fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")


def decrypt_value(ciphertext: str) -> str:
    """Decrypt a session payload read from the sessions table.

    Raises:
        DecryptionError: If the ciphertext is corrupt or was written with
            a different key
    """
    if not ciphertext:
        return ""

    fernet = _get_fernet()
    try:
        return fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except InvalidToken as e:
        logger.error("Failed to decrypt stored value: invalid token or key")
        raise DecryptionError("Failed to decrypt stored value") from e


def reset_cipher() -> None:
    """Reset the cached cipher instance.

    The next encrypt or decrypt derives a fresh key from the current
    settings. Tests call this after changing SECRET_KEY.
    """
    global _fernet
    _fernet = None
