"""Encryption of the progress object kept in the browser."""

import base64
import hashlib

from cryptography.fernet import Fernet

from coderush.config import settings


def _get_fernet_key() -> bytes:
    """Derive a Fernet-compatible key from the secret_key."""
    key_bytes = hashlib.sha256(settings.secret_key.encode()).digest()
    return base64.urlsafe_b64encode(key_bytes)


def _get_fernet() -> Fernet:
    return Fernet(_get_fernet_key())


def encrypt_value(value: str) -> str:
    return _get_fernet().encrypt(value.encode()).decode()


def decrypt_value(token: str) -> str:
    return _get_fernet().decrypt(token.encode()).decode()
