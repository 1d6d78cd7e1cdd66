"""Fernet encryption for OAuth tokens stored on project integrations."""

import logging

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings

logger = logging.getLogger(__name__)

_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    global _fernet
    if _fernet is None:
        key = settings.fernet_key
        if not key:
            raise ValueError("FERNET_KEY is not configured — cannot encrypt/decrypt tokens")
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
    return _fernet


def encrypt_token(plaintext: str | None) -> bytes | None:
    """Encrypt a token for a BYTEA column. None/empty stays None."""
    if not plaintext:
        return None
    return _get_fernet().encrypt(plaintext.encode("utf-8"))


def decrypt_token(ciphertext: bytes | None) -> str:
    """Decrypt a stored token. Returns empty string when absent or unreadable."""
    if not ciphertext:
        return ""
    try:
        return _get_fernet().decrypt(ciphertext).decode("utf-8")
    except InvalidToken:
        logger.error("Failed to decrypt token — invalid Fernet key or corrupted data")
        return ""
