import logging
from typing import Optional, Sequence, Tuple
from cryptography.fernet import Fernet, MultiFernet, InvalidToken

logger = logging.getLogger(__name__)

CIPHERTEXT_PREFIX = "enc:v1:"


def _build_fernet(keys: Sequence[str]) -> Optional[MultiFernet]:
    """Create a MultiFernet from base64 urlsafe-encoded 32-byte keys.
    Newest key first, so rotation encrypts with it and still decrypts old rows.
    """
    clean_keys = [k.strip() for k in keys if k and k.strip()]
    if not clean_keys:
        return None
    try:
        return MultiFernet([Fernet(k) for k in clean_keys])
    except ValueError:
        logger.exception("Failed to construct MultiFernet. Check TOKEN_ENCRYPTION_KEYS format.")
        return None


def is_encrypted(value: str) -> bool:
    return isinstance(value, str) and value.startswith(CIPHERTEXT_PREFIX)


def encrypt_token(access_token: str, keys: Sequence[str]) -> str:
    """Encrypt an access token for storage. Returns it unchanged when no keys are configured."""
    if not keys:
        return access_token
    f = _build_fernet(keys)
    if not f:
        raise ValueError("TOKEN_ENCRYPTION_KEYS not configured or invalid")
    token = f.encrypt(access_token.encode("utf-8"))
    return f"{CIPHERTEXT_PREFIX}{token.decode('utf-8')}"


def decrypt_token(stored: str, keys: Sequence[str]) -> Tuple[Optional[str], bool]:
    """Decrypt a stored access token.
    Returns (plaintext, encrypted_flag). Plaintext legacy rows come back as (stored, False);
    an encrypted value that cannot be decrypted comes back as (None, True).
    """
    if not is_encrypted(stored):
        return stored, False
    f = _build_fernet(keys)
    if not f:
        logger.error("Encrypted token found but TOKEN_ENCRYPTION_KEYS are not configured")
        return None, True
    try:
        return f.decrypt(stored[len(CIPHERTEXT_PREFIX):].encode("utf-8")).decode("utf-8"), True
    except InvalidToken:
        logger.error("Failed to decrypt access token: invalid token or wrong keys")
        return None, True

