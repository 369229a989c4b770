"""
Password hashing and credential checks.

Stored passwords are ``<hex digest>.<hex salt>`` scrypt digests (64-byte key,
16-byte random salt used as its hex text). A stored value without a ``.``
is a legacy plaintext password and is compared as-is.
"""
import hashlib
import hmac
import logging
import secrets
from typing import Optional

from starlette.concurrency import run_in_threadpool

from app.models.domain import User
from app.storage.base import PromptStorage

logger = logging.getLogger(__name__)

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 64
SALT_BYTES = 16


def _scrypt(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """Hash ``password`` with a fresh random salt."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_scrypt(password, salt).hex()}.{salt}"


def is_hashed(stored: str) -> bool:
    return "." in stored


def verify_password(supplied: str, stored: str) -> bool:
    """Check a supplied password against a stored hash or legacy plaintext."""
    if not is_hashed(stored):
        return hmac.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))

    digest_hex, salt = stored.split(".", 1)
    try:
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        logger.warning("Stored password hash is not valid hex")
        return False
    return hmac.compare_digest(_scrypt(supplied, salt), expected)


async def authenticate(storage: PromptStorage, username: str, password: str) -> Optional[User]:
    """
    Look up ``username`` and check ``password``.

    Returns:
        The user, or None if the name is unknown or the password is wrong
    """
    user = await storage.get_user_by_username(username)
    if user is None:
        return None
    # scrypt is CPU-bound
    if not await verify_password_async(password, user.password):
        return None
    return user


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(supplied: str, stored: str) -> bool:
    return await run_in_threadpool(verify_password, supplied, stored)
