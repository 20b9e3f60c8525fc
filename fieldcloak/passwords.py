"""
Passwords
Salted bcrypt hashing for password-like fields.

Hashes are deliberately non-deterministic (fresh salt every time), so a
password field can never be searched by its hash. Verification happens
in-process against a stored hash instead.

bcrypt only consumes the first 72 bytes of its input. Longer inputs are
first replaced by the base64 SHA-512 digest of the whole value, so bytes
past the 72nd still count.
"""

import asyncio
import base64
import hashlib
import re

import bcrypt

from fieldcloak.ciphers import to_text
from fieldcloak.config import default_rounds


MAX_BCRYPT_USED_BYTES = 72
HASH_PREFIX = b"2a"

# $2a$NN$ followed by 22 chars of salt and 31 chars of hash
_BCRYPT_TOKEN = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


def _prepare(clear_text) -> bytes:
    data = to_text(clear_text)
    if isinstance(data, str):
        data = data.encode("utf-8")
    if len(data) > MAX_BCRYPT_USED_BYTES:
        data = base64.b64encode(hashlib.sha512(data).digest())
    # The digest is 88 chars of base64; bcrypt reads 72 of them
    return data[:MAX_BCRYPT_USED_BYTES]


def looks_hashed(value) -> bool:
    """Pattern check for an existing bcrypt token. Not a cryptographic check."""
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("ascii", errors="replace")
    return isinstance(value, str) and _BCRYPT_TOKEN.match(value) is not None


def hash_password(clear_text: str | bytes, rounds: int = None) -> str:
    """
    Hash a cleartext password with bcrypt.

    Args:
        clear_text: The password.
        rounds: bcrypt cost factor. Defaults to the environment's setting
            (see fieldcloak.config).

    Returns:
        The bcrypt token, e.g. "$2a$04$...".
    """
    salt = bcrypt.gensalt(rounds=rounds or default_rounds(), prefix=HASH_PREFIX)
    return bcrypt.hashpw(_prepare(clear_text), salt).decode("ascii")


def check_password(clear_text: str | bytes, hashed: str | bytes) -> bool:
    """
    Verify a cleartext password against a stored bcrypt token.

    Malformed or empty tokens simply fail verification.
    """
    if not hashed or clear_text is None:
        return False
    if isinstance(hashed, str):
        hashed = hashed.encode("utf-8")
    try:
        return bcrypt.checkpw(_prepare(clear_text), hashed)
    except (TypeError, ValueError):
        return False


async def hash_password_async(clear_text: str | bytes, rounds: int = None) -> str:
    """Non-blocking hash_password(): runs in a worker thread."""
    return await asyncio.to_thread(hash_password, clear_text, rounds)


async def check_password_async(clear_text: str | bytes, hashed: str | bytes) -> bool:
    """Non-blocking check_password(): runs in a worker thread."""
    return await asyncio.to_thread(check_password, clear_text, hashed)
