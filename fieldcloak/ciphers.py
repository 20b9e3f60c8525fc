"""
Ciphers
AES-256-CBC ciphering of scalar field values.

By default the IV is derived from the cleartext itself (first 16 bytes of
its SHA-512 digest), so the same value under the same key always yields
the same token. That is what keeps ciphered fields searchable by exact
match. Random IVs remain available for values that never need to be
searched.

Token layout:
  base64(IV) without its "==" suffix   (always 22 characters)
  + base64(ciphertext)
"""

import base64
import binascii
import hashlib
import os
import re
from datetime import date, datetime

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from fieldcloak.errors import DecryptionError, InvalidKeyError


KEY_SIZE = 32          # 256 bits
IV_BYTES = 16          # AES block size
IV_BYTES_BASE64 = 22   # ceil(16 * 4 / 3), the "==" suffix is stripped


def coerce_key(key: bytes | str | None) -> bytes:
    """
    Turn key material into the 32 raw bytes AES-256 expects.

    Strings are encoded as UTF-8. Anything that does not end up exactly
    32 bytes long is rejected.
    """
    if key is None or len(key) == 0:
        raise InvalidKeyError("Missing key material for field ciphering")
    if isinstance(key, str):
        key = key.encode("utf-8")
    key = bytes(key)
    if len(key) != KEY_SIZE:
        raise InvalidKeyError(
            f"Key must be {KEY_SIZE} bytes for AES-256, got {len(key)}"
        )
    return key


def to_text(value) -> str | bytes:
    """
    Canonical text representation of a field value before ciphering.

    Byte buffers are ciphered as is. Everything else is stringified, so
    deciphering always yields text.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return str(value)


def cipher(key: bytes | str, clear_text: str | bytes, derive_iv: bool = True) -> str:
    """
    Cipher a value into a base64 token.

    Args:
        key: 32 bytes of key material (or a 32-byte UTF-8 string).
        clear_text: Raw bytes, or any value in its text form (see to_text).
        derive_iv: Derive the IV from the cleartext (deterministic, searchable)
            instead of drawing it at random.

    Returns:
        The IV-prefixed base64 token.
    """
    key = coerce_key(key)
    data = to_text(clear_text)
    if isinstance(data, str):
        data = data.encode("utf-8")

    if derive_iv:
        iv = hashlib.sha512(data).digest()[:IV_BYTES]
    else:
        iv = os.urandom(IV_BYTES)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return (
        base64.b64encode(iv).decode()[:IV_BYTES_BASE64]
        + base64.b64encode(ciphertext).decode()
    )


def decipher(key: bytes | str, token: str | bytes) -> str:
    """
    Decipher a token produced by cipher(), whatever its IV mode.

    Plaintext that is not valid UTF-8 (ciphered raw bytes) comes back with
    U+FFFD in place of the undecodable sequences.

    Raises:
        InvalidKeyError: If the key is missing or has the wrong length.
        DecryptionError: If the token is malformed or its padding does not
            check out under this key.
    """
    key = coerce_key(key)
    if isinstance(token, (bytes, bytearray)):
        token = bytes(token).decode("ascii", errors="replace")
    if not isinstance(token, str) or len(token) < IV_BYTES_BASE64:
        raise DecryptionError("Ciphered value is too short to carry an IV")

    try:
        iv = base64.b64decode(token[:IV_BYTES_BASE64] + "==", validate=True)
        ciphertext = base64.b64decode(token[IV_BYTES_BASE64:], validate=True)

        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        data = unpadder.update(padded) + unpadder.finalize()
        return data.decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"Could not decipher value: {exc}") from exc


def cipher_value(key: bytes | str, value) -> str:
    """Cipher any field value with a derived IV, normalizing it to text first."""
    return cipher(key, to_text(value), derive_iv=True)
