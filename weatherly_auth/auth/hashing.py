"""
Password digests and random material.

The digest is a single salted SHA-256 pass, hex encoded:

    sha256(utf8(password + salt))

This is not a memory-hard KDF. It is kept as-is so stored hashes stay
compatible with the existing user data.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Callable

SALT_BYTES = 16
TOKEN_BYTES = 32

RandomSource = Callable[[int], bytes]
Digest = Callable[[bytes], bytes]


def encode_text(text: str) -> bytes:
    """UTF-8 bytes of text; lone surrogates become U+FFFD instead of raising."""
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace").encode("utf-8")


def sha256_digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


class Hasher:
    """Salted digest plus salt/token generation from a secure random source."""

    def __init__(self, random_source: RandomSource = secrets.token_bytes, digest: Digest = sha256_digest):
        self._random = random_source
        self._digest = digest

    def hash(self, password: str, salt: str) -> str:
        return self._digest(encode_text(password + salt)).hex()

    def new_salt(self) -> str:
        return self._random(SALT_BYTES).hex()

    def new_token(self) -> str:
        # Collisions in a 256-bit space are not checked
        return self._random(TOKEN_BYTES).hex()


_default = Hasher()


def hash_password(password: str, salt: str) -> str:
    """Hex digest of password + salt."""
    return _default.hash(password, salt)


def new_salt() -> str:
    """16 secure random bytes, hex encoded."""
    return _default.new_salt()


def new_token() -> str:
    """32 secure random bytes, hex encoded. Used for sessions and reset tokens."""
    return _default.new_token()
