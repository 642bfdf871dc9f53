"""Identifier generation and search-query key hashing."""

import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase

# 64-bit FNV-1a parameters
_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_FNV_MASK = 0xFFFFFFFFFFFFFFFF


def _random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _generate_id(kind: str) -> str:
    return f"{kind}_{int(time.time() * 1000)}_{_random_suffix()}"


def generate_session_id() -> str:
    """``session_<epoch-ms>_<9 base36 chars>``."""
    return _generate_id("session")


def generate_user_id() -> str:
    """``user_<epoch-ms>_<9 base36 chars>``."""
    return _generate_id("user")


def generate_message_id() -> str:
    """``msg_<epoch-ms>_<9 base36 chars>``."""
    return _generate_id("msg")


def normalize_query(query: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    return " ".join(query.lower().split())


def search_query_hash(query: str) -> str:
    """Stable 16-hex-digit FNV-1a hash of the normalized query.

    Not cryptographic: a collision only costs a wrong cache hit for an
    identical-looking query, which the stored ``query`` field guards against.
    """
    digest = _FNV_OFFSET
    for byte in normalize_query(query).encode("utf-8", "surrogatepass"):
        digest ^= byte
        digest = (digest * _FNV_PRIME) & _FNV_MASK
    return f"{digest:016x}"
