"""Password hashing for storefront accounts."""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        return False


def needs_rehash(hashed_password: str, rounds: int = BCRYPT_ROUNDS) -> bool:
    """True when the stored hash uses a lower work factor than ``rounds``.

    bcrypt hashes look like ``$2b$12$<salt+digest>``.
    """
    parts = hashed_password.split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return True
    return int(parts[2]) < rounds


__all__ = ["BCRYPT_ROUNDS", "MAX_PASSWORD_BYTES", "hash_password", "needs_rehash", "verify_password"]
