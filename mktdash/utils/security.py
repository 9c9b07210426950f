"""Password hashing and API key generation."""
from __future__ import annotations

import secrets
import string

import bcrypt

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=10)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_api_key() -> str:
    """Generate a secure 32 character API key."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(32))


__all__ = ["hash_password", "verify_password", "generate_api_key"]
