"""Password hashing and random token generation."""

import secrets

import bcrypt

from app.config import get_settings


def random_string(length: int) -> str:
    """Return a cryptographically random hex string of exactly ``length`` characters."""
    return secrets.token_hex(length)[:length]


def hash_password(password: str) -> str:
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
