"""
Password Hashing

Thin wrapper around a passlib CryptContext using the pbkdf2_sha256
scheme. Hashes are passlib's modular-crypt strings,

    $pbkdf2-sha256$<rounds>$<salt>$<checksum>

so the round count travels with the hash and raising the configured
cost only affects newly hashed passwords.
"""

from functools import lru_cache

from passlib.context import CryptContext

DEFAULT_ROUNDS = 120_000


@lru_cache()
def password_context(rounds: int = DEFAULT_ROUNDS) -> CryptContext:
    """
    CryptContext hashing with `rounds` PBKDF2 iterations (cached per round count).

    Raises:
        ValueError: rounds is not positive
    """
    if rounds < 1:
        raise ValueError("rounds must be positive")
    return CryptContext(
        schemes=["pbkdf2_sha256"],
        deprecated="auto",
        pbkdf2_sha256__default_rounds=rounds,
    )


def hash_password(password: str, iterations: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with a fresh random salt."""
    return password_context(iterations).hash(password)


def verify_password(password: str, encoded: str) -> bool:
    """
    Check a password against a stored hash.

    Unrecognised or malformed hashes verify as False rather than raising.
    """
    try:
        return password_context().verify(password, encoded)
    except (TypeError, ValueError):
        return False
