"""Password hashing with bcrypt via passlib.

bcrypt embeds its salt in the hash string, and passlib's verify compares in
constant time. Passwords are never stored or logged in plaintext.
"""

from functools import lru_cache

from passlib.hash import bcrypt

from .config import settings


def hash_password(password: str) -> str:
    return bcrypt.using(rounds=settings.bcrypt_rounds).hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of *password* against a stored bcrypt hash.

    Malformed stored hashes verify as False instead of raising.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("audittrail-timing-equalizer")


def burn_verification(password: str) -> None:
    """Spend one verification's worth of time on a throwaway hash.

    Called for unknown usernames so response time does not reveal whether an
    account exists.
    """
    verify_password(password, _dummy_hash())


def salt_of(password_hash: str) -> str:
    """The ``$2b$NN$`` prefix plus 22-char salt embedded in a bcrypt hash."""
    return password_hash[:29]
