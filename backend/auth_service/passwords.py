"""
Password hashing helpers (Argon2).
"""

import logging

from argon2 import PasswordHasher
from argon2.exceptions import Argon2Error, VerifyMismatchError

logger = logging.getLogger(__name__)


class HashingError(Exception):
    """The password could not be hashed."""


def hash_password(password: str, rounds: int = 1) -> str:
    """
    Hash a plaintext password.

    Args:
        password (str): Plaintext password.
        rounds (int): Argon2 time cost. Keep it low in tests.

    Returns:
        str: Encoded Argon2 hash (salt and parameters included).

    Raises:
        HashingError: If the input is not a string or hashing fails.
    """
    if not isinstance(password, str):
        raise HashingError("password must be a string")

    try:
        return PasswordHasher(time_cost=max(int(rounds), 1)).hash(password)
    except (Argon2Error, TypeError, ValueError) as e:
        raise HashingError(str(e)) from e


def compare_passwords(password: str, hashed: str) -> bool:
    """
    Check a plaintext password against a stored hash.

    Never raises: a malformed hash or bad input reads the same as a wrong
    password to the caller.
    """
    try:
        return PasswordHasher().verify(hashed, password)
    except VerifyMismatchError:
        return False
    except Exception as e:
        logger.error(f"[Auth] Could not compare passwords: {e}")
        return False
