"""Generation of submission identifiers."""

import re
import secrets
import string
import time

ALPHABET = string.digits + string.ascii_lowercase
RANDOM_LENGTH = 11

TOKEN = re.compile(r'[a-zA-Z0-9_-]+')
"""Identifiers must match this pattern to be used in lookups or paths."""


def _base36(value: int) -> str:
    if value == 0:
        return '0'
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_id() -> str:
    """
    Generate a new submission identifier.

    The identifier is the current time in milliseconds (base 36) followed by
    a random base-36 suffix, so identifiers created later tend to sort later.
    Uniqueness is probabilistic; nothing downstream re-checks for collisions.
    """
    millis = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(ALPHABET) for _ in range(RANDOM_LENGTH))
    return _base36(millis) + suffix


def is_valid_id(submission_id: str) -> bool:
    """Determine whether ``submission_id`` is a path-safe token."""
    return isinstance(submission_id, str) \
        and TOKEN.fullmatch(submission_id) is not None
