"""Random resource names and SQL admin passwords."""

from __future__ import annotations

import secrets
import string

from ._constants import (
    DEFAULT_PASSWORD_LENGTH,
    MAX_NAME_LENGTH,
    MIN_PASSWORD_LENGTH,
    NAME_SUFFIX_LENGTH,
)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_PASSWORD_SYMBOLS = "!@#$%^*()-_=+"
_PASSWORD_CLASSES = (
    string.ascii_uppercase,
    string.ascii_lowercase,
    string.digits,
    _PASSWORD_SYMBOLS,
)


def create_random_name(prefix: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Return *prefix* followed by a random lowercase alphanumeric suffix.

    The prefix is truncated when needed so the result fits in *max_length*
    and the suffix is always kept whole.
    """
    if max_length <= NAME_SUFFIX_LENGTH:
        raise ValueError(
            f"max_length must be greater than {NAME_SUFFIX_LENGTH}, got {max_length}"
        )
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(NAME_SUFFIX_LENGTH))
    return prefix[: max_length - NAME_SUFFIX_LENGTH] + suffix


def create_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    """Return a random password that meets Azure SQL complexity rules.

    Every password contains at least one uppercase letter, lowercase letter,
    digit and symbol.
    """
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"password length must be at least {MIN_PASSWORD_LENGTH}, got {length}"
        )
    chars = [secrets.choice(cls) for cls in _PASSWORD_CLASSES]
    pool = "".join(_PASSWORD_CLASSES)
    chars.extend(secrets.choice(pool) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
