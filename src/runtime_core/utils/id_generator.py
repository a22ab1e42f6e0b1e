"""Utility functions for generating subscription and request IDs."""

import re
import secrets
import string
import time

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def generate_prefixed_id(prefix: str, random_length: int = 9) -> str:
    """Generate an ID of the form ``<prefix>_<timestamp>_<random>``.

    The ID consists of:
    - The given prefix (e.g. ``sub`` or ``req``)
    - Current timestamp in milliseconds, base36 encoded
    - A random base36 suffix of ``random_length`` characters

    Args:
        prefix: Kind marker placed in front of the ID
        random_length: Length of the random suffix (default: 9)

    Returns:
        A string containing the generated ID
    """
    timestamp = to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(random_length))
    return f"{prefix}_{timestamp}_{random_part}"


def is_prefixed_id(value: str, prefix: str) -> bool:
    """Check whether ``value`` has the shape produced by ``generate_prefixed_id``.

    Args:
        value: Candidate ID
        prefix: Expected kind marker

    Returns:
        True if the value is an ID with the given prefix
    """
    return re.fullmatch(rf"{re.escape(prefix)}_[0-9a-z]+_[0-9a-z]+", value) is not None


def to_base36(number: int) -> str:
    """Convert a number to base36 representation.

    Args:
        number: The number to convert

    Returns:
        A string containing the base36 representation
    """
    alphabet = string.digits + string.ascii_lowercase
    base36 = ""

    while number:
        number, i = divmod(number, 36)
        base36 = alphabet[i] + base36

    return base36 or "0"
