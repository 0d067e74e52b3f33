"""Short random identifiers for naming resources."""

import random

_BASE_62_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_UNIQUE_ID_LENGTH = 6


def unique_id() -> str:
    """Return a 6-character base-62 string that is unlikely to collide."""
    return "".join(random.choices(_BASE_62_CHARS, k=_UNIQUE_ID_LENGTH))