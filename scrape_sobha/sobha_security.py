"""
Session identity and credential-handling helpers.
"""

import hashlib
import secrets
import time


def generate_session_id() -> str:
    """
    Generate an opaque 16-character session token.

    Returns:
        Hex string unique to one scraping run
    """
    seed = f"{time.time_ns()}{secrets.token_hex(16)}"
    return hashlib.md5(seed.encode("utf-8")).hexdigest()[:16]


def mask_sensitive(value, visible_chars: int = 4) -> str:
    """
    Mask a sensitive value for logging, keeping the first few characters.

    Args:
        value: Value to mask (non-strings are fully masked)
        visible_chars: Number of leading characters left readable

    Returns:
        Masked string
    """
    if not value or not isinstance(value, str):
        return "***"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def sanitize_input(value) -> str:
    """Strip markup and quoting characters from free-text input."""
    if not isinstance(value, str):
        return str(value)
    return value.translate(str.maketrans("", "", "<>&\"';*")).strip()
