"""String helpers for building storage path segments."""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_CHARS_RE = re.compile(r"[^a-z0-9_.-]")


def sanitize_for_path(text: str) -> str:
    """
    Turn arbitrary text into a filesystem-safe path token.

    Trims, lowercases, collapses whitespace runs to a single underscore and
    drops anything outside ``[a-z0-9_.-]``. Idempotent.

    Args:
        text: Raw text (model name, stage slug, user filename)

    Returns:
        Sanitized token, possibly empty
    """
    lowered = text.strip().lower()
    underscored = _WHITESPACE_RE.sub("_", lowered)
    return _UNSAFE_CHARS_RE.sub("", underscored)


def generate_short_id(value: str, length: int = 8) -> str:
    """
    Derive a short directory-friendly identifier from a UUID-like string.

    Not unique on its own; it only ever appears alongside the full project
    context.

    Args:
        value: UUID or similar identifier
        length: Number of characters to keep

    Returns:
        Hyphen-free prefix of the identifier
    """
    return value.replace("-", "")[:length]
