"""
Core Utilities.

Shared utility functions used across the package.
All modules should import utilities from this module.
"""

import re
import unicodedata

_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(value: str) -> str:
    """
    Convert a note title into a file-name friendly slug.

    Accents are folded to ASCII, anything that is not a word character,
    whitespace or hyphen is dropped, and runs of separators collapse into
    a single hyphen.

    Returns:
        Lower-case slug, or "note" when nothing usable remains
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    cleaned = _SLUG_STRIP.sub("", normalized).strip().lower()
    slug = _SLUG_SEPARATORS.sub("-", cleaned).strip("-")
    return slug or "note"


def utf8_offset(text: str, index: int) -> int:
    """Byte offset of character ``index`` in the UTF-8 encoding of ``text``."""
    return len(text[:index].encode("utf-8"))


def line_and_column(text: str, index: int) -> tuple[int, int]:
    """1-based line and column of character ``index`` in ``text``."""
    line = text.count("\n", 0, index) + 1
    column = index - (text.rfind("\n", 0, index) + 1) + 1
    return line, column
