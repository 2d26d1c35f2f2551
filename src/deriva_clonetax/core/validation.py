"""Shared validation helpers for deriva-clonetax.

The module provides:
    - VALIDATION_CONFIG: Shared ConfigDict for Pydantic models and @validate_call
    - sanitize_key(): Normalize a term meta key to its storage-safe form
    - slugify(): Derive a slug from a term name
    - parse_key_list(): Split and sanitize a comma separated key list
"""

import re
from typing import Iterable

from pydantic import ConfigDict

# Standard configuration for clonetax Pydantic models and validate_call decorators.
# Allows store objects (engines, catalogs) to pass through validation untouched.
VALIDATION_CONFIG = ConfigDict(
    arbitrary_types_allowed=True,
    validate_default=True,
    use_enum_values=True,
)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-z0-9_\-]")
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def sanitize_key(key: str) -> str:
    """Normalize a meta key: lower-case, only ``a-z``, ``0-9``, ``_`` and ``-`` survive.

    Examples:
        >>> sanitize_key(" Category_Colour ")
        'category_colour'
        >>> sanitize_key("alt.name!")
        'altname'
    """
    return _UNSAFE_KEY_CHARS.sub("", key.lower())


def slugify(name: str) -> str:
    """Derive a slug from a term name when none is given.

    Examples:
        >>> slugify("Red Wine & Spirits")
        'red-wine-spirits'
    """
    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")


def parse_key_list(keys: str | Iterable[str] | None) -> list[str]:
    """Turn ``"a,B, c"`` (or an iterable of keys) into ``['a', 'b', 'c']``.

    Keys are sanitized, empty entries dropped and duplicates removed while
    keeping the first-seen order.
    """
    if keys is None:
        return []
    if isinstance(keys, str):
        keys = keys.split(",")
    result: list[str] = []
    for key in keys:
        clean = sanitize_key(key)
        if clean and clean not in result:
            result.append(clean)
    return result


__all__ = [
    "VALIDATION_CONFIG",
    "sanitize_key",
    "slugify",
    "parse_key_list",
]
