"""
Field Specs
Canonical form for declared field paths.

A field spec is a sorted, deduplicated tuple of dotted paths such as
"email" or "admin.password". It can be declared as a list or as a single
string separated by whitespace and/or commas.
"""

import re
from typing import Iterable

from fieldcloak.errors import ConfigurationError


_SEPARATORS = re.compile(r"[\s,]+")


def normalize_fields(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """
    Normalize a raw field declaration into a canonical field spec.

    Args:
        raw: None, "email firstName", "email,firstName" or ["email", ...].

    Returns:
        Sorted tuple of unique, non-empty field paths. May be empty.

    Raises:
        ConfigurationError: If an entry is not a string.
    """
    if raw is None:
        return ()
    if isinstance(raw, str):
        items = _SEPARATORS.split(raw.strip())
    else:
        items = list(raw)

    for item in items:
        if not isinstance(item, str):
            raise ConfigurationError(
                f"Field paths must be strings, got {type(item).__name__}: {item!r}"
            )

    return tuple(sorted({item.strip() for item in items if item.strip()}))
