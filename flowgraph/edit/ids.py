"""Deterministic node id generation for inserted steps."""

from __future__ import annotations

import re
from typing import Collection, Optional

# Hints that config flows emit when the author never chose a real id.
PLACEHOLDER_HINTS = ("STEP", "NODE", "COMPONENT_STEP", "INSERT_NODE", "NEW_NODE")

_SLUG_INVALID_RE = re.compile(r"[^A-Za-z0-9_-]")


def is_placeholder_hint(hint: Optional[str]) -> bool:
    """True for a missing, blank or placeholder-valued id hint."""
    if hint is None:
        return True
    trimmed = hint.strip()
    return not trimmed or trimmed in PLACEHOLDER_HINTS


def slugify(value: str) -> str:
    """Make a string safe to use as a node id.

    >>> slugify("2 fetch.url")
    '_2_fetch_url'
    """
    slug = _SLUG_INVALID_RE.sub("_", value)
    if not slug:
        return "_"
    if not (slug[0].isalpha() or slug[0] == "_"):
        slug = "_" + slug
    return slug


def generate_node_id(hint: Optional[str], anchor: str, existing_ids: Collection[str]) -> str:
    """Choose an id for a new node that does not collide with existing_ids.

    A genuine hint is kept (slugified) when free. A placeholder hint falls back
    to "node__after__<anchor>". A taken base gets a "__2", "__3", ... suffix.
    """
    if is_placeholder_hint(hint):
        base = "node__after__" + slugify(anchor)
    else:
        base = slugify(hint.strip())

    if base not in existing_ids:
        return base

    suffix = 2
    while f"{base}__{suffix}" in existing_ids:
        suffix += 1
    return f"{base}__{suffix}"
