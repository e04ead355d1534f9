"""Content-derived message identity."""

from __future__ import annotations

import hashlib


def message_id(raw: bytes) -> str:
    """Return the lowercase hex MD5 digest of the composed message bytes."""
    return hashlib.md5(raw, usedforsecurity=False).hexdigest()
