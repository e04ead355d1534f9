"""Envelope recipient normalization."""

from __future__ import annotations

from collections.abc import Sequence


def unique_recipients(
    to: Sequence[str], cc: Sequence[str] = (), bcc: Sequence[str] = ()
) -> tuple[str, ...]:
    """Merge To/Cc/Bcc into one recipient set, keeping first-seen order.

    Addresses are compared as exact strings; no case folding or canonicalization.
    """
    seen: set[str] = set()
    recipients: list[str] = []
    for address in (*to, *cc, *bcc):
        if address in seen:
            continue
        seen.add(address)
        recipients.append(address)
    return tuple(recipients)
