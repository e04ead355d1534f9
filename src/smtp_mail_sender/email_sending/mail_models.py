"""Email sending domain entities."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SendRequest:  # pylint: disable=too-many-instance-attributes
    """One message to deliver, typed at the boundary before entering the core."""

    to: tuple[str, ...]
    subject: str
    body: str
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    from_address: str | None = None
    render_html: bool = False

    def __post_init__(self) -> None:
        if not self.to:
            raise ValueError("At least one 'to' address is required.")


@dataclass(frozen=True)
class ComposedMessage:
    """Header block, optional MIME block and body, plus the exact DATA payload."""

    header_block: str
    mime_block: str
    body: str
    raw: bytes


@dataclass(frozen=True)
class SendResult:
    """Outcome of a delivered message."""

    id: str
