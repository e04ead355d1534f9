"""Message composition for the DATA phase."""

from __future__ import annotations

from .mail_models import ComposedMessage, SendRequest

CRLF = "\r\n"
HTML_MIME_BLOCK = 'MIME-version: 1.0;\nContent-Type: text/html; charset="UTF-8";\n\n'


def compose_message(request: SendRequest) -> ComposedMessage:
    """Render headers and body into the wire payload.

    Bcc addresses never appear in the headers. Header values are written as given,
    so CR/LF inside the subject or an address ends up in the header block verbatim.
    """
    header_block = (
        f"To: {', '.join(request.to)}{CRLF}"
        f"Cc: {', '.join(request.cc)}{CRLF}"
        f"Subject: {request.subject}{CRLF}"
    )
    mime_block = HTML_MIME_BLOCK if request.render_html else ""
    raw = (header_block + mime_block + CRLF + request.body + CRLF).encode("utf-8")
    return ComposedMessage(
        header_block=header_block,
        mime_block=mime_block,
        body=request.body,
        raw=raw,
    )
