"""Failures raised while delivering a message over SMTP."""

from __future__ import annotations


class MailDeliveryError(Exception):
    """Base class for a failed send; carries the underlying transport error text."""

    summary = "Error sending email"

    def __init__(self, detail: str) -> None:
        super().__init__(f"{self.summary}: {detail}")
        self.detail = detail


class ServerConnectionError(MailDeliveryError):
    """The TCP connection to the SMTP server could not be opened."""

    summary = "Error connecting to SMTP server"


class TlsUpgradeError(MailDeliveryError):
    """STARTTLS negotiation failed."""

    summary = "Error upgrading connection to TLS"


class AuthenticationError(MailDeliveryError):
    """The server rejected the credentials."""

    summary = "Error authenticating with SMTP server"


class EnvelopeError(MailDeliveryError):
    """MAIL FROM was rejected."""

    summary = "Error setting sender address"


class RecipientError(MailDeliveryError):
    """RCPT TO was rejected for one recipient."""

    summary = "Error setting recipient address"

    def __init__(self, recipient: str, detail: str) -> None:
        super().__init__(f"{recipient}: {detail}")
        self.detail = detail
        self.recipient = recipient


class TransmissionError(MailDeliveryError):
    """The DATA phase failed while writing or finalizing the message."""

    summary = "Error sending email message"


class SendCancelledError(MailDeliveryError):
    """The caller cancelled the send before it completed."""

    summary = "Email sending cancelled"
