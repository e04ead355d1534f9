"""Email sending exports."""

from .delivery_errors import (
    AuthenticationError,
    EnvelopeError,
    MailDeliveryError,
    RecipientError,
    SendCancelledError,
    ServerConnectionError,
    TlsUpgradeError,
    TransmissionError,
)
from .mail_models import ComposedMessage, SendRequest, SendResult
from .message_builder import compose_message
from .message_identity import message_id
from .recipient_normalizer import unique_recipients
from .transport_session import (
    SessionState,
    SMTPConnection,
    SmtplibConnection,
    TransportSession,
    send_mail,
)

__all__ = [
    "SendRequest",
    "ComposedMessage",
    "SendResult",
    "MailDeliveryError",
    "ServerConnectionError",
    "TlsUpgradeError",
    "AuthenticationError",
    "EnvelopeError",
    "RecipientError",
    "TransmissionError",
    "SendCancelledError",
    "compose_message",
    "message_id",
    "unique_recipients",
    "SessionState",
    "SMTPConnection",
    "SmtplibConnection",
    "TransportSession",
    "send_mail",
]
