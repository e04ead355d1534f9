"""SMTP transport session and the send operation."""

from __future__ import annotations

import base64
import contextlib
import logging
import smtplib
import socket
import ssl
import threading
from collections.abc import Callable, Iterator, Sequence
from enum import Enum
from typing import NoReturn, Protocol

from smtp_mail_sender.configuration.runtime_settings import ConnectionConfig

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

logger = logging.getLogger(__name__)

_CANCEL_POLL_SECONDS = 0.05
_TRANSPORT_ERRORS = (smtplib.SMTPException, OSError, UnicodeError)


class SMTPConnection(Protocol):
    """Protocol for one open SMTP connection, implemented by real and fake connections."""

    def connect(self) -> None: ...

    def starttls(self, context: ssl.SSLContext) -> None: ...

    def login_plain(self, username: str, password: str) -> None: ...

    def mail(self, sender: str) -> None: ...

    def rcpt(self, recipient: str) -> None: ...

    def data(self, payload: bytes) -> None: ...

    def quit(self) -> None: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


ConnectionFactory = Callable[[str, int], SMTPConnection]


class SmtplibConnection:
    """SMTP connection backed by smtplib.

    Envelope and AUTH commands are written as UTF-8 bytes. smtplib's own ``mail``,
    ``rcpt`` and ``auth`` encode their command lines as ASCII.
    """

    def __init__(self, smtp: smtplib.SMTP, host: str, port: int) -> None:
        self._smtp = smtp
        self._host = host
        self._port = port

    @classmethod
    def create(cls, host: str, port: int) -> SmtplibConnection:
        return cls(smtplib.SMTP(), host, port)

    def connect(self) -> None:
        code, response = self._smtp.connect(self._host, self._port)
        if code != 220:
            self._smtp.close()
            raise smtplib.SMTPConnectError(code, response)

    def starttls(self, context: ssl.SSLContext) -> None:
        self._smtp.ehlo_or_helo_if_needed()
        self._smtp.starttls(context=context)
        self._smtp.ehlo()

    def login_plain(self, username: str, password: str) -> None:
        self._smtp.ehlo_or_helo_if_needed()
        if not self._smtp.has_extn("auth"):
            raise smtplib.SMTPNotSupportedError("SMTP AUTH extension not supported by server.")
        token = base64.b64encode(f"\0{username}\0{password}".encode("utf-8")).decode("ascii")
        code, response = self._command(f"AUTH PLAIN {token}")
        if code not in (235, 503):
            raise smtplib.SMTPAuthenticationError(code, response)

    def mail(self, sender: str) -> None:
        self._smtp.ehlo_or_helo_if_needed()
        line = f"MAIL FROM:<{sender}>"
        if not sender.isascii() and self._smtp.has_extn("smtputf8"):
            line += " SMTPUTF8"
        code, response = self._command(line)
        if code != 250:
            raise smtplib.SMTPSenderRefused(code, response, sender)

    def rcpt(self, recipient: str) -> None:
        code, response = self._command(f"RCPT TO:<{recipient}>")
        if code not in (250, 251):
            raise smtplib.SMTPRecipientsRefused({recipient: (code, response)})

    def data(self, payload: bytes) -> None:
        # smtplib.SMTP.data raises SMTPDataError on a non-354 or non-250 reply.
        self._smtp.data(payload)

    def quit(self) -> None:
        self._smtp.quit()

    def close(self) -> None:
        self._smtp.close()

    def abort(self) -> None:
        """Shut the socket down so a blocked read or write in another thread fails now."""
        sock = self._smtp.sock
        if sock is None:
            return
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)

    def _command(self, line: str) -> tuple[int, bytes]:
        self._smtp.send(f"{line}\r\n".encode("utf-8"))
        return self._smtp.getreply()


class SessionState(str, Enum):
    """Progress of a transport session."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SECURED = "secured"
    PLAIN = "plain"
    AUTHENTICATED = "authenticated"
    ENVELOPE_STARTED = "envelope_started"
    RECIPIENTS_ACCEPTED = "recipients_accepted"
    DATA_PHASE = "data_phase"
    CLOSED = "closed"
    ABORTED = "aborted"


def insecure_tls_context() -> ssl.SSLContext:
    """TLS context used for STARTTLS: certificate and server-name checks are disabled."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class TransportSession:
    """Single-use SMTP session delivering exactly one message.

    The session dials, upgrades to TLS and authenticates only when credentials are
    configured, then runs MAIL/RCPT/DATA. The first failing step aborts the session,
    closes the connection and raises the matching ``MailDeliveryError``.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        connection_factory: ConnectionFactory | None = None,
        cancel_event: threading.Event | None = None,
        tls_context_factory: Callable[[], ssl.SSLContext] = insecure_tls_context,
    ) -> None:
        self._config = config
        self._connection_factory = connection_factory or SmtplibConnection.create
        self._cancel_event = cancel_event
        self._tls_context_factory = tls_context_factory
        self._state = SessionState.DISCONNECTED

    @property
    def state(self) -> SessionState:
        return self._state

    def deliver(self, message: ComposedMessage, sender: str, recipients: Sequence[str]) -> None:
        if self._state is not SessionState.DISCONNECTED:
            raise RuntimeError("Transport sessions are single-use.")
        connection = self._create_connection()
        try:
            with _abort_on_cancel(connection, self._cancel_event):
                self._dial(connection)
                self._secure(connection)
                self._authenticate(connection)
                self._start_envelope(connection, sender)
                self._add_recipients(connection, recipients)
                self._transmit(connection, message.raw)
                self._finish(connection)
        except BaseException:
            self._state = SessionState.ABORTED
            connection.close()
            raise

    def _create_connection(self) -> SMTPConnection:
        self._check_cancelled()
        try:
            port = int(self._config.port)
        except ValueError as exc:
            self._state = SessionState.ABORTED
            raise ServerConnectionError(f"invalid port {self._config.port!r}") from exc
        try:
            return self._connection_factory(self._config.host, port)
        except _TRANSPORT_ERRORS as exc:
            self._state = SessionState.ABORTED
            raise ServerConnectionError(_describe(exc)) from exc

    def _dial(self, connection: SMTPConnection) -> None:
        self._check_cancelled()
        logger.debug("Connecting to SMTP server %s", self._config.address)
        try:
            connection.connect()
        except _TRANSPORT_ERRORS as exc:
            self._fail(ServerConnectionError, exc)
        self._state = SessionState.CONNECTED

    def _secure(self, connection: SMTPConnection) -> None:
        if self._config.credentials is None:
            self._state = SessionState.PLAIN
            return
        self._check_cancelled()
        logger.debug("Upgrading SMTP connection to TLS")
        try:
            connection.starttls(self._tls_context_factory())
        except _TRANSPORT_ERRORS as exc:
            self._fail(TlsUpgradeError, exc)
        self._state = SessionState.SECURED

    def _authenticate(self, connection: SMTPConnection) -> None:
        credentials = self._config.credentials
        if credentials is None:
            return
        self._check_cancelled()
        logger.debug("Authenticating as %s", credentials.username)
        try:
            connection.login_plain(credentials.username, credentials.password)
        except _TRANSPORT_ERRORS as exc:
            self._fail(AuthenticationError, exc)
        self._state = SessionState.AUTHENTICATED

    def _start_envelope(self, connection: SMTPConnection, sender: str) -> None:
        self._check_cancelled()
        logger.debug("MAIL FROM:<%s>", sender)
        try:
            connection.mail(sender)
        except _TRANSPORT_ERRORS as exc:
            self._fail(EnvelopeError, exc)
        self._state = SessionState.ENVELOPE_STARTED

    def _add_recipients(self, connection: SMTPConnection, recipients: Sequence[str]) -> None:
        for recipient in recipients:
            self._check_cancelled()
            logger.debug("RCPT TO:<%s>", recipient)
            try:
                connection.rcpt(recipient)
            except _TRANSPORT_ERRORS as exc:
                self._check_cancelled(exc)
                raise RecipientError(recipient, _describe(exc)) from exc
        self._state = SessionState.RECIPIENTS_ACCEPTED

    def _transmit(self, connection: SMTPConnection, payload: bytes) -> None:
        self._check_cancelled()
        self._state = SessionState.DATA_PHASE
        logger.debug("Sending %d bytes of message data", len(payload))
        try:
            connection.data(payload)
        except _TRANSPORT_ERRORS as exc:
            self._fail(TransmissionError, exc)

    def _finish(self, connection: SMTPConnection) -> None:
        try:
            connection.quit()
        except _TRANSPORT_ERRORS as exc:
            # The message was already accepted by the DATA reply.
            logger.warning("SMTP QUIT failed after delivery: %s", _describe(exc))
            connection.close()
        self._state = SessionState.CLOSED

    def _fail(self, error_cls: type[MailDeliveryError], exc: BaseException) -> NoReturn:
        self._check_cancelled(exc)
        raise error_cls(_describe(exc)) from exc

    def _check_cancelled(self, cause: BaseException | None = None) -> None:
        if self._cancel_event is None or not self._cancel_event.is_set():
            return
        reached = self._state
        self._state = SessionState.ABORTED
        raise SendCancelledError(f"cancelled in state '{reached.value}'") from cause


def resolve_sender(request: SendRequest, config: ConnectionConfig) -> str:
    """Explicit ``from`` address when given, otherwise the configured username."""
    return request.from_address or config.username


def send_mail(
    config: ConnectionConfig,
    request: SendRequest,
    *,
    connection_factory: ConnectionFactory | None = None,
    cancel_event: threading.Event | None = None,
) -> SendResult:
    """Deliver one message and return its content-derived identifier.

    Raises:
      MailDeliveryError: The subclass names the protocol step that failed.
    """
    message = compose_message(request)
    recipients = unique_recipients(request.to, request.cc, request.bcc)
    session = TransportSession(
        config,
        connection_factory=connection_factory,
        cancel_event=cancel_event,
    )
    session.deliver(message, resolve_sender(request, config), recipients)
    result = SendResult(id=message_id(message.raw))
    logger.info("Email sent successfully", extra={"message_id": result.id})
    return result


@contextlib.contextmanager
def _abort_on_cancel(
    connection: SMTPConnection, cancel_event: threading.Event | None
) -> Iterator[None]:
    if cancel_event is None:
        yield
        return
    finished = threading.Event()

    def _watch() -> None:
        # Keep aborting until the session ends: the socket does not exist yet
        # while the TCP connect is still pending.
        while not finished.is_set():
            if cancel_event.wait(_CANCEL_POLL_SECONDS):
                connection.abort()
                finished.wait(_CANCEL_POLL_SECONDS)

    watcher = threading.Thread(target=_watch, name="smtp-cancel-watch", daemon=True)
    watcher.start()
    try:
        yield
    finally:
        finished.set()
        watcher.join()


def _describe(exc: BaseException) -> str:
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return "; ".join(
            f"{code} {_text(response)}" for code, response in exc.recipients.values()
        )
    if isinstance(exc, smtplib.SMTPResponseException):
        return f"{exc.smtp_code} {_text(exc.smtp_error)}"
    return str(exc) or exc.__class__.__name__


def _text(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
