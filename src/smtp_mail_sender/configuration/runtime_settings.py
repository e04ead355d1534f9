"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Username/password pair used for AUTH PLAIN."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ConnectionConfig:
    """SMTP server connectivity configuration, passed into every send."""

    host: str
    port: str
    credentials: Credentials | None = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def username(self) -> str:
        return self.credentials.username if self.credentials else ""


@dataclass(frozen=True)
class MailSettings:  # pylint: disable=too-many-instance-attributes
    """Declared message attributes as read from the configuration file."""

    to: tuple[str, ...]
    subject: str
    body: str
    cc: tuple[str, ...] = ()
    bcc: tuple[str, ...] = ()
    from_address: str | None = None
    render_html: bool = False


@dataclass(frozen=True)
class Configuration:
    """Top-level configuration aggregate."""

    smtp: ConnectionConfig
    mail: MailSettings | None
