"""Configuration loader service."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import Configuration, ConnectionConfig, Credentials, MailSettings

logger = logging.getLogger(__name__)

ENV_HOST = "SMTP_HOST"
ENV_PORT = "SMTP_PORT"
ENV_AUTHENTICATION = "SMTP_AUTHENTICATION"
ENV_USERNAME = "SMTP_USERNAME"
ENV_PASSWORD = "SMTP_PASSWORD"

_TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(
    config_path: Path | str, *, environ: Mapping[str, str] | None = None
) -> Configuration:
    """Load and validate the configuration file.

    SMTP connection values missing from the file are taken from the ``SMTP_*``
    environment variables. The ``send_mail`` section is optional here; commands that
    send mail check for it with :func:`require_mail_settings`.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    smtp_section = parsed.get("smtp")
    if smtp_section is None:
        smtp_section = {}
    smtp = resolve_connection_config(
        _require_mapping(smtp_section, "smtp"),
        environ=os.environ if environ is None else environ,
    )
    mail_section = parsed.get("send_mail")
    mail = None if mail_section is None else _parse_mail_section(mail_section)
    return Configuration(smtp=smtp, mail=mail)


def require_mail_settings(configuration: Configuration) -> MailSettings:
    if configuration.mail is None:
        raise ConfigurationError("Configuration section 'send_mail' is required.")
    return configuration.mail


def resolve_connection_config(
    section: Mapping[str, Any], *, environ: Mapping[str, str]
) -> ConnectionConfig:
    """Merge the ``smtp`` section over the environment and validate the result."""
    host = _optional_string(section.get("host"), "smtp.host") or environ.get(ENV_HOST, "")
    port = _optional_port(section.get("port")) or environ.get(ENV_PORT, "")
    authentication = _parse_authentication(section.get("authentication"), environ)
    username = _optional_string(section.get("username"), "smtp.username") or environ.get(
        ENV_USERNAME, ""
    )
    password = section.get("password")
    if password is None:
        password = environ.get(ENV_PASSWORD, "")
    elif not isinstance(password, str):
        raise ConfigurationError("smtp.password must be a string.")

    host = host.strip()
    port = port.strip()
    if not host:
        raise ConfigurationError(
            f"Missing SMTP host. Set smtp.host in the configuration or use the {ENV_HOST} "
            "environment variable."
        )
    if not port:
        raise ConfigurationError(
            f"Missing SMTP port. Set smtp.port in the configuration or use the {ENV_PORT} "
            "environment variable."
        )
    if not port.isdigit() or int(port) <= 0:
        raise ConfigurationError(f"smtp.port must be a positive integer, got '{port}'.")

    credentials = None
    if authentication:
        if not username:
            raise ConfigurationError(
                "Missing SMTP username. Set smtp.username in the configuration or use the "
                f"{ENV_USERNAME} environment variable."
            )
        if not password:
            raise ConfigurationError(
                "Missing SMTP password. Set smtp.password in the configuration or use the "
                f"{ENV_PASSWORD} environment variable."
            )
        credentials = Credentials(username=username, password=password)

    logger.debug(
        "Creating SMTP client",
        extra={
            "smtp_host": host,
            "smtp_port": port,
            "smtp_authentication": authentication,
            "smtp_username": username,
            "smtp_password": "***" if password else "",
        },
    )
    return ConnectionConfig(host=host, port=port, credentials=credentials)


def parse_bool_literal(value: str) -> bool:
    """Parse the boolean spellings accepted in ``SMTP_AUTHENTICATION``."""
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean literal: {value!r}")


def _parse_authentication(value: Any, environ: Mapping[str, str]) -> bool:
    if value is not None:
        if not isinstance(value, bool):
            raise ConfigurationError("smtp.authentication must be a boolean.")
        return value
    try:
        return parse_bool_literal(environ.get(ENV_AUTHENTICATION, ""))
    except ValueError:
        return True


def _parse_mail_section(value: Any) -> MailSettings:
    section = _require_mapping(value, "send_mail")
    to = _normalize_string_sequence(section.get("to"), "send_mail.to")
    if not to:
        raise ConfigurationError("send_mail.to must contain at least one address.")
    render_html = section.get("render_html", False)
    if not isinstance(render_html, bool):
        raise ConfigurationError("send_mail.render_html must be a boolean.")
    return MailSettings(
        to=to,
        cc=_normalize_string_sequence(section.get("cc"), "send_mail.cc"),
        bcc=_normalize_string_sequence(section.get("bcc"), "send_mail.bcc"),
        subject=_require_string(section.get("subject"), "send_mail.subject"),
        body=_require_string(section.get("body"), "send_mail.body"),
        from_address=_optional_string(section.get("from"), "send_mail.from"),
        render_html=render_html,
    )


def _normalize_string_sequence(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        stripped = value.strip()
        return (stripped,) if stripped else ()
    if isinstance(value, Sequence):
        normalized = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigurationError(f"{field_name} entries must be strings.")
            stripped = item.strip()
            if stripped:
                normalized.append(stripped)
        return tuple(normalized)
    raise ConfigurationError(f"{field_name} must be a string or list of strings.")


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _require_string(value: Any, field_name: str) -> str:
    if value is None:
        raise ConfigurationError(f"{field_name} is required.")
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    return value


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _optional_port(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ConfigurationError("smtp.port must be an integer or numeric string.")
    return _optional_string(value, "smtp.port")
