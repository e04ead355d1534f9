"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import (
    ConfigurationError,
    load_configuration,
    require_mail_settings,
    resolve_connection_config,
)
from .runtime_settings import Configuration, ConnectionConfig, Credentials, MailSettings

__all__ = [
    "Configuration",
    "ConnectionConfig",
    "Credentials",
    "MailSettings",
    "ConfigurationError",
    "load_configuration",
    "resolve_connection_config",
    "require_mail_settings",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
