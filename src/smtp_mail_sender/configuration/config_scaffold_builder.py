"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "config.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Configuration template for smtp-mail-sender.
# Every smtp value may be omitted here and supplied through the matching
# SMTP_HOST, SMTP_PORT, SMTP_AUTHENTICATION, SMTP_USERNAME or SMTP_PASSWORD
# environment variable instead. Values in this file win over the environment.

smtp:
  host: "<REQUIRED>"
  port: "<REQUIRED>"
  # Authentication is on by default. It enables STARTTLS (certificate
  # verification is not performed) followed by AUTH PLAIN.
  authentication: true
  username: "<REQUIRED when authentication is true>"
  password: "<REQUIRED when authentication is true>"

send_mail:
  # Defaults to smtp.username when omitted.
  # from: "<OPTIONAL>"
  to:
    - "<REQUIRED>"
  cc: []
  # Bcc recipients receive the message but are not listed in any header.
  bcc: []
  subject: "<REQUIRED>"
  body: "<REQUIRED>"
  render_html: false
"""


def build_placeholder_configuration() -> str:
    """Build a YAML configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
