"""Command line interface entry point."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from smtp_mail_sender.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    load_configuration,
    require_mail_settings,
    write_placeholder_configuration,
)
from smtp_mail_sender.email_sending import MailDeliveryError, send_mail
from smtp_mail_sender.resource_lifecycle import (
    SendMailResource,
    StateError,
    delete_state,
    read_state,
    to_send_request,
)

DEFAULT_STATE_FILENAME = "send_mail.state.json"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class CliError(Exception):
    """Custom CLI error."""


config_option = click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML configuration file",
)
state_option = click.option(
    "--state",
    "state_path",
    required=False,
    default=DEFAULT_STATE_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the JSON state file tracking the sent message",
)
deadline_option = click.option(
    "--deadline",
    "deadline_seconds",
    required=False,
    type=click.FloatRange(min=0, min_open=True),
    help="Cancel the send if it has not finished after this many seconds",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="smtp-mail-sender")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Diagnostics written to stderr",
)
def cli(log_level: str) -> None:
    """Send an email over SMTP and track it as a declarative resource."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="send")
@config_option
@deadline_option
def send(config_path: str, deadline_seconds: float | None) -> None:
    """Send the configured message once without recording state."""
    try:
        configuration = load_configuration(config_path)
        request = to_send_request(require_mail_settings(configuration))
        with _deadline(deadline_seconds) as cancel_event:
            result = send_mail(configuration.smtp, request, cancel_event=cancel_event)
    except (ConfigurationError, MailDeliveryError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(result.id)


@cli.command(name="plan")
@config_option
@state_option
def plan(config_path: str, state_path: str) -> None:
    """Show whether apply would create, update, replace or leave the message alone."""
    try:
        configuration = load_configuration(config_path)
        resource = SendMailResource(config=configuration.smtp, state_path=Path(state_path))
        action = resource.plan(require_mail_settings(configuration))
    except (ConfigurationError, StateError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(action.value)


@cli.command(name="apply")
@config_option
@state_option
@deadline_option
def apply(config_path: str, state_path: str, deadline_seconds: float | None) -> None:
    """Send the message when it is new or changed and record its id."""
    try:
        configuration = load_configuration(config_path)
        desired = require_mail_settings(configuration)
        with _deadline(deadline_seconds) as cancel_event:
            resource = SendMailResource(
                config=configuration.smtp,
                state_path=Path(state_path),
                cancel_event=cancel_event,
            )
            outcome = resource.apply(desired)
    except (ConfigurationError, StateError, MailDeliveryError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(f"{outcome.action.value} {outcome.id}")


@cli.command(name="show")
@state_option
def show(state_path: str) -> None:
    """Print the id of the recorded message."""
    try:
        state = read_state(state_path)
    except StateError as exc:
        raise CliError(str(exc)) from exc
    if state is None:
        raise CliError(f"No message recorded in {Path(state_path).resolve()}")
    click.echo(state.id)


@cli.command(name="destroy")
@state_option
def destroy(state_path: str) -> None:
    """Forget the recorded message. Mail already delivered cannot be recalled."""
    try:
        removed = delete_state(state_path)
    except StateError as exc:
        raise CliError(str(exc)) from exc
    click.echo("removed" if removed else "nothing to remove")


@contextmanager
def _deadline(seconds: float | None) -> Iterator[threading.Event | None]:
    if seconds is None:
        yield None
        return
    cancel_event = threading.Event()
    timer = threading.Timer(seconds, cancel_event.set)
    timer.daemon = True
    timer.start()
    try:
        yield cancel_event
    finally:
        timer.cancel()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
