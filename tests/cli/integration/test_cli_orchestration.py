"""CLI orchestration integration tests."""

from __future__ import annotations

import json
import ssl
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from smtp_mail_sender.cli import cli, main
from smtp_mail_sender.email_sending import SendRequest, compose_message, message_id


class _FakeSmtpSession:
    def __init__(self) -> None:
        self.host = ""
        self.port = 0
        self.actions: list[object] = []
        self.sock = None
        self._reply: tuple[int, bytes] = (500, b"no command")

    def connect(self, host: str, port: int) -> tuple[int, bytes]:
        self.host, self.port = host, port
        return (220, b"ready")

    def ehlo_or_helo_if_needed(self) -> None:
        pass

    def ehlo(self) -> None:
        pass

    def has_extn(self, name: str) -> bool:
        return True

    def starttls(self, context: ssl.SSLContext) -> None:
        self.actions.append("starttls")

    def send(self, line: bytes) -> None:
        verb, _, argument = line.decode("utf-8").rstrip("\r\n").partition(" ")
        if verb == "AUTH":
            self.actions.append(("auth", argument.split(" ", 1)[0]))
            self._reply = (235, b"OK")
            return
        address = argument.split(":", 1)[1].split(" ", 1)[0].strip("<>")
        if verb == "MAIL":
            self.actions.append(("mail", address))
            self._reply = (250, b"OK")
        else:
            self.actions.append(("rcpt", address))
            self._reply = (550, b"No such user") if address in _REJECTED else (250, b"OK")

    def getreply(self) -> tuple[int, bytes]:
        return self._reply

    def data(self, payload: bytes) -> tuple[int, bytes]:
        self.actions.append(("data", payload))
        return (250, b"Queued")

    def quit(self) -> None:
        self.actions.append("quit")

    def close(self) -> None:
        self.actions.append("close")


_REJECTED: set[str] = set()


@pytest.fixture
def smtp_sessions(monkeypatch: pytest.MonkeyPatch) -> list[_FakeSmtpSession]:
    sessions: list[_FakeSmtpSession] = []

    def smtp_factory() -> _FakeSmtpSession:
        session = _FakeSmtpSession()
        sessions.append(session)
        return session

    monkeypatch.setattr(
        "smtp_mail_sender.email_sending.transport_session.smtplib.SMTP", smtp_factory
    )
    for variable in (
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_AUTHENTICATION",
        "SMTP_USERNAME",
        "SMTP_PASSWORD",
    ):
        monkeypatch.delenv(variable, raising=False)
    _REJECTED.clear()
    return sessions


def _write_config(tmp_path: Path, **mail_overrides: Any) -> Path:
    send_mail = {
        "to": ["a@example.com"],
        "cc": ["c@example.com"],
        "bcc": ["hidden@example.com"],
        "subject": "Hi",
        "body": "Hello",
    }
    send_mail.update(mail_overrides)
    config = {
        "smtp": {
            "host": "smtp.example.com",
            "port": 587,
            "username": "user@example.com",
            "password": "secret",
        },
        "send_mail": send_mail,
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


def _expected_id(**overrides: Any) -> str:
    request = SendRequest(
        to=("a@example.com",),
        cc=("c@example.com",),
        bcc=("hidden@example.com",),
        subject="Hi",
        body="Hello",
    )
    return message_id(compose_message(replace(request, **overrides)).raw)


def test_send_command_prints_message_id(
    tmp_path: Path, smtp_sessions: list[_FakeSmtpSession]
) -> None:
    runner = CliRunner()
    config_path = _write_config(tmp_path)

    result = runner.invoke(cli, ["send", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == _expected_id()
    session = smtp_sessions[0]
    assert (session.host, session.port) == ("smtp.example.com", 587)
    assert session.actions[:3] == ["starttls", ("auth", "PLAIN"), ("mail", "user@example.com")]
    assert ("rcpt", "hidden@example.com") in session.actions
    assert session.actions[-1] == "quit"


def test_apply_plan_show_destroy_lifecycle(
    tmp_path: Path, smtp_sessions: list[_FakeSmtpSession]
) -> None:
    runner = CliRunner()
    config_path = _write_config(tmp_path)
    state_path = tmp_path / "state.json"
    common = ["--config", str(config_path), "--state", str(state_path)]

    planned = runner.invoke(cli, ["plan", *common])
    assert planned.output.strip() == "create"

    created = runner.invoke(cli, ["apply", *common])
    assert created.exit_code == 0, created.output
    assert created.output.strip() == f"create {_expected_id()}"

    unchanged = runner.invoke(cli, ["apply", *common])
    assert unchanged.output.strip() == f"no-op {_expected_id()}"
    assert len(smtp_sessions) == 1

    shown = runner.invoke(cli, ["show", "--state", str(state_path)])
    assert shown.output.strip() == _expected_id()

    _write_config(tmp_path, body="Hello again")
    replaced = runner.invoke(cli, ["apply", *common])
    assert replaced.output.strip() == f"replace {_expected_id(body='Hello again')}"
    assert len(smtp_sessions) == 2

    destroyed = runner.invoke(cli, ["destroy", "--state", str(state_path)])
    assert destroyed.output.strip() == "removed"
    assert not state_path.exists()
    assert len(smtp_sessions) == 2


def test_rejected_recipient_is_reported_and_state_untouched(
    tmp_path: Path, smtp_sessions: list[_FakeSmtpSession], capsys
) -> None:
    _REJECTED.add("c@example.com")
    config_path = _write_config(tmp_path)
    state_path = tmp_path / "state.json"

    exit_code = main(["apply", "--config", str(config_path), "--state", str(state_path)])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "Error setting recipient address: c@example.com: 550 No such user" in captured.err
    assert not state_path.exists()
    actions = smtp_sessions[0].actions
    assert not any(isinstance(action, tuple) and action[0] == "data" for action in actions)
    assert smtp_sessions[0].actions[-1] == "close"


def test_show_without_state_fails(tmp_path: Path, capsys) -> None:
    exit_code = main(["show", "--state", str(tmp_path / "state.json")])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "No message recorded" in captured.err


def test_generate_config_command_writes_scaffold(tmp_path: Path) -> None:
    runner = CliRunner()
    output_path = tmp_path / "config.yaml"

    result = runner.invoke(cli, ["generate-config", "--output", str(output_path)])

    assert result.exit_code == 0
    assert output_path.exists()
    assert "send_mail:" in output_path.read_text(encoding="utf-8")


def test_environment_supplies_connection_settings(
    tmp_path: Path, smtp_sessions: list[_FakeSmtpSession], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SMTP_HOST", "env.example.com")
    monkeypatch.setenv("SMTP_PORT", "2525")
    monkeypatch.setenv("SMTP_AUTHENTICATION", "false")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "send_mail:\n  from: me@example.com\n  to: a@example.com\n  subject: s\n  body: b\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(cli, ["send", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    session = smtp_sessions[0]
    assert (session.host, session.port) == ("env.example.com", 2525)
    assert "starttls" not in session.actions
    assert session.actions[0] == ("mail", "me@example.com")
