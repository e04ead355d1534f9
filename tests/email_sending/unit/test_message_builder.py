"""Message composition and identity tests."""

from __future__ import annotations

import pytest
from smtp_mail_sender.email_sending.mail_models import SendRequest
from smtp_mail_sender.email_sending.message_builder import HTML_MIME_BLOCK, compose_message
from smtp_mail_sender.email_sending.message_identity import message_id


def _request(**overrides) -> SendRequest:
    defaults: dict[str, object] = {
        "to": ("a@x",),
        "cc": (),
        "bcc": (),
        "subject": "Hi",
        "body": "Hello",
        "render_html": False,
    }
    defaults.update(overrides)
    return SendRequest(**defaults)  # type: ignore[arg-type]


def test_plain_text_message_has_exact_wire_bytes() -> None:
    message = compose_message(_request())

    assert message.raw == b"To: a@x\r\nCc: \r\nSubject: Hi\r\n\r\nHello\r\n"
    assert message.header_block == "To: a@x\r\nCc: \r\nSubject: Hi\r\n"
    assert message.mime_block == ""
    assert message.body == "Hello"


def test_multiple_to_and_cc_addresses_are_comma_joined() -> None:
    message = compose_message(_request(to=("a@x", "b@x"), cc=("c@x", "d@x")))

    assert message.header_block == "To: a@x, b@x\r\nCc: c@x, d@x\r\nSubject: Hi\r\n"


def test_html_flag_only_adds_mime_block() -> None:
    plain = compose_message(_request())
    html = compose_message(_request(render_html=True))

    assert html.mime_block == HTML_MIME_BLOCK
    assert html.header_block == plain.header_block
    assert html.body == plain.body
    assert html.raw == (
        b"To: a@x\r\nCc: \r\nSubject: Hi\r\n"
        b'MIME-version: 1.0;\nContent-Type: text/html; charset="UTF-8";\n\n'
        b"\r\nHello\r\n"
    )


def test_bcc_addresses_never_appear_in_headers() -> None:
    message = compose_message(_request(cc=("c@x",), bcc=("secret@x",)))

    assert "secret@x" not in message.header_block
    assert b"secret@x" not in message.raw


def test_sender_is_not_rendered_as_a_header() -> None:
    message = compose_message(_request(from_address="me@x"))

    assert b"From:" not in message.raw


def test_non_ascii_body_is_utf8_encoded() -> None:
    message = compose_message(_request(subject="Olá", body="Grüße"))

    assert message.raw.endswith("Grüße\r\n".encode())
    assert "Subject: Olá\r\n".encode() in message.raw


def test_composition_is_deterministic() -> None:
    assert compose_message(_request()).raw == compose_message(_request()).raw


def test_header_values_are_written_verbatim() -> None:
    message = compose_message(_request(subject="Hi\r\nBcc: injected@x"))

    assert message.header_block == "To: a@x\r\nCc: \r\nSubject: Hi\r\nBcc: injected@x\r\n"


def test_send_request_requires_a_to_address() -> None:
    with pytest.raises(ValueError):
        _request(to=())


def test_message_id_is_lowercase_md5_hex() -> None:
    raw = compose_message(_request()).raw

    identifier = message_id(raw)

    assert identifier == message_id(raw)
    assert len(identifier) == 32
    assert identifier == identifier.lower()
    assert message_id(b"") == "d41d8cd98f00b204e9800998ecf8427e"


def test_one_byte_body_change_changes_message_id() -> None:
    original = message_id(compose_message(_request(body="Hello")).raw)
    edited = message_id(compose_message(_request(body="Hello!")).raw)

    assert original != edited
