"""Persisted state of a sent-mail resource."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from smtp_mail_sender.configuration.runtime_settings import MailSettings


class StateError(Exception):
    """Raised when the state file cannot be read or written."""


@dataclass(frozen=True)
class ResourceState:
    """Identifier of the last delivered message and the attributes it was sent with."""

    id: str
    attributes: MailSettings


def read_state(state_path: Path | str) -> ResourceState | None:
    """Return the stored state, or ``None`` when nothing was sent yet."""
    path = Path(state_path)
    if not path.exists():
        return None
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise StateError(f"Failed to read state file {path}: {exc}") from exc
    if not isinstance(document, Mapping):
        raise StateError(f"State file {path} must contain a JSON object.")
    resource_id = document.get("id")
    if not isinstance(resource_id, str) or not resource_id:
        raise StateError(f"State file {path} has no resource id.")
    return ResourceState(id=resource_id, attributes=_attributes_from_json(document, path))


def write_state(state_path: Path | str, state: ResourceState) -> Path:
    path = Path(state_path)
    document = {"id": state.id, "attributes": _attributes_to_json(state.attributes)}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as exc:
        raise StateError(f"Failed to write state file {path}: {exc}") from exc
    return path.resolve()


def delete_state(state_path: Path | str) -> bool:
    """Forget the stored state; returns whether a state file existed."""
    path = Path(state_path)
    if not path.exists():
        return False
    try:
        path.unlink()
    except OSError as exc:
        raise StateError(f"Failed to delete state file {path}: {exc}") from exc
    return True


def _attributes_to_json(attributes: MailSettings) -> dict[str, Any]:
    return {
        "from": attributes.from_address,
        "to": list(attributes.to),
        "cc": list(attributes.cc),
        "bcc": list(attributes.bcc),
        "subject": attributes.subject,
        "body": attributes.body,
        "render_html": attributes.render_html,
    }


def _attributes_from_json(document: Mapping[str, Any], path: Path) -> MailSettings:
    raw = document.get("attributes")
    if not isinstance(raw, Mapping):
        raise StateError(f"State file {path} has no attributes.")
    try:
        return MailSettings(
            to=_address_list(raw, "to", path, required=True),
            cc=_address_list(raw, "cc", path),
            bcc=_address_list(raw, "bcc", path),
            subject=str(raw["subject"]),
            body=str(raw["body"]),
            from_address=raw.get("from"),
            render_html=bool(raw.get("render_html", False)),
        )
    except (KeyError, TypeError) as exc:
        raise StateError(f"State file {path} has invalid attributes: {exc}") from exc


def _address_list(
    raw: Mapping[str, Any], key: str, path: Path, *, required: bool = False
) -> tuple[str, ...]:
    value = raw.get(key)
    if value is None and not required:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise StateError(
            f"State file {path} has invalid attributes: {key} must be a list of strings"
        )
    return tuple(value)
