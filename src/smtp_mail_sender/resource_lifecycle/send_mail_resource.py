"""Declarative lifecycle around the send operation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from smtp_mail_sender.configuration.runtime_settings import ConnectionConfig, MailSettings
from smtp_mail_sender.email_sending import SendRequest, SendResult, send_mail

from .lifecycle_contracts import ApplyOutcome, PlannedAction
from .state_store import ResourceState, delete_state, read_state, write_state

logger = logging.getLogger(__name__)

MailSender = Callable[..., SendResult]

# Changing any of these replaces the resource instead of updating it in place.
REPLACEMENT_ATTRIBUTES = ("to", "subject", "body")


def to_send_request(attributes: MailSettings) -> SendRequest:
    return SendRequest(
        to=attributes.to,
        cc=attributes.cc,
        bcc=attributes.bcc,
        subject=attributes.subject,
        body=attributes.body,
        from_address=attributes.from_address,
        render_html=attributes.render_html,
    )


def plan_action(desired: MailSettings, current: ResourceState | None) -> PlannedAction:
    """Decide between create, update, replace and no-op for the declared message."""
    if current is None:
        return PlannedAction.CREATE
    if current.attributes == desired:
        return PlannedAction.NO_OP
    for name in REPLACEMENT_ATTRIBUTES:
        if getattr(current.attributes, name) != getattr(desired, name):
            return PlannedAction.REPLACE
    return PlannedAction.UPDATE


@dataclass
class SendMailResource:
    """A sent message tracked through a state file.

    SMTP keeps nothing that can be read back or deleted, so ``read`` and ``delete``
    never touch the network. ``create`` and ``update`` both send the full message.
    """

    config: ConnectionConfig
    state_path: Path
    sender: MailSender = send_mail
    cancel_event: threading.Event | None = None

    def create(self, desired: MailSettings) -> ResourceState:
        return self._send(desired)

    def read(self) -> ResourceState | None:
        return read_state(self.state_path)

    def update(self, desired: MailSettings) -> ResourceState:
        return self._send(desired)

    def delete(self) -> bool:
        return delete_state(self.state_path)

    def plan(self, desired: MailSettings) -> PlannedAction:
        return plan_action(desired, self.read())

    def apply(self, desired: MailSettings) -> ApplyOutcome:
        current = self.read()
        action = plan_action(desired, current)
        logger.info("Planned action: %s", action.value)
        if current is not None and action is PlannedAction.NO_OP:
            return ApplyOutcome(action=action, id=current.id)
        if action is PlannedAction.UPDATE:
            state = self.update(desired)
        else:
            # Replacement keeps the previous state until the new message is accepted.
            state = self.create(desired)
        return ApplyOutcome(action=action, id=state.id)

    def _send(self, desired: MailSettings) -> ResourceState:
        result = self.sender(
            self.config,
            to_send_request(desired),
            cancel_event=self.cancel_event,
        )
        state = ResourceState(id=result.id, attributes=desired)
        write_state(self.state_path, state)
        return state
