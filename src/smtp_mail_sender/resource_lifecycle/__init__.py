"""Resource lifecycle exports."""

from .lifecycle_contracts import ApplyOutcome, PlannedAction
from .send_mail_resource import SendMailResource, plan_action, to_send_request
from .state_store import ResourceState, StateError, delete_state, read_state, write_state

__all__ = [
    "ApplyOutcome",
    "PlannedAction",
    "ResourceState",
    "SendMailResource",
    "StateError",
    "delete_state",
    "plan_action",
    "read_state",
    "to_send_request",
    "write_state",
]
