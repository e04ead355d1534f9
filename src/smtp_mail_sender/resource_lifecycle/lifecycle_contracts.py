"""Resource lifecycle entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PlannedAction(str, Enum):
    """What an apply will do with the declared message."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    NO_OP = "no-op"

    @property
    def sends_mail(self) -> bool:
        return self is not PlannedAction.NO_OP


@dataclass(frozen=True)
class ApplyOutcome:
    """Result of one apply."""

    action: PlannedAction
    id: str
