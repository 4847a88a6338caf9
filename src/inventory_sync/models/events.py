from dataclasses import dataclass, field
from typing import Any, Dict, Union

from .enums import FailureReason


@dataclass(frozen=True)
class SnapshotEvent:
    """Full contents of a collection at one point in time."""

    path: str
    records: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ErrorEvent:
    """The subscription failed; no further events follow on the same stream."""

    path: str
    reason: FailureReason
    message: str


SubscriptionEvent = Union[SnapshotEvent, ErrorEvent]
