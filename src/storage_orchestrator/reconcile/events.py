"""
Event recording.

Reconcilers report every successful create, update and delete so operators can
see what changed on a host. Recording is fire and forget: a recorder failure is
logged and dropped, it never fails a pass.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

log = logging.getLogger(__name__)


class EventReason(str, Enum):
    created = "ResourceCreated"
    updated = "ResourceUpdated"
    deleted = "ResourceDeleted"


@dataclass(frozen=True)
class StorageEvent:
    host: str
    reason: EventReason
    message: str


class EventRecorder(Protocol):
    def record(self, event: StorageEvent) -> None:
        """Record one event."""


@dataclass(frozen=True)
class JsonLinesEventRecorder(EventRecorder):
    """
    JSON line event recorder.

    Each call appends one JSON object per line.
    """

    path: Path

    def record(self, event: StorageEvent) -> None:
        payload = {
            "host": event.host,
            "reason": event.reason.value,
            "message": event.message,
            "ts_unix": int(time.time()),
        }
        line = json.dumps(payload, sort_keys=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")


@dataclass
class MemoryEventRecorder(EventRecorder):
    events: list[StorageEvent] = field(default_factory=list)

    def record(self, event: StorageEvent) -> None:
        self.events.append(event)

    def messages(self) -> list[str]:
        return [e.message for e in self.events]


def emit_event(recorder: EventRecorder | None, host: str, reason: EventReason, message: str) -> None:
    """Record an event, logging and dropping any recorder failure."""
    if recorder is None:
        return
    try:
        recorder.record(StorageEvent(host=host, reason=reason, message=message))
    except Exception:
        log.warning("failed to record event for host %s: %s", host, message, exc_info=True)
