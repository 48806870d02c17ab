"""
Reconciliation pass context.

One ReconcileContext exists per pass. It bundles the collaborators a reconciler
needs and owns the current snapshot. Reconcilers swap in a new snapshot after
writing, through replace_snapshot, so the next step sees post write state.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from storage_orchestrator.core.errors import InventoryRequestFailed
from storage_orchestrator.core.types import HostProfile, StorageProfile
from storage_orchestrator.inventory.client import InventoryClient
from storage_orchestrator.inventory.snapshot import HostSnapshot
from storage_orchestrator.reconcile.config import ReconcilerConfig
from storage_orchestrator.reconcile.events import EventReason, EventRecorder, emit_event

log = logging.getLogger(__name__)


@dataclass
class ReconcileContext:
    """
    Pass scoped state.

    client
    Inventory client used for every read and write.

    profile
    Desired host profile. Read only.

    snapshot
    Current view of the host. Replaced, never mutated.

    config
    Enablement flags and tunables.

    recorder
    Optional event recorder.
    """

    client: InventoryClient
    profile: HostProfile
    snapshot: HostSnapshot
    config: ReconcilerConfig = field(default_factory=ReconcilerConfig)
    recorder: EventRecorder | None = None

    @property
    def host_id(self) -> str:
        return self.snapshot.host.id

    @property
    def hostname(self) -> str:
        return self.snapshot.host.hostname

    @property
    def storage(self) -> StorageProfile:
        return self.profile.storage or StorageProfile()

    def replace_snapshot(self, **changes: Any) -> None:
        self.snapshot = self.snapshot.replace(**changes)

    def event(self, reason: EventReason, message: str) -> None:
        emit_event(self.recorder, self.hostname, reason, message)


@contextmanager
def remote_call(action: str) -> Iterator[None]:
    """
    Wrap inventory calls with the operation being attempted.

    The original failure stays chained as the cause.
    """
    try:
        yield
    except InventoryRequestFailed as exc:
        log.error("%s: %s", action, exc)
        raise InventoryRequestFailed(f"{action}: {exc}") from exc
