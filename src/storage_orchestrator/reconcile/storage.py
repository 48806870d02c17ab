"""
Storage orchestrator.

This runs one reconciliation pass for one host, in a fixed order:
monitor, filesystem types, volume groups (with their physical volumes and
partitions), stale OSDs, then OSDs.

Every step stops the pass on the first wait or error. Nothing is aggregated
across steps; the next pass starts again from a fresh snapshot, and every step
is safe to repeat.

OSD reconciliation only runs when the host is in the state the system requires
for OSD provisioning. Otherwise it is skipped for this pass, not waited on.

Result
reconcile returns a tagged ReconcileResult: completed, waiting with a wait
descriptor, or failed with the error. OrchestratorError is reported through
the result; any other exception is a bug and propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from storage_orchestrator.core.errors import ErrorKind, OrchestratorError
from storage_orchestrator.core.types import HostProfile
from storage_orchestrator.inventory.client import InventoryClient
from storage_orchestrator.inventory.snapshot import HostSnapshot
from storage_orchestrator.reconcile.admission import osd_provisioning_state, provisioning_state_satisfied
from storage_orchestrator.reconcile.ceph_monitor import reconcile_monitor
from storage_orchestrator.reconcile.config import ReconcilerConfig, ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext
from storage_orchestrator.reconcile.events import EventRecorder
from storage_orchestrator.reconcile.filesystems import reconcile_filesystem_sizes, reconcile_filesystem_types
from storage_orchestrator.reconcile.osds import reconcile_osds, reconcile_stale_osds
from storage_orchestrator.reconcile.volume_groups import reconcile_volume_groups
from storage_orchestrator.reconcile.waits import WaitDescriptor

log = logging.getLogger(__name__)

Step = Callable[[ReconcileContext], Optional[WaitDescriptor]]


class ReconcileStatus(str, Enum):
    completed = "completed"
    waiting = "waiting"
    failed = "failed"


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of one pass.

    wait
    Set when status is waiting. The caller should run the pass again later.

    error
    Set when status is failed.

    snapshot
    The snapshot as it stood when the pass ended.
    """

    hostname: str
    status: ReconcileStatus
    snapshot: HostSnapshot
    wait: WaitDescriptor | None = None
    error: OrchestratorError | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReconcileStatus.completed

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    @property
    def retryable(self) -> bool:
        """Waits are always retried. Failures are retried unless the profile is wrong."""
        if self.error is not None:
            return self.error.retryable
        return True


class StorageReconciler:
    """
    Storage orchestrator.

    client
    Inventory client for writes and refreshes.

    config
    Enablement flags and tunables.

    recorder
    Optional event recorder.
    """

    def __init__(
        self,
        client: InventoryClient,
        config: ReconcilerConfig | None = None,
        recorder: EventRecorder | None = None,
    ) -> None:
        self._client = client
        self._config = config or ReconcilerConfig()
        self._recorder = recorder

    def reconcile(self, profile: HostProfile, snapshot: HostSnapshot) -> ReconcileResult:
        """Run the storage pass for one host."""
        ctx = self._context(profile, snapshot)

        if not self._config.is_enabled(ReconcilerKind.storage):
            log.info("storage reconciler not enabled")
            return self._result(ctx, ReconcileStatus.completed)

        if profile.storage is None:
            log.debug("no storage configuration for %s", profile.hostname)
            return self._result(ctx, ReconcileStatus.completed)

        steps: list[tuple[str, Step]] = [
            ("monitor", reconcile_monitor),
            ("filesystem types", reconcile_filesystem_types),
            ("volume groups", reconcile_volume_groups),
            ("stale OSDs", reconcile_stale_osds),
            ("OSDs", self._reconcile_osds_if_allowed),
        ]
        return self._run(ctx, steps)

    def reconcile_filesystem_sizes(self, profile: HostProfile, snapshot: HostSnapshot) -> ReconcileResult:
        """Run the filesystem size pass.

        The runner only calls this once the host is unlocked and available.
        Direct callers on any other host get a host_available wait back.
        """
        ctx = self._context(profile, snapshot)

        if not self._config.is_enabled(ReconcilerKind.storage) or profile.storage is None:
            return self._result(ctx, ReconcileStatus.completed)

        return self._run(ctx, [("filesystem sizes", reconcile_filesystem_sizes)])

    def _reconcile_osds_if_allowed(self, ctx: ReconcileContext) -> WaitDescriptor | None:
        host = ctx.snapshot.host
        state = osd_provisioning_state(ctx.snapshot.system_type, host.personality)

        if not provisioning_state_satisfied(state, host):
            log.info(
                "skipping OSDs on %s: requires %s, host is %s/%s",
                host.hostname,
                state.value,
                host.administrative,
                host.operational,
            )
            return None

        return reconcile_osds(ctx)

    def _run(self, ctx: ReconcileContext, steps: list[tuple[str, Step]]) -> ReconcileResult:
        for name, step in steps:
            log.debug("reconciling %s on %s", name, ctx.hostname)
            try:
                wait = step(ctx)
            except OrchestratorError as exc:
                log.error("failed to reconcile %s on %s: %s", name, ctx.hostname, exc)
                return self._result(ctx, ReconcileStatus.failed, error=exc)

            if wait is not None:
                log.info("%s on %s is waiting: %s", name, ctx.hostname, wait.reason)
                return self._result(ctx, ReconcileStatus.waiting, wait=wait)

        return self._result(ctx, ReconcileStatus.completed)

    def _context(self, profile: HostProfile, snapshot: HostSnapshot) -> ReconcileContext:
        return ReconcileContext(
            client=self._client,
            profile=profile,
            snapshot=snapshot,
            config=self._config,
            recorder=self._recorder,
        )

    def _result(
        self,
        ctx: ReconcileContext,
        status: ReconcileStatus,
        wait: WaitDescriptor | None = None,
        error: OrchestratorError | None = None,
    ) -> ReconcileResult:
        return ReconcileResult(
            hostname=ctx.hostname,
            status=status,
            snapshot=ctx.snapshot,
            wait=wait,
            error=error,
        )
