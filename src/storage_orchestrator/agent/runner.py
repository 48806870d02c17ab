"""
Agent runner.

Purpose
Continuously:
- Load host profiles
- Load a fresh snapshot of each host
- Run the storage reconciler

This is the composition layer of the system.
It wires the profile source, inventory client, reconciler and event recorder.

Waits
A host whose last pass ended in a wait is only reconciled again once the
condition behind that wait holds in a fresh snapshot.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from storage_orchestrator.core.errors import OrchestratorError
from storage_orchestrator.core.types import HostProfile
from storage_orchestrator.inventory.client import InventoryClient
from storage_orchestrator.inventory.loader import fetch_host_snapshot
from storage_orchestrator.profile.source import ProfileSource
from storage_orchestrator.reconcile.config import ReconcilerConfig
from storage_orchestrator.reconcile.events import EventRecorder
from storage_orchestrator.reconcile.storage import ReconcileResult, ReconcileStatus, StorageReconciler
from storage_orchestrator.reconcile.waits import WaitDescriptor, wait_satisfied

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerConfig:
    """
    Runner configuration.

    interval_seconds
    Sleep duration between cycles.

    hostnames
    Hosts to manage. Empty means every host the profile source returns.
    """

    interval_seconds: int = 30
    hostnames: tuple[str, ...] = field(default_factory=tuple)


class StorageRunner:
    """
    Top level reconciliation loop.

    This is not the reconciler.
    This is the runtime loop.
    """

    def __init__(
        self,
        client: InventoryClient,
        profile_source: ProfileSource,
        reconciler_config: ReconcilerConfig | None = None,
        recorder: EventRecorder | None = None,
        config: RunnerConfig | None = None,
    ) -> None:
        self._config = config or RunnerConfig()
        self._client = client
        self._profile_source = profile_source
        self._reconciler = StorageReconciler(client, config=reconciler_config, recorder=recorder)
        self._pending: dict[str, WaitDescriptor] = {}

    @property
    def pending_waits(self) -> dict[str, WaitDescriptor]:
        return dict(self._pending)

    def run_cycle(self) -> list[ReconcileResult]:
        """
        Execute one reconciliation cycle.

        Returns the results of the hosts that were reconciled.
        """
        results: list[ReconcileResult] = []

        for profile in self._profile_source.fetch():
            if self._config.hostnames and profile.hostname not in self._config.hostnames:
                continue

            result = self._reconcile_host(profile)
            if result is not None:
                results.append(result)

        return results

    def run_forever(self) -> None:
        """
        Continuous loop execution.
        """

        while True:
            self.run_cycle()
            time.sleep(self._config.interval_seconds)

    def _reconcile_host(self, profile: HostProfile) -> ReconcileResult | None:
        hostname = profile.hostname

        try:
            host = self._client.find_host(hostname)
            if host is None:
                log.warning("host %s not found in inventory", hostname)
                return None
            snapshot = fetch_host_snapshot(self._client, host.id)
        except OrchestratorError as exc:
            log.error("failed to load inventory for %s: %s", hostname, exc)
            return None

        pending = self._pending.get(hostname)
        if pending is not None and not wait_satisfied(pending, snapshot):
            log.debug("%s still %s", hostname, pending.reason)
            return None

        result = self._reconciler.reconcile(profile, snapshot)

        # sizes never block a locked host; its host_available wait is not kept
        if result.ok and result.snapshot.host.is_unlocked_available():
            result = self._reconciler.reconcile_filesystem_sizes(profile, result.snapshot)

        if result.wait is not None:
            self._pending[hostname] = result.wait
        else:
            self._pending.pop(hostname, None)

        self._log_result(result)
        return result

    def _log_result(self, result: ReconcileResult) -> None:
        if result.status == ReconcileStatus.completed:
            log.info("storage reconciled on %s", result.hostname)
        elif result.status == ReconcileStatus.waiting and result.wait is not None:
            log.info("storage on %s waiting: %s", result.hostname, result.wait.reason)
        else:
            log.error(
                "storage reconciliation failed on %s (%s, retryable=%s): %s",
                result.hostname,
                result.error_kind.value if result.error_kind is not None else "unknown",
                result.retryable,
                result.error,
            )
