"""
Ceph monitor reconciler.

Only worker hosts are handled. Monitors on controllers are managed by the
platform itself.

A monitor that is no longer configured is left in place. The inventory service
has no monitor delete; removing one means removing the whole host, which is
outside what this engine does.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.types import Personality
from storage_orchestrator.inventory.client import MonitorOpts
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.waits import WaitDescriptor

log = logging.getLogger(__name__)


def reconcile_monitor(ctx: ReconcileContext) -> WaitDescriptor | None:
    if not ctx.config.is_enabled(ReconcilerKind.monitor):
        log.info("monitor reconciler not enabled")
        return None

    personality = ctx.profile.personality or ctx.snapshot.host.personality
    if personality.lower() != Personality.worker.value:
        log.debug("monitors on %s hosts are handled automatically", personality or "unknown")
        return None

    existing = ctx.snapshot.host_monitors()
    desired = ctx.storage.monitor

    if desired is None:
        for monitor in existing:
            log.warning(
                "stale Ceph monitor %s detected on %s; deleting monitors is not supported",
                monitor.id,
                ctx.hostname,
            )
        return None

    changed = False

    if not existing:
        opts = MonitorOpts(host_id=ctx.host_id, size_gib=desired.size)
        log.info("adding Ceph monitor on %s", ctx.hostname)
        with remote_call("failed to create Ceph monitor"):
            ctx.client.create_monitor(opts)

        ctx.event(EventReason.created, "ceph monitor has been created")
        changed = True

    for monitor in existing:
        if desired.size is None or desired.size == monitor.size_gib:
            continue

        log.info("updating Ceph monitor %s size %d -> %d GiB", monitor.id, monitor.size_gib, desired.size)
        with remote_call("failed to update Ceph monitor"):
            ctx.client.update_monitor(monitor.id, MonitorOpts(size_gib=desired.size))

        ctx.event(EventReason.updated, "ceph monitor has been updated")
        changed = True

    if changed:
        with remote_call("failed to refresh Ceph monitors"):
            monitors = ctx.client.list_monitors()
        ctx.replace_snapshot(monitors=monitors)

    return None
