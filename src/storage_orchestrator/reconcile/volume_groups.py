"""
Volume group reconciler.

Groups are created by name when absent. Then every desired group, new or
existing, has its physical volumes reconciled. Groups must exist before their
members, so this is where the partition, physical volume, volume group chain
is ordered.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.serialization import format_opts
from storage_orchestrator.inventory.client import VolumeGroupOpts
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.physical_volumes import reconcile_physical_volumes
from storage_orchestrator.reconcile.waits import WaitDescriptor

log = logging.getLogger(__name__)


def reconcile_volume_groups(ctx: ReconcileContext) -> WaitDescriptor | None:
    groups = ctx.storage.volume_groups
    if groups is None:
        log.debug("no volume groups configured")
        return None

    if not ctx.config.is_enabled(ReconcilerKind.volume_group):
        log.info("volume group reconciler not enabled")
        return None

    updated = False

    for vg_info in groups:
        if ctx.snapshot.find_volume_group(vg_info.name) is not None:
            continue

        opts = VolumeGroupOpts(host_id=ctx.host_id, name=vg_info.name, lvm_type=vg_info.lvm_type)

        log.info("creating volume group: %s", format_opts(opts))
        with remote_call(f"failed to create volume group, {format_opts(opts)}"):
            ctx.client.create_volume_group(opts)

        ctx.event(EventReason.created, f'volume group "{vg_info.name}" has been created')
        updated = True

    if updated:
        with remote_call("failed to refresh volume groups"):
            volume_groups = ctx.client.list_volume_groups(ctx.host_id)
        ctx.replace_snapshot(volume_groups=volume_groups)

    for vg_info in groups:
        wait = reconcile_physical_volumes(ctx, vg_info)
        if wait is not None:
            return wait

    return None
