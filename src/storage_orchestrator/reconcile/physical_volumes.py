"""
Physical volume reconciler.

Ordering
The owning volume group must already exist; the volume group reconciler
creates it before calling in here. Partitions are reconciled first because a
partition backed physical volume needs its partition id.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.errors import MissingResource
from storage_orchestrator.core.serialization import format_opts
from storage_orchestrator.core.types import PhysicalVolumeType, VolumeGroupInfo
from storage_orchestrator.inventory.client import PhysicalVolumeOpts
from storage_orchestrator.inventory.loader import list_host_partitions
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.partitions import reconcile_partitions
from storage_orchestrator.reconcile.waits import WaitDescriptor

log = logging.getLogger(__name__)


def _resolve_device_id(
    ctx: ReconcileContext,
    group: VolumeGroupInfo,
    pv_type: PhysicalVolumeType,
    path: str,
    size: int,
) -> str | None:
    if pv_type == PhysicalVolumeType.partition:
        partition = ctx.snapshot.find_partition_by_path(path, size, group.name)
        return partition.id if partition is not None else None

    disk = ctx.snapshot.find_disk_by_path(path)
    return disk.id if disk is not None else None


def reconcile_physical_volumes(ctx: ReconcileContext, group: VolumeGroupInfo) -> WaitDescriptor | None:
    """
    Ensure every physical volume of group exists.

    Raises MissingResource when the group or a backing device is absent.
    The physical volume list is refreshed once at the end if anything was created.
    """
    if not ctx.config.is_enabled(ReconcilerKind.physical_volume):
        log.info("physical volume reconciler not enabled")
        return None

    vg = ctx.snapshot.find_volume_group(group.name)
    if vg is None:
        raise MissingResource(f"unable to find volume group {group.name}")

    wait = reconcile_partitions(ctx, group)
    if wait is not None:
        return wait

    created: set[str] = set()
    claimed_partitions = False

    for pv_info in group.physical_volumes:
        size = pv_info.size or 0

        if ctx.snapshot.find_physical_volume(group.name, pv_info.type, pv_info.path, size) is not None:
            log.debug("physical volume %s(%s) already exists in %s", pv_info.path, pv_info.type.value, group.name)
            continue

        device_id = _resolve_device_id(ctx, group, pv_info.type, pv_info.path, size)
        if device_id is None:
            raise MissingResource(
                f"failed to find physical volume device: {pv_info.path}({pv_info.type.value})"
            )

        if device_id in created:
            continue

        opts = PhysicalVolumeOpts(
            host_id=ctx.host_id,
            device_id=device_id,
            volume_group_id=vg.id,
            pv_type=pv_info.type,
        )

        log.info("creating physical volume: %s", format_opts(opts))
        with remote_call("failed to create physical volume"):
            ctx.client.create_physical_volume(opts)

        ctx.event(
            EventReason.created,
            f"physical volume '{pv_info.path}({pv_info.type.value})' has been created",
        )
        created.add(device_id)
        claimed_partitions = claimed_partitions or pv_info.type == PhysicalVolumeType.partition

    if created:
        with remote_call("failed to refresh physical volume list"):
            physical_volumes = ctx.client.list_physical_volumes(ctx.host_id)
        ctx.replace_snapshot(physical_volumes=physical_volumes)

    if claimed_partitions:
        # Claiming a partition changes its group and status.
        with remote_call("failed to refresh partitions on host"):
            partitions = list_host_partitions(ctx.client, ctx.host_id, ctx.snapshot.physical_volumes)
        ctx.replace_snapshot(partitions=partitions)

    return None
