"""
Partition reconciler.

Creates the partitions that partition backed physical volumes of one volume
group need. Disk backed volumes are ignored here.

Once anything is created, the partition list is refreshed including system
created partitions. Any partition in a transient status then produces a wait,
so no dependent reconciler looks at a disk layout that is still settling.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.errors import MissingResource
from storage_orchestrator.core.serialization import format_opts
from storage_orchestrator.core.types import (
    PARTITION_TYPE_GUIDS,
    PARTITION_TYPE_LVM,
    PhysicalVolumeType,
    VolumeGroupInfo,
)
from storage_orchestrator.inventory.client import PartitionOpts
from storage_orchestrator.inventory.loader import list_host_partitions
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.waits import WaitDescriptor, partition_state_wait

log = logging.getLogger(__name__)


def reconcile_partitions(ctx: ReconcileContext, group: VolumeGroupInfo) -> WaitDescriptor | None:
    """
    Ensure every partition backed physical volume of group has a partition.

    Raises MissingResource when the backing disk does not exist.
    """
    if not ctx.config.is_enabled(ReconcilerKind.partition):
        log.info("partition reconciler not enabled")
        return None

    created: set[tuple[str, int]] = set()

    for pv_info in group.physical_volumes:
        if pv_info.type != PhysicalVolumeType.partition or pv_info.size is None:
            continue

        key = (pv_info.path, pv_info.size)
        if key in created:
            continue

        if ctx.snapshot.find_partition_by_path(pv_info.path, pv_info.size, group.name) is not None:
            log.debug("partition on %s of %d GiB for %s already exists", pv_info.path, pv_info.size, group.name)
            continue

        disk = ctx.snapshot.find_disk_by_path(pv_info.path)
        if disk is None:
            raise MissingResource(f"failed to find disk for path {pv_info.path}")

        opts = PartitionOpts(
            host_id=ctx.host_id,
            disk_id=disk.id,
            size_gib=pv_info.size,
            type_name=PARTITION_TYPE_LVM,
            type_guid=PARTITION_TYPE_GUIDS[PARTITION_TYPE_LVM],
        )

        log.info("creating partition: %s", format_opts(opts))
        with remote_call(f"failed to create new partition: {format_opts(opts)}"):
            partition = ctx.client.create_partition(opts)

        ctx.event(EventReason.created, f'partition "{partition.device_path}" has been created')
        created.add(key)

    if created:
        with remote_call("failed to refresh partitions on host"):
            partitions = list_host_partitions(ctx.client, ctx.host_id, ctx.snapshot.physical_volumes)
        ctx.replace_snapshot(partitions=partitions)

    pending = ctx.snapshot.transient_partitions()
    if pending:
        wait = partition_state_wait(ctx.host_id)
        log.info("%s: %s", wait.reason, ", ".join(p.device_path for p in pending))
        return wait

    return None
