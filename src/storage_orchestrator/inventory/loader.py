"""
Snapshot loading.

These helpers operate on the client interface rather than a transport library.
They are shared by the runner, the reconcilers and tests.

System partitions
The inventory service creates some partitions on its own, for example the
partition backing the platform volume group on the root disk. The host
partition list does not include them, but physical volumes do reference them.
We fetch those individually and fold them in so later lookups do not mistake
them for missing partitions.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.types import Partition, PhysicalVolume, PhysicalVolumeType
from storage_orchestrator.inventory.client import InventoryClient
from storage_orchestrator.inventory.snapshot import HostSnapshot

log = logging.getLogger(__name__)


def list_host_partitions(
    client: InventoryClient,
    host_id: str,
    physical_volumes: tuple[PhysicalVolume, ...] | list[PhysicalVolume],
) -> list[Partition]:
    """Return user and system created partitions of a host."""
    partitions = list(client.list_partitions(host_id))
    known = {p.id for p in partitions}

    for pv in physical_volumes:
        if pv.pv_type != PhysicalVolumeType.partition or pv.device_id in known:
            continue
        log.debug("fetching system partition %s referenced by physical volume %s", pv.device_id, pv.id)
        partitions.append(client.get_partition(pv.device_id))
        known.add(pv.device_id)

    return partitions


def fetch_host_snapshot(client: InventoryClient, host_id: str) -> HostSnapshot:
    """
    Build a full snapshot of a host.

    Physical volumes are fetched before partitions because the partition list
    depends on them.
    """
    host = client.get_host(host_id)
    physical_volumes = client.list_physical_volumes(host_id)

    snapshot = HostSnapshot(
        host=host,
        system_type=client.get_system_type(),
        disks=tuple(client.list_disks(host_id)),
        partitions=tuple(list_host_partitions(client, host_id, physical_volumes)),
        physical_volumes=tuple(physical_volumes),
        volume_groups=tuple(client.list_volume_groups(host_id)),
        osds=tuple(client.list_osds(host_id)),
        monitors=tuple(client.list_monitors()),
        filesystems=tuple(client.list_filesystems(host_id)),
        clusters=tuple(client.list_clusters()),
        storage_tiers=tuple(client.list_storage_tiers()),
    )

    log.debug(
        "fetched snapshot for host %s: %d disks, %d partitions, %d osds",
        host.hostname,
        len(snapshot.disks),
        len(snapshot.partitions),
        len(snapshot.osds),
    )
    return snapshot
