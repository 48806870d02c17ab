"""
Host snapshot.

We keep a frozen, pass scoped view of one host's storage resources.
The reconciliation pass reads it, and after each write it swaps in a new
snapshot built with replace. Nothing mutates a snapshot in place, so a
decision never sees half refreshed state.

Cross references (physical volume to partition, OSD to journal OSD, OSD to
tier) are id lookups into this snapshot, never object links.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from storage_orchestrator.core.types import (
    OSD,
    STORAGE_TIER_NAME,
    CephMonitor,
    Cluster,
    Disk,
    FileSystem,
    HostInfo,
    Partition,
    PhysicalVolume,
    PhysicalVolumeType,
    StorageTier,
    SystemType,
    VolumeGroup,
)


@dataclass(frozen=True)
class HostSnapshot:
    """
    Storage resources of one host as last fetched.

    monitors, clusters and storage_tiers are system wide. Everything else is
    scoped to the host.
    """

    host: HostInfo
    system_type: SystemType
    disks: Tuple[Disk, ...] = ()
    partitions: Tuple[Partition, ...] = ()
    physical_volumes: Tuple[PhysicalVolume, ...] = ()
    volume_groups: Tuple[VolumeGroup, ...] = ()
    osds: Tuple[OSD, ...] = ()
    monitors: Tuple[CephMonitor, ...] = ()
    filesystems: Tuple[FileSystem, ...] = ()
    clusters: Tuple[Cluster, ...] = ()
    storage_tiers: Tuple[StorageTier, ...] = ()

    def replace(self, **changes: Any) -> HostSnapshot:
        """Return a new snapshot with some resource lists swapped out."""
        normalized = {
            key: tuple(value) if isinstance(value, (list, tuple)) else value
            for key, value in changes.items()
        }
        return dataclasses.replace(self, **normalized)

    # ---------------------------
    # DISKS AND PARTITIONS
    # ---------------------------

    def find_disk(self, disk_id: str) -> Optional[Disk]:
        for disk in self.disks:
            if disk.id == disk_id:
                return disk
        return None

    def find_disk_by_path(self, path: str) -> Optional[Disk]:
        for disk in self.disks:
            if disk.matches_path(path):
                return disk
        return None

    def find_partition(self, partition_id: str) -> Optional[Partition]:
        for partition in self.partitions:
            if partition.id == partition_id:
                return partition
        return None

    def find_partition_by_path(self, path: str, size: int, group: str) -> Optional[Partition]:
        """
        Find a partition on the disk at path with the given size.

        A partition already assigned to group wins. Otherwise an unassigned
        partition of the right size matches, since it is the one a previous
        pass created for this group before its physical volume existed.
        """
        disk = self.find_disk_by_path(path)
        if disk is None:
            return None

        candidates = [
            p for p in self.partitions if p.disk_id == disk.id and p.size_gib == size
        ]
        for partition in candidates:
            if partition.volume_group == group:
                return partition
        for partition in candidates:
            if partition.volume_group is None:
                return partition
        return None

    def transient_partitions(self) -> List[Partition]:
        return [p for p in self.partitions if p.transient]

    # ---------------------------
    # VOLUME GROUPS AND PHYSICAL VOLUMES
    # ---------------------------

    def find_volume_group(self, name: str) -> Optional[VolumeGroup]:
        for group in self.volume_groups:
            if group.name == name:
                return group
        return None

    def find_physical_volume(
        self,
        group: str,
        pv_type: PhysicalVolumeType,
        path: str,
        size: int,
    ) -> Optional[PhysicalVolume]:
        """Find a physical volume by owning group, type, backing path and size."""
        vg = self.find_volume_group(group)
        if vg is None:
            return None

        device_id: Optional[str] = None
        if pv_type == PhysicalVolumeType.partition:
            partition = self.find_partition_by_path(path, size, group)
            if partition is not None:
                device_id = partition.id
        else:
            disk = self.find_disk_by_path(path)
            if disk is not None:
                device_id = disk.id

        if device_id is None:
            return None

        for pv in self.physical_volumes:
            if pv.pv_type == pv_type and pv.device_id == device_id and pv.volume_group_id == vg.id:
                return pv
        return None

    # ---------------------------
    # OSDS, CLUSTERS AND TIERS
    # ---------------------------

    def find_osd(self, osd_id: str) -> Optional[OSD]:
        for osd in self.osds:
            if osd.id == osd_id:
                return osd
        return None

    def find_osd_by_path(self, path: str) -> Optional[OSD]:
        disk = self.find_disk_by_path(path)
        for osd in self.osds:
            if osd.path == path:
                return osd
            if disk is not None and osd.disk_id == disk.id:
                return osd
        return None

    def find_cluster_by_name(self, name: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if cluster.name == name:
                return cluster
        return None

    def find_cluster(self, cluster_id: str) -> Optional[Cluster]:
        for cluster in self.clusters:
            if cluster.id == cluster_id:
                return cluster
        return None

    def find_tier(self, cluster_name: str, tier_name: str = STORAGE_TIER_NAME) -> Optional[StorageTier]:
        """Return the named tier of a cluster, or None if not yet allocated."""
        cluster = self.find_cluster_by_name(cluster_name)
        if cluster is None:
            return None
        for tier in self.storage_tiers:
            if tier.cluster_id == cluster.id and tier.name == tier_name:
                return tier
        return None

    # ---------------------------
    # MONITORS AND FILESYSTEMS
    # ---------------------------

    def host_monitors(self) -> List[CephMonitor]:
        return [m for m in self.monitors if m.host_id == self.host.id]

    def enabled_monitor_count(self) -> int:
        return sum(1 for m in self.monitors if m.enabled)

    def find_filesystem(self, name: str) -> Optional[FileSystem]:
        for fs in self.filesystems:
            if fs.name == name:
                return fs
        return None

    def filesystem_names(self) -> List[str]:
        return [fs.name for fs in self.filesystems]
