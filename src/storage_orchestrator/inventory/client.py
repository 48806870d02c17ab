"""
Inventory client interface.

Goal
Define the narrow set of inventory service calls the reconcilers need without
binding them to a transport.

Every call is synchronous. Implementations raise InventoryRequestFailed for any
transport or remote failure so that callers only deal with one error type.

Request options
Options are dataclasses. Fields left as None are omitted from the request,
which the inventory service treats as "leave unchanged".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from storage_orchestrator.core.types import (
    OSD,
    CephMonitor,
    Cluster,
    Disk,
    FileSystem,
    HostInfo,
    OSDFunction,
    Partition,
    PhysicalVolume,
    PhysicalVolumeType,
    StorageTier,
    SystemType,
    VolumeGroup,
)


@dataclass(frozen=True)
class PartitionOpts:
    host_id: str
    disk_id: str
    size_gib: int
    type_name: str
    type_guid: str


@dataclass(frozen=True)
class PhysicalVolumeOpts:
    host_id: str
    device_id: str
    volume_group_id: str
    pv_type: PhysicalVolumeType


@dataclass(frozen=True)
class VolumeGroupOpts:
    """lvm_type is only sent when the profile specifies it."""

    host_id: str
    name: str
    lvm_type: Optional[str] = None


@dataclass(frozen=True)
class OSDOpts:
    """
    OSD create and update options.

    For updates only the journal fields are meaningful. The inventory service
    does not support changing function in place.
    """

    host_id: Optional[str] = None
    disk_id: Optional[str] = None
    function: Optional[OSDFunction] = None
    journal_location: Optional[str] = None
    journal_size_gib: Optional[int] = None
    tier_id: Optional[str] = None


@dataclass(frozen=True)
class MonitorOpts:
    host_id: Optional[str] = None
    size_gib: Optional[int] = None


@dataclass(frozen=True)
class FileSystemCreateOpts:
    host_id: str
    name: str
    size_gib: int


@dataclass(frozen=True)
class FileSystemSizeOpts:
    name: str
    size_gib: int


class InventoryClient(Protocol):
    """
    Inventory service client.

    List calls return fresh records on every call. Nothing is cached here; the
    reconciliation pass owns caching through its snapshot.
    """

    def get_host(self, host_id: str) -> HostInfo:
        """Return the host record."""

    def find_host(self, hostname: str) -> Optional[HostInfo]:
        """Return the host with this hostname, or None."""

    def get_system_type(self) -> SystemType:
        """Return the system topology."""

    def list_disks(self, host_id: str) -> list[Disk]:
        """List disks of a host."""

    def list_partitions(self, host_id: str) -> list[Partition]:
        """List user visible partitions of a host."""

    def get_partition(self, partition_id: str) -> Partition:
        """Fetch one partition, including system created ones."""

    def create_partition(self, opts: PartitionOpts) -> Partition:
        """Create a partition."""

    def list_physical_volumes(self, host_id: str) -> list[PhysicalVolume]:
        """List physical volumes of a host."""

    def create_physical_volume(self, opts: PhysicalVolumeOpts) -> PhysicalVolume:
        """Create a physical volume."""

    def list_volume_groups(self, host_id: str) -> list[VolumeGroup]:
        """List volume groups of a host."""

    def create_volume_group(self, opts: VolumeGroupOpts) -> VolumeGroup:
        """Create a volume group."""

    def list_osds(self, host_id: str) -> list[OSD]:
        """List OSDs of a host."""

    def create_osd(self, opts: OSDOpts) -> OSD:
        """Create an OSD."""

    def update_osd(self, osd_id: str, opts: OSDOpts) -> OSD:
        """Update the journal settings of an OSD."""

    def delete_osd(self, osd_id: str) -> None:
        """Delete an OSD."""

    def list_monitors(self) -> list[CephMonitor]:
        """List Ceph monitors for the whole system."""

    def create_monitor(self, opts: MonitorOpts) -> CephMonitor:
        """Create a Ceph monitor."""

    def update_monitor(self, monitor_id: str, opts: MonitorOpts) -> CephMonitor:
        """Resize a Ceph monitor."""

    def list_filesystems(self, host_id: str) -> list[FileSystem]:
        """List host filesystems."""

    def create_filesystem(self, opts: FileSystemCreateOpts) -> FileSystem:
        """Create a host filesystem."""

    def delete_filesystem(self, filesystem_id: str) -> None:
        """Delete a host filesystem."""

    def update_filesystems(self, host_id: str, updates: list[FileSystemSizeOpts]) -> None:
        """Resize several host filesystems in one request."""

    def list_clusters(self) -> list[Cluster]:
        """List storage clusters."""

    def list_storage_tiers(self) -> list[StorageTier]:
        """List storage tiers for all clusters."""
