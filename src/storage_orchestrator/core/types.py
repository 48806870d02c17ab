"""
Core types.

This file defines the shared data structures used across the engine.

Two families live here:

Resource records
What the inventory service reports for a host. Every record carries an opaque
id assigned by the remote system. We never invent ids locally.

Profile types
What the operator declared for a host. Profiles are read only within a
reconciliation pass.

Sizes are always GiB in both families. Transport code converts at the edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

DEFAULT_CLUSTER_NAME = "ceph_cluster"
STORAGE_TIER_NAME = "storage"

PARTITION_TYPE_LVM = "lvm_phys_vol"
PARTITION_TYPE_GUIDS = {
    PARTITION_TYPE_LVM: "ba5eba11-0000-1111-2222-000000000001",
}

# Minimum number of enabled Ceph monitors before OSDs can be added on a
# standard system.
OSD_MINIMUM_MONITOR_COUNT = 2


class SystemType(str, Enum):
    """
    System topology.

    all_in_one
      Single combined node, or a pair of combined nodes.

    standard
      Dedicated controller, worker and optional storage hosts.
    """

    all_in_one = "All-in-one"
    standard = "Standard"


class Personality(str, Enum):
    """Host roles."""

    controller = "controller"
    worker = "worker"
    storage = "storage"


class ProvisioningState(str, Enum):
    """
    Host state required before OSDs may be provisioned.

    any
      OSDs may be added regardless of host state.

    enabled
      Host must be unlocked and enabled.

    disabled
      Host must be locked and disabled.

    none
      OSDs are never provisioned on this host.
    """

    any = "any"
    enabled = "enabled"
    disabled = "disabled"
    none = "none"


class PartitionStatus(str, Enum):
    creating = "Creating"
    ready = "Ready"
    in_use = "In-Use"
    modifying = "Modifying"
    deleting = "Deleting"
    error = "Error"


TRANSIENT_PARTITION_STATUSES = frozenset(
    {PartitionStatus.creating, PartitionStatus.modifying, PartitionStatus.deleting}
)


class PhysicalVolumeType(str, Enum):
    disk = "disk"
    partition = "partition"


class OSDFunction(str, Enum):
    """
    OSD function.

    journal OSDs must exist before data OSDs that reference them.
    """

    osd = "osd"
    journal = "journal"


class DeploymentModel(str, Enum):
    """
    Cluster deployment model.

    controller and storage assign storage duties to dedicated hosts and are
    the models that require monitors before OSDs are added.
    """

    undefined = "undefined"
    controller = "controller-nodes"
    storage = "storage-nodes"
    aio_sx = "aio-sx"
    aio_dx = "aio-dx"


# ---------------------------
# RESOURCE RECORDS
# ---------------------------


@dataclass(frozen=True)
class HostInfo:
    """
    Host record.

    administrative, operational and availability use the inventory service
    vocabulary, for example locked, disabled, online.
    """

    id: str
    hostname: str
    personality: str
    administrative: str = "locked"
    operational: str = "disabled"
    availability: str = "offline"

    def is_unlocked_available(self) -> bool:
        return (
            self.administrative == "unlocked"
            and self.operational == "enabled"
            and self.availability == "available"
        )

    def is_unlocked_enabled(self) -> bool:
        return self.administrative == "unlocked" and self.operational == "enabled"

    def is_locked_disabled(self) -> bool:
        return self.administrative == "locked" and self.operational == "disabled"


@dataclass(frozen=True)
class Disk:
    """
    Physical disk.

    A profile may refer to a disk by either its by-path name or its device node,
    so both are kept.
    """

    id: str
    device_path: str
    device_node: str = ""
    size_gib: int = 0

    def matches_path(self, path: str) -> bool:
        return path in (self.device_path, self.device_node)


@dataclass(frozen=True)
class Partition:
    """
    Disk partition.

    volume_group is the name of the group the partition is assigned to through
    a physical volume, or None while unassigned.
    """

    id: str
    disk_id: str
    device_path: str
    size_gib: int
    status: PartitionStatus = PartitionStatus.ready
    volume_group: Optional[str] = None
    type_name: str = PARTITION_TYPE_LVM

    @property
    def transient(self) -> bool:
        return self.status in TRANSIENT_PARTITION_STATUSES


@dataclass(frozen=True)
class PhysicalVolume:
    id: str
    pv_type: PhysicalVolumeType
    device_id: str
    volume_group_id: str
    device_path: str = ""


@dataclass(frozen=True)
class VolumeGroup:
    id: str
    name: str
    lvm_type: Optional[str] = None


@dataclass(frozen=True)
class OSD:
    """
    OSD record.

    journal_location is the id of the OSD that holds this OSD's journal.
    A collocated journal points at the OSD itself.
    """

    id: str
    function: OSDFunction
    disk_id: str
    path: str
    journal_location: Optional[str] = None
    journal_size_gib: int = 0
    tier_id: Optional[str] = None


@dataclass(frozen=True)
class CephMonitor:
    """
    Ceph monitor record.

    enabled is True when the monitor's host is unlocked and enabled, which is
    what the admission gate counts.
    """

    id: str
    host_id: str
    hostname: str
    size_gib: int
    enabled: bool = False


@dataclass(frozen=True)
class FileSystem:
    id: str
    name: str
    size_gib: int


@dataclass(frozen=True)
class Cluster:
    id: str
    name: str
    deployment_model: DeploymentModel = DeploymentModel.undefined


@dataclass(frozen=True)
class StorageTier:
    id: str
    name: str
    cluster_id: str


# ---------------------------
# PROFILE TYPES
# ---------------------------


@dataclass(frozen=True)
class MonitorInfo:
    size: Optional[int] = None


@dataclass(frozen=True)
class PhysicalVolumeInfo:
    """
    Desired physical volume.

    path is the backing disk path for both types. For partition backed volumes
    size is the size of the partition to create.
    """

    type: PhysicalVolumeType
    path: str
    size: Optional[int] = None


@dataclass(frozen=True)
class VolumeGroupInfo:
    name: str
    physical_volumes: Tuple[PhysicalVolumeInfo, ...] = ()
    lvm_type: Optional[str] = None


@dataclass(frozen=True)
class JournalInfo:
    """Desired journal association. location is the journal OSD disk path."""

    location: str
    size: int


@dataclass(frozen=True)
class OSDInfo:
    function: OSDFunction
    path: str
    journal: Optional[JournalInfo] = None
    cluster_name: Optional[str] = None

    @property
    def cluster(self) -> str:
        return self.cluster_name or DEFAULT_CLUSTER_NAME


@dataclass(frozen=True)
class FileSystemInfo:
    name: str
    size: int


@dataclass(frozen=True)
class StorageProfile:
    """
    Desired storage configuration.

    None means the group is not configured and its reconciler does nothing.
    An empty tuple means configured empty.
    """

    monitor: Optional[MonitorInfo] = None
    volume_groups: Optional[Tuple[VolumeGroupInfo, ...]] = None
    osds: Optional[Tuple[OSDInfo, ...]] = None
    filesystems: Optional[Tuple[FileSystemInfo, ...]] = None


@dataclass(frozen=True)
class HostProfile:
    hostname: str
    personality: Optional[str] = None
    storage: Optional[StorageProfile] = None
