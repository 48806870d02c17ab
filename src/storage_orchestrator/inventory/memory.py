"""
In memory inventory client.

This client is used for tests and local simulations.
It behaves like the inventory service for a set of hosts: ids are assigned on
create, physical volumes claim partitions, and list calls reflect every write.

Features
- Records every mutation in calls, in order, with its request payload
- Can hide system created partitions from list_partitions, like the real service
- Can create partitions in a transient status to exercise waits
- Can inject failures for named calls
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from storage_orchestrator.core.errors import InventoryRequestFailed
from storage_orchestrator.core.serialization import to_json_safe_dict
from storage_orchestrator.core.types import (
    OSD,
    PARTITION_TYPE_LVM,
    STORAGE_TIER_NAME,
    CephMonitor,
    Cluster,
    DeploymentModel,
    Disk,
    FileSystem,
    HostInfo,
    OSDFunction,
    Partition,
    PartitionStatus,
    PhysicalVolume,
    PhysicalVolumeType,
    StorageTier,
    SystemType,
    VolumeGroup,
)
from storage_orchestrator.inventory.client import (
    FileSystemCreateOpts,
    FileSystemSizeOpts,
    InventoryClient,
    MonitorOpts,
    OSDOpts,
    PartitionOpts,
    PhysicalVolumeOpts,
    VolumeGroupOpts,
)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class InMemoryInventoryClient(InventoryClient):
    """
    In memory inventory client.

    Records are kept in dicts keyed by id. owners maps host scoped record ids
    to their host id.

    new_partition_status
    Status given to partitions created through create_partition.

    fail_on
    Names of client methods that raise InventoryRequestFailed when called.
    """

    system_type: SystemType = SystemType.all_in_one
    new_partition_status: PartitionStatus = PartitionStatus.ready
    fail_on: set[str] = field(default_factory=set)

    hosts: dict[str, HostInfo] = field(default_factory=dict)
    disks: dict[str, Disk] = field(default_factory=dict)
    partitions: dict[str, Partition] = field(default_factory=dict)
    system_partitions: set[str] = field(default_factory=set)
    physical_volumes: dict[str, PhysicalVolume] = field(default_factory=dict)
    volume_groups: dict[str, VolumeGroup] = field(default_factory=dict)
    osds: dict[str, OSD] = field(default_factory=dict)
    monitors: dict[str, CephMonitor] = field(default_factory=dict)
    filesystems: dict[str, FileSystem] = field(default_factory=dict)
    clusters: dict[str, Cluster] = field(default_factory=dict)
    storage_tiers: dict[str, StorageTier] = field(default_factory=dict)
    owners: dict[str, str] = field(default_factory=dict)

    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    # ---------------------------
    # SEEDING
    # ---------------------------

    def add_host(
        self,
        hostname: str,
        personality: str = "controller",
        administrative: str = "locked",
        operational: str = "disabled",
        availability: str = "online",
    ) -> HostInfo:
        host = HostInfo(
            id=_new_id(),
            hostname=hostname,
            personality=personality,
            administrative=administrative,
            operational=operational,
            availability=availability,
        )
        self.hosts[host.id] = host
        return host

    def set_host_state(self, host_id: str, **states: str) -> HostInfo:
        host = dataclasses.replace(self.hosts[host_id], **states)
        self.hosts[host_id] = host
        return host

    def add_disk(self, host_id: str, device_path: str, device_node: str = "", size_gib: int = 500) -> Disk:
        disk = Disk(id=_new_id(), device_path=device_path, device_node=device_node, size_gib=size_gib)
        self._own(disk.id, host_id)
        self.disks[disk.id] = disk
        return disk

    def add_partition(
        self,
        host_id: str,
        disk_id: str,
        size_gib: int,
        status: PartitionStatus = PartitionStatus.ready,
        volume_group: Optional[str] = None,
        system: bool = False,
    ) -> Partition:
        """Add a partition. system partitions are hidden from list_partitions."""
        partition = self._make_partition(disk_id, size_gib, status, volume_group)
        self._own(partition.id, host_id)
        self.partitions[partition.id] = partition
        if system:
            self.system_partitions.add(partition.id)
        return partition

    def add_volume_group(self, host_id: str, name: str, lvm_type: Optional[str] = None) -> VolumeGroup:
        vg = VolumeGroup(id=_new_id(), name=name, lvm_type=lvm_type)
        self._own(vg.id, host_id)
        self.volume_groups[vg.id] = vg
        return vg

    def add_physical_volume(
        self,
        host_id: str,
        pv_type: PhysicalVolumeType,
        device_id: str,
        volume_group_id: str,
    ) -> PhysicalVolume:
        pv = self._make_physical_volume(pv_type, device_id, volume_group_id)
        self._own(pv.id, host_id)
        self.physical_volumes[pv.id] = pv
        return pv

    def add_osd(
        self,
        host_id: str,
        disk_id: str,
        function: OSDFunction = OSDFunction.osd,
        journal_location: Optional[str] = None,
        journal_size_gib: int = 0,
        tier_id: Optional[str] = None,
        collocated: bool = True,
    ) -> OSD:
        """Add an OSD. Data OSDs without a journal get a collocated journal by default."""
        osd_id = _new_id()
        if journal_location is None and collocated and function == OSDFunction.osd:
            journal_location = osd_id
        osd = OSD(
            id=osd_id,
            function=function,
            disk_id=disk_id,
            path=self.disks[disk_id].device_path,
            journal_location=journal_location,
            journal_size_gib=journal_size_gib,
            tier_id=tier_id,
        )
        self._own(osd.id, host_id)
        self.osds[osd.id] = osd
        return osd

    def add_monitor(self, host_id: str, size_gib: int = 20, enabled: Optional[bool] = None) -> CephMonitor:
        host = self.hosts[host_id]
        if enabled is None:
            enabled = host.is_unlocked_enabled()
        monitor = CephMonitor(
            id=_new_id(),
            host_id=host_id,
            hostname=host.hostname,
            size_gib=size_gib,
            enabled=enabled,
        )
        self.monitors[monitor.id] = monitor
        return monitor

    def add_filesystem(self, host_id: str, name: str, size_gib: int) -> FileSystem:
        fs = FileSystem(id=_new_id(), name=name, size_gib=size_gib)
        self._own(fs.id, host_id)
        self.filesystems[fs.id] = fs
        return fs

    def add_cluster(
        self,
        name: str = "ceph_cluster",
        deployment_model: DeploymentModel = DeploymentModel.aio_sx,
        with_tier: bool = True,
    ) -> Cluster:
        cluster = Cluster(id=_new_id(), name=name, deployment_model=deployment_model)
        self.clusters[cluster.id] = cluster
        if with_tier:
            self.add_storage_tier(cluster.id)
        return cluster

    def add_storage_tier(self, cluster_id: str, name: str = STORAGE_TIER_NAME) -> StorageTier:
        tier = StorageTier(id=_new_id(), name=name, cluster_id=cluster_id)
        self.storage_tiers[tier.id] = tier
        return tier

    # ---------------------------
    # INTROSPECTION
    # ---------------------------

    def mutations(self, prefix: str = "") -> list[tuple[str, dict[str, Any]]]:
        """Return recorded mutations whose call name starts with prefix."""
        return [c for c in self.calls if c[0].startswith(prefix)]

    # ---------------------------
    # CLIENT INTERFACE
    # ---------------------------

    def get_host(self, host_id: str) -> HostInfo:
        self._check("get_host")
        if host_id not in self.hosts:
            raise InventoryRequestFailed(f"host {host_id} not found")
        return self.hosts[host_id]

    def find_host(self, hostname: str) -> Optional[HostInfo]:
        self._check("find_host")
        for host in self.hosts.values():
            if host.hostname == hostname:
                return host
        return None

    def get_system_type(self) -> SystemType:
        self._check("get_system_type")
        return self.system_type

    def list_disks(self, host_id: str) -> list[Disk]:
        self._check("list_disks")
        return self._owned(self.disks, host_id)

    def list_partitions(self, host_id: str) -> list[Partition]:
        self._check("list_partitions")
        return [p for p in self._owned(self.partitions, host_id) if p.id not in self.system_partitions]

    def get_partition(self, partition_id: str) -> Partition:
        self._check("get_partition")
        if partition_id not in self.partitions:
            raise InventoryRequestFailed(f"partition {partition_id} not found")
        return self.partitions[partition_id]

    def create_partition(self, opts: PartitionOpts) -> Partition:
        self._record("create_partition", opts)
        partition = self._make_partition(opts.disk_id, opts.size_gib, self.new_partition_status, None)
        self._own(partition.id, opts.host_id)
        self.partitions[partition.id] = partition
        return partition

    def list_physical_volumes(self, host_id: str) -> list[PhysicalVolume]:
        self._check("list_physical_volumes")
        return self._owned(self.physical_volumes, host_id)

    def create_physical_volume(self, opts: PhysicalVolumeOpts) -> PhysicalVolume:
        self._record("create_physical_volume", opts)
        pv = self._make_physical_volume(opts.pv_type, opts.device_id, opts.volume_group_id)
        self._own(pv.id, opts.host_id)
        self.physical_volumes[pv.id] = pv
        return pv

    def list_volume_groups(self, host_id: str) -> list[VolumeGroup]:
        self._check("list_volume_groups")
        return self._owned(self.volume_groups, host_id)

    def create_volume_group(self, opts: VolumeGroupOpts) -> VolumeGroup:
        self._record("create_volume_group", opts)
        return self.add_volume_group(opts.host_id, opts.name, lvm_type=opts.lvm_type)

    def list_osds(self, host_id: str) -> list[OSD]:
        self._check("list_osds")
        return self._owned(self.osds, host_id)

    def create_osd(self, opts: OSDOpts) -> OSD:
        self._record("create_osd", opts)
        if opts.host_id is None or opts.disk_id is None or opts.disk_id not in self.disks:
            raise InventoryRequestFailed("create_osd: host and a known disk are required")
        return self.add_osd(
            opts.host_id,
            opts.disk_id,
            function=opts.function or OSDFunction.osd,
            journal_location=opts.journal_location,
            journal_size_gib=opts.journal_size_gib or 0,
            tier_id=opts.tier_id,
        )

    def update_osd(self, osd_id: str, opts: OSDOpts) -> OSD:
        self._record("update_osd", opts, target=osd_id)
        osd = self.osds[osd_id]
        changes: dict[str, Any] = {}
        if opts.journal_location is not None:
            changes["journal_location"] = opts.journal_location
        if opts.journal_size_gib is not None:
            changes["journal_size_gib"] = opts.journal_size_gib
        osd = dataclasses.replace(osd, **changes)
        self.osds[osd_id] = osd
        return osd

    def delete_osd(self, osd_id: str) -> None:
        self._record("delete_osd", None, target=osd_id)
        self.osds.pop(osd_id, None)
        self.owners.pop(osd_id, None)

    def list_monitors(self) -> list[CephMonitor]:
        self._check("list_monitors")
        return list(self.monitors.values())

    def create_monitor(self, opts: MonitorOpts) -> CephMonitor:
        self._record("create_monitor", opts)
        if opts.host_id is None:
            raise InventoryRequestFailed("create_monitor: host is required")
        return self.add_monitor(opts.host_id, size_gib=opts.size_gib or 20)

    def update_monitor(self, monitor_id: str, opts: MonitorOpts) -> CephMonitor:
        self._record("update_monitor", opts, target=monitor_id)
        monitor = self.monitors[monitor_id]
        if opts.size_gib is not None:
            monitor = dataclasses.replace(monitor, size_gib=opts.size_gib)
            self.monitors[monitor_id] = monitor
        return monitor

    def list_filesystems(self, host_id: str) -> list[FileSystem]:
        self._check("list_filesystems")
        return self._owned(self.filesystems, host_id)

    def create_filesystem(self, opts: FileSystemCreateOpts) -> FileSystem:
        self._record("create_filesystem", opts)
        return self.add_filesystem(opts.host_id, opts.name, opts.size_gib)

    def delete_filesystem(self, filesystem_id: str) -> None:
        self._record("delete_filesystem", None, target=filesystem_id)
        self.filesystems.pop(filesystem_id, None)
        self.owners.pop(filesystem_id, None)

    def update_filesystems(self, host_id: str, updates: list[FileSystemSizeOpts]) -> None:
        self._check("update_filesystems")
        self.calls.append(
            ("update_filesystems", {"host_id": host_id, "updates": [to_json_safe_dict(u) for u in updates]})
        )
        by_name = {u.name: u.size_gib for u in updates}
        for fs in self._owned(self.filesystems, host_id):
            if fs.name in by_name:
                self.filesystems[fs.id] = dataclasses.replace(fs, size_gib=by_name[fs.name])

    def list_clusters(self) -> list[Cluster]:
        self._check("list_clusters")
        return list(self.clusters.values())

    def list_storage_tiers(self) -> list[StorageTier]:
        self._check("list_storage_tiers")
        return list(self.storage_tiers.values())

    # ---------------------------
    # INTERNALS
    # ---------------------------

    def _check(self, name: str) -> None:
        if name in self.fail_on:
            raise InventoryRequestFailed(f"{name}: injected failure")

    def _record(self, name: str, opts: Any, target: Optional[str] = None) -> None:
        self._check(name)
        payload: dict[str, Any] = {}
        if opts is not None:
            payload = to_json_safe_dict(opts, drop_none=True)
        if target is not None:
            payload["id"] = target
        self.calls.append((name, payload))

    def _own(self, record_id: str, host_id: str) -> None:
        self.owners[record_id] = host_id

    def _owned(self, records: dict[str, Any], host_id: str) -> list[Any]:
        return [r for rid, r in records.items() if self.owners.get(rid) == host_id]

    def _make_partition(
        self,
        disk_id: str,
        size_gib: int,
        status: PartitionStatus,
        volume_group: Optional[str],
    ) -> Partition:
        disk = self.disks[disk_id]
        index = 1 + sum(1 for p in self.partitions.values() if p.disk_id == disk_id)
        return Partition(
            id=_new_id(),
            disk_id=disk_id,
            device_path=f"{disk.device_path}-part{index}",
            size_gib=size_gib,
            status=status,
            volume_group=volume_group,
            type_name=PARTITION_TYPE_LVM,
        )

    def _make_physical_volume(
        self,
        pv_type: PhysicalVolumeType,
        device_id: str,
        volume_group_id: str,
    ) -> PhysicalVolume:
        vg = self.volume_groups[volume_group_id]
        if pv_type == PhysicalVolumeType.partition:
            partition = dataclasses.replace(
                self.partitions[device_id],
                volume_group=vg.name,
                status=PartitionStatus.in_use,
            )
            self.partitions[device_id] = partition
            device_path = partition.device_path
        else:
            device_path = self.disks[device_id].device_path

        return PhysicalVolume(
            id=_new_id(),
            pv_type=pv_type,
            device_id=device_id,
            volume_group_id=volume_group_id,
            device_path=device_path,
        )
