"""
Inventory service http client.

This is a minimal sysinv shaped REST client with no third party deps.

Design
The reconcilers only see InventoryClient records. This module owns the wire
format: endpoint paths, payload keys, MiB to GiB conversion and json patch
bodies for updates.

Every transport, http or decode failure becomes InventoryRequestFailed with
the method and url in the message and the original error chained.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from storage_orchestrator.core.errors import InventoryRequestFailed
from storage_orchestrator.core.types import (
    OSD,
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

log = logging.getLogger(__name__)

# sysinv partition status codes; 7 and above are error states
_PARTITION_STATUS = {
    0: PartitionStatus.creating,
    1: PartitionStatus.creating,
    2: PartitionStatus.ready,
    3: PartitionStatus.deleting,
    4: PartitionStatus.deleting,
    5: PartitionStatus.modifying,
    6: PartitionStatus.in_use,
}


class HttpClient(Protocol):
    """Simple http client interface for testability."""

    def request_json(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any | None = None,
    ) -> Any:
        """Send a request and return the parsed json body, or None when empty."""


@dataclass
class UrllibHttpClient(HttpClient):
    """Default http client using urllib."""

    timeout_seconds: int = 30

    def request_json(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any | None = None,
    ) -> Any:
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers = {**headers, "Content-Type": "application/json"}

        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            raise InventoryRequestFailed(f"{method} {url} returned {exc.code}") from exc
        except (URLError, OSError) as exc:
            raise InventoryRequestFailed(f"{method} {url} failed: {exc}") from exc

        if not raw:
            return None

        try:
            return json.loads(raw)
        except ValueError as exc:
            raise InventoryRequestFailed(f"{method} {url} returned invalid json") from exc


def _gib(mib: Any) -> int:
    return int(mib or 0) // 1024


def _mib(gib: int) -> int:
    return int(gib) * 1024


def _items(payload: Any, key: str) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        raise InventoryRequestFailed(f"expected an object with {key}")
    raw = payload.get(key, [])
    if not isinstance(raw, list):
        raise InventoryRequestFailed(f"expected {key} to be a list")
    return [x for x in raw if isinstance(x, dict)]


def _patch(**values: Any) -> list[dict[str, Any]]:
    return [{"op": "replace", "path": f"/{k}", "value": v} for k, v in values.items() if v is not None]


def _host_from_dict(obj: dict[str, Any]) -> HostInfo:
    return HostInfo(
        id=str(obj["uuid"]),
        hostname=str(obj.get("hostname", "")),
        personality=str(obj.get("personality", "")),
        administrative=str(obj.get("administrative", "locked")),
        operational=str(obj.get("operational", "disabled")),
        availability=str(obj.get("availability", "offline")),
    )


def _disk_from_dict(obj: dict[str, Any]) -> Disk:
    return Disk(
        id=str(obj["uuid"]),
        device_path=str(obj.get("device_path", "")),
        device_node=str(obj.get("device_node", "")),
        size_gib=_gib(obj.get("size_mib")),
    )


def _partition_status(raw: Any) -> PartitionStatus:
    if isinstance(raw, int):
        return _PARTITION_STATUS.get(raw, PartitionStatus.error)
    try:
        return PartitionStatus(str(raw))
    except ValueError:
        log.warning("unknown partition status %r", raw)
        return PartitionStatus.error


def _partition_from_dict(obj: dict[str, Any], groups: dict[str, str]) -> Partition:
    partition_id = str(obj["uuid"])
    return Partition(
        id=partition_id,
        disk_id=str(obj.get("idisk_uuid", "")),
        device_path=str(obj.get("device_path", "")),
        size_gib=_gib(obj.get("size_mib")),
        status=_partition_status(obj.get("status", 2)),
        volume_group=groups.get(partition_id),
        type_name=str(obj.get("type_name", "")),
    )


def _pv_from_dict(obj: dict[str, Any]) -> PhysicalVolume:
    return PhysicalVolume(
        id=str(obj["uuid"]),
        pv_type=PhysicalVolumeType(str(obj.get("pv_type", "disk"))),
        device_id=str(obj.get("disk_or_part_uuid", "")),
        volume_group_id=str(obj.get("ilvg_uuid", "")),
        device_path=str(obj.get("disk_or_part_device_path", "")),
    )


def _vg_from_dict(obj: dict[str, Any]) -> VolumeGroup:
    capabilities = obj.get("capabilities") or {}
    lvm_type = capabilities.get("lvm_type") if isinstance(capabilities, dict) else None
    return VolumeGroup(
        id=str(obj["uuid"]),
        name=str(obj.get("lvm_vg_name", "")),
        lvm_type=str(lvm_type) if lvm_type is not None else None,
    )


def _osd_from_dict(obj: dict[str, Any], disk_paths: dict[str, str]) -> OSD:
    disk_id = str(obj.get("idisk_uuid", ""))
    journal_location = obj.get("journal_location")
    tier_id = obj.get("tier_uuid")
    return OSD(
        id=str(obj["uuid"]),
        function=OSDFunction(str(obj.get("function", "osd"))),
        disk_id=disk_id,
        path=disk_paths.get(disk_id, ""),
        journal_location=str(journal_location) if journal_location else None,
        journal_size_gib=_gib(obj.get("journal_size_mib")),
        tier_id=str(tier_id) if tier_id else None,
    )


def _monitor_from_dict(obj: dict[str, Any], enabled_hosts: set[str]) -> CephMonitor:
    host_id = str(obj.get("ihost_uuid", ""))
    return CephMonitor(
        id=str(obj["uuid"]),
        host_id=host_id,
        hostname=str(obj.get("hostname", "")),
        size_gib=int(obj.get("ceph_mon_gib", 0) or 0),
        enabled=host_id in enabled_hosts,
    )


def _filesystem_from_dict(obj: dict[str, Any]) -> FileSystem:
    return FileSystem(id=str(obj["uuid"]), name=str(obj.get("name", "")), size_gib=int(obj.get("size", 0) or 0))


def _cluster_from_dict(obj: dict[str, Any]) -> Cluster:
    model = str(obj.get("deployment_model") or DeploymentModel.undefined.value)
    try:
        deployment_model = DeploymentModel(model)
    except ValueError:
        log.warning("unknown deployment model %r for cluster %s", model, obj.get("name"))
        deployment_model = DeploymentModel.undefined
    return Cluster(id=str(obj["uuid"]), name=str(obj.get("name", "")), deployment_model=deployment_model)


def _tier_from_dict(obj: dict[str, Any]) -> StorageTier:
    return StorageTier(id=str(obj["uuid"]), name=str(obj.get("name", "")), cluster_id=str(obj.get("cluster_uuid", "")))


@dataclass
class SysinvClient(InventoryClient):
    """
    Inventory client for a sysinv shaped endpoint.

    base_url is the versioned api root, for example http://controller:6385/v1.
    token is optional. If provided, it is sent as an X-Auth-Token header.
    """

    base_url: str
    token: str | None = None
    http: HttpClient = field(default_factory=UrllibHttpClient)

    def _call(self, method: str, path: str, body: Any | None = None) -> Any:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["X-Auth-Token"] = self.token

        url = self.base_url.rstrip("/") + path
        log.debug("%s %s", method, url)
        return self.http.request_json(method, url, headers=headers, body=body)

    def _object(self, method: str, path: str, body: Any | None = None) -> dict[str, Any]:
        payload = self._call(method, path, body)
        if not isinstance(payload, dict):
            raise InventoryRequestFailed(f"{method} {path} returned no object")
        return payload

    # ---------------------------
    # HOSTS AND SYSTEM
    # ---------------------------

    def get_host(self, host_id: str) -> HostInfo:
        return _host_from_dict(self._object("GET", f"/ihosts/{host_id}"))

    def _hosts(self) -> list[HostInfo]:
        return [_host_from_dict(x) for x in _items(self._call("GET", "/ihosts"), "ihosts")]

    def find_host(self, hostname: str) -> Optional[HostInfo]:
        for host in self._hosts():
            if host.hostname == hostname:
                return host
        return None

    def get_system_type(self) -> SystemType:
        systems = _items(self._call("GET", "/isystems"), "isystems")
        if not systems:
            raise InventoryRequestFailed("no system record returned")
        return SystemType(str(systems[0].get("system_type", SystemType.standard.value)))

    # ---------------------------
    # DISKS AND PARTITIONS
    # ---------------------------

    def list_disks(self, host_id: str) -> list[Disk]:
        return [_disk_from_dict(x) for x in _items(self._call("GET", f"/ihosts/{host_id}/idisks"), "idisks")]

    def _partition_groups(self, host_id: str) -> dict[str, str]:
        groups: dict[str, str] = {}
        for raw in _items(self._call("GET", f"/ihosts/{host_id}/ipvs"), "ipvs"):
            if raw.get("pv_type") == PhysicalVolumeType.partition.value and raw.get("lvm_vg_name"):
                groups[str(raw.get("disk_or_part_uuid"))] = str(raw["lvm_vg_name"])
        return groups

    def list_partitions(self, host_id: str) -> list[Partition]:
        groups = self._partition_groups(host_id)
        payload = self._call("GET", f"/ihosts/{host_id}/partitions")
        return [_partition_from_dict(x, groups) for x in _items(payload, "partitions")]

    def get_partition(self, partition_id: str) -> Partition:
        obj = self._object("GET", f"/partitions/{partition_id}")
        groups = self._partition_groups(str(obj.get("ihost_uuid", "")))
        return _partition_from_dict(obj, groups)

    def create_partition(self, opts: PartitionOpts) -> Partition:
        body = {
            "ihost_uuid": opts.host_id,
            "idisk_uuid": opts.disk_id,
            "size_mib": _mib(opts.size_gib),
            "type_name": opts.type_name,
            "type_guid": opts.type_guid,
        }
        return _partition_from_dict(self._object("POST", "/partitions", body), {})

    # ---------------------------
    # PHYSICAL VOLUMES AND VOLUME GROUPS
    # ---------------------------

    def list_physical_volumes(self, host_id: str) -> list[PhysicalVolume]:
        return [_pv_from_dict(x) for x in _items(self._call("GET", f"/ihosts/{host_id}/ipvs"), "ipvs")]

    def create_physical_volume(self, opts: PhysicalVolumeOpts) -> PhysicalVolume:
        body = {
            "ihost_uuid": opts.host_id,
            "disk_or_part_uuid": opts.device_id,
            "ilvg_uuid": opts.volume_group_id,
            "pv_type": opts.pv_type.value,
        }
        return _pv_from_dict(self._object("POST", "/ipvs", body))

    def list_volume_groups(self, host_id: str) -> list[VolumeGroup]:
        return [_vg_from_dict(x) for x in _items(self._call("GET", f"/ihosts/{host_id}/ilvgs"), "ilvgs")]

    def create_volume_group(self, opts: VolumeGroupOpts) -> VolumeGroup:
        body: dict[str, Any] = {"ihost_uuid": opts.host_id, "lvm_vg_name": opts.name}
        if opts.lvm_type is not None:
            body["capabilities"] = {"lvm_type": opts.lvm_type}
        return _vg_from_dict(self._object("POST", "/ilvgs", body))

    # ---------------------------
    # OSDS
    # ---------------------------

    def _disk_paths(self, host_id: str) -> dict[str, str]:
        return {d.id: d.device_path for d in self.list_disks(host_id)}

    def list_osds(self, host_id: str) -> list[OSD]:
        disk_paths = self._disk_paths(host_id)
        payload = self._call("GET", f"/ihosts/{host_id}/istors")
        return [_osd_from_dict(x, disk_paths) for x in _items(payload, "istors")]

    def create_osd(self, opts: OSDOpts) -> OSD:
        body: dict[str, Any] = {
            "ihost_uuid": opts.host_id,
            "idisk_uuid": opts.disk_id,
            "function": opts.function.value if opts.function is not None else None,
            "journal_location": opts.journal_location,
            "journal_size_mib": _mib(opts.journal_size_gib) if opts.journal_size_gib is not None else None,
            "tier_uuid": opts.tier_id,
        }
        body = {k: v for k, v in body.items() if v is not None}
        obj = self._object("POST", "/istors", body)
        disk_paths = self._disk_paths(opts.host_id) if opts.host_id else {}
        return _osd_from_dict(obj, disk_paths)

    def update_osd(self, osd_id: str, opts: OSDOpts) -> OSD:
        patch = _patch(
            journal_location=opts.journal_location,
            journal_size_mib=_mib(opts.journal_size_gib) if opts.journal_size_gib is not None else None,
        )
        return _osd_from_dict(self._object("PATCH", f"/istors/{osd_id}", patch), {})

    def delete_osd(self, osd_id: str) -> None:
        self._call("DELETE", f"/istors/{osd_id}")

    # ---------------------------
    # MONITORS
    # ---------------------------

    def list_monitors(self) -> list[CephMonitor]:
        enabled = {h.id for h in self._hosts() if h.is_unlocked_enabled()}
        payload = self._call("GET", "/ceph_mon")
        return [_monitor_from_dict(x, enabled) for x in _items(payload, "ceph_mon")]

    def create_monitor(self, opts: MonitorOpts) -> CephMonitor:
        body = {k: v for k, v in {"ihost_uuid": opts.host_id, "ceph_mon_gib": opts.size_gib}.items() if v is not None}
        return _monitor_from_dict(self._object("POST", "/ceph_mon", body), set())

    def update_monitor(self, monitor_id: str, opts: MonitorOpts) -> CephMonitor:
        patch = _patch(ceph_mon_gib=opts.size_gib)
        return _monitor_from_dict(self._object("PATCH", f"/ceph_mon/{monitor_id}", patch), set())

    # ---------------------------
    # FILESYSTEMS
    # ---------------------------

    def list_filesystems(self, host_id: str) -> list[FileSystem]:
        payload = self._call("GET", f"/ihosts/{host_id}/host_fs")
        return [_filesystem_from_dict(x) for x in _items(payload, "host_fs")]

    def create_filesystem(self, opts: FileSystemCreateOpts) -> FileSystem:
        body = {"ihost_uuid": opts.host_id, "name": opts.name, "size": opts.size_gib}
        return _filesystem_from_dict(self._object("POST", "/host_fs", body))

    def delete_filesystem(self, filesystem_id: str) -> None:
        self._call("DELETE", f"/host_fs/{filesystem_id}")

    def update_filesystems(self, host_id: str, updates: list[FileSystemSizeOpts]) -> None:
        body = [_patch(name=u.name, size=u.size_gib) for u in updates]
        self._call("PUT", f"/ihosts/{host_id}/host_fs/update_many", body)

    # ---------------------------
    # CLUSTERS AND TIERS
    # ---------------------------

    def list_clusters(self) -> list[Cluster]:
        return [_cluster_from_dict(x) for x in _items(self._call("GET", "/clusters"), "clusters")]

    def list_storage_tiers(self) -> list[StorageTier]:
        return [_tier_from_dict(x) for x in _items(self._call("GET", "/storage_tiers"), "storage_tiers")]
