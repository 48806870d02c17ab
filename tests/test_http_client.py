from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.error import URLError

import pytest

from storage_orchestrator.core.errors import InventoryRequestFailed
from storage_orchestrator.core.types import (
    DeploymentModel,
    HostProfile,
    OSDFunction,
    PartitionStatus,
    PhysicalVolumeInfo,
    PhysicalVolumeType,
    SystemType,
    VolumeGroupInfo,
)
from storage_orchestrator.inventory.client import FileSystemSizeOpts, MonitorOpts, OSDOpts, PartitionOpts
from storage_orchestrator.inventory.http import SysinvClient, UrllibHttpClient
from storage_orchestrator.inventory.loader import fetch_host_snapshot
from storage_orchestrator.reconcile.context import ReconcileContext
from storage_orchestrator.reconcile.partitions import reconcile_partitions

BASE = "http://controller:6385/v1"


@dataclass
class FakeHttp:
    responses: dict[tuple[str, str], Any] = field(default_factory=dict)
    requests: list[tuple[str, str, dict[str, str], Any]] = field(default_factory=list)

    def request_json(self, method: str, url: str, headers: dict[str, str], body: Any | None = None) -> Any:
        self.requests.append((method, url, headers, body))
        path = url[len(BASE):]
        return self.responses.get((method, path))


def host_payload() -> dict[str, Any]:
    return {
        "uuid": "h1",
        "hostname": "controller-0",
        "personality": "controller",
        "administrative": "unlocked",
        "operational": "enabled",
        "availability": "available",
    }


def seeded_http() -> FakeHttp:
    http = FakeHttp()
    http.responses = {
        ("GET", "/ihosts/h1"): host_payload(),
        ("GET", "/ihosts"): {"ihosts": [host_payload()]},
        ("GET", "/isystems"): {"isystems": [{"system_type": "All-in-one"}]},
        ("GET", "/ihosts/h1/idisks"): {
            "idisks": [
                {"uuid": "d1", "device_path": "/dev/disk/by-path/a", "device_node": "/dev/sda", "size_mib": 512000},
                {"uuid": "d2", "device_path": "/dev/disk/by-path/b", "device_node": "/dev/sdb", "size_mib": 1024000},
            ]
        },
        ("GET", "/ihosts/h1/partitions"): {
            "partitions": [
                {"uuid": "p1", "idisk_uuid": "d1", "device_path": "/dev/disk/by-path/a-part5", "size_mib": 51200, "status": 6},
                {"uuid": "p2", "idisk_uuid": "d1", "device_path": "/dev/disk/by-path/a-part6", "size_mib": 10240, "status": 1},
            ]
        },
        ("GET", "/ihosts/h1/ipvs"): {
            "ipvs": [
                {
                    "uuid": "pv1",
                    "pv_type": "partition",
                    "disk_or_part_uuid": "p1",
                    "ilvg_uuid": "vg1",
                    "disk_or_part_device_path": "/dev/disk/by-path/a-part5",
                    "lvm_vg_name": "cgts-vg",
                }
            ]
        },
        ("GET", "/ihosts/h1/ilvgs"): {
            "ilvgs": [{"uuid": "vg1", "lvm_vg_name": "cgts-vg", "capabilities": {"lvm_type": "thin"}}]
        },
        ("GET", "/ihosts/h1/istors"): {
            "istors": [
                {"uuid": "o1", "function": "osd", "idisk_uuid": "d2", "journal_location": "o1", "journal_size_mib": 1024, "tier_uuid": "t1"}
            ]
        },
        ("GET", "/ceph_mon"): {
            "ceph_mon": [{"uuid": "m1", "ihost_uuid": "h1", "hostname": "controller-0", "ceph_mon_gib": 20}]
        },
        ("GET", "/ihosts/h1/host_fs"): {"host_fs": [{"uuid": "f1", "name": "docker", "size": 30}]},
        ("GET", "/clusters"): {"clusters": [{"uuid": "c1", "name": "ceph_cluster", "deployment_model": "aio-sx"}]},
        ("GET", "/storage_tiers"): {"storage_tiers": [{"uuid": "t1", "name": "storage", "cluster_uuid": "c1"}]},
    }
    return http


def test_snapshot_over_http_converts_records():
    client = SysinvClient(base_url=BASE + "/", token="secret", http=seeded_http())

    snapshot = fetch_host_snapshot(client, "h1")

    assert snapshot.host.is_unlocked_available()
    assert snapshot.system_type == SystemType.all_in_one
    assert [d.size_gib for d in snapshot.disks] == [500, 1000]

    in_use, creating = snapshot.partitions
    assert in_use.status == PartitionStatus.in_use
    assert in_use.volume_group == "cgts-vg"
    assert in_use.size_gib == 50
    assert creating.status == PartitionStatus.creating
    assert creating.volume_group is None

    assert snapshot.physical_volumes[0].pv_type == PhysicalVolumeType.partition
    assert snapshot.volume_groups[0].lvm_type == "thin"

    osd = snapshot.osds[0]
    assert osd.path == "/dev/disk/by-path/b"
    assert osd.journal_size_gib == 1
    assert osd.tier_id == "t1"

    assert snapshot.monitors[0].enabled
    assert snapshot.clusters[0].deployment_model == DeploymentModel.aio_sx
    assert snapshot.find_tier("ceph_cluster") is not None


def test_settled_partition_codes_do_not_wait():
    http = seeded_http()
    http.responses[("GET", "/ihosts/h1/partitions")] = {
        "partitions": [
            {"uuid": "p1", "idisk_uuid": "d1", "device_path": "/dev/disk/by-path/a-part5", "size_mib": 51200, "status": 6},
            {"uuid": "p2", "idisk_uuid": "d1", "device_path": "/dev/disk/by-path/a-part6", "size_mib": 10240, "status": 2},
            {"uuid": "p3", "idisk_uuid": "d1", "device_path": "/dev/disk/by-path/a-part7", "size_mib": 10240, "status": 9},
        ]
    }
    client = SysinvClient(base_url=BASE, http=http)
    snapshot = fetch_host_snapshot(client, "h1")

    assert [p.status for p in snapshot.partitions] == [
        PartitionStatus.in_use,
        PartitionStatus.ready,
        PartitionStatus.error,
    ]

    group = VolumeGroupInfo(
        name="cgts-vg",
        physical_volumes=(PhysicalVolumeInfo(type=PhysicalVolumeType.partition, path="/dev/sda", size=50),),
    )
    ctx = ReconcileContext(client=client, profile=HostProfile(hostname="controller-0"), snapshot=snapshot)

    assert reconcile_partitions(ctx, group) is None
    assert not any(r[0] == "POST" for r in http.requests)


def test_requests_carry_token_and_accept_headers():
    http = seeded_http()
    client = SysinvClient(base_url=BASE, token="secret", http=http)

    client.get_host("h1")

    method, url, headers, body = http.requests[0]
    assert (method, url, body) == ("GET", BASE + "/ihosts/h1", None)
    assert headers["X-Auth-Token"] == "secret"
    assert headers["Accept"] == "application/json"


def test_find_host_by_name():
    client = SysinvClient(base_url=BASE, http=seeded_http())

    host = client.find_host("controller-0")

    assert host is not None and host.id == "h1"
    assert client.find_host("worker-9") is None


def test_create_partition_sends_mib():
    http = seeded_http()
    http.responses[("POST", "/partitions")] = {
        "uuid": "p3",
        "idisk_uuid": "d2",
        "device_path": "/dev/disk/by-path/b-part1",
        "size_mib": 20480,
        "status": 1,
    }
    client = SysinvClient(base_url=BASE, http=http)

    partition = client.create_partition(
        PartitionOpts(host_id="h1", disk_id="d2", size_gib=20, type_name="lvm_phys_vol", type_guid="g")
    )

    body = http.requests[-1][3]
    assert body["size_mib"] == 20480
    assert body["idisk_uuid"] == "d2"
    assert partition.size_gib == 20
    assert partition.transient


def test_create_osd_omits_unset_fields():
    http = seeded_http()
    http.responses[("POST", "/istors")] = {"uuid": "o2", "function": "journal", "idisk_uuid": "d1"}
    client = SysinvClient(base_url=BASE, http=http)

    osd = client.create_osd(OSDOpts(host_id="h1", disk_id="d1", function=OSDFunction.journal, tier_id="t1"))

    method, url, _, body = next(r for r in http.requests if r[0] == "POST")
    assert (method, url) == ("POST", BASE + "/istors")
    assert body == {"ihost_uuid": "h1", "idisk_uuid": "d1", "function": "journal", "tier_uuid": "t1"}
    assert osd.function == OSDFunction.journal
    assert osd.path == "/dev/disk/by-path/a"


def test_updates_use_json_patch():
    http = seeded_http()
    http.responses[("PATCH", "/istors/o1")] = {"uuid": "o1", "function": "osd", "idisk_uuid": "d2"}
    http.responses[("PATCH", "/ceph_mon/m1")] = {"uuid": "m1", "ihost_uuid": "h1", "ceph_mon_gib": 40}
    client = SysinvClient(base_url=BASE, http=http)

    client.update_osd("o1", OSDOpts(journal_size_gib=2))
    client.update_monitor("m1", MonitorOpts(size_gib=40))
    client.update_filesystems("h1", [FileSystemSizeOpts(name="docker", size_gib=60)])

    bodies = {(r[0], r[1][len(BASE):]): r[3] for r in http.requests}
    assert bodies[("PATCH", "/istors/o1")] == [{"op": "replace", "path": "/journal_size_mib", "value": 2048}]
    assert bodies[("PATCH", "/ceph_mon/m1")] == [{"op": "replace", "path": "/ceph_mon_gib", "value": 40}]
    assert bodies[("PUT", "/ihosts/h1/host_fs/update_many")] == [
        [{"op": "replace", "path": "/name", "value": "docker"}, {"op": "replace", "path": "/size", "value": 60}]
    ]


def test_unexpected_payload_raises():
    client = SysinvClient(base_url=BASE, http=FakeHttp())

    with pytest.raises(InventoryRequestFailed):
        client.get_host("h1")

    with pytest.raises(InventoryRequestFailed):
        client.list_disks("h1")


def test_urllib_transport_errors_are_wrapped(monkeypatch: pytest.MonkeyPatch):
    def fail(*args: Any, **kwargs: Any) -> Any:
        raise URLError("connection refused")

    monkeypatch.setattr("storage_orchestrator.inventory.http.urlopen", fail)

    with pytest.raises(InventoryRequestFailed, match="GET http://controller:6385/v1/ihosts failed") as exc_info:
        UrllibHttpClient().request_json("GET", BASE + "/ihosts", headers={})

    assert isinstance(exc_info.value.__cause__, URLError)
