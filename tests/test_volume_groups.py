from __future__ import annotations

import pytest

from storage_orchestrator.core.errors import MissingResource
from storage_orchestrator.core.types import (
    HostInfo,
    HostProfile,
    PartitionStatus,
    PhysicalVolumeInfo,
    PhysicalVolumeType,
    StorageProfile,
    VolumeGroupInfo,
)
from storage_orchestrator.inventory.loader import fetch_host_snapshot
from storage_orchestrator.inventory.memory import InMemoryInventoryClient
from storage_orchestrator.reconcile.config import ReconcilerConfig, ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext
from storage_orchestrator.reconcile.events import MemoryEventRecorder
from storage_orchestrator.reconcile.physical_volumes import reconcile_physical_volumes
from storage_orchestrator.reconcile.volume_groups import reconcile_volume_groups
from storage_orchestrator.reconcile.waits import WaitKind

ROOT_DISK = "/dev/disk/by-path/pci-0000:00:1f.2-ata-1.0"
DATA_DISK = "/dev/disk/by-path/pci-0000:00:1f.2-ata-2.0"


def make_context(
    client: InMemoryInventoryClient,
    host: HostInfo,
    groups: tuple[VolumeGroupInfo, ...] | None,
    config: ReconcilerConfig | None = None,
    recorder: MemoryEventRecorder | None = None,
) -> ReconcileContext:
    return ReconcileContext(
        client=client,
        profile=HostProfile(hostname=host.hostname, storage=StorageProfile(volume_groups=groups)),
        snapshot=fetch_host_snapshot(client, host.id),
        config=config or ReconcilerConfig(),
        recorder=recorder,
    )


def cgts_vg() -> VolumeGroupInfo:
    return VolumeGroupInfo(
        name="cgts-vg",
        lvm_type="thin",
        physical_volumes=(PhysicalVolumeInfo(type=PhysicalVolumeType.partition, path=ROOT_DISK, size=50),),
    )


def test_volume_group_created_before_partition_and_physical_volume():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)
    recorder = MemoryEventRecorder()
    ctx = make_context(client, host, (cgts_vg(),), recorder=recorder)

    assert reconcile_volume_groups(ctx) is None

    names = [name for name, _ in client.mutations()]
    assert names == ["create_volume_group", "create_partition", "create_physical_volume"]

    vg_payload = client.mutations("create_volume_group")[0][1]
    assert vg_payload == {"host_id": host.id, "name": "cgts-vg", "lvm_type": "thin"}

    vg = ctx.snapshot.find_volume_group("cgts-vg")
    assert vg is not None
    assert len(ctx.snapshot.physical_volumes) == 1
    assert ctx.snapshot.physical_volumes[0].volume_group_id == vg.id

    partition = ctx.snapshot.partitions[0]
    assert partition.volume_group == "cgts-vg"
    assert partition.status == PartitionStatus.in_use

    assert recorder.messages()[0] == 'volume group "cgts-vg" has been created'


def test_volume_group_without_lvm_type_omits_it():
    client = InMemoryInventoryClient()
    host = client.add_host("worker-0", personality="worker")
    ctx = make_context(client, host, (VolumeGroupInfo(name="nova-local"),))

    reconcile_volume_groups(ctx)

    assert client.mutations("create_volume_group")[0][1] == {"host_id": host.id, "name": "nova-local"}


def test_disk_backed_physical_volume_uses_disk_id():
    client = InMemoryInventoryClient()
    host = client.add_host("worker-0", personality="worker")
    disk = client.add_disk(host.id, DATA_DISK, device_node="/dev/sdb")
    group = VolumeGroupInfo(
        name="nova-local",
        physical_volumes=(PhysicalVolumeInfo(type=PhysicalVolumeType.disk, path="/dev/sdb"),),
    )
    ctx = make_context(client, host, (group,))

    reconcile_volume_groups(ctx)

    payload = client.mutations("create_physical_volume")[0][1]
    assert payload["device_id"] == disk.id
    assert payload["pv_type"] == "disk"
    assert client.mutations("create_partition") == []


def test_second_pass_is_a_noop():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)

    reconcile_volume_groups(make_context(client, host, (cgts_vg(),)))
    first = len(client.mutations())

    reconcile_volume_groups(make_context(client, host, (cgts_vg(),)))

    assert len(client.mutations()) == first


def test_existing_group_only_reconciles_members():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)
    client.add_volume_group(host.id, "cgts-vg", lvm_type="thin")
    ctx = make_context(client, host, (cgts_vg(),))

    reconcile_volume_groups(ctx)

    names = [name for name, _ in client.mutations()]
    assert names == ["create_partition", "create_physical_volume"]


def test_transient_partition_stops_before_physical_volume():
    client = InMemoryInventoryClient(new_partition_status=PartitionStatus.creating)
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)
    ctx = make_context(client, host, (cgts_vg(),))

    wait = reconcile_volume_groups(ctx)

    assert wait is not None
    assert wait.kind == WaitKind.partition_state
    assert client.mutations("create_physical_volume") == []


def test_missing_disk_for_physical_volume_raises():
    client = InMemoryInventoryClient()
    host = client.add_host("worker-0", personality="worker")
    group = VolumeGroupInfo(
        name="nova-local",
        physical_volumes=(PhysicalVolumeInfo(type=PhysicalVolumeType.disk, path="/dev/missing"),),
    )
    ctx = make_context(client, host, (group,))

    with pytest.raises(MissingResource, match=r"failed to find physical volume device: /dev/missing\(disk\)"):
        reconcile_volume_groups(ctx)


def test_physical_volumes_require_their_group():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)
    ctx = make_context(client, host, (cgts_vg(),))

    with pytest.raises(MissingResource, match="unable to find volume group cgts-vg"):
        reconcile_physical_volumes(ctx, cgts_vg())


def test_system_partition_is_reused_not_recreated():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    disk = client.add_disk(host.id, ROOT_DISK)
    vg = client.add_volume_group(host.id, "cgts-vg", lvm_type="thin")
    partition = client.add_partition(host.id, disk.id, 50, status=PartitionStatus.in_use, system=True)
    client.add_physical_volume(host.id, PhysicalVolumeType.partition, partition.id, vg.id)
    ctx = make_context(client, host, (cgts_vg(),))

    assert reconcile_volume_groups(ctx) is None
    assert client.mutations() == []


def test_volume_groups_not_configured_or_disabled():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)

    assert reconcile_volume_groups(make_context(client, host, None)) is None

    config = ReconcilerConfig(enabled={ReconcilerKind.volume_group: False})
    assert reconcile_volume_groups(make_context(client, host, (cgts_vg(),), config=config)) is None

    assert client.mutations() == []


def test_repeated_partition_volume_creates_one_physical_volume():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    client.add_disk(host.id, ROOT_DISK)
    entry = PhysicalVolumeInfo(type=PhysicalVolumeType.partition, path=ROOT_DISK, size=10)
    group = VolumeGroupInfo(name="cgts-vg", physical_volumes=(entry, entry))
    ctx = make_context(client, host, (group,))

    assert reconcile_volume_groups(ctx) is None

    partitions = client.mutations("create_partition")
    pvs = client.mutations("create_physical_volume")
    assert len(partitions) == 1
    assert len(pvs) == 1
    assert len(ctx.snapshot.physical_volumes) == 1

    reconcile_volume_groups(make_context(client, host, (group,)))

    assert len(client.mutations("create_physical_volume")) == 1
