from __future__ import annotations

from storage_orchestrator.core.types import PhysicalVolumeType
from storage_orchestrator.inventory.loader import fetch_host_snapshot, list_host_partitions
from storage_orchestrator.inventory.memory import InMemoryInventoryClient


def test_snapshot_includes_system_partitions():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    disk = client.add_disk(host.id, "/dev/disk/by-path/a", device_node="/dev/sda")
    vg = client.add_volume_group(host.id, "cgts-vg")
    system = client.add_partition(host.id, disk.id, 100, system=True)
    client.add_physical_volume(host.id, PhysicalVolumeType.partition, system.id, vg.id)
    user = client.add_partition(host.id, disk.id, 20)

    assert [p.id for p in client.list_partitions(host.id)] == [user.id]

    snapshot = fetch_host_snapshot(client, host.id)

    assert {p.id for p in snapshot.partitions} == {system.id, user.id}
    found = snapshot.find_partition_by_path("/dev/sda", 100, "cgts-vg")
    assert found is not None and found.id == system.id


def test_list_host_partitions_skips_disk_volumes():
    client = InMemoryInventoryClient()
    host = client.add_host("worker-0", personality="worker")
    disk = client.add_disk(host.id, "/dev/disk/by-path/b")
    vg = client.add_volume_group(host.id, "nova-local")
    client.add_physical_volume(host.id, PhysicalVolumeType.disk, disk.id, vg.id)

    partitions = list_host_partitions(client, host.id, client.list_physical_volumes(host.id))

    assert partitions == []


def test_snapshot_scopes_records_to_host():
    client = InMemoryInventoryClient()
    host = client.add_host("controller-0")
    other = client.add_host("controller-1")
    client.add_disk(host.id, "/dev/disk/by-path/a")
    client.add_disk(other.id, "/dev/disk/by-path/a")
    client.add_monitor(other.id)

    snapshot = fetch_host_snapshot(client, host.id)

    assert len(snapshot.disks) == 1
    assert len(snapshot.monitors) == 1
    assert snapshot.host_monitors() == []
