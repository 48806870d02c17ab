from __future__ import annotations

import dataclasses

from storage_orchestrator.core.errors import ErrorKind
from storage_orchestrator.core.types import (
    DeploymentModel,
    FileSystemInfo,
    HostInfo,
    HostProfile,
    JournalInfo,
    MonitorInfo,
    OSDFunction,
    OSDInfo,
    PhysicalVolumeInfo,
    PhysicalVolumeType,
    StorageProfile,
    SystemType,
    VolumeGroupInfo,
)
from storage_orchestrator.inventory.loader import fetch_host_snapshot
from storage_orchestrator.inventory.memory import InMemoryInventoryClient
from storage_orchestrator.reconcile.config import ReconcilerConfig, ReconcilerKind
from storage_orchestrator.reconcile.events import MemoryEventRecorder
from storage_orchestrator.reconcile.storage import ReconcileStatus, StorageReconciler
from storage_orchestrator.reconcile.waits import WaitKind

ROOT_DISK = "/dev/disk/by-path/pci-0000:00:1f.2-ata-1.0"
SDB = "/dev/disk/by-path/pci-0000:00:1f.2-ata-2.0"
SDC = "/dev/disk/by-path/pci-0000:00:1f.2-ata-3.0"


def make_client(system_type: SystemType = SystemType.all_in_one) -> tuple[InMemoryInventoryClient, HostInfo]:
    client = InMemoryInventoryClient(system_type=system_type)
    host = client.add_host("controller-0")
    for path in (ROOT_DISK, SDB, SDC):
        client.add_disk(host.id, path)
    client.add_filesystem(host.id, "docker", 30)
    return client, host


def full_profile(hostname: str = "controller-0") -> HostProfile:
    return HostProfile(
        hostname=hostname,
        storage=StorageProfile(
            volume_groups=(
                VolumeGroupInfo(
                    name="cgts-vg",
                    lvm_type="thin",
                    physical_volumes=(
                        PhysicalVolumeInfo(type=PhysicalVolumeType.partition, path=ROOT_DISK, size=50),
                    ),
                ),
            ),
            osds=(
                OSDInfo(function=OSDFunction.osd, path=SDB, journal=JournalInfo(location=SDC, size=2)),
                OSDInfo(function=OSDFunction.journal, path=SDC),
            ),
            filesystems=(FileSystemInfo(name="docker", size=30), FileSystemInfo(name="instances", size=40)),
        ),
    )


def test_full_pass_on_all_in_one_completes():
    client, host = make_client()
    client.add_cluster()
    recorder = MemoryEventRecorder()
    reconciler = StorageReconciler(client, recorder=recorder)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.ok
    assert result.status == ReconcileStatus.completed
    assert result.hostname == "controller-0"

    names = [name for name, _ in client.mutations()]
    assert names == [
        "create_filesystem",
        "create_volume_group",
        "create_partition",
        "create_physical_volume",
        "create_osd",
        "create_osd",
    ]
    assert len(result.snapshot.osds) == 2
    assert len(recorder.events) == 6


def test_second_pass_is_idempotent():
    client, host = make_client()
    client.add_cluster()
    reconciler = StorageReconciler(client)

    reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))
    first = len(client.mutations())

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.ok
    assert len(client.mutations()) == first


def test_missing_cluster_waits_after_storage_layout():
    client, host = make_client()
    reconciler = StorageReconciler(client)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.status == ReconcileStatus.waiting
    assert result.wait is not None
    assert result.wait.kind == WaitKind.cluster_presence
    assert result.retryable
    assert client.mutations("create_physical_volume")
    assert client.mutations("create_osd") == []


def test_undefined_model_waits_then_completes_once_defined():
    client, host = make_client()
    cluster = client.add_cluster(deployment_model=DeploymentModel.undefined)
    reconciler = StorageReconciler(client)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))
    assert result.wait is not None
    assert result.wait.kind == WaitKind.deployment_model

    client.clusters[cluster.id] = dataclasses.replace(cluster, deployment_model=DeploymentModel.aio_sx)
    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.ok
    assert len(client.mutations("create_osd")) == 2


def test_osds_skipped_on_standard_controller_while_locked():
    client, host = make_client(system_type=SystemType.standard)
    client.add_cluster(deployment_model=DeploymentModel.controller)
    reconciler = StorageReconciler(client)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.ok
    assert client.mutations("create_osd") == []


def test_standard_controller_waits_for_monitors_when_unlocked():
    client, host = make_client(system_type=SystemType.standard)
    client.set_host_state(host.id, administrative="unlocked", operational="enabled", availability="available")
    client.add_cluster(deployment_model=DeploymentModel.controller)
    client.add_monitor(host.id)
    reconciler = StorageReconciler(client, config=ReconcilerConfig(min_monitor_count=2))

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.wait is not None
    assert result.wait.kind == WaitKind.monitor_count


def test_changed_osd_function_is_recreated_in_one_pass():
    client, host = make_client()
    client.add_cluster()
    old = client.add_osd(host.id, next(d.id for d in client.disks.values() if d.device_path == SDC))
    reconciler = StorageReconciler(client)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.ok
    assert client.mutations("delete_osd") == [("delete_osd", {"id": old.id})]
    journal = result.snapshot.find_osd_by_path(SDC)
    assert journal is not None
    assert journal.function == OSDFunction.journal


def test_error_is_reported_as_failed_result():
    client, host = make_client()
    client.add_cluster()
    client.fail_on.add("create_volume_group")
    reconciler = StorageReconciler(client)

    result = reconciler.reconcile(full_profile(), fetch_host_snapshot(client, host.id))

    assert result.status == ReconcileStatus.failed
    assert result.error_kind == ErrorKind.remote
    assert result.retryable
    assert result.error is not None
    assert "failed to create volume group" in str(result.error)
    assert result.error.__cause__ is not None
    assert client.mutations("create_osd") == []


def test_invalid_configuration_is_not_retryable():
    client, host = make_client()
    client.add_cluster()
    client.add_osd(host.id, next(d.id for d in client.disks.values() if d.device_path == SDC))
    profile = HostProfile(
        hostname="controller-0",
        storage=StorageProfile(
            osds=(
                OSDInfo(function=OSDFunction.osd, path=SDC),
                OSDInfo(function=OSDFunction.osd, path=SDB, journal=JournalInfo(location=SDC, size=1)),
            )
        ),
    )

    result = StorageReconciler(client).reconcile(profile, fetch_host_snapshot(client, host.id))

    assert result.status == ReconcileStatus.failed
    assert result.error_kind == ErrorKind.invalid_configuration
    assert not result.retryable


def test_no_storage_or_disabled_does_nothing():
    client, host = make_client()
    snapshot = fetch_host_snapshot(client, host.id)

    result = StorageReconciler(client).reconcile(HostProfile(hostname="controller-0"), snapshot)
    assert result.ok

    disabled = ReconcilerConfig(enabled={ReconcilerKind.storage: False})
    result = StorageReconciler(client, config=disabled).reconcile(full_profile(), snapshot)
    assert result.ok

    assert client.mutations() == []


def test_monitor_runs_first_for_workers():
    client = InMemoryInventoryClient()
    host = client.add_host("worker-0", personality="worker")
    client.add_disk(host.id, SDB)
    profile = HostProfile(
        hostname="worker-0",
        personality="worker",
        storage=StorageProfile(
            monitor=MonitorInfo(size=20),
            volume_groups=(
                VolumeGroupInfo(
                    name="nova-local",
                    physical_volumes=(PhysicalVolumeInfo(type=PhysicalVolumeType.disk, path=SDB),),
                ),
            ),
        ),
    )

    result = StorageReconciler(client).reconcile(profile, fetch_host_snapshot(client, host.id))

    assert result.ok
    names = [name for name, _ in client.mutations()]
    assert names == ["create_monitor", "create_volume_group", "create_physical_volume"]


def test_filesystem_sizes_pass():
    client, host = make_client()
    client.set_host_state(host.id, administrative="unlocked", operational="enabled", availability="available")
    profile = HostProfile(
        hostname="controller-0",
        storage=StorageProfile(filesystems=(FileSystemInfo(name="docker", size=50),)),
    )

    result = StorageReconciler(client).reconcile_filesystem_sizes(profile, fetch_host_snapshot(client, host.id))

    assert result.ok
    docker = result.snapshot.find_filesystem("docker")
    assert docker is not None
    assert docker.size_gib == 50
