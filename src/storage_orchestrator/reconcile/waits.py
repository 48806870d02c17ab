"""
Wait descriptors.

Purpose
A reconciler returns a WaitDescriptor when a precondition it cannot influence
is not met yet: a partition is still being created, the storage cluster has no
deployment model, too few monitors are enabled.

A wait is not an error. It stops the current pass cleanly and asks the caller
to run the whole pass again later. Nothing blocks while waiting.

Classification
wait_satisfied re-evaluates the condition behind a descriptor against a fresh
snapshot. A runner uses it to skip passes that would only produce the same
wait again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storage_orchestrator.core.types import STORAGE_TIER_NAME, DeploymentModel
from storage_orchestrator.inventory.snapshot import HostSnapshot


class WaitKind(str, Enum):
    partition_state = "partition_state"
    cluster_presence = "cluster_presence"
    deployment_model = "deployment_model"
    monitor_count = "monitor_count"
    storage_tier = "storage_tier"
    host_available = "host_available"


@dataclass(frozen=True)
class WaitDescriptor:
    """
    Wait descriptor.

    kind
    Which condition is unmet.

    target
    Identifier or name of the thing being waited on. Its meaning depends on
    kind: a host id, a cluster name or id, or a monitor count.

    reason
    Human readable, suitable for events and operator status.
    """

    kind: WaitKind
    target: str
    reason: str


def partition_state_wait(host_id: str) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.partition_state,
        target=host_id,
        reason="waiting for partitions to transition to ready state",
    )


def cluster_presence_wait(cluster_name: str) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.cluster_presence,
        target=cluster_name,
        reason=f'waiting for the "{cluster_name}" cluster to be created before allowing OSDs',
    )


def deployment_model_wait(cluster_id: str) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.deployment_model,
        target=cluster_id,
        reason="waiting for storage deployment model to be defined before allowing OSDs",
    )


def monitor_count_wait(required: int) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.monitor_count,
        target=str(required),
        reason=f"waiting for {required} monitor(s) to be enabled before allowing OSDs",
    )


def storage_tier_wait(cluster_name: str, tier_name: str = STORAGE_TIER_NAME) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.storage_tier,
        target=cluster_name,
        reason=f'waiting for the "{cluster_name}" {tier_name} tier to be created',
    )


def host_available_wait(host_id: str) -> WaitDescriptor:
    return WaitDescriptor(
        kind=WaitKind.host_available,
        target=host_id,
        reason="waiting for host to reach available state",
    )


def wait_satisfied(wait: WaitDescriptor, snapshot: HostSnapshot) -> bool:
    """
    Return True when the condition behind wait now holds in snapshot.

    True does not promise the next pass will proceed. Another condition further
    along the pass may produce a different wait.
    """
    if wait.kind == WaitKind.partition_state:
        return not snapshot.transient_partitions()

    if wait.kind == WaitKind.cluster_presence:
        return snapshot.find_cluster_by_name(wait.target) is not None

    if wait.kind == WaitKind.deployment_model:
        cluster = snapshot.find_cluster(wait.target)
        return cluster is not None and cluster.deployment_model != DeploymentModel.undefined

    if wait.kind == WaitKind.monitor_count:
        return snapshot.enabled_monitor_count() >= int(wait.target)

    if wait.kind == WaitKind.storage_tier:
        return snapshot.find_tier(wait.target) is not None

    if wait.kind == WaitKind.host_available:
        return snapshot.host.is_unlocked_available()

    raise ValueError(f"unsupported wait kind: {wait.kind}")
