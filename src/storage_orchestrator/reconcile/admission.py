"""
OSD admission.

Purpose
Decide whether OSD work may happen at all, and whether a specific OSD may be
created right now.

osd_provisioning_state
Which host state the system requires before OSDs are touched on a host.

provisioning_state_satisfied
Whether the host is currently in that state. When it is not, the orchestrator
skips OSD reconciliation for the pass instead of waiting.

osd_provisioning_allowed
The admission gate run before each OSD creation. Rules are checked in order
and the first unmet one produces a wait:
1) the OSD's cluster exists
2) the cluster has a deployment model
3) on standard systems with controller or storage deployment, enough monitors are enabled
4) the cluster's storage tier has been allocated
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.types import (
    DeploymentModel,
    HostInfo,
    OSDInfo,
    Personality,
    ProvisioningState,
    SystemType,
)
from storage_orchestrator.inventory.snapshot import HostSnapshot
from storage_orchestrator.reconcile.waits import (
    WaitDescriptor,
    cluster_presence_wait,
    deployment_model_wait,
    monitor_count_wait,
    storage_tier_wait,
)

log = logging.getLogger(__name__)

_MONITORED_MODELS = frozenset({DeploymentModel.controller, DeploymentModel.storage})


def osd_provisioning_state(system_type: SystemType, personality: str) -> ProvisioningState:
    """
    Return the host state required for OSD provisioning.

    All in one systems allow OSDs at any time. On standard systems storage hosts
    take OSDs while locked and disabled, controllers while enabled, and no
    other role takes OSDs.
    """
    if system_type == SystemType.all_in_one:
        return ProvisioningState.any

    if system_type == SystemType.standard:
        role = personality.lower()
        if role == Personality.storage.value:
            return ProvisioningState.disabled
        if role == Personality.controller.value:
            return ProvisioningState.enabled

    return ProvisioningState.none


def provisioning_state_satisfied(state: ProvisioningState, host: HostInfo) -> bool:
    if state == ProvisioningState.any:
        return True
    if state == ProvisioningState.enabled:
        return host.is_unlocked_enabled()
    if state == ProvisioningState.disabled:
        return host.is_locked_disabled()
    return False


def osd_provisioning_allowed(
    snapshot: HostSnapshot,
    osd_info: OSDInfo,
    tier_id: str | None,
    min_monitor_count: int,
) -> WaitDescriptor | None:
    """Run the admission gate for one OSD. None means creation may proceed."""
    cluster_name = osd_info.cluster

    cluster = snapshot.find_cluster_by_name(cluster_name)
    if cluster is None:
        wait = cluster_presence_wait(cluster_name)
        log.info(wait.reason)
        return wait

    if cluster.deployment_model == DeploymentModel.undefined:
        wait = deployment_model_wait(cluster.id)
        log.info(wait.reason)
        return wait

    if cluster.deployment_model in _MONITORED_MODELS and snapshot.system_type == SystemType.standard:
        enabled = snapshot.enabled_monitor_count()
        if enabled < min_monitor_count:
            wait = monitor_count_wait(min_monitor_count)
            log.info("%s (%d enabled)", wait.reason, enabled)
            return wait

    if tier_id is None:
        wait = storage_tier_wait(cluster_name)
        log.info(wait.reason)
        return wait

    return None
