"""
OSD reconcilers.

The inventory service cannot change an OSD's function in place, and cannot
drop a journal association in place. Those changes are handled as delete then
recreate: reconcile_stale_osds deletes, and the next OSD pass creates the OSD
again with its new settings.

Journal OSDs are reconciled before data OSDs because a data OSD references its
journal OSD by id, and that id does not exist until the journal OSD is created.

Only journal presence and journal size are updated in place.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.errors import InvalidConfiguration, MissingResource
from storage_orchestrator.core.serialization import format_opts
from storage_orchestrator.core.types import OSD, JournalInfo, OSDFunction, OSDInfo
from storage_orchestrator.inventory.client import OSDOpts
from storage_orchestrator.inventory.snapshot import HostSnapshot
from storage_orchestrator.reconcile.admission import osd_provisioning_allowed
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.waits import WaitDescriptor

log = logging.getLogger(__name__)

# Journal OSDs first, see module docstring.
FUNCTION_ORDER = (OSDFunction.journal, OSDFunction.osd)


def _resolve_journal(snapshot: HostSnapshot, journal: JournalInfo) -> OSD:
    """
    Return the journal OSD a desired journal refers to.

    Raises MissingResource when no OSD sits on the journal path, and
    InvalidConfiguration when the OSD there is not a journal OSD.
    """
    target = snapshot.find_osd_by_path(journal.location)
    if target is None:
        raise MissingResource(f"unable to find journal OSD with path: {journal.location}")

    if target.function != OSDFunction.journal:
        disk = snapshot.find_disk(target.disk_id)
        where = disk.device_path if disk is not None else target.disk_id
        raise InvalidConfiguration(f"OSD on disk {where} is not a Journal OSD")

    return target


def _has_external_journal(osd: OSD) -> bool:
    return osd.journal_location is not None and osd.journal_location != osd.id


def osd_update_required(snapshot: HostSnapshot, osd_info: OSDInfo, osd: OSD) -> tuple[OSDOpts, bool]:
    """
    Compute an in place update for an existing OSD.

    A journal is attached when the OSD has none of its own, and resized when
    the size differs. Everything else is left to reconcile_stale_osds.
    """
    if osd_info.journal is None:
        return OSDOpts(), False

    if not _has_external_journal(osd):
        journal = _resolve_journal(snapshot, osd_info.journal)
        opts = OSDOpts(journal_location=journal.id, journal_size_gib=osd_info.journal.size)
        return opts, True

    if osd.journal_size_gib != osd_info.journal.size:
        return OSDOpts(journal_size_gib=osd_info.journal.size), True

    return OSDOpts(), False


def build_osd_opts(snapshot: HostSnapshot, osd_info: OSDInfo) -> OSDOpts:
    """
    Build create options for an OSD.

    The tier id stays None while the cluster's tier is not allocated; the
    admission gate decides whether that blocks creation.
    """
    disk = snapshot.find_disk_by_path(osd_info.path)
    if disk is None:
        raise MissingResource(f"unable to find disk for path: {osd_info.path}")

    journal_location = None
    journal_size = None
    if osd_info.journal is not None:
        journal_location = _resolve_journal(snapshot, osd_info.journal).id
        journal_size = osd_info.journal.size

    tier = snapshot.find_tier(osd_info.cluster)

    return OSDOpts(
        host_id=snapshot.host.id,
        disk_id=disk.id,
        function=osd_info.function,
        journal_location=journal_location,
        journal_size_gib=journal_size,
        tier_id=tier.id if tier is not None else None,
    )


def reconcile_stale_osds(ctx: ReconcileContext) -> WaitDescriptor | None:
    """
    Delete OSDs that are no longer configured or must be recreated.

    An OSD must be recreated when its function changed, or when its journal
    was removed from the profile while it still points at another OSD.
    """
    desired = ctx.storage.osds
    if desired is None:
        log.debug("no OSDs configured")
        return None

    if not ctx.config.is_enabled(ReconcilerKind.osd):
        log.info("OSD reconciler not enabled")
        return None

    present: set[str] = set()
    recreate: set[str] = set()

    for osd_info in desired:
        osd = ctx.snapshot.find_osd_by_path(osd_info.path)
        if osd is None:
            continue

        present.add(osd.id)

        if osd.function != osd_info.function:
            log.info("OSD %s changes function %s -> %s, recreating", osd.path, osd.function.value, osd_info.function.value)
            recreate.add(osd.id)
        elif osd_info.journal is None and _has_external_journal(osd):
            log.info("OSD %s no longer has a journal, recreating", osd.path)
            recreate.add(osd.id)

    changes = False
    for osd in ctx.snapshot.osds:
        if osd.id in present and osd.id not in recreate:
            continue

        log.info("deleting stale or updated OSD %s on %s", osd.id, osd.path)
        with remote_call(f"failed to delete OSD: {osd.id}"):
            ctx.client.delete_osd(osd.id)

        ctx.event(EventReason.deleted, f'osd "{osd.id}" deleted')
        changes = True

    if changes:
        with remote_call("failed to refresh OSD list for host"):
            osds = ctx.client.list_osds(ctx.host_id)
        ctx.replace_snapshot(osds=osds)

    return None


def reconcile_osds_by_function(ctx: ReconcileContext, function: OSDFunction) -> WaitDescriptor | None:
    """Create or update the configured OSDs of one function."""
    updated = False
    wait: WaitDescriptor | None = None

    for osd_info in ctx.storage.osds or ():
        if osd_info.function != function:
            continue

        osd = ctx.snapshot.find_osd_by_path(osd_info.path)
        if osd is not None:
            opts, required = osd_update_required(ctx.snapshot, osd_info, osd)
            if not required:
                continue

            log.info("updating OSD %s: %s", osd.id, format_opts(opts))
            with remote_call(f"failed to update OSD: {osd.id}, {format_opts(opts)}"):
                ctx.client.update_osd(osd.id, opts)

            ctx.event(EventReason.updated, f'OSD "{osd_info.path}" has been updated')
            updated = True
            continue

        opts = build_osd_opts(ctx.snapshot, osd_info)

        wait = osd_provisioning_allowed(ctx.snapshot, osd_info, opts.tier_id, ctx.config.min_monitor_count)
        if wait is not None:
            break

        log.info("creating OSD: %s", format_opts(opts))
        with remote_call("failed to create OSD"):
            ctx.client.create_osd(opts)

        ctx.event(EventReason.created, f'OSD "{osd_info.path}" has been created')
        updated = True

    if updated:
        with remote_call("failed to refresh OSD list for host"):
            osds = ctx.client.list_osds(ctx.host_id)
        ctx.replace_snapshot(osds=osds)

    return wait


def reconcile_osds(ctx: ReconcileContext) -> WaitDescriptor | None:
    """Reconcile journal OSDs, then data OSDs."""
    desired = ctx.storage.osds
    if desired is None:
        log.debug("no OSDs configured")
        return None

    if not ctx.config.is_enabled(ReconcilerKind.osd):
        log.info("OSD reconciler not enabled")
        return None

    if not desired:
        return None

    for function in FUNCTION_ORDER:
        wait = reconcile_osds_by_function(ctx, function)
        if wait is not None:
            return wait

    return None
