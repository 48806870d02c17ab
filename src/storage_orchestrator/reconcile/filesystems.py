"""
Host filesystem reconcilers.

Types
Adds and removes optional filesystems. Only names on the configured allow
lists are ever created or deleted; every other difference is left alone.

Sizes
Grows filesystems once the host is unlocked and available. Sizes never shrink.
All growing filesystems go out in one request.
"""

from __future__ import annotations

import logging

from storage_orchestrator.core.delta import list_delta
from storage_orchestrator.core.errors import MissingResource
from storage_orchestrator.inventory.client import FileSystemCreateOpts, FileSystemSizeOpts
from storage_orchestrator.reconcile.config import ReconcilerKind
from storage_orchestrator.reconcile.context import ReconcileContext, remote_call
from storage_orchestrator.reconcile.events import EventReason
from storage_orchestrator.reconcile.waits import WaitDescriptor, host_available_wait

log = logging.getLogger(__name__)


def _refresh_filesystems(ctx: ReconcileContext) -> None:
    with remote_call("failed to list file systems"):
        filesystems = ctx.client.list_filesystems(ctx.host_id)
    ctx.replace_snapshot(filesystems=filesystems)


def delete_filesystems(ctx: ReconcileContext, removed: list[str]) -> bool:
    updated = False
    for name in removed:
        fs = ctx.snapshot.find_filesystem(name)
        if fs is None:
            continue

        log.info("deleting host filesystem %s", name)
        with remote_call("failed to remove file systems"):
            ctx.client.delete_filesystem(fs.id)

        updated = True
        _refresh_filesystems(ctx)

    return updated


def create_filesystems(ctx: ReconcileContext, added: list[str]) -> bool:
    updated = False
    desired = {fs.name: fs for fs in ctx.storage.filesystems or ()}

    for name in added:
        fs_info = desired.get(name)
        if fs_info is None:
            continue

        opts = FileSystemCreateOpts(host_id=ctx.host_id, name=fs_info.name, size_gib=fs_info.size)
        log.info("creating host filesystem %s (%d GiB)", opts.name, opts.size_gib)
        with remote_call("failed to create file systems"):
            ctx.client.create_filesystem(opts)

        updated = True
        _refresh_filesystems(ctx)

    return updated


def reconcile_filesystem_types(ctx: ReconcileContext) -> WaitDescriptor | None:
    """Create and delete allow listed filesystems to match the profile."""
    desired = ctx.storage.filesystems
    if desired is None:
        log.debug("no file systems configured")
        return None

    if not ctx.config.is_enabled(ReconcilerKind.filesystem_types):
        log.info("file system types reconciler not enabled")
        return None

    if not desired:
        return None

    configured = [fs.name for fs in desired]
    current = ctx.snapshot.filesystem_names()

    added, removed, _ = list_delta(current, configured)
    _, _, to_add = list_delta(added, ctx.config.filesystem_creation_allowed)
    _, _, to_remove = list_delta(removed, ctx.config.filesystem_deletion_allowed)
    log.debug("file system delta: add %s remove %s", to_add, to_remove)

    if to_remove and delete_filesystems(ctx, to_remove):
        ctx.event(EventReason.deleted, f"filesystems {', '.join(to_remove)} have been deleted")

    if to_add and create_filesystems(ctx, to_add):
        ctx.event(EventReason.created, f"filesystems {', '.join(to_add)} have been created")

    return None


def reconcile_filesystem_sizes(ctx: ReconcileContext) -> WaitDescriptor | None:
    """
    Grow filesystems to their configured sizes.

    Raises MissingResource for a configured filesystem the host does not have.
    """
    desired = ctx.storage.filesystems
    if desired is None:
        log.debug("no file systems configured")
        return None

    if not ctx.config.is_enabled(ReconcilerKind.filesystem_sizes):
        log.info("file system sizes reconciler not enabled")
        return None

    if not desired:
        return None

    if not ctx.snapshot.host.is_unlocked_available():
        wait = host_available_wait(ctx.host_id)
        log.info("%s: %s", wait.reason, ctx.hostname)
        return wait

    updates: list[FileSystemSizeOpts] = []
    for fs_info in desired:
        fs = ctx.snapshot.find_filesystem(fs_info.name)
        if fs is None:
            raise MissingResource(f'unknown host filesystem "{fs_info.name}"')

        if fs_info.size > fs.size_gib:
            log.info("growing file system %s from %d to %d GiB", fs.name, fs.size_gib, fs_info.size)
            updates.append(FileSystemSizeOpts(name=fs_info.name, size_gib=fs_info.size))

    if updates:
        with remote_call("failed to update filesystems sizes"):
            ctx.client.update_filesystems(ctx.host_id, updates)

        ctx.event(EventReason.updated, "filesystem sizes have been updated")
        _refresh_filesystems(ctx)

    return None
