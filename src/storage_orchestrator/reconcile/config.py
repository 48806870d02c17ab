"""
Reconciler configuration.

The orchestrator receives this explicitly. Nothing reads enablement flags from
module globals or the environment, so a test can switch a reconciler off by
building a config.

File format
{
  "enabled": {"osd": false},
  "min_monitor_count": 2,
  "filesystem_creation_allowed": ["instances", "image-conversion"],
  "filesystem_deletion_allowed": ["instances", "image-conversion"]
}

Reconcilers absent from "enabled" stay enabled.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from storage_orchestrator.core.types import OSD_MINIMUM_MONITOR_COUNT

DEFAULT_FILESYSTEM_CREATION_ALLOWED = ("instances", "image-conversion")
DEFAULT_FILESYSTEM_DELETION_ALLOWED = ("instances", "image-conversion")


class ReconcilerKind(str, Enum):
    storage = "storage"
    monitor = "monitor"
    partition = "partition"
    physical_volume = "physical_volume"
    volume_group = "volume_group"
    osd = "osd"
    filesystem_types = "filesystem_types"
    filesystem_sizes = "filesystem_sizes"


@dataclass(frozen=True)
class ReconcilerConfig:
    """
    Reconciler configuration.

    enabled
    Per reconciler switch. storage switches off the whole pass.

    min_monitor_count
    Enabled Ceph monitors required before OSDs are added on standard systems.

    filesystem_creation_allowed, filesystem_deletion_allowed
    Filesystem names the type reconciler may create or delete on its own.
    """

    enabled: Mapping[ReconcilerKind, bool] = field(default_factory=dict)
    min_monitor_count: int = OSD_MINIMUM_MONITOR_COUNT
    filesystem_creation_allowed: tuple[str, ...] = DEFAULT_FILESYSTEM_CREATION_ALLOWED
    filesystem_deletion_allowed: tuple[str, ...] = DEFAULT_FILESYSTEM_DELETION_ALLOWED

    def is_enabled(self, kind: ReconcilerKind) -> bool:
        return bool(self.enabled.get(kind, True))


def _config_from_dict(obj: dict[str, Any]) -> ReconcilerConfig:
    raw_enabled = obj.get("enabled", {}) or {}
    if not isinstance(raw_enabled, dict):
        raise ValueError("enabled must be a mapping of reconciler name to bool")

    enabled: dict[ReconcilerKind, bool] = {}
    for name, value in raw_enabled.items():
        try:
            kind = ReconcilerKind(str(name))
        except ValueError:
            raise ValueError(f"unknown reconciler {name!r}") from None
        enabled[kind] = bool(value)

    return ReconcilerConfig(
        enabled=enabled,
        min_monitor_count=int(obj.get("min_monitor_count", OSD_MINIMUM_MONITOR_COUNT)),
        filesystem_creation_allowed=tuple(
            str(x) for x in obj.get("filesystem_creation_allowed", DEFAULT_FILESYSTEM_CREATION_ALLOWED)
        ),
        filesystem_deletion_allowed=tuple(
            str(x) for x in obj.get("filesystem_deletion_allowed", DEFAULT_FILESYSTEM_DELETION_ALLOWED)
        ),
    )


def load_reconciler_config(path: Path) -> ReconcilerConfig:
    """Load a ReconcilerConfig from a json file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("reconciler config must be a json object")
    return _config_from_dict(data)
