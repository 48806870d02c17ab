"""
Static profile source.

Reads a local json file containing either:
1) a single host profile object
2) or a list of host profiles under "hosts"

Schema example
{
  "hosts": [
    {
      "hostname": "worker-0",
      "personality": "worker",
      "storage": {
        "monitor": {"size": 20},
        "volume_groups": [
          {
            "name": "cgts-vg",
            "lvm_type": "thin",
            "physical_volumes": [
              {"type": "partition", "path": "/dev/disk/by-path/pci-0000:00:1f.2-ata-1.0", "size": 50}
            ]
          }
        ],
        "osds": [
          {"function": "journal", "path": "/dev/disk/by-path/pci-0000:00:1f.2-ata-3.0"},
          {
            "function": "osd",
            "path": "/dev/disk/by-path/pci-0000:00:1f.2-ata-2.0",
            "journal": {"location": "/dev/disk/by-path/pci-0000:00:1f.2-ata-3.0", "size": 1},
            "cluster": "ceph_cluster"
          }
        ],
        "filesystems": [{"name": "instances", "size": 30}]
      }
    }
  ]
}

A missing or null group means "not configured". An empty list means
"configured empty". Schema validation beyond what parsing needs belongs to the
producer of these files.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from storage_orchestrator.core.types import (
    FileSystemInfo,
    HostProfile,
    JournalInfo,
    MonitorInfo,
    OSDFunction,
    OSDInfo,
    PhysicalVolumeInfo,
    PhysicalVolumeType,
    StorageProfile,
    VolumeGroupInfo,
)


class ProfileSource(Protocol):
    """
    Profile source interface.

    fetch returns the desired profile of every managed host.
    """

    def fetch(self) -> list[HostProfile]:
        """Fetch host profiles."""


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _optional_list(obj: dict[str, Any], key: str) -> Optional[list[dict[str, Any]]]:
    raw = obj.get(key)
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValueError(f"{key} must be a list")
    return [x for x in raw if isinstance(x, dict)]


def _volume_group_from_dict(obj: dict[str, Any]) -> VolumeGroupInfo:
    pvs = tuple(
        PhysicalVolumeInfo(
            type=PhysicalVolumeType(str(raw.get("type", "disk"))),
            path=str(raw["path"]),
            size=_optional_int(raw.get("size")),
        )
        for raw in obj.get("physical_volumes", []) or []
        if isinstance(raw, dict)
    )
    lvm_type = obj.get("lvm_type")
    return VolumeGroupInfo(
        name=str(obj["name"]),
        physical_volumes=pvs,
        lvm_type=str(lvm_type) if lvm_type is not None else None,
    )


def _osd_from_dict(obj: dict[str, Any]) -> OSDInfo:
    journal = None
    raw_journal = obj.get("journal")
    if isinstance(raw_journal, dict):
        journal = JournalInfo(location=str(raw_journal["location"]), size=int(raw_journal.get("size", 0)))

    cluster = obj.get("cluster")
    return OSDInfo(
        function=OSDFunction(str(obj.get("function", "osd"))),
        path=str(obj["path"]),
        journal=journal,
        cluster_name=str(cluster) if cluster is not None else None,
    )


def _storage_from_dict(obj: dict[str, Any]) -> StorageProfile:
    monitor = None
    raw_monitor = obj.get("monitor")
    if isinstance(raw_monitor, dict):
        monitor = MonitorInfo(size=_optional_int(raw_monitor.get("size")))

    groups = _optional_list(obj, "volume_groups")
    osds = _optional_list(obj, "osds")
    filesystems = _optional_list(obj, "filesystems")

    return StorageProfile(
        monitor=monitor,
        volume_groups=tuple(_volume_group_from_dict(x) for x in groups) if groups is not None else None,
        osds=tuple(_osd_from_dict(x) for x in osds) if osds is not None else None,
        filesystems=(
            tuple(FileSystemInfo(name=str(x["name"]), size=int(x["size"])) for x in filesystems)
            if filesystems is not None
            else None
        ),
    )


def profile_from_dict(obj: dict[str, Any]) -> HostProfile:
    """Convert a dict into HostProfile."""
    storage = None
    raw_storage = obj.get("storage")
    if isinstance(raw_storage, dict):
        storage = _storage_from_dict(raw_storage)

    personality = obj.get("personality")
    return HostProfile(
        hostname=str(obj["hostname"]),
        personality=str(personality) if personality is not None else None,
        storage=storage,
    )


@dataclass(frozen=True)
class StaticProfileSource(ProfileSource):
    """Load host profiles from a local json file."""

    path: Path

    def fetch(self) -> list[HostProfile]:
        data = json.loads(self.path.read_text(encoding="utf-8"))

        if isinstance(data, dict) and "hosts" in data:
            raw = data.get("hosts", [])
            if isinstance(raw, list):
                return [profile_from_dict(x) for x in raw if isinstance(x, dict)]
            return []

        if isinstance(data, dict):
            return [profile_from_dict(data)]

        return []
