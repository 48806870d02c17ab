"""
Name set delta.

list_delta compares a current and a configured sequence of names.

added
  configured but not current

removed
  current but not configured

unchanged
  in both

Restricting to an allow list is a second delta: the third element of
list_delta(added, allowed) is the part of added that is allowed.
"""

from __future__ import annotations

from typing import Iterable


def list_delta(
    current: Iterable[str],
    configured: Iterable[str],
) -> tuple[list[str], list[str], list[str]]:
    """Return added, removed and unchanged names, each sorted."""
    current_set = set(current)
    configured_set = set(configured)

    added = sorted(configured_set - current_set)
    removed = sorted(current_set - configured_set)
    unchanged = sorted(current_set & configured_set)

    return added, removed, unchanged
