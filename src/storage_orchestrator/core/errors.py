"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
InventoryRequestFailed is a transport or remote failure and is simply retried.
MissingResource means something the profile refers to does not exist. It is
retried too, but an operator usually has to fix the profile or the hardware.
InvalidConfiguration means the profile contradicts itself and retrying will
not help until it changes.

A wait is not an error. See reconcile.waits.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    remote = "remote"
    missing_resource = "missing_resource"
    invalid_configuration = "invalid_configuration"


class OrchestratorError(Exception):
    """Base class for all orchestrator exceptions."""

    kind: ErrorKind = ErrorKind.remote
    retryable: bool = True


class InventoryRequestFailed(OrchestratorError):
    """Raised when an inventory service call fails. The cause is chained."""


class MissingResource(OrchestratorError):
    """Raised when a referenced disk, partition, group, OSD or filesystem is absent."""

    kind = ErrorKind.missing_resource


class InvalidConfiguration(OrchestratorError):
    """Raised when the desired profile is structurally valid but inconsistent."""

    kind = ErrorKind.invalid_configuration
    retryable = False
