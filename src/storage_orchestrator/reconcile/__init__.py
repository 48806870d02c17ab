"""
Reconcile package.

This makes the reconcile folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from storage_orchestrator.reconcile.config import ReconcilerConfig, ReconcilerKind
from storage_orchestrator.reconcile.storage import ReconcileResult, ReconcileStatus, StorageReconciler

__all__ = ["ReconcileResult", "ReconcileStatus", "ReconcilerConfig", "ReconcilerKind", "StorageReconciler"]
