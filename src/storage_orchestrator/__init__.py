"""
storage_orchestrator

This package reconciles the storage layout of bare metal cloud hosts against a
desired host profile.

We keep modules small and well separated:
core contains shared data structures, errors and the list delta
inventory contains the inventory client interface, snapshots and clients
profile contains desired profile sources
reconcile contains the per resource reconcilers and the storage orchestrator
agent contains the runtime loop and logging setup
"""
