"""Debounced snapshot persistence."""

from payback.persistence.gate import PersistenceGate, SnapshotProvider

__all__ = ["PersistenceGate", "SnapshotProvider"]
