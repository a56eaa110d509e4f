"""Recompute ordinals from roster snapshots and reconcile the stored mapping."""

from __future__ import annotations

from .engine import ReconciliationEngine, ReconciliationOutcome
from .ordinals import OrdinalPolicy, assign_ordinals

__all__ = [
    "OrdinalPolicy",
    "ReconciliationEngine",
    "ReconciliationOutcome",
    "assign_ordinals",
]
