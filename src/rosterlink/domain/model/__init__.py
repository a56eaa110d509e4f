"""Domain model for roster identity reconciliation."""

from __future__ import annotations

from .annotation import Annotation, AnnotationFilter
from .audit import AttributionAudit, MovedEntry, ReconciliationRun
from .employee import Employee, RosterSnapshot
from .enums import AttributionConfidence, MappingState, ResolutionTier, RunMode
from .mapping import MappingEntry, StaleEntryError

__all__ = [
    "Annotation",
    "AnnotationFilter",
    "AttributionAudit",
    "AttributionConfidence",
    "Employee",
    "MappingEntry",
    "MappingState",
    "MovedEntry",
    "ReconciliationRun",
    "ResolutionTier",
    "RosterSnapshot",
    "RunMode",
    "StaleEntryError",
]
