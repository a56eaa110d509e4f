"""Audit records for reconciliation runs and attribution changes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import RunMode

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import AttributionConfidence, ResolutionTier


@dataclass(frozen=True, slots=True)
class MovedEntry:
    """A stable ID that kept its identity but changed ordinal between snapshots."""

    stable_id: str
    previous_ordinal: int
    ordinal: int


@dataclass(eq=False, kw_only=True)
class ReconciliationRun:
    """Append-only record of one reconciliation pass.

    ``verified_at`` is the only field written after creation: it marks the run an
    operator acknowledged through a clean verification report.
    """

    timestamp: datetime
    snapshot_size: int
    mode: RunMode = RunMode.INCREMENTAL
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    moved_count: int = 0
    moved_sample: tuple[MovedEntry, ...] = ()
    stale_count: int = 0
    verified_at: datetime | None = None
    id: int | None = None

    @property
    def has_drift(self) -> bool:
        return self.moved_count > 0

    def mark_verified(self, at: datetime) -> None:
        self.verified_at = at


@dataclass(eq=False, kw_only=True)
class AttributionAudit:
    """Before/after record written for every change to an annotation's attribution."""

    annotation_id: int
    stable_id: str | None
    confidence: AttributionConfidence
    tier: ResolutionTier
    reason: str
    created_at: datetime
    previous_stable_id: str | None = None
    previous_confidence: AttributionConfidence | None = None
    id: int | None = None
