"""Typed outcome of resolving one annotation."""

from __future__ import annotations

from dataclasses import dataclass

from rosterlink.domain.model import AttributionConfidence, ResolutionTier


@dataclass(frozen=True, slots=True)
class Resolution:
    stable_id: str | None
    confidence: AttributionConfidence
    tier: ResolutionTier
    reason: str

    @classmethod
    def exact(cls, stable_id: str, reason: str) -> Resolution:
        return cls(stable_id, AttributionConfidence.EXACT, ResolutionTier.EXACT, reason)

    @classmethod
    def historical(cls, stable_id: str, reason: str) -> Resolution:
        return cls(stable_id, AttributionConfidence.INFERRED, ResolutionTier.HISTORICAL, reason)

    @classmethod
    def content(cls, stable_id: str, reason: str) -> Resolution:
        return cls(stable_id, AttributionConfidence.INFERRED, ResolutionTier.CONTENT, reason)

    @classmethod
    def unresolved(cls, reason: str) -> Resolution:
        return cls(None, AttributionConfidence.UNRESOLVED, ResolutionTier.NONE, reason)

    @property
    def is_resolved(self) -> bool:
        return self.stable_id is not None
