"""Free-text annotations that reference employees by ordinal."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import AttributionConfidence

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Annotation:
    """A chat comment written against whatever ordinal was current at write time.

    ``target_ordinal`` is the forensic record of what the writer saw and is never
    rewritten; attribution only fills the ``resolved_*`` fields.
    """

    content: str
    sender: str
    created_at: datetime
    target_ordinal: int
    resolved_stable_id: str | None = None
    attribution_confidence: AttributionConfidence | None = None
    resolved_at: datetime | None = None
    id: int | None = None

    @property
    def is_resolved(self) -> bool:
        return self.attribution_confidence in {
            AttributionConfidence.EXACT,
            AttributionConfidence.INFERRED,
        }

    @property
    def is_pending(self) -> bool:
        return self.attribution_confidence is None

    def apply_resolution(
        self,
        stable_id: str | None,
        confidence: AttributionConfidence,
        *,
        at: datetime,
    ) -> None:
        if confidence is AttributionConfidence.UNRESOLVED and stable_id is not None:
            raise ValueError("Unresolved annotations cannot carry a stable id")
        if confidence is not AttributionConfidence.UNRESOLVED and stable_id is None:
            raise ValueError(f"{confidence.value} attribution requires a stable id")
        self.resolved_stable_id = stable_id
        self.attribution_confidence = confidence
        self.resolved_at = at


@dataclass(frozen=True, slots=True, kw_only=True)
class AnnotationFilter:
    """Selection criteria for ``AnnotationRepository.list_annotations``."""

    ids: frozenset[int] | None = None
    sender: str | None = None
    target_ordinal: int | None = None
    confidences: frozenset[AttributionConfidence] = field(default_factory=frozenset)
    include_pending: bool = True
    since: datetime | None = None
    until: datetime | None = None

    @classmethod
    def needing_attribution(cls) -> AnnotationFilter:
        """Annotations that were never resolved or are still unresolved."""

        return cls(confidences=frozenset({AttributionConfidence.UNRESOLVED}))

    @property
    def restricts_confidence(self) -> bool:
        return bool(self.confidences) or not self.include_pending
