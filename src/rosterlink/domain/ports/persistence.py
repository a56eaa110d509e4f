"""Ports for persisting mapping state, run audits and annotations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rosterlink.domain.model import (
    Annotation,
    AttributionAudit,
    MappingEntry,
    ReconciliationRun,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from rosterlink.domain.model import AnnotationFilter, AttributionConfidence


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class MappingRepository(Repository[MappingEntry], Protocol):
    """Persistence contract for mapping entries. Entries are never deleted."""

    def current_for_ordinal(self, ordinal: int) -> Sequence[MappingEntry]: ...

    def current_for_stable_id(self, stable_id: str) -> Sequence[MappingEntry]: ...

    def current(self) -> Sequence[MappingEntry]: ...

    def history_for_stable_id(self, stable_id: str) -> Sequence[MappingEntry]: ...

    def history_for_ordinal(self, ordinal: int) -> Sequence[MappingEntry]: ...

    def all(self) -> Sequence[MappingEntry]: ...


@runtime_checkable
class ReconciliationRunRepository(Repository[ReconciliationRun], Protocol):
    """Append-only log of reconciliation runs."""

    def latest(self) -> ReconciliationRun | None: ...

    def latest_verified(self) -> ReconciliationRun | None: ...

    def list_after(self, run_id: int | None) -> Sequence[ReconciliationRun]: ...


@runtime_checkable
class AnnotationRepository(Repository[Annotation], Protocol):
    """Contract of the external annotation store."""

    def get(self, annotation_id: int) -> Annotation | None: ...

    def list_annotations(
        self,
        annotation_filter: AnnotationFilter | None = None,
    ) -> list[Annotation]: ...

    def set_resolution(
        self,
        annotation_id: int,
        stable_id: str | None,
        confidence: AttributionConfidence,
        *,
        at: datetime | None = None,
    ) -> Annotation: ...


@runtime_checkable
class AttributionAuditRepository(Repository[AttributionAudit], Protocol):
    """Append-only log of attribution changes."""

    def for_annotation(self, annotation_id: int) -> Sequence[AttributionAudit]: ...
