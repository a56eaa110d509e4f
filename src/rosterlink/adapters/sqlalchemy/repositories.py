"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from rosterlink.adapters.sqlalchemy.mappings import (
    annotation_table,
    attribution_audit_table,
    mapping_entry_table,
    reconciliation_run_table,
)
from rosterlink.domain.clock import utcnow
from rosterlink.domain.model import (
    Annotation,
    AttributionAudit,
    MappingEntry,
    MappingState,
    ReconciliationRun,
)

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.orm import Session

    from rosterlink.domain.model import AnnotationFilter, AttributionConfidence


class UnknownAnnotationError(LookupError):
    """Raised when a resolution is written for an annotation that does not exist."""


class SqlAlchemyMappingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: MappingEntry) -> None:
        self.session.add(entity)

    def current_for_ordinal(self, ordinal: int) -> list[MappingEntry]:
        return self._fetch(
            self._current().where(mapping_entry_table.c.ordinal == ordinal),
        )

    def current_for_stable_id(self, stable_id: str) -> list[MappingEntry]:
        return self._fetch(
            self._current().where(mapping_entry_table.c.stable_id == stable_id),
        )

    def current(self) -> list[MappingEntry]:
        return self._fetch(self._current())

    def history_for_stable_id(self, stable_id: str) -> list[MappingEntry]:
        return self._fetch(
            select(MappingEntry).where(mapping_entry_table.c.stable_id == stable_id),
        )

    def history_for_ordinal(self, ordinal: int) -> list[MappingEntry]:
        return self._fetch(select(MappingEntry).where(mapping_entry_table.c.ordinal == ordinal))

    def all(self) -> list[MappingEntry]:
        return self._fetch(select(MappingEntry))

    @staticmethod
    def _current() -> Select[tuple[MappingEntry]]:
        return select(MappingEntry).where(mapping_entry_table.c.state == MappingState.MAPPED)

    def _fetch(self, stmt: Select[tuple[MappingEntry]]) -> list[MappingEntry]:
        ordered = stmt.order_by(mapping_entry_table.c.created_at, mapping_entry_table.c.id)
        return list(self.session.execute(ordered).scalars())


class SqlAlchemyReconciliationRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ReconciliationRun) -> None:
        self.session.add(entity)

    def latest(self) -> ReconciliationRun | None:
        stmt = select(ReconciliationRun).order_by(reconciliation_run_table.c.id.desc()).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()

    def latest_verified(self) -> ReconciliationRun | None:
        stmt = (
            select(ReconciliationRun)
            .where(reconciliation_run_table.c.verified_at.is_not(None))
            .order_by(reconciliation_run_table.c.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_after(self, run_id: int | None) -> list[ReconciliationRun]:
        stmt = select(ReconciliationRun).order_by(reconciliation_run_table.c.id)
        if run_id is not None:
            stmt = stmt.where(reconciliation_run_table.c.id > run_id)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyAnnotationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Annotation) -> None:
        self.session.add(entity)

    def get(self, annotation_id: int) -> Annotation | None:
        return self.session.get(Annotation, annotation_id)

    def list_annotations(
        self,
        annotation_filter: AnnotationFilter | None = None,
    ) -> list[Annotation]:
        stmt = select(Annotation).order_by(annotation_table.c.id)
        if annotation_filter is not None:
            for condition in _annotation_conditions(annotation_filter):
                stmt = stmt.where(condition)
        return list(self.session.execute(stmt).scalars())

    def set_resolution(
        self,
        annotation_id: int,
        stable_id: str | None,
        confidence: AttributionConfidence,
        *,
        at: datetime | None = None,
    ) -> Annotation:
        annotation = self.get(annotation_id)
        if annotation is None:
            raise UnknownAnnotationError(f"Annotation {annotation_id} does not exist")
        annotation.apply_resolution(stable_id, confidence, at=at or utcnow())
        return annotation


class SqlAlchemyAttributionAuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AttributionAudit) -> None:
        self.session.add(entity)

    def for_annotation(self, annotation_id: int) -> list[AttributionAudit]:
        stmt = (
            select(AttributionAudit)
            .where(attribution_audit_table.c.annotation_id == annotation_id)
            .order_by(attribution_audit_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


def _annotation_conditions(annotation_filter: AnnotationFilter) -> list[ColumnElement[bool]]:
    columns = annotation_table.c
    conditions: list[ColumnElement[bool]] = []
    if annotation_filter.ids is not None:
        conditions.append(columns.id.in_(sorted(annotation_filter.ids)))
    if annotation_filter.sender is not None:
        conditions.append(columns.sender == annotation_filter.sender)
    if annotation_filter.target_ordinal is not None:
        conditions.append(columns.target_ordinal == annotation_filter.target_ordinal)
    if annotation_filter.since is not None:
        conditions.append(columns.created_at >= annotation_filter.since)
    if annotation_filter.until is not None:
        conditions.append(columns.created_at < annotation_filter.until)
    if annotation_filter.restricts_confidence:
        options: list[ColumnElement[bool]] = []
        if annotation_filter.confidences:
            confidences = sorted(annotation_filter.confidences)
            options.append(columns.attribution_confidence.in_(confidences))
        elif not annotation_filter.include_pending:
            options.append(columns.attribution_confidence.is_not(None))
        if annotation_filter.include_pending:
            options.append(columns.attribution_confidence.is_(None))
        conditions.append(or_(*options))
    return conditions
