"""Reusable fakes and builders for identity reconciliation tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from rosterlink.domain.errors import SnapshotFetchError
from rosterlink.domain.model import Annotation, Employee, RosterSnapshot
from rosterlink.domain.reconciliation import OrdinalPolicy, ReconciliationEngine

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.domain.model import MappingEntry, ReconciliationRun
    from rosterlink.domain.ports import IdentityUnitOfWork

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

SOURCE_ORDER = OrdinalPolicy(source_order=True)


@dataclass
class FakeClock:
    now: datetime = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def employee(stable_id: str, display_name: str | None = None, **attributes: str) -> Employee:
    return Employee(
        stable_id=stable_id,
        display_name=display_name if display_name is not None else f"Employee {stable_id}",
        attributes=attributes,
    )


def roster(*rows: str | tuple[str, str]) -> RosterSnapshot:
    """Build a snapshot from stable IDs or ``(stable_id, display_name)`` pairs."""

    employees = [employee(*row) if isinstance(row, tuple) else employee(row) for row in rows]
    return RosterSnapshot.of(employees, fetched_at=T0)


@dataclass
class StaticRosterFetcher:
    snapshot: RosterSnapshot
    calls: int = 0

    def __call__(self) -> RosterSnapshot:
        self.calls += 1
        return self.snapshot

    def replace(self, *rows: str | tuple[str, str]) -> None:
        self.snapshot = roster(*rows)


@dataclass
class FailingRosterFetcher:
    message: str = "roster source unavailable"
    calls: int = field(default=0)

    def __call__(self) -> RosterSnapshot:
        self.calls += 1
        raise SnapshotFetchError(self.message, source="test")


def make_engine(
    fetcher: Callable[[], RosterSnapshot],
    unit_of_work_factory: Callable[[], IdentityUnitOfWork],
    clock: FakeClock,
    *,
    policy: OrdinalPolicy = SOURCE_ORDER,
    moved_sample_size: int = 20,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        fetch_roster=fetcher,
        unit_of_work_factory=unit_of_work_factory,
        policy=policy,
        clock=clock,
        moved_sample_size=moved_sample_size,
    )


def make_annotation(
    target_ordinal: int,
    *,
    created_at: datetime,
    content: str = "Follow up on the quarterly review",
    sender: str = "manager@example.com",
) -> Annotation:
    return Annotation(
        content=content,
        sender=sender,
        created_at=created_at,
        target_ordinal=target_ordinal,
    )


def add_annotations(
    unit_of_work_factory: Callable[[], IdentityUnitOfWork],
    *annotations: Annotation,
) -> list[int]:
    """Persist annotations and return their ids in order."""

    uow = unit_of_work_factory()
    with uow:
        for annotation in annotations:
            uow.repositories.annotations.add(annotation)
        uow.commit()
    ids = [annotation.id for annotation in annotations]
    assert all(annotation_id is not None for annotation_id in ids)
    return [annotation_id for annotation_id in ids if annotation_id is not None]


def load_annotation(
    unit_of_work_factory: Callable[[], IdentityUnitOfWork],
    annotation_id: int,
) -> Annotation:
    uow = unit_of_work_factory()
    with uow:
        annotation = uow.repositories.annotations.get(annotation_id)
    assert annotation is not None
    return annotation


def current_mapping(unit_of_work_factory: Callable[[], IdentityUnitOfWork]) -> dict[int, str]:
    uow = unit_of_work_factory()
    with uow:
        entries = uow.repositories.mappings.current()
        return {entry.ordinal: entry.stable_id for entry in entries}


def mapping_entries(
    unit_of_work_factory: Callable[[], IdentityUnitOfWork],
) -> list[MappingEntry]:
    uow = unit_of_work_factory()
    with uow:
        return list(uow.repositories.mappings.all())


def reconciliation_runs(
    unit_of_work_factory: Callable[[], IdentityUnitOfWork],
) -> list[ReconciliationRun]:
    uow = unit_of_work_factory()
    with uow:
        return list(uow.repositories.runs.list_after(None))
