from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rosterlink.domain.errors import InvariantViolationError
from rosterlink.domain.mapping import IdentityMappingStore
from rosterlink.domain.model import AttributionConfidence, MappingEntry
from rosterlink.domain.verification import ConsistencyVerifier, ViolationKind
from tests.helpers.identity import (
    T0,
    StaticRosterFetcher,
    add_annotations,
    make_annotation,
    make_engine,
    mapping_entries,
    roster,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.adapters.sqlalchemy import SqlAlchemyIdentityUnitOfWork
    from tests.helpers.identity import FakeClock

    UowFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]


def _reconciled(uow_factory: UowFactory, clock: FakeClock, *ids: str) -> StaticRosterFetcher:
    fetcher = StaticRosterFetcher(roster(*ids))
    make_engine(fetcher, uow_factory, clock).reconcile()
    return fetcher


def _insert_entry(uow_factory: UowFactory, ordinal: int, stable_id: str) -> None:
    uow = uow_factory()
    with uow:
        uow.repositories.mappings.add(
            MappingEntry(
                ordinal=ordinal,
                stable_id=stable_id,
                display_name=stable_id,
                created_at=T0,
                last_verified_at=T0,
            )
        )
        uow.commit()


def _resolved(uow_factory: UowFactory, ordinal: int, stable_id: str | None) -> int:
    annotation = make_annotation(ordinal, created_at=T0)
    (annotation_id,) = add_annotations(uow_factory, annotation)
    if stable_id is not None:
        uow = uow_factory()
        with uow:
            uow.repositories.annotations.set_resolution(
                annotation_id,
                stable_id,
                AttributionConfidence.INFERRED,
                at=T0,
            )
            uow.commit()
    return annotation_id


def test_consistent_store_produces_a_clean_report(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    _reconciled(sqlite_unit_of_work, clock, "A", "B", "C")
    _resolved(sqlite_unit_of_work, 1, "A")

    report = ConsistencyVerifier(sqlite_unit_of_work, clock=clock).verify()

    assert report.is_clean
    assert report.current_entries == 3
    assert report.expected_size == 3
    assert report.checked_at == clock.now
    report.raise_for_violations()


def test_reference_to_removed_employee_is_dangling(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    fetcher = _reconciled(sqlite_unit_of_work, clock, "A", "B")
    annotation_id = _resolved(sqlite_unit_of_work, 2, "B")
    fetcher.replace("A")
    make_engine(fetcher, sqlite_unit_of_work, clock).reconcile()

    report = ConsistencyVerifier(sqlite_unit_of_work).verify()

    (violation,) = report.violations_of(ViolationKind.DANGLING_REFERENCE)
    assert violation.subject == f"annotation {annotation_id}"
    assert "B" in violation.detail
    with pytest.raises(InvariantViolationError) as excinfo:
        report.raise_for_violations()
    assert excinfo.value.violations == report.violations


def test_supplied_roster_drives_reference_and_count_checks(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    _reconciled(sqlite_unit_of_work, clock, "A", "B")
    _resolved(sqlite_unit_of_work, 1, "A")

    report = ConsistencyVerifier(sqlite_unit_of_work).verify(roster("B", "C", "D"))

    assert report.expected_size == 3
    assert {violation.kind for violation in report.violations} == {
        ViolationKind.DANGLING_REFERENCE,
        ViolationKind.COUNT_MISMATCH,
    }


def test_duplicate_current_entries_are_reported(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    _reconciled(sqlite_unit_of_work, clock, "A", "B")
    _insert_entry(sqlite_unit_of_work, 3, "A")
    _insert_entry(sqlite_unit_of_work, 2, "C")

    report = ConsistencyVerifier(sqlite_unit_of_work).verify()

    (by_id,) = report.violations_of(ViolationKind.DUPLICATE_STABLE_ID)
    assert by_id.subject == "A"
    assert by_id.detail == "current at ordinals 1, 3"
    (by_ordinal,) = report.violations_of(ViolationKind.DUPLICATE_ORDINAL)
    assert by_ordinal.subject == "2"
    assert by_ordinal.detail == "held by B, C"
    (count,) = report.violations_of(ViolationKind.COUNT_MISMATCH)
    assert "4 current entries" in count.detail
    assert "invariant violations: 3" in report.summary_lines()


def test_report_counts_open_annotations(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    _reconciled(sqlite_unit_of_work, clock, "A", "B")
    pending = make_annotation(1, created_at=T0)
    orphan = make_annotation(9, created_at=T0)
    add_annotations(sqlite_unit_of_work, pending, orphan)
    unresolved_id = _resolved(sqlite_unit_of_work, 2, None)
    uow = sqlite_unit_of_work()
    with uow:
        uow.repositories.annotations.set_resolution(
            unresolved_id, None, AttributionConfidence.UNRESOLVED, at=T0
        )
        uow.commit()

    report = ConsistencyVerifier(sqlite_unit_of_work).verify()

    assert report.unresolved_ids == (unresolved_id,)
    assert report.unresolved_count == 1
    assert report.pending_count == 2
    assert report.orphaned_ids == (orphan.id,)
    assert report.is_clean


def test_moves_are_counted_since_the_last_verified_run(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    fetcher = _reconciled(sqlite_unit_of_work, clock, "A", "B", "C")
    engine = make_engine(fetcher, sqlite_unit_of_work, clock)
    clock.advance(hours=1)
    fetcher.replace("B", "A", "C")
    engine.reconcile()

    before = ConsistencyVerifier(sqlite_unit_of_work).verify()

    assert before.moved_since_verified == 2
    assert before.runs_since_verified == 2

    uow = sqlite_unit_of_work()
    with uow:
        IdentityMappingStore(uow.repositories.mappings, uow.repositories.runs).mark_verified()
        uow.commit()
    clock.advance(hours=1)
    fetcher.replace("B", "C", "A")
    engine.reconcile()

    after = ConsistencyVerifier(sqlite_unit_of_work).verify()

    assert after.runs_since_verified == 1
    assert after.moved_since_verified == 2


def test_verification_never_writes(sqlite_unit_of_work: UowFactory, clock: FakeClock) -> None:
    _reconciled(sqlite_unit_of_work, clock, "A")
    _insert_entry(sqlite_unit_of_work, 1, "B")
    before = [(entry.id, entry.state) for entry in mapping_entries(sqlite_unit_of_work)]

    ConsistencyVerifier(sqlite_unit_of_work).verify(roster("A"))

    after = [(entry.id, entry.state) for entry in mapping_entries(sqlite_unit_of_work)]
    assert after == before
