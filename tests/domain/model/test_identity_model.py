from __future__ import annotations

from datetime import timedelta

import pytest

from rosterlink.domain.errors import (
    AmbiguousAttributionError,
    DuplicateStableIdError,
    InvariantViolationError,
)
from rosterlink.domain.model import (
    AnnotationFilter,
    AttributionConfidence,
    Employee,
    MappingEntry,
    MappingState,
    RosterSnapshot,
)
from rosterlink.domain.verification import InvariantViolation, ViolationKind
from tests.helpers.identity import T0, make_annotation


def test_employee_normalises_identity_fields() -> None:
    employee = Employee(stable_id="  Z1 ", display_name=" Alice ", attributes={"team": "ops"})

    assert employee.stable_id == "Z1"
    assert employee.display_name == "Alice"
    assert employee.attribute("team") == "ops"
    assert employee.attribute("missing") is None
    with pytest.raises(TypeError):
        employee.attributes["team"] = "dev"  # type: ignore[index]


def test_employee_requires_a_stable_id() -> None:
    with pytest.raises(ValueError, match="stable_id"):
        Employee(stable_id="   ", display_name="Nobody")


def test_snapshot_exposes_stable_ids_in_source_order() -> None:
    snapshot = RosterSnapshot.of(
        [Employee("Z2", "Bob"), Employee("Z1", "Alice")],
        fetched_at=T0,
    )

    assert [employee.stable_id for employee in snapshot] == ["Z2", "Z1"]
    assert len(snapshot) == 2
    assert snapshot.stable_ids == frozenset({"Z1", "Z2"})
    assert snapshot.fetched_at == T0


def test_mapping_entry_validity_interval_is_half_open() -> None:
    entry = MappingEntry(
        ordinal=1,
        stable_id="Z1",
        display_name="Alice",
        created_at=T0,
        last_verified_at=T0,
    )
    entry.supersede(T0 + timedelta(hours=1))

    assert entry.state is MappingState.STALE
    assert entry.valid_at(T0)
    assert not entry.valid_at(T0 - timedelta(seconds=1))
    assert entry.valid_at(T0 - timedelta(days=1), open_start=True)
    assert not entry.valid_at(T0 + timedelta(hours=1))


def test_annotation_resolution_rules() -> None:
    annotation = make_annotation(3, created_at=T0)

    assert annotation.is_pending
    assert not annotation.is_resolved

    with pytest.raises(ValueError, match="stable id"):
        annotation.apply_resolution("Z1", AttributionConfidence.UNRESOLVED, at=T0)
    with pytest.raises(ValueError, match="requires a stable id"):
        annotation.apply_resolution(None, AttributionConfidence.EXACT, at=T0)

    annotation.apply_resolution("Z1", AttributionConfidence.INFERRED, at=T0)

    assert annotation.is_resolved
    assert annotation.target_ordinal == 3
    assert annotation.resolved_at == T0


def test_annotation_filter_for_open_annotations() -> None:
    open_filter = AnnotationFilter.needing_attribution()

    assert open_filter.include_pending
    assert open_filter.confidences == frozenset({AttributionConfidence.UNRESOLVED})
    assert open_filter.restricts_confidence
    assert not AnnotationFilter().restricts_confidence
    assert AnnotationFilter(include_pending=False).restricts_confidence


def test_error_messages_carry_their_subjects() -> None:
    duplicate = DuplicateStableIdError("Z1", [4, 2])
    ambiguous = AmbiguousAttributionError("tie", ["Z2", "Z1"])
    violations = InvariantViolationError(
        [
            InvariantViolation(ViolationKind.DUPLICATE_ORDINAL, "2", "held by A, B"),
            InvariantViolation(ViolationKind.COUNT_MISMATCH, "mapping", "3 vs 4"),
        ]
    )

    assert str(duplicate) == "Stable id 'Z1' claimed by ordinals 2, 4"
    assert duplicate.ordinals == (2, 4)
    assert str(ambiguous) == "tie (Z1, Z2)"
    assert str(violations) == "2 invariant violation(s): count_mismatch, duplicate_ordinal"
