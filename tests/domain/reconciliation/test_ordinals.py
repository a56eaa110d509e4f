from __future__ import annotations

import pytest

from rosterlink.domain.errors import DuplicateStableIdError
from rosterlink.domain.model import RosterSnapshot
from rosterlink.domain.reconciliation import OrdinalPolicy, assign_ordinals
from tests.helpers.identity import T0, employee, roster


def _ids(snapshot: RosterSnapshot, policy: OrdinalPolicy | None = None) -> list[tuple[int, str]]:
    return [(item.ordinal, item.stable_id) for item in assign_ordinals(snapshot, policy)]


def test_default_policy_orders_by_stable_id_text() -> None:
    snapshot = roster("Z3", "Z10", "Z1")

    assert _ids(snapshot) == [(1, "Z1"), (2, "Z10"), (3, "Z3")]


def test_default_policy_ignores_source_order() -> None:
    first = roster("Z2", "Z1", "Z3")
    second = roster("Z3", "Z1", "Z2")

    assert _ids(first) == _ids(second)


def test_numeric_ids_compare_by_value_and_sort_before_text() -> None:
    snapshot = roster("100", "9", "A7", "20")

    assert _ids(snapshot, OrdinalPolicy(numeric_ids=True)) == [
        (1, "9"),
        (2, "20"),
        (3, "100"),
        (4, "A7"),
    ]


def test_sort_attribute_orders_first_and_stable_id_breaks_ties() -> None:
    snapshot = RosterSnapshot.of(
        [
            employee("Z4", "Dana", team="ops"),
            employee("Z2", "Bob", team="dev"),
            employee("Z1", "Alice", team="ops"),
            employee("Z3", "Carl"),
        ],
        fetched_at=T0,
    )

    assert _ids(snapshot, OrdinalPolicy(sort_attribute="team")) == [
        (1, "Z2"),
        (2, "Z1"),
        (3, "Z4"),
        (4, "Z3"),
    ]


def test_source_order_keeps_delivery_order() -> None:
    snapshot = roster("B", "A", "C")

    assert _ids(snapshot, OrdinalPolicy(source_order=True)) == [(1, "B"), (2, "A"), (3, "C")]


def test_assignments_carry_display_names() -> None:
    assignments = assign_ordinals(roster(("Z1", "Alice"), ("Z2", "Bob")))

    assert [item.display_name for item in assignments] == ["Alice", "Bob"]


def test_duplicate_stable_id_is_rejected_with_positions() -> None:
    snapshot = roster("Z1", "Z2", "Z1")

    with pytest.raises(DuplicateStableIdError) as excinfo:
        assign_ordinals(snapshot, OrdinalPolicy(source_order=True))

    assert excinfo.value.stable_id == "Z1"
    assert excinfo.value.ordinals == (1, 3)


def test_empty_snapshot_assigns_nothing() -> None:
    assert assign_ordinals(roster()) == []
