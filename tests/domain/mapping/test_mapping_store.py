from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rosterlink.domain.errors import DuplicateOrdinalError, DuplicateStableIdError
from rosterlink.domain.mapping import IdentityMappingStore, OrdinalAssignment
from rosterlink.domain.model import MappingState, RunMode, StaleEntryError
from tests.helpers.identity import T0

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from tests.helpers.identity import FakeClock


def test_upsert_creates_a_current_entry(mapping_store: IdentityMappingStore) -> None:
    entry = mapping_store.upsert_mapping(1, "Z1", "Alice")

    assert entry.is_current
    assert entry.created_at == T0
    assert entry.last_verified_at == T0
    assert mapping_store.lookup_by_ordinal(1) is entry
    assert mapping_store.lookup_by_stable_id("Z1") is entry


def test_upsert_same_pair_refreshes_instead_of_creating(
    mapping_store: IdentityMappingStore,
    clock: FakeClock,
) -> None:
    first = mapping_store.upsert_mapping(1, "Z1", "Alice")
    later = clock.advance(hours=1)

    second = mapping_store.upsert_mapping(1, "Z1", "Alice Smith")

    assert second is first
    assert second.created_at == T0
    assert second.last_verified_at == later
    assert second.display_name == "Alice Smith"
    assert len(mapping_store.all_entries()) == 1


def test_upsert_new_holder_supersedes_previous_entry(
    mapping_store: IdentityMappingStore,
    clock: FakeClock,
) -> None:
    old = mapping_store.upsert_mapping(1, "Z1", "Alice")
    later = clock.advance(hours=1)

    new = mapping_store.upsert_mapping(1, "Z2", "Bob")

    assert old.state is MappingState.STALE
    assert old.superseded_at == later
    assert new.is_current
    assert mapping_store.lookup_by_ordinal(1) is new
    assert mapping_store.lookup_by_stable_id("Z1") is None
    assert [entry.stable_id for entry in mapping_store.ordinal_history(1)] == ["Z1", "Z2"]


def test_upsert_moving_stable_id_supersedes_its_old_ordinal(
    mapping_store: IdentityMappingStore,
    clock: FakeClock,
) -> None:
    old = mapping_store.upsert_mapping(2, "Z1", "Alice")
    clock.advance(hours=1)

    moved = mapping_store.upsert_mapping(1, "Z1", "Alice")

    assert old.state is MappingState.STALE
    assert mapping_store.lookup_by_ordinal(2) is None
    assert mapping_store.lookup_by_stable_id("Z1") is moved
    assert [entry.ordinal for entry in mapping_store.history("Z1")] == [2, 1]


def test_batch_shares_one_timestamp(
    mapping_store: IdentityMappingStore,
    clock: FakeClock,
) -> None:
    with mapping_store.batch() as batch:
        first = mapping_store.upsert_mapping(1, "Z1", "Alice")
        clock.advance(minutes=5)
        second = mapping_store.upsert_mapping(2, "Z2", "Bob")

    assert first.created_at == second.created_at == batch.at == T0
    assert batch.created == [first, second]


def test_batch_rejects_one_stable_id_at_two_ordinals(
    mapping_store: IdentityMappingStore,
) -> None:
    with pytest.raises(DuplicateStableIdError) as excinfo, mapping_store.batch():
        mapping_store.upsert_mapping(1, "Z1", "Alice")
        mapping_store.upsert_mapping(2, "Z1", "Alice")

    assert excinfo.value.ordinals == (1, 2)


def test_batch_rejects_one_ordinal_for_two_stable_ids(
    mapping_store: IdentityMappingStore,
) -> None:
    with pytest.raises(DuplicateOrdinalError) as excinfo, mapping_store.batch():
        mapping_store.upsert_mapping(1, "Z1", "Alice")
        mapping_store.upsert_mapping(1, "Z2", "Bob")

    assert excinfo.value.stable_ids == ("Z1", "Z2")


def test_batches_cannot_be_nested(mapping_store: IdentityMappingStore) -> None:
    with mapping_store.batch(), pytest.raises(RuntimeError), mapping_store.batch():
        pass


def test_retire_missing_supersedes_absent_ids(mapping_store: IdentityMappingStore) -> None:
    mapping_store.upsert_mapping(1, "Z1", "Alice")
    mapping_store.upsert_mapping(2, "Z2", "Bob")

    retired = mapping_store.retire_missing({"Z2"})

    assert [entry.stable_id for entry in retired] == ["Z1"]
    assert [entry.stable_id for entry in mapping_store.current_entries()] == ["Z2"]


def test_rebuild_all_retires_everything_and_records_a_run(
    mapping_store: IdentityMappingStore,
    clock: FakeClock,
) -> None:
    mapping_store.upsert_mapping(1, "Z1", "Alice")
    mapping_store.upsert_mapping(2, "Z2", "Bob")
    clock.advance(days=1)

    run = mapping_store.rebuild_all(
        [
            OrdinalAssignment(1, "Z2", "Bob"),
            OrdinalAssignment(2, "Z1", "Alice"),
            OrdinalAssignment(3, "Z3", "Carol"),
        ]
    )

    assert run.mode is RunMode.REBUILD
    assert run.stale_count == 2
    assert run.snapshot_size == 3
    assert run.added == ("Z3",)
    assert run.moved_count == 2
    current = mapping_store.current_entries()
    assert [(entry.ordinal, entry.stable_id) for entry in current] == [
        (1, "Z2"),
        (2, "Z1"),
        (3, "Z3"),
    ]
    assert all(entry.created_at == clock.now for entry in current)
    assert len(mapping_store.all_entries()) == 5


def test_rebuild_all_rejects_duplicates_before_writing(
    mapping_store: IdentityMappingStore,
) -> None:
    mapping_store.upsert_mapping(1, "Z1", "Alice")

    with pytest.raises(DuplicateStableIdError):
        mapping_store.rebuild_all(
            [OrdinalAssignment(1, "Z2", "Bob"), OrdinalAssignment(2, "Z2", "Bob")]
        )

    assert [entry.stable_id for entry in mapping_store.current_entries()] == ["Z1"]


def test_stale_entries_are_terminal(mapping_store: IdentityMappingStore) -> None:
    old = mapping_store.upsert_mapping(1, "Z1", "Alice")
    mapping_store.upsert_mapping(1, "Z2", "Bob")

    with pytest.raises(StaleEntryError):
        old.refresh(T0)
    with pytest.raises(StaleEntryError):
        old.supersede(T0)


def test_mark_verified_stamps_latest_run(
    mapping_store: IdentityMappingStore,
    sqlite_session: Session,
    clock: FakeClock,
) -> None:
    assert mapping_store.mark_verified() is None

    mapping_store.rebuild_all([OrdinalAssignment(1, "Z1", "Alice")])
    sqlite_session.flush()
    verified_at = clock.advance(hours=2)

    run = mapping_store.mark_verified()

    assert run is not None
    assert run.verified_at == verified_at
    assert mapping_store.latest_run() is run


def test_lookups_return_none_for_unknown_keys(mapping_store: IdentityMappingStore) -> None:
    assert mapping_store.lookup_by_ordinal(7) is None
    assert mapping_store.lookup_by_stable_id("nobody") is None
    assert mapping_store.history("nobody") == []
