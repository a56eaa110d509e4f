from __future__ import annotations

from typing import TYPE_CHECKING

from rosterlink.domain.lookup import IdentityLookup, StableIdLookup
from rosterlink.domain.model import MappingState
from tests.helpers.identity import StaticRosterFetcher, make_engine, roster

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.adapters.sqlalchemy import SqlAlchemyIdentityUnitOfWork
    from tests.helpers.identity import FakeClock

    UowFactory = Callable[[], SqlAlchemyIdentityUnitOfWork]


def test_lookups_follow_the_current_mapping(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    fetcher = StaticRosterFetcher(roster(("Z1", "Alice"), ("Z2", "Bob")))
    engine = make_engine(fetcher, sqlite_unit_of_work, clock)
    engine.reconcile()
    lookup = IdentityLookup(sqlite_unit_of_work)

    assert lookup.resolve_ordinal(2) == "Z2"
    assert lookup.resolve_stable_id(" Z1 ") == StableIdLookup("Z1", "Alice", 1)

    clock.advance(hours=1)
    fetcher.replace(("Z2", "Bob"), ("Z1", "Alice"))
    engine.reconcile()

    assert lookup.resolve_ordinal(2) == "Z1"
    assert lookup.resolve_stable_id("Z2") == StableIdLookup("Z2", "Bob", 1)


def test_unknown_keys_resolve_to_none(sqlite_unit_of_work: UowFactory, clock: FakeClock) -> None:
    make_engine(StaticRosterFetcher(roster("Z1")), sqlite_unit_of_work, clock).reconcile()
    lookup = IdentityLookup(sqlite_unit_of_work)

    assert lookup.resolve_ordinal(0) is None
    assert lookup.resolve_ordinal(2) is None
    assert lookup.resolve_stable_id("Z9") is None
    assert lookup.history("Z9") == []


def test_removed_employee_keeps_history_but_no_current_mapping(
    sqlite_unit_of_work: UowFactory,
    clock: FakeClock,
) -> None:
    fetcher = StaticRosterFetcher(roster("Z1", "Z2"))
    engine = make_engine(fetcher, sqlite_unit_of_work, clock)
    engine.reconcile()
    clock.advance(hours=1)
    fetcher.replace("Z2")
    engine.reconcile()
    lookup = IdentityLookup(sqlite_unit_of_work)

    assert lookup.resolve_stable_id("Z1") is None
    (entry,) = lookup.history("Z1")
    assert entry.state is MappingState.STALE
    assert entry.superseded_at == clock.now
    assert [item.ordinal for item in lookup.history("Z2")] == [2, 1]
