"""Frozen, thread-shareable view of the mapping store taken at the start of a pass."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from rosterlink.domain.clock import ensure_utc

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from rosterlink.domain.model import MappingEntry


@dataclass(frozen=True, slots=True)
class MappingRecord:
    """Immutable copy of a mapping entry."""

    ordinal: int
    stable_id: str
    display_name: str
    created_at: datetime
    last_verified_at: datetime
    superseded_at: datetime | None
    is_current: bool
    initial: bool = False

    @classmethod
    def from_entry(cls, entry: MappingEntry, *, initial: bool = False) -> MappingRecord:
        return cls(
            ordinal=entry.ordinal,
            stable_id=entry.stable_id,
            display_name=entry.display_name,
            created_at=ensure_utc(entry.created_at),
            last_verified_at=ensure_utc(entry.last_verified_at),
            superseded_at=ensure_utc(entry.superseded_at) if entry.superseded_at else None,
            is_current=entry.is_current,
            initial=initial,
        )

    def valid_at(self, moment: datetime, *, open_start: bool = False) -> bool:
        if not open_start and moment < self.created_at:
            return False
        return self.superseded_at is None or moment < self.superseded_at


@dataclass(frozen=True, slots=True)
class MappingSnapshot:
    """All mapping entries, current and stale, indexed for the resolver.

    ``initial`` marks entries written by the very first reconciliation, i.e. the ones
    sharing the earliest ``created_at``.
    """

    taken_at: datetime
    records: tuple[MappingRecord, ...]
    _by_ordinal: Mapping[int, tuple[MappingRecord, ...]] = field(init=False, repr=False)
    _current_by_stable_id: Mapping[str, MappingRecord] = field(init=False, repr=False)
    _display_names: Mapping[str, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        by_ordinal: defaultdict[int, list[MappingRecord]] = defaultdict(list)
        current: dict[str, MappingRecord] = {}
        names: dict[str, str] = {}
        for record in self.records:
            by_ordinal[record.ordinal].append(record)
            names[record.stable_id] = record.display_name or names.get(record.stable_id, "")
            if record.is_current:
                current[record.stable_id] = record
        object.__setattr__(
            self,
            "_by_ordinal",
            MappingProxyType({key: tuple(value) for key, value in by_ordinal.items()}),
        )
        object.__setattr__(self, "_current_by_stable_id", MappingProxyType(current))
        object.__setattr__(self, "_display_names", MappingProxyType(names))

    @classmethod
    def capture(cls, entries: Iterable[MappingEntry], *, taken_at: datetime) -> MappingSnapshot:
        entries = sorted(entries, key=lambda entry: (entry.created_at, entry.id or 0))
        first_batch = ensure_utc(entries[0].created_at) if entries else None
        records = tuple(
            MappingRecord.from_entry(
                entry,
                initial=ensure_utc(entry.created_at) == first_batch,
            )
            for entry in entries
        )
        return cls(taken_at=ensure_utc(taken_at), records=records)

    def current_for_ordinal(self, ordinal: int) -> MappingRecord | None:
        current = [record for record in self._by_ordinal.get(ordinal, ()) if record.is_current]
        if len(current) != 1:
            return None
        return current[0]

    def history_for_ordinal(self, ordinal: int) -> tuple[MappingRecord, ...]:
        return self._by_ordinal.get(ordinal, ())

    def current_for_stable_id(self, stable_id: str) -> MappingRecord | None:
        return self._current_by_stable_id.get(stable_id)

    def knows(self, stable_id: str) -> bool:
        return stable_id in self._display_names

    @property
    def display_names(self) -> Mapping[str, str]:
        """Latest display name per stable ID, including retired employees."""

        return self._display_names

    def __len__(self) -> int:
        return len(self.records)
