"""Roster records as delivered by the system of record."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from rosterlink.domain.clock import utcnow

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from datetime import datetime


def _frozen_attributes(values: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True, slots=True)
class Employee:
    """Read-only roster row. ``stable_id`` is the durable identity."""

    stable_id: str
    display_name: str
    attributes: Mapping[str, str] = field(default_factory=lambda: _frozen_attributes(None))

    def __post_init__(self) -> None:
        stable_id = self.stable_id.strip()
        if not stable_id:
            raise ValueError("Employee stable_id must not be blank")
        object.__setattr__(self, "stable_id", stable_id)
        object.__setattr__(self, "display_name", self.display_name.strip())
        object.__setattr__(self, "attributes", _frozen_attributes(self.attributes))

    def attribute(self, name: str) -> str | None:
        return self.attributes.get(name)


@dataclass(frozen=True, slots=True)
class RosterSnapshot:
    """Full roster as returned by one fetch, in source order."""

    employees: tuple[Employee, ...]
    fetched_at: datetime = field(default_factory=utcnow)

    @classmethod
    def of(
        cls,
        employees: Iterable[Employee],
        *,
        fetched_at: datetime | None = None,
    ) -> RosterSnapshot:
        if fetched_at is None:
            return cls(employees=tuple(employees))
        return cls(employees=tuple(employees), fetched_at=fetched_at)

    def __iter__(self) -> Iterator[Employee]:
        return iter(self.employees)

    def __len__(self) -> int:
        return len(self.employees)

    @property
    def stable_ids(self) -> frozenset[str]:
        return frozenset(employee.stable_id for employee in self.employees)
