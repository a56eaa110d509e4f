"""Stable lookup contract for downstream consumers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rosterlink.domain.mapping import IdentityMappingStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.domain.model import MappingEntry
    from rosterlink.domain.ports import IdentityUnitOfWork


@dataclass(frozen=True, slots=True)
class StableIdLookup:
    stable_id: str
    display_name: str
    ordinal: int


@dataclass(slots=True)
class IdentityLookup:
    """Read-only lookups; ``None`` means the key is not currently mapped."""

    unit_of_work_factory: Callable[[], IdentityUnitOfWork]

    def resolve_ordinal(self, ordinal: int) -> str | None:
        uow = self.unit_of_work_factory()
        with uow:
            entry = self._store(uow).lookup_by_ordinal(ordinal)
            return entry.stable_id if entry is not None else None

    def resolve_stable_id(self, stable_id: str) -> StableIdLookup | None:
        uow = self.unit_of_work_factory()
        with uow:
            entry = self._store(uow).lookup_by_stable_id(stable_id.strip())
            if entry is None:
                return None
            return StableIdLookup(
                stable_id=entry.stable_id,
                display_name=entry.display_name,
                ordinal=entry.ordinal,
            )

    def history(self, stable_id: str) -> list[MappingEntry]:
        uow = self.unit_of_work_factory()
        with uow:
            return self._store(uow).history(stable_id.strip())

    @staticmethod
    def _store(uow: IdentityUnitOfWork) -> IdentityMappingStore:
        return IdentityMappingStore(uow.repositories.mappings, uow.repositories.runs)
