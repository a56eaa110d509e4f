"""Ordinal to stable-ID mapping entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import MappingState

if TYPE_CHECKING:
    from datetime import datetime


class StaleEntryError(ValueError):
    """Raised when a stale (terminal) mapping entry is asked to change."""


@dataclass(eq=False, kw_only=True)
class MappingEntry:
    """One period during which ``ordinal`` meant ``stable_id``.

    The validity interval is ``[created_at, superseded_at)``; an open interval means
    the entry is still current. ``id`` is the surrogate row id assigned on flush.
    """

    ordinal: int
    stable_id: str
    display_name: str
    created_at: datetime
    last_verified_at: datetime
    state: MappingState = MappingState.MAPPED
    superseded_at: datetime | None = None
    id: int | None = None

    @property
    def is_current(self) -> bool:
        return self.state is MappingState.MAPPED

    def refresh(self, at: datetime, *, display_name: str | None = None) -> None:
        if not self.is_current:
            raise StaleEntryError(f"Cannot refresh stale mapping for ordinal {self.ordinal}")
        self.last_verified_at = at
        if display_name:
            self.display_name = display_name

    def supersede(self, at: datetime) -> None:
        if not self.is_current:
            raise StaleEntryError(f"Mapping for ordinal {self.ordinal} is already stale")
        self.state = MappingState.STALE
        self.superseded_at = at

    def valid_at(self, moment: datetime, *, open_start: bool = False) -> bool:
        """Return whether ``moment`` falls inside this entry's validity interval."""

        if not open_start and moment < self.created_at:
            return False
        return self.superseded_at is None or moment < self.superseded_at

    def __repr__(self) -> str:
        return (
            f"MappingEntry(id={self.id}, ordinal={self.ordinal}, stable_id={self.stable_id!r}, "
            f"state={self.state.value})"
        )
