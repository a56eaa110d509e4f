"""Ports for fetching roster snapshots from the system of record."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rosterlink.domain.model import RosterSnapshot


@runtime_checkable
class RosterFetcher(Protocol):
    """Callable port returning the full roster in source order.

    Implementations raise ``SnapshotFetchError`` when no usable snapshot can be
    produced.
    """

    def __call__(self) -> RosterSnapshot: ...


__all__ = ["RosterFetcher"]
