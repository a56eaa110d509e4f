"""Ordinal assignments and the changeset between two mapping states."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rosterlink.domain.model import MovedEntry

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True, slots=True)
class OrdinalAssignment:
    """Position an employee takes in one snapshot."""

    ordinal: int
    stable_id: str
    display_name: str


@dataclass(frozen=True, slots=True)
class Changeset:
    """Difference between the mapping before and after a reconciliation run.

    ``added`` and ``moved`` follow the new ordinal order; ``removed`` follows the
    ordinal the stable ID held before it disappeared.
    """

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    moved: tuple[MovedEntry, ...] = ()
    unchanged: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.moved)

    @property
    def moved_ids(self) -> frozenset[str]:
        return frozenset(entry.stable_id for entry in self.moved)

    def moved_sample(self, size: int) -> tuple[MovedEntry, ...]:
        return self.moved[: max(size, 0)]


def ordinals_by_stable_id(assignments: Iterable[OrdinalAssignment]) -> dict[str, int]:
    return {assignment.stable_id: assignment.ordinal for assignment in assignments}


def compute_changeset(before: Mapping[str, int], after: Mapping[str, int]) -> Changeset:
    """Diff two ``stable_id -> ordinal`` projections."""

    added = [stable_id for stable_id in after if stable_id not in before]
    added.sort(key=lambda stable_id: after[stable_id])
    removed = [stable_id for stable_id in before if stable_id not in after]
    removed.sort(key=lambda stable_id: before[stable_id])
    moved: list[MovedEntry] = []
    unchanged = 0
    for stable_id, ordinal in after.items():
        previous = before.get(stable_id)
        if previous is None:
            continue
        if previous == ordinal:
            unchanged += 1
            continue
        moved.append(MovedEntry(stable_id=stable_id, previous_ordinal=previous, ordinal=ordinal))
    moved.sort(key=lambda entry: (entry.ordinal, entry.stable_id))
    return Changeset(
        added=tuple(added),
        removed=tuple(removed),
        moved=tuple(moved),
        unchanged=unchanged,
    )
