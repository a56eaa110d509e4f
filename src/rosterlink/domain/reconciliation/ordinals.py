"""Deterministic ordinal assignment for roster snapshots."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rosterlink.domain.errors import DuplicateStableIdError
from rosterlink.domain.mapping import OrdinalAssignment

if TYPE_CHECKING:
    from rosterlink.domain.model import Employee, RosterSnapshot

type SortKey = tuple[tuple[int, int | str], ...]


@dataclass(frozen=True, slots=True)
class OrdinalPolicy:
    """Sort order applied to a snapshot before rows are numbered from 1.

    Without options this reproduces ``ROW_NUMBER() OVER (ORDER BY stable_id)`` on a
    text column. ``numeric_ids`` orders all-digit IDs by value (and before any
    non-numeric ID); ``sort_attribute`` orders by that attribute first, missing
    values last, with the stable ID breaking ties. ``source_order`` keeps the order
    the reader delivered, for sources that already sort server-side.
    """

    sort_attribute: str | None = None
    numeric_ids: bool = False
    source_order: bool = False

    def key(self, employee: Employee) -> SortKey:
        id_key = self._id_key(employee.stable_id)
        if self.sort_attribute is None:
            return (id_key,)
        value = employee.attribute(self.sort_attribute)
        attribute_key: tuple[int, int | str] = (1, "") if value is None else (0, value)
        return (attribute_key, id_key)

    def _id_key(self, stable_id: str) -> tuple[int, int | str]:
        if self.numeric_ids and stable_id.isdigit():
            return (0, int(stable_id))
        return (1, stable_id)


def assign_ordinals(
    snapshot: RosterSnapshot,
    policy: OrdinalPolicy | None = None,
) -> list[OrdinalAssignment]:
    """Number the snapshot rows after sorting them with ``policy``.

    Raises ``DuplicateStableIdError`` when the snapshot lists a stable ID more than
    once, before anything is written.
    """

    policy = policy or OrdinalPolicy()
    ordered = list(snapshot.employees) if policy.source_order else sorted(snapshot, key=policy.key)
    positions: defaultdict[str, list[int]] = defaultdict(list)
    for position, employee in enumerate(ordered, start=1):
        positions[employee.stable_id].append(position)
    for stable_id, ordinals in positions.items():
        if len(ordinals) > 1:
            raise DuplicateStableIdError(stable_id, ordinals)
    return [
        OrdinalAssignment(
            ordinal=position,
            stable_id=employee.stable_id,
            display_name=employee.display_name,
        )
        for position, employee in enumerate(ordered, start=1)
    ]
