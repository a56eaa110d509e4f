"""Translate validated roster payloads into domain snapshots."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rosterlink.domain.model import Employee, RosterSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from .schema import EmployeePayload

log = logging.getLogger(__name__)


def parse_employee(payload: EmployeePayload) -> Employee:
    if payload.stable_id is None:
        raise ValueError("Roster row has no stable id")
    return Employee(
        stable_id=payload.stable_id,
        display_name=payload.display_name or "",
        attributes=payload.merged_attributes(),
    )


def build_snapshot(
    payloads: Iterable[EmployeePayload],
    *,
    fetched_at: datetime | None = None,
) -> RosterSnapshot:
    """Build a snapshot in source order, dropping rows without a stable ID."""

    employees: list[Employee] = []
    skipped = 0
    for payload in payloads:
        if not payload.has_stable_id:
            skipped += 1
            continue
        employees.append(parse_employee(payload))
    if skipped:
        log.warning("Dropped %d roster row(s) without a stable id", skipped)
    return RosterSnapshot.of(employees, fetched_at=fetched_at)
