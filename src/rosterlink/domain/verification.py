"""Read-only consistency verification of the mapping and annotation stores."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from rosterlink.domain.clock import ensure_utc, utcnow
from rosterlink.domain.errors import InvariantViolationError
from rosterlink.domain.model import AttributionConfidence

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from rosterlink.domain.clock import Clock
    from rosterlink.domain.model import Annotation, MappingEntry, RosterSnapshot
    from rosterlink.domain.ports import IdentityUnitOfWork

log = logging.getLogger(__name__)


class ViolationKind(StrEnum):
    DUPLICATE_STABLE_ID = "duplicate_stable_id"
    DUPLICATE_ORDINAL = "duplicate_ordinal"
    DANGLING_REFERENCE = "dangling_reference"
    COUNT_MISMATCH = "count_mismatch"


@dataclass(frozen=True, slots=True)
class InvariantViolation:
    kind: ViolationKind
    subject: str
    detail: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.subject} ({self.detail})"


@dataclass(frozen=True, slots=True, kw_only=True)
class VerificationReport:
    """Standing report over the final state. Nothing here is ever auto-corrected."""

    checked_at: datetime
    current_entries: int
    expected_size: int | None
    unresolved_ids: tuple[int, ...] = ()
    pending_count: int = 0
    moved_since_verified: int = 0
    runs_since_verified: int = 0
    orphaned_ids: tuple[int, ...] = ()
    violations: tuple[InvariantViolation, ...] = ()

    @property
    def unresolved_count(self) -> int:
        return len(self.unresolved_ids)

    @property
    def is_clean(self) -> bool:
        return not self.violations

    def violations_of(self, kind: ViolationKind) -> tuple[InvariantViolation, ...]:
        return tuple(violation for violation in self.violations if violation.kind is kind)

    def raise_for_violations(self) -> None:
        if self.violations:
            raise InvariantViolationError(self.violations)

    def summary_lines(self) -> list[str]:
        lines = [
            f"current mapping entries: {self.current_entries}",
            f"unresolved annotations: {self.unresolved_count}",
            f"never-resolved annotations: {self.pending_count}",
            f"orphaned annotations: {len(self.orphaned_ids)}",
            f"moved since last verified run: {self.moved_since_verified} "
            f"(over {self.runs_since_verified} run(s))",
            f"invariant violations: {len(self.violations)}",
        ]
        lines.extend(f"  {violation}" for violation in self.violations)
        return lines


@dataclass(slots=True)
class ConsistencyVerifier:
    """Audit the stores without mutating them.

    ``roster`` narrows the dangling-reference and count checks to a fresh snapshot;
    without it the current mapping and the latest run's snapshot size are used.
    """

    unit_of_work_factory: Callable[[], IdentityUnitOfWork]
    clock: Clock = utcnow

    def verify(self, roster: RosterSnapshot | None = None) -> VerificationReport:
        uow = self.unit_of_work_factory()
        with uow:
            repositories = uow.repositories
            entries = list(repositories.mappings.all())
            annotations = repositories.annotations.list_annotations()
            latest = repositories.runs.latest()
            latest_verified = repositories.runs.latest_verified()
            runs = repositories.runs.list_after(
                latest_verified.id if latest_verified is not None else None
            )

        current = [entry for entry in entries if entry.is_current]
        if roster is not None:
            known_ids = roster.stable_ids
            expected_size: int | None = len(roster)
        else:
            known_ids = frozenset(entry.stable_id for entry in current)
            expected_size = latest.snapshot_size if latest is not None else None

        violations = [
            *_duplicate_stable_ids(current),
            *_duplicate_ordinals(current),
            *_dangling_references(annotations, known_ids),
        ]
        if expected_size is not None and expected_size != len(current):
            violations.append(
                InvariantViolation(
                    ViolationKind.COUNT_MISMATCH,
                    "mapping",
                    f"{len(current)} current entries for a roster of {expected_size}",
                )
            )

        seen_ordinals = {entry.ordinal for entry in entries}
        report = VerificationReport(
            checked_at=ensure_utc(self.clock()),
            current_entries=len(current),
            expected_size=expected_size,
            unresolved_ids=tuple(
                sorted(
                    annotation.id
                    for annotation in annotations
                    if annotation.id is not None
                    and annotation.attribution_confidence is AttributionConfidence.UNRESOLVED
                )
            ),
            pending_count=sum(1 for annotation in annotations if annotation.is_pending),
            moved_since_verified=sum(run.moved_count for run in runs),
            runs_since_verified=len(runs),
            orphaned_ids=tuple(
                sorted(
                    annotation.id
                    for annotation in annotations
                    if annotation.id is not None and annotation.target_ordinal not in seen_ordinals
                )
            ),
            violations=tuple(violations),
        )
        if report.violations:
            log.warning("Verification found %d invariant violation(s)", len(report.violations))
        return report


def _duplicate_stable_ids(current: Sequence[MappingEntry]) -> list[InvariantViolation]:
    ordinals: defaultdict[str, list[int]] = defaultdict(list)
    for entry in current:
        ordinals[entry.stable_id].append(entry.ordinal)
    return [
        InvariantViolation(
            ViolationKind.DUPLICATE_STABLE_ID,
            stable_id,
            "current at ordinals " + ", ".join(str(ordinal) for ordinal in sorted(values)),
        )
        for stable_id, values in sorted(ordinals.items())
        if len(values) > 1
    ]


def _duplicate_ordinals(current: Sequence[MappingEntry]) -> list[InvariantViolation]:
    stable_ids: defaultdict[int, list[str]] = defaultdict(list)
    for entry in current:
        stable_ids[entry.ordinal].append(entry.stable_id)
    return [
        InvariantViolation(
            ViolationKind.DUPLICATE_ORDINAL,
            str(ordinal),
            "held by " + ", ".join(sorted(values)),
        )
        for ordinal, values in sorted(stable_ids.items())
        if len(values) > 1
    ]


def _dangling_references(
    annotations: Sequence[Annotation],
    known_ids: frozenset[str],
) -> list[InvariantViolation]:
    return [
        InvariantViolation(
            ViolationKind.DANGLING_REFERENCE,
            f"annotation {annotation.id}",
            f"resolved to {annotation.resolved_stable_id}, absent from the roster",
        )
        for annotation in annotations
        if annotation.resolved_stable_id is not None
        and annotation.resolved_stable_id not in known_ids
    ]
