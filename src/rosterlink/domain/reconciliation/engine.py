"""Reconciliation engine: fetch a snapshot, renumber it and update the mapping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rosterlink.domain.clock import utcnow
from rosterlink.domain.errors import DuplicateStableIdError
from rosterlink.domain.mapping import (
    Changeset,
    IdentityMappingStore,
    compute_changeset,
    ordinals_by_stable_id,
)
from rosterlink.domain.mapping.store import DEFAULT_MOVED_SAMPLE_SIZE

from .ordinals import OrdinalPolicy, assign_ordinals

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.domain.clock import Clock
    from rosterlink.domain.mapping import OrdinalAssignment
    from rosterlink.domain.model import ReconciliationRun, RosterSnapshot
    from rosterlink.domain.ports import IdentityUnitOfWork, RosterFetcher

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationOutcome:
    """Run record plus the full changeset (the run only keeps a sample of moves)."""

    run: ReconciliationRun
    changeset: Changeset

    @property
    def drift_detected(self) -> bool:
        return bool(self.changeset.moved)


@dataclass(slots=True)
class ReconciliationEngine:
    """Single-writer, run-to-completion reconciliation of the mapping store.

    The snapshot is fetched before any transaction is opened, so a fetch failure
    leaves the stored mapping untouched. All mapping writes and the run record share
    one unit of work and one commit.
    """

    fetch_roster: RosterFetcher
    unit_of_work_factory: Callable[[], IdentityUnitOfWork]
    policy: OrdinalPolicy = field(default_factory=OrdinalPolicy)
    clock: Clock = utcnow
    moved_sample_size: int = DEFAULT_MOVED_SAMPLE_SIZE

    def reconcile(self, *, rebuild: bool = False) -> ReconciliationOutcome:
        snapshot = self.fetch_roster()
        log.info("Fetched roster snapshot with %d employees", len(snapshot))
        return self.apply_snapshot(snapshot, rebuild=rebuild)

    def apply_snapshot(
        self,
        snapshot: RosterSnapshot,
        *,
        rebuild: bool = False,
    ) -> ReconciliationOutcome:
        try:
            assignments = assign_ordinals(snapshot, self.policy)
        except DuplicateStableIdError as exc:
            log.error(
                "Snapshot rejected: stable id %s appears at ordinals %s",
                exc.stable_id,
                exc.ordinals,
            )
            raise

        uow = self.unit_of_work_factory()
        with uow:
            store = IdentityMappingStore(
                uow.repositories.mappings,
                uow.repositories.runs,
                clock=self.clock,
            )
            if rebuild:
                outcome = self._rebuild(store, assignments, len(snapshot))
            else:
                outcome = self._incremental(store, assignments, len(snapshot))
            uow.commit()

        self._log_outcome(outcome)
        return outcome

    def _incremental(
        self,
        store: IdentityMappingStore,
        assignments: list[OrdinalAssignment],
        snapshot_size: int,
    ) -> ReconciliationOutcome:
        before = store.current_ordinals()
        with store.batch() as batch:
            for assignment in assignments:
                store.upsert_mapping(
                    assignment.ordinal,
                    assignment.stable_id,
                    assignment.display_name,
                )
            store.retire_missing(batch.ordinal_by_stable_id.keys())
            changeset = compute_changeset(before, ordinals_by_stable_id(assignments))
            run = store.record_run(
                changeset=changeset,
                snapshot_size=snapshot_size,
                stale_count=batch.stale_count,
                moved_sample_size=self.moved_sample_size,
            )
        return ReconciliationOutcome(run=run, changeset=changeset)

    def _rebuild(
        self,
        store: IdentityMappingStore,
        assignments: list[OrdinalAssignment],
        snapshot_size: int,
    ) -> ReconciliationOutcome:
        log.warning("Rebuilding the identity mapping from scratch")
        before = store.current_ordinals()
        run = store.rebuild_all(
            assignments,
            snapshot_size=snapshot_size,
            moved_sample_size=self.moved_sample_size,
        )
        changeset = compute_changeset(before, ordinals_by_stable_id(assignments))
        return ReconciliationOutcome(run=run, changeset=changeset)

    @staticmethod
    def _log_outcome(outcome: ReconciliationOutcome) -> None:
        run = outcome.run
        log.info(
            "Reconciliation (%s) finished: %d added, %d removed, %d moved, %d stale",
            run.mode.value,
            len(run.added),
            len(run.removed),
            run.moved_count,
            run.stale_count,
        )
        for moved in run.moved_sample:
            log.info(
                "Drift: %s moved from ordinal %d to %d",
                moved.stable_id,
                moved.previous_ordinal,
                moved.ordinal,
            )
