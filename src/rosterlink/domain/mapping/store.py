"""Identity mapping store: the only writer of mapping entries.

Every mutation happens through a :class:`MappingBatch`. A batch shares one timestamp
across its writes and rejects a snapshot that claims one stable ID at two ordinals
(or one ordinal for two stable IDs). Atomicity comes from the surrounding unit of
work: an error raised inside a batch propagates, and the unit of work rolls back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rosterlink.domain.clock import ensure_utc, utcnow
from rosterlink.domain.errors import DuplicateOrdinalError, DuplicateStableIdError
from rosterlink.domain.model import MappingEntry, ReconciliationRun, RunMode

from .changeset import Changeset, compute_changeset, ordinals_by_stable_id

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator, Sequence
    from datetime import datetime

    from rosterlink.domain.clock import Clock
    from rosterlink.domain.ports import MappingRepository, ReconciliationRunRepository

    from .changeset import OrdinalAssignment

log = logging.getLogger(__name__)

DEFAULT_MOVED_SAMPLE_SIZE = 20


@dataclass(slots=True)
class MappingBatch:
    """Writes sharing one timestamp and one duplicate-detection scope."""

    at: datetime
    ordinal_by_stable_id: dict[str, int] = field(default_factory=dict)
    stable_id_by_ordinal: dict[int, str] = field(default_factory=dict)
    created: list[MappingEntry] = field(default_factory=list)
    refreshed: list[MappingEntry] = field(default_factory=list)
    superseded: list[MappingEntry] = field(default_factory=list)

    def claim(self, ordinal: int, stable_id: str) -> None:
        previous_ordinal = self.ordinal_by_stable_id.get(stable_id)
        if previous_ordinal is not None and previous_ordinal != ordinal:
            raise DuplicateStableIdError(stable_id, (previous_ordinal, ordinal))
        previous_id = self.stable_id_by_ordinal.get(ordinal)
        if previous_id is not None and previous_id != stable_id:
            raise DuplicateOrdinalError(ordinal, (previous_id, stable_id))
        self.ordinal_by_stable_id[stable_id] = ordinal
        self.stable_id_by_ordinal[ordinal] = stable_id

    @property
    def stale_count(self) -> int:
        return len(self.superseded)


class IdentityMappingStore:
    """Durable ``ordinal -> stable_id`` mapping with full history."""

    def __init__(
        self,
        mappings: MappingRepository,
        runs: ReconciliationRunRepository,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._mappings = mappings
        self._runs = runs
        self._clock = clock
        self._batch: MappingBatch | None = None

    # Batches ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Iterator[MappingBatch]:
        if self._batch is not None:
            raise RuntimeError("Mapping batches cannot be nested")
        self._batch = MappingBatch(at=ensure_utc(self._clock()))
        try:
            yield self._batch
        finally:
            self._batch = None

    @contextmanager
    def _scope(self) -> Iterator[MappingBatch]:
        if self._batch is not None:
            yield self._batch
            return
        with self.batch() as batch:
            yield batch

    # Writes -------------------------------------------------------------------

    def upsert_mapping(self, ordinal: int, stable_id: str, display_name: str) -> MappingEntry:
        """Point ``ordinal`` at ``stable_id``, superseding whatever disagrees with it."""

        with self._scope() as batch:
            batch.claim(ordinal, stable_id)
            current = self.lookup_by_ordinal(ordinal)
            if current is not None and current.stable_id == stable_id:
                current.refresh(batch.at, display_name=display_name)
                batch.refreshed.append(current)
                return current
            if current is not None:
                self._supersede(batch, current)
            held = self.lookup_by_stable_id(stable_id)
            if held is not None:
                self._supersede(batch, held)
            return self._create(batch, ordinal, stable_id, display_name)

    def retire_missing(self, stable_ids: Collection[str]) -> list[MappingEntry]:
        """Supersede current entries whose stable ID is absent from ``stable_ids``."""

        keep = frozenset(stable_ids)
        with self._scope() as batch:
            retired = [entry for entry in self._mappings.current() if entry.stable_id not in keep]
            for entry in retired:
                self._supersede(batch, entry)
        return retired

    def rebuild_all(
        self,
        assignments: Iterable[OrdinalAssignment],
        *,
        snapshot_size: int | None = None,
        moved_sample_size: int = DEFAULT_MOVED_SAMPLE_SIZE,
    ) -> ReconciliationRun:
        """Retire every current entry and install ``assignments`` as the new mapping."""

        assignments = tuple(assignments)
        with self._scope() as batch:
            for assignment in assignments:
                batch.claim(assignment.ordinal, assignment.stable_id)
            before = self.current_ordinals()
            for entry in self._mappings.current():
                self._supersede(batch, entry)
            for assignment in assignments:
                self._create(
                    batch,
                    assignment.ordinal,
                    assignment.stable_id,
                    assignment.display_name,
                )
            changeset = compute_changeset(before, ordinals_by_stable_id(assignments))
            run = self.record_run(
                changeset=changeset,
                snapshot_size=len(assignments) if snapshot_size is None else snapshot_size,
                mode=RunMode.REBUILD,
                stale_count=batch.stale_count,
                moved_sample_size=moved_sample_size,
            )
        log.info(
            "Rebuilt mapping: %d entries installed, %d retired",
            len(assignments),
            run.stale_count,
        )
        return run

    def record_run(
        self,
        *,
        changeset: Changeset,
        snapshot_size: int,
        mode: RunMode = RunMode.INCREMENTAL,
        stale_count: int = 0,
        moved_sample_size: int = DEFAULT_MOVED_SAMPLE_SIZE,
        at: datetime | None = None,
    ) -> ReconciliationRun:
        if at is None:
            at = self._batch.at if self._batch is not None else ensure_utc(self._clock())
        run = ReconciliationRun(
            timestamp=at,
            snapshot_size=snapshot_size,
            mode=mode,
            added=changeset.added,
            removed=changeset.removed,
            moved_count=len(changeset.moved),
            moved_sample=changeset.moved_sample(moved_sample_size),
            stale_count=stale_count,
        )
        self._runs.add(run)
        return run

    def mark_verified(self, at: datetime | None = None) -> ReconciliationRun | None:
        """Stamp the latest run as acknowledged; returns ``None`` when no run exists."""

        run = self._runs.latest()
        if run is None:
            return None
        run.mark_verified(ensure_utc(at or self._clock()))
        return run

    # Reads --------------------------------------------------------------------

    def lookup_by_ordinal(self, ordinal: int) -> MappingEntry | None:
        return _newest(self._mappings.current_for_ordinal(ordinal), f"ordinal {ordinal}")

    def lookup_by_stable_id(self, stable_id: str) -> MappingEntry | None:
        return _newest(self._mappings.current_for_stable_id(stable_id), f"stable id {stable_id!r}")

    def history(self, stable_id: str) -> list[MappingEntry]:
        """All entries ever recorded for ``stable_id``, oldest first."""

        return list(self._mappings.history_for_stable_id(stable_id))

    def ordinal_history(self, ordinal: int) -> list[MappingEntry]:
        return list(self._mappings.history_for_ordinal(ordinal))

    def current_entries(self) -> list[MappingEntry]:
        return sorted(self._mappings.current(), key=lambda entry: entry.ordinal)

    def all_entries(self) -> list[MappingEntry]:
        return list(self._mappings.all())

    def current_ordinals(self) -> dict[str, int]:
        return {entry.stable_id: entry.ordinal for entry in self._mappings.current()}

    def latest_run(self) -> ReconciliationRun | None:
        return self._runs.latest()

    # Internals ----------------------------------------------------------------

    def _create(
        self,
        batch: MappingBatch,
        ordinal: int,
        stable_id: str,
        display_name: str,
    ) -> MappingEntry:
        entry = MappingEntry(
            ordinal=ordinal,
            stable_id=stable_id,
            display_name=display_name,
            created_at=batch.at,
            last_verified_at=batch.at,
        )
        self._mappings.add(entry)
        batch.created.append(entry)
        return entry

    def _supersede(self, batch: MappingBatch, entry: MappingEntry) -> None:
        entry.supersede(batch.at)
        batch.superseded.append(entry)
        log.debug("Superseded %r", entry)


def _newest(entries: Sequence[MappingEntry], label: str) -> MappingEntry | None:
    if not entries:
        return None
    if len(entries) > 1:
        log.warning("%d current mapping entries for %s; using the newest", len(entries), label)
    return max(entries, key=lambda entry: (entry.created_at, entry.id or 0))
