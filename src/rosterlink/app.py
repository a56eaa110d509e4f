"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from rosterlink.adapters.roster import FileRosterFetcher, HttpRosterFetcher
from rosterlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIdentityUnitOfWork,
    is_started,
    startup,
)
from rosterlink.config import get_reconciliation_config, get_roster_ordering_config
from rosterlink.domain.attribution import AttributionPass, AttributionPassResult
from rosterlink.domain.lookup import IdentityLookup, StableIdLookup
from rosterlink.domain.mapping import IdentityMappingStore
from rosterlink.domain.model import AnnotationFilter
from rosterlink.domain.ports.unit_of_work import IdentityUnitOfWork
from rosterlink.domain.reconciliation import (
    OrdinalPolicy,
    ReconciliationEngine,
    ReconciliationOutcome,
)
from rosterlink.domain.verification import ConsistencyVerifier, VerificationReport

if TYPE_CHECKING:
    from pathlib import Path

    from rosterlink.config import ReconciliationConfig
    from rosterlink.domain.model import MappingEntry, ReconciliationRun, RosterSnapshot
    from rosterlink.domain.ports.fetching import RosterFetcher

UnitOfWorkFactory = Callable[[], IdentityUnitOfWork]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Everything a full cycle produced, ready to be printed for operators."""

    reconciliation: ReconciliationOutcome
    attribution: AttributionPassResult
    report: VerificationReport

    def lines(self) -> list[str]:
        run = self.reconciliation.run
        lines = [
            f"reconciliation ({run.mode.value}): {len(run.added)} added, "
            f"{len(run.removed)} removed, {run.moved_count} moved, {run.stale_count} stale",
            f"attribution: {self.attribution.examined} examined, "
            f"{len(self.attribution.changes)} changed, "
            f"{len(self.attribution.conflicts)} conflict(s)",
        ]
        lines.extend(self.report.summary_lines())
        return lines


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyIdentityUnitOfWork


def build_roster_fetcher(roster_file: Path | None = None) -> RosterFetcher:
    if roster_file is not None:
        return FileRosterFetcher(roster_file)
    return HttpRosterFetcher()


def build_ordinal_policy() -> OrdinalPolicy:
    ordering = get_roster_ordering_config()
    return OrdinalPolicy(
        sort_attribute=ordering.sort_attribute,
        numeric_ids=ordering.numeric_ids,
        source_order=ordering.source_order,
    )


def _engine(
    source: RosterFetcher | None,
    factory: UnitOfWorkFactory,
    config: ReconciliationConfig,
    policy: OrdinalPolicy | None,
) -> ReconciliationEngine:
    return ReconciliationEngine(
        fetch_roster=source or build_roster_fetcher(),
        unit_of_work_factory=factory,
        policy=policy or build_ordinal_policy(),
        moved_sample_size=config.moved_sample_size,
    )


def reconcile_roster(
    *,
    source: RosterFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    rebuild: bool = False,
    policy: OrdinalPolicy | None = None,
    config: ReconciliationConfig | None = None,
) -> ReconciliationOutcome:
    """Fetch a roster snapshot and reconcile the identity mapping against it."""

    factory = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_reconciliation_config()
    log.info("Starting reconciliation: rebuild=%s", rebuild)
    return _engine(source, factory, effective_config, policy).reconcile(rebuild=rebuild)


def resolve_annotations(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    pending_only: bool = False,
    annotation_filter: AnnotationFilter | None = None,
    workers: int | None = None,
    trust_initial_mapping: bool | None = None,
    config: ReconciliationConfig | None = None,
) -> AttributionPassResult:
    """Run the attribution pass over all annotations, or only the ones still open."""

    factory = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_reconciliation_config()
    if annotation_filter is None and pending_only:
        annotation_filter = AnnotationFilter.needing_attribution()
    attribution = AttributionPass(
        unit_of_work_factory=factory,
        workers=workers or effective_config.resolver_workers,
        trust_initial_mapping=(
            effective_config.trust_initial_mapping
            if trust_initial_mapping is None
            else trust_initial_mapping
        ),
    )
    return attribution.run(annotation_filter)


def verify_consistency(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    roster: RosterSnapshot | None = None,
) -> VerificationReport:
    factory = _unit_of_work_factory(unit_of_work_factory)
    return ConsistencyVerifier(unit_of_work_factory=factory).verify(roster)


def mark_verified(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReconciliationRun | None:
    """Acknowledge the latest reconciliation run after a clean verification."""

    factory = _unit_of_work_factory(unit_of_work_factory)
    uow = factory()
    with uow:
        store = IdentityMappingStore(uow.repositories.mappings, uow.repositories.runs)
        run = store.mark_verified()
        uow.commit()
    if run is None:
        log.warning("No reconciliation run to mark as verified")
    else:
        log.info("Marked reconciliation run %s as verified", run.id)
    return run


def run_cycle(
    *,
    source: RosterFetcher | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    rebuild: bool = False,
    pending_only: bool = False,
    config: ReconciliationConfig | None = None,
) -> RunSummary:
    """Reconcile, re-attribute and verify against one roster snapshot."""

    factory = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_reconciliation_config()
    engine = _engine(source, factory, effective_config, None)
    snapshot = engine.fetch_roster()
    outcome = engine.apply_snapshot(snapshot, rebuild=rebuild)
    attribution = resolve_annotations(
        unit_of_work_factory=factory,
        pending_only=pending_only,
        config=effective_config,
    )
    report = verify_consistency(unit_of_work_factory=factory, roster=snapshot)
    summary = RunSummary(reconciliation=outcome, attribution=attribution, report=report)
    for line in summary.lines():
        log.info(line)
    return summary


def lookup_ordinal(
    ordinal: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str | None:
    return IdentityLookup(_unit_of_work_factory(unit_of_work_factory)).resolve_ordinal(ordinal)


def lookup_stable_id(
    stable_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> StableIdLookup | None:
    return IdentityLookup(_unit_of_work_factory(unit_of_work_factory)).resolve_stable_id(stable_id)


def mapping_history(
    stable_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[MappingEntry]:
    return IdentityLookup(_unit_of_work_factory(unit_of_work_factory)).history(stable_id)
