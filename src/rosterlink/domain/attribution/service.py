"""Attribution pass: resolve annotations in parallel and write the results."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rosterlink.domain.clock import ensure_utc, utcnow
from rosterlink.domain.model import AttributionAudit, AttributionConfidence

from .matchers import DEFAULT_MATCHERS, ContentCorpus, ResolvedExample
from .resolver import AttributionResolver
from .snapshot import MappingSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from rosterlink.domain.clock import Clock
    from rosterlink.domain.model import Annotation, AnnotationFilter, ResolutionTier
    from rosterlink.domain.ports import IdentityRepositories, IdentityUnitOfWork

    from .contracts import Resolution
    from .matchers import ContentMatcher

log = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


@dataclass(frozen=True, slots=True)
class AttributionChange:
    annotation_id: int
    previous_stable_id: str | None
    previous_confidence: AttributionConfidence | None
    resolution: Resolution


@dataclass(frozen=True, slots=True)
class AttributionConflict:
    """A resolution that would silently reassign or downgrade a stored attribution."""

    annotation_id: int
    current_stable_id: str | None
    current_confidence: AttributionConfidence | None
    proposed: Resolution
    reason: str


@dataclass(slots=True)
class AttributionPassResult:
    examined: int = 0
    unchanged: int = 0
    changes: list[AttributionChange] = field(default_factory=list)
    conflicts: list[AttributionConflict] = field(default_factory=list)
    unresolved_ids: list[int] = field(default_factory=list)
    tiers: Counter[ResolutionTier] = field(default_factory=Counter)

    @property
    def unresolved_count(self) -> int:
        return len(self.unresolved_ids)


@dataclass(slots=True)
class AttributionPass:
    """Resolve a selection of annotations against one frozen mapping snapshot.

    Tiers 1-2 run first for the whole selection. Their answers, together with stored
    exact attributions outside the selection, become the content corpus for tier 3.
    Workers only read the snapshot; every write happens on the calling thread inside
    a single unit of work, with one audit record per change.
    """

    unit_of_work_factory: Callable[[], IdentityUnitOfWork]
    workers: int = DEFAULT_WORKERS
    trust_initial_mapping: bool = False
    matchers: tuple[ContentMatcher, ...] = DEFAULT_MATCHERS
    clock: Clock = utcnow

    def run(self, annotation_filter: AnnotationFilter | None = None) -> AttributionPassResult:
        result = AttributionPassResult()
        uow = self.unit_of_work_factory()
        with uow:
            repositories = uow.repositories
            snapshot = MappingSnapshot.capture(
                repositories.mappings.all(),
                taken_at=self.clock(),
            )
            everything = repositories.annotations.list_annotations()
            selected = (
                repositories.annotations.list_annotations(annotation_filter)
                if annotation_filter is not None
                else everything
            )
            selected = [annotation for annotation in selected if annotation.id is not None]
            log.info(
                "Resolving %d annotation(s) against %d mapping entries",
                len(selected),
                len(snapshot),
            )

            resolver = AttributionResolver(
                snapshot,
                matchers=self.matchers,
                trust_initial_mapping=self.trust_initial_mapping,
            )
            by_mapping = self._map(resolver.resolve_by_mapping, selected)
            corpus = ContentCorpus.build(
                self._examples(selected, everything, by_mapping, snapshot),
                display_names=snapshot.display_names,
            )
            leftovers = [
                annotation for annotation in selected if by_mapping[_id(annotation)] is None
            ]
            by_content = self._map(resolver.with_corpus(corpus).resolve_by_content, leftovers)

            at = ensure_utc(self.clock())
            for annotation in sorted(selected, key=_id):
                resolution = by_mapping[_id(annotation)] or by_content[_id(annotation)]
                self._record(repositories, annotation, resolution, at, result)
            uow.commit()

        log.info(
            "Attribution pass finished: %d examined, %d changed, %d unchanged, "
            "%d conflict(s), %d unresolved",
            result.examined,
            len(result.changes),
            result.unchanged,
            len(result.conflicts),
            result.unresolved_count,
        )
        for conflict in result.conflicts:
            log.warning(
                "Annotation %d kept on %s: %s",
                conflict.annotation_id,
                conflict.current_stable_id,
                conflict.reason,
            )
        return result

    def _map[TResult](
        self,
        resolve: Callable[[Annotation], TResult],
        annotations: Sequence[Annotation],
    ) -> dict[int, TResult]:
        if self.workers <= 1 or len(annotations) < 2:
            return {_id(annotation): resolve(annotation) for annotation in annotations}
        results: dict[int, TResult] = {}
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(resolve, annotation): _id(annotation) for annotation in annotations
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return results

    @staticmethod
    def _examples(
        selected: Sequence[Annotation],
        everything: Sequence[Annotation],
        by_mapping: dict[int, Resolution | None],
        snapshot: MappingSnapshot,
    ) -> list[ResolvedExample]:
        examples: list[ResolvedExample] = []
        selected_ids = {_id(annotation) for annotation in selected}
        for annotation in selected:
            resolution = by_mapping[_id(annotation)]
            if resolution is not None and resolution.stable_id is not None:
                examples.append(
                    ResolvedExample(annotation.sender, annotation.content, resolution.stable_id)
                )
        for annotation in everything:
            if annotation.id in selected_ids or annotation.resolved_stable_id is None:
                continue
            if annotation.attribution_confidence is not AttributionConfidence.EXACT:
                continue
            if snapshot.knows(annotation.resolved_stable_id):
                examples.append(
                    ResolvedExample(
                        annotation.sender,
                        annotation.content,
                        annotation.resolved_stable_id,
                    )
                )
        return examples

    def _record(
        self,
        repositories: IdentityRepositories,
        annotation: Annotation,
        resolution: Resolution,
        at: datetime,
        result: AttributionPassResult,
    ) -> None:
        annotation_id = _id(annotation)
        result.examined += 1
        result.tiers[resolution.tier] += 1
        previous_id = annotation.resolved_stable_id
        previous_confidence = annotation.attribution_confidence

        conflict = _guard(annotation, resolution)
        if conflict is not None:
            result.conflicts.append(conflict)
            return
        if resolution.confidence is AttributionConfidence.UNRESOLVED:
            result.unresolved_ids.append(annotation_id)
        if not _changes(annotation, resolution):
            result.unchanged += 1
            return

        repositories.annotations.set_resolution(
            annotation_id,
            resolution.stable_id,
            resolution.confidence,
            at=at,
        )
        repositories.attribution_audits.add(
            AttributionAudit(
                annotation_id=annotation_id,
                stable_id=resolution.stable_id,
                confidence=resolution.confidence,
                tier=resolution.tier,
                reason=resolution.reason,
                created_at=at,
                previous_stable_id=previous_id,
                previous_confidence=previous_confidence,
            )
        )
        result.changes.append(
            AttributionChange(
                annotation_id=annotation_id,
                previous_stable_id=previous_id,
                previous_confidence=previous_confidence,
                resolution=resolution,
            )
        )


def _id(annotation: Annotation) -> int:
    if annotation.id is None:
        raise ValueError("Annotation has not been persisted yet")
    return annotation.id


def _guard(annotation: Annotation, resolution: Resolution) -> AttributionConflict | None:
    """Reject resolutions that would move or drop an existing attribution.

    A resolved annotation only moves to another stable ID when the new answer is
    exact and the stored one is not.
    """

    if not annotation.is_resolved:
        return None
    current_id = annotation.resolved_stable_id
    current_confidence = annotation.attribution_confidence
    reason: str | None = None
    if resolution.stable_id is None:
        reason = f"would drop attribution ({resolution.reason})"
    elif resolution.stable_id != current_id and not (
        resolution.confidence is AttributionConfidence.EXACT
        and current_confidence is not AttributionConfidence.EXACT
    ):
        reason = f"would move attribution to {resolution.stable_id} ({resolution.reason})"
    if reason is None:
        return None
    return AttributionConflict(
        annotation_id=_id(annotation),
        current_stable_id=current_id,
        current_confidence=current_confidence,
        proposed=resolution,
        reason=reason,
    )


def _changes(annotation: Annotation, resolution: Resolution) -> bool:
    if annotation.resolved_stable_id != resolution.stable_id:
        return True
    current = annotation.attribution_confidence
    if current is None:
        return True
    # same stable id: only an upgrade to exact is worth a write
    return (
        current is not AttributionConfidence.EXACT
        and resolution.confidence is AttributionConfidence.EXACT
    )
