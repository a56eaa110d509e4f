"""Three-tier attribution of annotations to stable IDs."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rosterlink.domain.clock import ensure_utc
from rosterlink.domain.errors import AmbiguousAttributionError

from .contracts import Resolution
from .matchers import DEFAULT_MATCHERS, ContentCorpus, converge

if TYPE_CHECKING:
    from rosterlink.domain.model import Annotation

    from .matchers import ContentMatcher
    from .snapshot import MappingRecord, MappingSnapshot

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AttributionResolver:
    """Resolve annotations against one frozen mapping snapshot.

    The tiers form a strict precedence chain; a lower tier only runs when the one
    above it produced no unique answer:

    1. exact: the current entry for the target ordinal has been verified since the
       annotation was written, and was already in place at that time or is the
       only holder the ordinal has had since the first reconciliation,
    2. historical: exactly one entry for the target ordinal was valid at the
       annotation's ``created_at``,
    3. content: ranked matchers over the corpus converge on one stable ID.

    Anything else is ``Unresolved`` with no stable ID.
    """

    snapshot: MappingSnapshot
    corpus: ContentCorpus = field(default_factory=ContentCorpus)
    matchers: tuple[ContentMatcher, ...] = DEFAULT_MATCHERS
    trust_initial_mapping: bool = False

    def resolve(self, annotation: Annotation) -> Resolution:
        return self.resolve_by_mapping(annotation) or self.resolve_by_content(annotation)

    def resolve_by_mapping(self, annotation: Annotation) -> Resolution | None:
        return self.resolve_exact(annotation) or self.resolve_historical(annotation)

    def resolve_exact(self, annotation: Annotation) -> Resolution | None:
        written_at = ensure_utc(annotation.created_at)
        current = self.snapshot.current_for_ordinal(annotation.target_ordinal)
        if current is None or written_at > current.last_verified_at:
            return None
        if current.created_at <= written_at:
            return Resolution.exact(
                current.stable_id,
                f"ordinal {annotation.target_ordinal} held by {current.stable_id} "
                f"since {current.created_at.isoformat()}",
            )
        if self._sole_holder(current):
            return Resolution.exact(
                current.stable_id,
                f"ordinal {annotation.target_ordinal} only ever held by {current.stable_id}",
            )
        return None

    def _sole_holder(self, current: MappingRecord) -> bool:
        history = self.snapshot.history_for_ordinal(current.ordinal)
        earliest = min(history, key=lambda record: record.created_at)
        return earliest.initial and all(
            record.stable_id == current.stable_id for record in history
        )

    def resolve_historical(self, annotation: Annotation) -> Resolution | None:
        written_at = ensure_utc(annotation.created_at)
        matches = [
            record
            for record in self.snapshot.history_for_ordinal(annotation.target_ordinal)
            if record.valid_at(written_at, open_start=self.trust_initial_mapping and record.initial)
        ]
        stable_ids = {record.stable_id for record in matches}
        if len(stable_ids) != 1:
            if len(stable_ids) > 1:
                log.debug(
                    "Annotation %s: %d overlapping entries for ordinal %d",
                    annotation.id,
                    len(matches),
                    annotation.target_ordinal,
                )
            return None
        (stable_id,) = stable_ids
        return Resolution.historical(
            stable_id,
            f"ordinal {annotation.target_ordinal} meant {stable_id} at "
            f"{written_at.isoformat()}",
        )

    def resolve_by_content(self, annotation: Annotation) -> Resolution:
        try:
            stable_id, matcher_name = converge(annotation, self.corpus, self.matchers)
        except AmbiguousAttributionError as exc:
            log.debug("Annotation %s left unresolved: %s", annotation.id, exc)
            return Resolution.unresolved(str(exc))
        return Resolution.content(stable_id, f"content matched by {matcher_name}")

    def with_corpus(self, corpus: ContentCorpus) -> AttributionResolver:
        return dataclasses.replace(self, corpus=corpus)
