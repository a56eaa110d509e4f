"""Attribution of ordinal-based annotations to stable IDs."""

from __future__ import annotations

from .contracts import Resolution
from .matchers import (
    DEFAULT_MATCHERS,
    ContentCorpus,
    ContentMatcher,
    DisplayNameMentionMatcher,
    IdenticalContentMatcher,
    ResolvedExample,
    SignatureTokenMatcher,
    converge,
    normalize_text,
)
from .resolver import AttributionResolver
from .service import (
    AttributionChange,
    AttributionConflict,
    AttributionPass,
    AttributionPassResult,
)
from .snapshot import MappingRecord, MappingSnapshot

__all__ = [
    "DEFAULT_MATCHERS",
    "AttributionChange",
    "AttributionConflict",
    "AttributionPass",
    "AttributionPassResult",
    "AttributionResolver",
    "ContentCorpus",
    "ContentMatcher",
    "DisplayNameMentionMatcher",
    "IdenticalContentMatcher",
    "MappingRecord",
    "MappingSnapshot",
    "Resolution",
    "ResolvedExample",
    "SignatureTokenMatcher",
    "converge",
    "normalize_text",
]
