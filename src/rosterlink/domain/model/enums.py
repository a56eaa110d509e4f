"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class MappingState(StrEnum):
    """Lifecycle of a mapping entry. ``STALE`` is terminal."""

    MAPPED = "mapped"
    STALE = "stale"


class AttributionConfidence(StrEnum):
    EXACT = "exact"
    INFERRED = "inferred"
    UNRESOLVED = "unresolved"


class ResolutionTier(StrEnum):
    """Which stage of the attribution chain produced a resolution."""

    EXACT = "exact"
    HISTORICAL = "historical"
    CONTENT = "content"
    NONE = "none"


class RunMode(StrEnum):
    INCREMENTAL = "incremental"
    REBUILD = "rebuild"
