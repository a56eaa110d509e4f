"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import RosterFetcher
from .persistence import (
    AnnotationRepository,
    AttributionAuditRepository,
    MappingRepository,
    ReconciliationRunRepository,
    Repository,
)
from .unit_of_work import (
    IdentityRepositories,
    IdentityUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AnnotationRepository",
    "AttributionAuditRepository",
    "IdentityRepositories",
    "IdentityUnitOfWork",
    "MappingRepository",
    "ReconciliationRunRepository",
    "Repository",
    "RepositoryCollection",
    "RosterFetcher",
    "UnitOfWork",
]
