"""SQLAlchemy adapter package for rosterlink."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAnnotationRepository,
    SqlAlchemyAttributionAuditRepository,
    SqlAlchemyMappingRepository,
    SqlAlchemyReconciliationRunRepository,
    UnknownAnnotationError,
)
from .unit_of_work import (
    SqlAlchemyIdentityUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAnnotationRepository",
    "SqlAlchemyAttributionAuditRepository",
    "SqlAlchemyIdentityUnitOfWork",
    "SqlAlchemyMappingRepository",
    "SqlAlchemyReconciliationRunRepository",
    "StartupError",
    "UnknownAnnotationError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
]
