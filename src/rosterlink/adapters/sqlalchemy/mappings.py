"""SQLAlchemy mapping metadata for the rosterlink domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import configure_mappers

from rosterlink.domain.model import (
    Annotation,
    AttributionAudit,
    AttributionConfidence,
    MappingEntry,
    MappingState,
    MovedEntry,
    ReconciliationRun,
    ResolutionTier,
    RunMode,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StableIdListType(TypeDecorator[tuple[str, ...]]):
    """Tuple of stable IDs stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or ()))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if not value:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        return tuple(str(item) for item in cast(list[Any], loaded))


class MovedSampleType(TypeDecorator[tuple[MovedEntry, ...]]):
    """Sample of moved entries stored as a JSON array of triples."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[MovedEntry, ...] | None, dialect: Dialect) -> str:
        _ = dialect
        payload = [
            [entry.stable_id, entry.previous_ordinal, entry.ordinal] for entry in value or ()
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[MovedEntry, ...]:
        _ = dialect
        if not value:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        entries: list[MovedEntry] = []
        for item in cast(list[Any], loaded):
            if isinstance(item, list) and len(item) == 3:  # noqa: PLR2004
                stable_id, previous_ordinal, ordinal = cast(list[Any], item)
                entries.append(MovedEntry(str(stable_id), int(previous_ordinal), int(ordinal)))
        return tuple(entries)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Tables -----------------------------------------------------------------------

mapping_entry_table = Table(
    "mapping_entry",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("ordinal", Integer, nullable=False),
    Column("stable_id", String, nullable=False),
    Column("display_name", String, nullable=False, default=""),
    Column("state", Enum(MappingState, native_enum=False), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("last_verified_at", UTCDateTime(), nullable=False),
    Column("superseded_at", UTCDateTime(), nullable=True),
    Index("ix_mapping_entry_ordinal_state", "ordinal", "state"),
    Index("ix_mapping_entry_stable_id_state", "stable_id", "state"),
)

reconciliation_run_table = Table(
    "reconciliation_run",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("mode", Enum(RunMode, native_enum=False), nullable=False),
    Column("snapshot_size", Integer, nullable=False),
    Column("added", StableIdListType(), nullable=False),
    Column("removed", StableIdListType(), nullable=False),
    Column("moved_count", Integer, nullable=False, default=0),
    Column("moved_sample", MovedSampleType(), nullable=False),
    Column("stale_count", Integer, nullable=False, default=0),
    Column("verified_at", UTCDateTime(), nullable=True),
)

annotation_table = Table(
    "annotation",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("content", Text, nullable=False),
    Column("sender", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("target_ordinal", Integer, nullable=False),
    Column("resolved_stable_id", String, nullable=True),
    Column(
        "attribution_confidence",
        Enum(AttributionConfidence, native_enum=False),
        nullable=True,
    ),
    Column("resolved_at", UTCDateTime(), nullable=True),
    Index("ix_annotation_attribution_confidence", "attribution_confidence"),
)

attribution_audit_table = Table(
    "attribution_audit",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("annotation_id", Integer, nullable=False, index=True),
    Column("previous_stable_id", String, nullable=True),
    Column(
        "previous_confidence",
        Enum(AttributionConfidence, native_enum=False),
        nullable=True,
    ),
    Column("stable_id", String, nullable=True),
    Column("confidence", Enum(AttributionConfidence, native_enum=False), nullable=False),
    Column("tier", Enum(ResolutionTier, native_enum=False), nullable=False),
    Column("reason", Text, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(MappingEntry, mapping_entry_table)
    mapper_registry.map_imperatively(ReconciliationRun, reconciliation_run_table)
    mapper_registry.map_imperatively(Annotation, annotation_table)
    mapper_registry.map_imperatively(AttributionAudit, attribution_audit_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
