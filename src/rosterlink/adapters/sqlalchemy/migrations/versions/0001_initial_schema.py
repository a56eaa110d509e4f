"""Initial identity mapping schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-09-14 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_CONFIDENCE = ("EXACT", "INFERRED", "UNRESOLVED")


def _confidence_enum() -> sa.Enum:
    return sa.Enum(*_CONFIDENCE, name="attributionconfidence", native_enum=False)


def upgrade() -> None:
    op.create_table(
        "mapping_entry",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("stable_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column(
            "state",
            sa.Enum("MAPPED", "STALE", name="mappingstate", native_enum=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_mapping_entry_ordinal_state", "mapping_entry", ["ordinal", "state"])
    op.create_index("ix_mapping_entry_stable_id_state", "mapping_entry", ["stable_id", "state"])

    op.create_table(
        "reconciliation_run",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "mode",
            sa.Enum("INCREMENTAL", "REBUILD", name="runmode", native_enum=False),
            nullable=False,
        ),
        sa.Column("snapshot_size", sa.Integer(), nullable=False),
        sa.Column("added", sa.Text(), nullable=False),
        sa.Column("removed", sa.Text(), nullable=False),
        sa.Column("moved_count", sa.Integer(), nullable=False),
        sa.Column("moved_sample", sa.Text(), nullable=False),
        sa.Column("stale_count", sa.Integer(), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "annotation",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("sender", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_ordinal", sa.Integer(), nullable=False),
        sa.Column("resolved_stable_id", sa.String(), nullable=True),
        sa.Column("attribution_confidence", _confidence_enum(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_annotation_attribution_confidence",
        "annotation",
        ["attribution_confidence"],
    )

    op.create_table(
        "attribution_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("annotation_id", sa.Integer(), nullable=False),
        sa.Column("previous_stable_id", sa.String(), nullable=True),
        sa.Column("previous_confidence", _confidence_enum(), nullable=True),
        sa.Column("stable_id", sa.String(), nullable=True),
        sa.Column("confidence", _confidence_enum(), nullable=False),
        sa.Column(
            "tier",
            sa.Enum(
                "EXACT",
                "HISTORICAL",
                "CONTENT",
                "NONE",
                name="resolutiontier",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_attribution_audit_annotation_id",
        "attribution_audit",
        ["annotation_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_attribution_audit_annotation_id", table_name="attribution_audit")
    op.drop_table("attribution_audit")
    op.drop_index("ix_annotation_attribution_confidence", table_name="annotation")
    op.drop_table("annotation")
    op.drop_table("reconciliation_run")
    op.drop_index("ix_mapping_entry_stable_id_state", table_name="mapping_entry")
    op.drop_index("ix_mapping_entry_ordinal_state", table_name="mapping_entry")
    op.drop_table("mapping_entry")
