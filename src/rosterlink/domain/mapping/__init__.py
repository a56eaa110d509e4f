"""Identity mapping store and changeset computation."""

from __future__ import annotations

from .changeset import Changeset, OrdinalAssignment, compute_changeset, ordinals_by_stable_id
from .store import IdentityMappingStore, MappingBatch

__all__ = [
    "Changeset",
    "IdentityMappingStore",
    "MappingBatch",
    "OrdinalAssignment",
    "compute_changeset",
    "ordinals_by_stable_id",
]
