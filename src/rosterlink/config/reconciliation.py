"""Defaults for reconciliation and attribution runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_int

DEFAULT_MOVED_SAMPLE_SIZE = 20
DEFAULT_RESOLVER_WORKERS = 4


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    moved_sample_size: int = DEFAULT_MOVED_SAMPLE_SIZE
    resolver_workers: int = DEFAULT_RESOLVER_WORKERS
    trust_initial_mapping: bool = False


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        moved_sample_size=env_int(
            "ROSTERLINK_MOVED_SAMPLE_SIZE", DEFAULT_MOVED_SAMPLE_SIZE, minimum=0
        ),
        resolver_workers=env_int(
            "ROSTERLINK_RESOLVER_WORKERS", DEFAULT_RESOLVER_WORKERS, minimum=1
        ),
        trust_initial_mapping=env_bool("ROSTERLINK_TRUST_INITIAL_MAPPING", False),
    )
