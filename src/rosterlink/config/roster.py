"""Roster source configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_int, optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

ROSTER_TIMEOUT_SECONDS = 30.0
DEFAULT_ROSTER_RETRIES = 4


@dataclass(frozen=True, slots=True)
class RosterOrderingConfig:
    """How a roster snapshot is sorted before positions are numbered.

    The default mirrors ``ROW_NUMBER() OVER (ORDER BY stable_id)`` on a text column.
    ``numeric_ids`` compares all-digit stable IDs as integers instead. When
    ``sort_attribute`` is set, rows are ordered by that attribute first and the
    stable ID breaks ties. ``source_order`` numbers rows in the order the source
    delivered them.
    """

    sort_attribute: str | None = None
    numeric_ids: bool = False
    source_order: bool = False


@dataclass(frozen=True, slots=True)
class RosterSourceConfig:
    """Holds the roster endpoint and how to reach it."""

    url: str
    resilience: ResilienceConfig
    api_token: str | None = None


def get_roster_ordering_config() -> RosterOrderingConfig:
    return RosterOrderingConfig(
        sort_attribute=optional_env_var("ROSTER_SORT_ATTRIBUTE"),
        numeric_ids=env_bool("ROSTER_NUMERIC_IDS", False),
        source_order=env_bool("ROSTER_SOURCE_ORDER", False),
    )


def get_roster_source_config(*, resilience: ResilienceConfig | None = None) -> RosterSourceConfig:
    values = require_env_vars(("ROSTER_SOURCE_URL",))
    retries = env_int("ROSTER_FETCH_RETRIES", DEFAULT_ROSTER_RETRIES, minimum=0)
    cache_ttl = env_int("ROSTER_CACHE_TTL_SECONDS", 0, minimum=0)
    cache = (
        CacheConfig(backend="sqlite", default_ttl_seconds=float(cache_ttl)) if cache_ttl else None
    )
    return RosterSourceConfig(
        url=values["ROSTER_SOURCE_URL"],
        api_token=optional_env_var("ROSTER_API_TOKEN"),
        resilience=resilience
        or ResilienceConfig(
            name="roster",
            timeout_seconds=ROSTER_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=retries),
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            cache=cache,
        ),
    )
