from __future__ import annotations

import pytest

from rosterlink.config import (
    InvalidConfigurationValueError,
    MissingConfigurationError,
    env_bool,
    env_int,
    get_reconciliation_config,
    get_roster_ordering_config,
    get_roster_source_config,
    optional_env_var,
    require_env_vars,
)


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FIRST_VAR", raising=False)
    monkeypatch.setenv("SECOND_VAR", "  ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["SECOND_VAR", "FIRST_VAR"])

    assert "FIRST_VAR, SECOND_VAR" in str(exc.value)


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLANK_VAR", "   ")
    monkeypatch.setenv("SET_VAR", " value ")

    assert optional_env_var("BLANK_VAR") is None
    assert optional_env_var("SET_VAR") == "value"


def test_env_int_validates_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNT_VAR", "7")
    assert env_int("COUNT_VAR", 1) == 7
    assert env_int("UNSET_COUNT_VAR", 3) == 3

    monkeypatch.setenv("COUNT_VAR", "seven")
    with pytest.raises(InvalidConfigurationValueError, match="an integer"):
        env_int("COUNT_VAR", 1)

    monkeypatch.setenv("COUNT_VAR", "0")
    with pytest.raises(InvalidConfigurationValueError, match=">= 1"):
        env_int("COUNT_VAR", 1, minimum=1)


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("YES", True), ("off", False)])
def test_env_bool_parses_flags(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: bool,  # noqa: FBT001
) -> None:
    monkeypatch.setenv("FLAG_VAR", raw)

    assert env_bool("FLAG_VAR", not expected) is expected


def test_env_bool_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLAG_VAR", "maybe")

    with pytest.raises(InvalidConfigurationValueError):
        env_bool("FLAG_VAR", False)


def test_roster_source_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROSTER_SOURCE_URL", "https://roster.example.com/employees")
    monkeypatch.setenv("ROSTER_API_TOKEN", "token")
    monkeypatch.setenv("ROSTER_FETCH_RETRIES", "2")
    monkeypatch.setenv("ROSTER_CACHE_TTL_SECONDS", "60")

    config = get_roster_source_config()

    assert config.url == "https://roster.example.com/employees"
    assert config.api_token == "token"
    assert config.resilience.retry.total == 2
    assert config.resilience.cache is not None
    assert config.resilience.cache.default_ttl_seconds == 60.0


def test_roster_source_config_requires_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ROSTER_SOURCE_URL", raising=False)

    with pytest.raises(MissingConfigurationError, match="ROSTER_SOURCE_URL"):
        get_roster_source_config()


def test_roster_ordering_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ROSTER_SORT_ATTRIBUTE", "ROSTER_NUMERIC_IDS", "ROSTER_SOURCE_ORDER"):
        monkeypatch.delenv(name, raising=False)

    ordering = get_roster_ordering_config()

    assert ordering.sort_attribute is None
    assert not ordering.numeric_ids
    assert not ordering.source_order


def test_reconciliation_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROSTERLINK_MOVED_SAMPLE_SIZE", "5")
    monkeypatch.setenv("ROSTERLINK_RESOLVER_WORKERS", "8")
    monkeypatch.setenv("ROSTERLINK_TRUST_INITIAL_MAPPING", "yes")

    config = get_reconciliation_config()

    assert config.moved_sample_size == 5
    assert config.resolver_workers == 8
    assert config.trust_initial_mapping


def test_reconciliation_config_rejects_zero_workers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROSTERLINK_RESOLVER_WORKERS", "0")

    with pytest.raises(InvalidConfigurationValueError, match="ROSTERLINK_RESOLVER_WORKERS"):
        get_reconciliation_config()
