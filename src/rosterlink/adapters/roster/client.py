"""HTTP reader for the roster system of record."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from rosterlink.adapters.http_resilience import ResilientClient
from rosterlink.config import RosterSourceConfig, get_roster_source_config
from rosterlink.domain.errors import SnapshotFetchError
from rosterlink.domain.ports import RosterFetcher

from .schema import parse_roster_payload
from .translator import build_snapshot

if TYPE_CHECKING:
    from collections.abc import Callable

    from rosterlink.config import ResilienceConfig
    from rosterlink.domain.model import RosterSnapshot

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpRosterFetcher:
    """Fetch the full roster from a JSON endpoint.

    Transient failures are retried by the transport; whatever still fails, including
    a payload that does not validate, surfaces as ``SnapshotFetchError``.
    """

    config: RosterSourceConfig = field(default_factory=get_roster_source_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(self) -> RosterSnapshot:
        return asyncio.run(self._fetch_async())

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        return headers

    async def _fetch_async(self) -> RosterSnapshot:
        url = self.config.url
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.get(url, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.error("Roster source %s answered HTTP %d", url, status)
            raise SnapshotFetchError(f"Roster source answered HTTP {status}", source=url) from exc
        except httpx.HTTPError as exc:
            log.error("Roster source %s unreachable: %s", url, exc)
            raise SnapshotFetchError(f"Roster source unreachable: {exc}", source=url) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SnapshotFetchError("Roster source returned invalid JSON", source=url) from exc
        try:
            rows = parse_roster_payload(payload)
        except ValidationError as exc:
            raise SnapshotFetchError(
                f"Roster payload failed validation: {exc.error_count()} error(s)",
                source=url,
            ) from exc
        snapshot = build_snapshot(rows)
        log.debug("Roster source %s returned %d employees", url, len(snapshot))
        return snapshot


if TYPE_CHECKING:
    _fetcher_check: RosterFetcher = HttpRosterFetcher()
