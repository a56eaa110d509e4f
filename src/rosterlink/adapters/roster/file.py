"""Roster reader for exported JSON or JSON-lines files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from rosterlink.domain.errors import SnapshotFetchError
from rosterlink.domain.ports import RosterFetcher

from .schema import parse_roster_payload
from .translator import build_snapshot

if TYPE_CHECKING:
    from rosterlink.domain.model import RosterSnapshot

log = getLogger(__name__)

JSON_LINES_SUFFIXES = frozenset({".jsonl", ".ndjson"})


@dataclass(slots=True)
class FileRosterFetcher:
    path: Path

    def __call__(self) -> RosterSnapshot:
        source = str(self.path)
        try:
            text = Path(self.path).read_text(encoding="utf-8")
        except OSError as exc:
            raise SnapshotFetchError(f"Cannot read roster file: {exc}", source=source) from exc
        try:
            payload = self._decode(text)
            rows = parse_roster_payload(payload)
        except json.JSONDecodeError as exc:
            raise SnapshotFetchError(
                f"Roster file is not valid JSON (line {exc.lineno})",
                source=source,
            ) from exc
        except ValidationError as exc:
            raise SnapshotFetchError(
                f"Roster file failed validation: {exc.error_count()} error(s)",
                source=source,
            ) from exc
        log.info("Loaded %d roster row(s) from %s", len(rows), source)
        return build_snapshot(rows)

    def _decode(self, text: str) -> object:
        if Path(self.path).suffix.lower() in JSON_LINES_SUFFIXES:
            return [json.loads(line) for line in text.splitlines() if line.strip()]
        return json.loads(text)


if TYPE_CHECKING:
    _fetcher_check: RosterFetcher = FileRosterFetcher(Path("roster.json"))
