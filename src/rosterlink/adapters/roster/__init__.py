"""Roster snapshot readers."""

from __future__ import annotations

from .client import HttpRosterFetcher
from .file import FileRosterFetcher
from .schema import EmployeePayload, RosterEnvelope, parse_roster_payload
from .translator import build_snapshot, parse_employee

__all__ = [
    "EmployeePayload",
    "FileRosterFetcher",
    "HttpRosterFetcher",
    "RosterEnvelope",
    "build_snapshot",
    "parse_employee",
    "parse_roster_payload",
]
