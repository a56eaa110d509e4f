"""Error taxonomy for reconciliation, attribution and verification."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rosterlink.domain.verification import InvariantViolation


class RosterLinkError(RuntimeError):
    """Base class for domain failures."""


class SnapshotFetchError(RosterLinkError):
    """Raised when the roster source cannot deliver a usable snapshot.

    Transient failures are retried by the transport before this surfaces; once it
    does, the reconciliation run aborts without touching the stored mapping.
    """

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class DuplicateStableIdError(RosterLinkError):
    """Raised when two ordinals of one batch claim the same stable ID."""

    def __init__(self, stable_id: str, ordinals: Sequence[int]) -> None:
        ordinal_list = ", ".join(str(ordinal) for ordinal in sorted(ordinals))
        super().__init__(f"Stable id {stable_id!r} claimed by ordinals {ordinal_list}")
        self.stable_id = stable_id
        self.ordinals = tuple(sorted(ordinals))


class DuplicateOrdinalError(RosterLinkError):
    """Raised when one batch assigns the same ordinal to two different stable IDs."""

    def __init__(self, ordinal: int, stable_ids: Sequence[str]) -> None:
        super().__init__(f"Ordinal {ordinal} assigned to {', '.join(sorted(stable_ids))}")
        self.ordinal = ordinal
        self.stable_ids = tuple(sorted(stable_ids))


class AmbiguousAttributionError(RosterLinkError):
    """Raised inside the content tier when matchers do not converge on one stable ID."""

    def __init__(self, reason: str, candidates: Sequence[str] = ()) -> None:
        detail = f" ({', '.join(sorted(candidates))})" if candidates else ""
        super().__init__(f"{reason}{detail}")
        self.reason = reason
        self.candidates = tuple(sorted(candidates))


class InvariantViolationError(RosterLinkError):
    """Raised on request when a verification report contains invariant violations."""

    def __init__(self, violations: Sequence[InvariantViolation]) -> None:
        kinds = sorted({violation.kind.value for violation in violations})
        super().__init__(f"{len(violations)} invariant violation(s): {', '.join(kinds)}")
        self.violations = tuple(violations)


__all__ = [
    "AmbiguousAttributionError",
    "DuplicateOrdinalError",
    "DuplicateStableIdError",
    "InvariantViolationError",
    "RosterLinkError",
    "SnapshotFetchError",
]
