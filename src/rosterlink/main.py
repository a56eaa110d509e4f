#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from rosterlink.adapters.roster import FileRosterFetcher
from rosterlink.app import (
    build_roster_fetcher,
    lookup_ordinal,
    lookup_stable_id,
    mapping_history,
    mark_verified,
    reconcile_roster,
    resolve_annotations,
    run_cycle,
    verify_consistency,
)
from rosterlink.config import configure_logging
from rosterlink.domain.errors import InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from rosterlink.domain.verification import VerificationReport

log = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_VIOLATIONS = 3


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rosterlink",
        description="Reconcile roster ordinals with stable employee IDs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    reconcile = commands.add_parser("reconcile", help="Update the mapping from a fresh roster")
    reconcile.add_argument(
        "--rebuild",
        action="store_true",
        help="Retire every current mapping entry and install the snapshot from scratch",
    )
    reconcile.add_argument("--roster-file", type=Path, help="Read the roster from a JSON file")

    resolve = commands.add_parser("resolve", help="Re-attribute annotations to stable IDs")
    resolve.add_argument(
        "--pending-only",
        action="store_true",
        help="Only annotations that were never resolved or are still unresolved",
    )
    resolve.add_argument("--workers", type=_positive_int, help="Resolver thread count")
    resolve.add_argument(
        "--trust-initial-mapping",
        action="store_true",
        default=None,
        help="Treat the first reconciliation as valid for older annotations",
    )

    verify = commands.add_parser("verify", help="Report invariant violations without mutating")
    verify.add_argument("--roster-file", type=Path, help="Check references against this roster")
    verify.add_argument(
        "--mark-verified",
        action="store_true",
        help="Acknowledge the latest run when the report is clean",
    )
    verify.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with status {EXIT_VIOLATIONS} when violations are found",
    )

    run = commands.add_parser("run", help="Reconcile, resolve and verify in one go")
    run.add_argument("--rebuild", action="store_true", help="Rebuild the mapping from scratch")
    run.add_argument("--roster-file", type=Path, help="Read the roster from a JSON file")
    run.add_argument("--pending-only", action="store_true", help="Only resolve open annotations")
    run.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with status {EXIT_VIOLATIONS} when violations are found",
    )

    lookup = commands.add_parser("lookup", help="Resolve an ordinal or a stable ID")
    target = lookup.add_mutually_exclusive_group(required=True)
    target.add_argument("--ordinal", type=_positive_int, help="Ordinal to resolve")
    target.add_argument("--stable-id", help="Stable ID to resolve")

    history = commands.add_parser("history", help="Show every mapping entry of a stable ID")
    history.add_argument("stable_id", help="Stable ID to inspect")
    return parser


def _print_report(report: VerificationReport) -> None:
    for line in report.summary_lines():
        print(line)


def _handle_report(report: VerificationReport, *, strict: bool) -> int:
    if not strict:
        return 0
    try:
        report.raise_for_violations()
    except InvariantViolationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_VIOLATIONS
    return 0


def _run_command(args: argparse.Namespace) -> int:  # noqa: PLR0911
    if args.command == "reconcile":
        outcome = reconcile_roster(
            source=build_roster_fetcher(args.roster_file),
            rebuild=args.rebuild,
        )
        run = outcome.run
        print(
            f"{len(run.added)} added, {len(run.removed)} removed, "
            f"{run.moved_count} moved, {run.stale_count} stale"
        )
        for moved in run.moved_sample:
            print(f"  moved {moved.stable_id}: {moved.previous_ordinal} -> {moved.ordinal}")
        return 0

    if args.command == "resolve":
        result = resolve_annotations(
            pending_only=args.pending_only,
            workers=args.workers,
            trust_initial_mapping=args.trust_initial_mapping,
        )
        print(
            f"{result.examined} examined, {len(result.changes)} changed, "
            f"{len(result.conflicts)} conflict(s), {result.unresolved_count} unresolved"
        )
        return 0

    if args.command == "verify":
        roster = FileRosterFetcher(args.roster_file)() if args.roster_file else None
        report = verify_consistency(roster=roster)
        _print_report(report)
        if args.mark_verified and report.is_clean:
            mark_verified()
        return _handle_report(report, strict=args.strict)

    if args.command == "run":
        source = build_roster_fetcher(args.roster_file)
        summary = run_cycle(source=source, rebuild=args.rebuild, pending_only=args.pending_only)
        for line in summary.lines():
            print(line)
        return _handle_report(summary.report, strict=args.strict)

    if args.command == "lookup":
        if args.ordinal is not None:
            stable_id = lookup_ordinal(args.ordinal)
            if stable_id is None:
                print(f"Ordinal {args.ordinal} is not mapped", file=sys.stderr)
                return EXIT_FATAL
            print(stable_id)
            return 0
        found = lookup_stable_id(args.stable_id)
        if found is None:
            print(f"Stable ID {args.stable_id} is not mapped", file=sys.stderr)
            return EXIT_FATAL
        print(f"{found.stable_id}\t{found.ordinal}\t{found.display_name}")
        return 0

    entries = mapping_history(args.stable_id)
    if not entries:
        print(f"No mapping history for {args.stable_id}", file=sys.stderr)
        return EXIT_FATAL
    for entry in entries:
        until = entry.superseded_at.isoformat() if entry.superseded_at else "current"
        print(f"{entry.ordinal}\t{entry.state.value}\t{entry.created_at.isoformat()}\t{until}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    except SystemExit as exc:
        sys.exit(EXIT_USAGE if exc.code not in (0, None) else 0)

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        status = _run_command(args)
    except Exception as e:  # noqa: BLE001
        log.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL)

    if status:
        sys.exit(status)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()
