# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from bootkeep.app import add_item, build_engine, reconcile, remove_item
from bootkeep.config import ConfigurationError, configure_logging
from bootkeep.domain.errors import (
    ReconciliationFailedError,
    SubsystemNotFoundError,
)
from bootkeep.domain.model import Item
from bootkeep.domain.reconciliation import (
    AggregateReport,
    CancellationToken,
    Operation,
    supports,
)
from bootkeep.domain.reconciliation.contracts import EXIT_ATTENTION, EXIT_CALLER_ERROR

from .render import aggregate_json, render_table, render_text

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from bootkeep.domain.reconciliation import ReconciliationEngine, SubsystemOutcome

log = logging.getLogger(__name__)

_PASS_COMMANDS: dict[str, Operation] = {
    "staged": Operation.STAGED,
    "sync": Operation.SYNC,
    "capture": Operation.CAPTURE,
    "drift": Operation.DRIFT,
    "baseline": Operation.BASELINE,
}

_cancel = CancellationToken()


def _parse_source(value: str) -> tuple[str, str]:
    key, sep, rest = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {value!r}")
    return key, rest


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bootkeep",
        description="Reconcile declared, running and staged package state",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log adapter commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    staged = subparsers.add_parser("staged", help="Show what changes after the next reboot")
    sync = subparsers.add_parser("sync", help="Converge runtime state to the manifest")
    sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan actions without applying or recording anything",
    )
    capture = subparsers.add_parser(
        "capture", help="Record current state as manifest and baseline"
    )
    drift = subparsers.add_parser("drift", help="Compare runtime state against the manifest")
    baseline = subparsers.add_parser("baseline", help="Record current state as the baseline")
    baseline.add_argument(
        "--force",
        action="store_true",
        help="Record the baseline even when the manifest disagrees with it",
    )
    for command in (staged, sync, capture, drift, baseline):
        command.add_argument(
            "subsystems",
            nargs="*",
            metavar="SUBSYSTEM",
            help="Subsystem ids (default: every subsystem supporting the command)",
        )

    add = subparsers.add_parser("add", help="Declare an item (and apply it where possible)")
    add.add_argument("subsystem", help="Subsystem id")
    add.add_argument("item", help="Item id")
    add.add_argument("--version", dest="fingerprint", help="Version or config fingerprint")
    add.add_argument(
        "--source",
        action="append",
        type=_parse_source,
        default=[],
        metavar="KEY=VALUE",
        help="Adapter metadata, e.g. remote=flathub (repeatable)",
    )
    remove = subparsers.add_parser("remove", help="Drop an item (and remove it where possible)")
    remove.add_argument("subsystem", help="Subsystem id")
    remove.add_argument("item", help="Item id")
    for command in (add, remove):
        command.add_argument(
            "--defer",
            action="store_true",
            help="Only record the change in the manifest",
        )

    subparsers.add_parser("subsystems", help="List registered subsystems and their tiers")

    return parser.parse_args(list(argv))


def _emit_report(report: AggregateReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(aggregate_json(report), indent=2))
    else:
        print(render_text(report))


def _emit_outcome(outcome: SubsystemOutcome, *, as_json: bool) -> int:
    report = AggregateReport(operation=outcome.operation, outcomes={outcome.subsystem_id: outcome})
    _emit_report(report, as_json=as_json)
    return report.exit_code


def _list_subsystems(engine: ReconciliationEngine) -> None:
    rows: list[tuple[str, ...]] = [("SUBSYSTEM", "NAME", "TIER", "COMMANDS")]
    rows.extend(
        (
            subsystem.id,
            subsystem.name,
            str(subsystem.tier),
            ",".join(op for op in Operation if supports(subsystem.tier, op)),
        )
        for subsystem in engine.registry.all()
    )
    print("\n".join(render_table(rows)))


def _run_command(args: argparse.Namespace) -> int:
    if args.command in _PASS_COMMANDS:
        report = reconcile(
            _PASS_COMMANDS[args.command],
            args.subsystems,
            dry_run=getattr(args, "dry_run", False),
            force=getattr(args, "force", False),
            cancel=_cancel,
        )
        _emit_report(report, as_json=args.json)
        return report.exit_code
    if args.command == "add":
        item = Item(args.item, args.fingerprint, dict(args.source))
        return _emit_outcome(add_item(args.subsystem, item, defer=args.defer), as_json=args.json)
    if args.command == "remove":
        outcome = remove_item(args.subsystem, args.item, defer=args.defer)
        return _emit_outcome(outcome, as_json=args.json)
    if args.command == "subsystems":
        _list_subsystems(build_engine())
        return 0
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Main application entry point; returns the process exit code."""

    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(verbose=parsed_args.verbose, force=parsed_args.verbose)

    try:
        return _run_command(parsed_args)
    except (SubsystemNotFoundError, ConfigurationError, ValueError) as exc:
        log.error("%s", exc)  # noqa: TRY400
        return EXIT_CALLER_ERROR
    except ReconciliationFailedError as exc:
        _emit_report(exc.report, as_json=parsed_args.json)
        log.error("%s", exc)  # noqa: TRY400
        return EXIT_ATTENTION
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        return EXIT_ATTENTION


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """First Ctrl+C skips subsystems not yet started; the second one exits."""

    if _cancel.cancelled:
        log.info("Closed by user (Ctrl+C)")
        sys.exit(EXIT_ATTENTION)
    log.warning("Cancelling: subsystems not yet started will be skipped")
    _cancel.cancel()


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    sys.exit(main())


if __name__ == "__main__":
    run()
