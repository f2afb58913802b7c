"""Developer CLI: render an entry or invoke the handler locally."""

import argparse
import sys
from datetime import date, datetime
from typing import Optional

from daylog import __version__
from daylog.command import CommandHandler, format_entry, system_clock
from daylog.config import ConfigError, load_config
from daylog.log import setup_logging
from daylog.token_store import resolve_token


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="daylog", description="Daily log slash command")
    parser.add_argument("--config", help="Path to config file (default: ~/.daylog/config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    render_parser = subparsers.add_parser("render", help="Print the entry for TEXT")
    render_parser.add_argument("text", help="Entry text")
    render_parser.add_argument("--date", type=_parse_date, help="Entry date (default: today)")

    invoke_parser = subparsers.add_parser("invoke", help="Run the handler on a form-encoded BODY")
    invoke_parser.add_argument("body", help="Request body, e.g. 'token=...&text=...'")
    invoke_parser.add_argument("--date", type=_parse_date, help="Pin the clock to this date")

    return parser


def _clock_for(config: dict, pinned: Optional[date]):
    if pinned is None:
        return system_clock(config["command"]["timezone"])
    fixed = datetime(pinned.year, pinned.month, pinned.day)
    return lambda: fixed


def main(argv: Optional[list[str]] = None) -> int:
    """Run the CLI. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[daylog] Config error: {e}", file=sys.stderr)
        return 1

    command = config["command"]
    clock = _clock_for(config, args.date)

    if args.command == "render":
        print(format_entry(args.text, clock(), command["heading"], command["tag"]))
        return 0

    try:
        token = resolve_token(config)
    except ConfigError as e:
        print(f"[daylog] Config error: {e}", file=sys.stderr)
        return 1

    handler = CommandHandler(token, clock=clock, heading=command["heading"], tag=command["tag"])
    result = handler.handle(args.body)
    print(result.status_code)
    print(result.body)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
