"""CLI entrypoint for bench-history"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from history_logging import setup_logging

from .config import Settings
from .errors import HistoryError
from .history_file import append_to_file, fetch_history, read_history, write_history
from .state_paths import resolve_history_path
from .store import latest_entry, measurement_names, query, serialize

logger = logging.getLogger(__name__)


def _format_ms(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _resolve_file(args: argparse.Namespace, settings: Settings) -> Path:
    return resolve_history_path(args.file) if args.file else settings.history_file


def cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    path = _resolve_file(args, settings)
    document = read_history(path)

    print(f"Repository:  {document.repo_url}")
    print(f"Last update: {_format_ms(document.last_update)}")
    if not document.entries:
        print("No suites recorded.")
        return 0

    for suite_name, entries in document.entries.items():
        latest = latest_entry(document, suite_name)
        print()
        print(f"Suite: {suite_name} ({len(entries)} entries)")
        if latest is not None:
            print(f"  Latest: {latest.commit.short_id} {_format_ms(latest.date)} [{latest.tool}]")
        names = measurement_names(document, suite_name)
        print(f"  Measurements: {', '.join(names) if names else '-'}")
    return 0


def cmd_query(args: argparse.Namespace, settings: Settings) -> int:
    path = _resolve_file(args, settings)
    suite = args.suite or settings.suite
    document = read_history(path)
    series = query(document, suite, args.name)

    if args.json:
        points = [point._asdict() for point in series]
        print(json.dumps(points, indent=2, ensure_ascii=False))
        return 0

    found = False
    for point in series:
        found = True
        print(f"{_format_ms(point.date)}  {point.value} {point.unit}  ({point.range})")
    if not found:
        logger.warning(f"No measurements named '{args.name}' in suite '{suite}'")
    return 0


def cmd_append(args: argparse.Namespace, settings: Settings) -> int:
    path = _resolve_file(args, settings)
    suite = args.suite or settings.suite

    if args.entry == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(args.entry).expanduser().read_text(encoding="utf-8")
    try:
        entry = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Entry is not valid JSON: {e}", file=sys.stderr)
        return 1
    if not isinstance(entry, dict):
        print("Entry must be a JSON object", file=sys.stderr)
        return 1

    document = append_to_file(path, suite, entry, repo_url=args.repo_url or settings.repo_url or None)
    print(f"Appended to '{suite}' in {path} ({len(document.entries[suite])} entries)")
    return 0


def cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    path = _resolve_file(args, settings)
    document = read_history(path)
    wrapper = args.format == "js"

    if args.output:
        written = write_history(Path(args.output).expanduser(), document, wrapper=wrapper)
        print(f"Exported history to {written}")
    else:
        print(serialize(document, wrapper=wrapper))
    return 0


def cmd_fetch(args: argparse.Namespace, settings: Settings) -> int:
    document = fetch_history(args.url, timeout=settings.fetch_timeout)
    total = sum(len(entries) for entries in document.entries.values())

    if args.output:
        written = write_history(Path(args.output).expanduser(), document)
        print(f"Saved {total} entries to {written}")
    else:
        print(f"{document.repo_url}: {total} entries in {len(document.entries)} suites")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bench-history",
        description="Inspect and extend append-only benchmark histories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Summarize the configured history file
  bench-history show

  # Print the map_put series
  bench-history --file gh-pages/dev/bench/data.js query map_put

  # Append a run recorded by the benchmark job
  bench-history append entry.json --suite Benchmark

Environment Variables:
  BENCH_HISTORY_FILE           History file (default: <state dir>/data.js)
  BENCH_HISTORY_SUITE          Default suite name (default: Benchmark)
  BENCH_HISTORY_REPO_URL       Repository URL used when creating a new history
  BENCH_HISTORY_STATE_DIR      State directory (default: ~/.local/state/bench-history)
  BENCH_HISTORY_FETCH_TIMEOUT  HTTP timeout in seconds (default: 30)
  LOG_LEVEL                    Logging level (default: INFO)
        """,
    )
    parser.add_argument("--file", help="History file (overrides BENCH_HISTORY_FILE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Summarize suites and measurements")
    show.set_defaults(func=cmd_show)

    query_parser = subparsers.add_parser("query", help="Print one measurement's history")
    query_parser.add_argument("name", help="Measurement name, e.g. map_put")
    query_parser.add_argument("--suite", help="Suite name (default: BENCH_HISTORY_SUITE)")
    query_parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    query_parser.set_defaults(func=cmd_query)

    append_parser = subparsers.add_parser("append", help="Append one entry from a JSON file")
    append_parser.add_argument("entry", help="Path to the entry JSON, or - for stdin")
    append_parser.add_argument("--suite", help="Suite name (default: BENCH_HISTORY_SUITE)")
    append_parser.add_argument("--repo-url", help="Repository URL when creating a new history")
    append_parser.set_defaults(func=cmd_append)

    export = subparsers.add_parser("export", help="Write the canonical serialization")
    export.add_argument("--output", help="Destination file (default: stdout)")
    export.add_argument("--format", choices=("js", "json"), default="js")
    export.set_defaults(func=cmd_export)

    fetch = subparsers.add_parser("fetch", help="Download and validate a published history")
    fetch.add_argument("url", help="URL of a published data.js or JSON history")
    fetch.add_argument("--output", help="Save the history to this file")
    fetch.set_defaults(func=cmd_fetch)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        "bench_history",
        log_dir=settings.log_dir / "bench_history",
        log_level="DEBUG" if args.verbose else settings.log_level,
    )

    try:
        return args.func(args, settings)
    except HistoryError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
