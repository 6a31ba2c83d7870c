"""Command-line report for session JSONL directories.

Usage:
    python -m src.tps.cli ~/.claude/projects --period dayOfWeek
    python -m src.tps.cli ./logs --json --no-cache
    python -m src.tps.cli ./logs --model claude-sonnet-4-5 --period day
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .cache import CacheError, ResultCache
from .config import CACHE_DB_PATH, CLAUDE_PROJECTS_DIR, DEFAULT_PERIOD, UNKNOWN_MODEL
from .logging_config import get_logger, setup_logging
from .models import AggregationBucket, ModelStats, Report, SessionSummary
from .processing import (
    PERIODS,
    NoValidFilesError,
    aggregate_by_period,
    discover_jsonl_files,
    points_for_model,
    process_files,
    sessions_for_model,
)
from .processing.aggregation import resolve_timezone

logger = get_logger(__name__, namespace='pipeline')


def print_progress(processed: int, total: int):
    percentage = (processed / total) * 100 if total else 100
    print(f"\rProcessing {processed}/{total} files... {percentage:.0f}%", end='', file=sys.stderr, flush=True)


def format_period_table(buckets: list[AggregationBucket]) -> str:
    lines = [f"{'Period':<20} {'Turns':>6} {'Tokens':>12} {'Avg TPS':>9} {'p50':>9} {'p95':>9}"]
    for b in buckets:
        lines.append(
            f"{str(b.label):<20} {b.count:>6} {b.total_tokens:>12,} "
            f"{b.average_tps:>9.1f} {b.tps_percentiles.p50:>9.1f} {b.tps_percentiles.p95:>9.1f}"
        )
    return '\n'.join(lines)


def format_model_table(stats: list[ModelStats]) -> str:
    lines = [f"{'Model':<36} {'Turns':>6} {'Tokens':>12} {'Avg TPS':>9} {'Avg OTPS':>9}"]
    for s in stats:
        lines.append(
            f"{s.model:<36} {s.turn_count:>6} {s.total_tokens:>12,} "
            f"{s.average_tps:>9.1f} {s.average_otps:>9.1f}"
        )
    return '\n'.join(lines)


def format_session_table(sessions: list[SessionSummary]) -> str:
    zone = resolve_timezone()
    lines = [f"{'Session ID':<36} {'Date & Time':<19} {'Turns':>6} {'Tokens':>12} {'Avg TPS':>9}  Models"]
    for s in sessions:
        lines.append(
            f"{s.id:<36} {s.timestamp.astimezone(zone):%Y-%m-%d %H:%M:%S} {s.turn_count:>6} "
            f"{s.total_tokens:>12,} {s.average_tps:>9.1f}  {', '.join(s.models) or UNKNOWN_MODEL}"
        )
    return '\n'.join(lines)


def format_report(
    report: Report,
    period: str,
    buckets: list[AggregationBucket],
    sessions: list[SessionSummary],
    model: str | None = None,
) -> str:
    s = report.summary
    header = [
        f"Files: {s.files_scanned} scanned, {s.files_processed} processed "
        f"({s.files_from_cache} from cache), {s.files_skipped} skipped, "
        f"{s.files_failed} failed, {s.files_rejected} rejected",
        f"Sessions: {s.total_sessions}  Turns: {s.total_turns}  "
        f"Tokens: {s.total_tokens:,} (in {s.total_input_tokens:,} / out {s.total_output_tokens:,})",
        f"Average TPS {s.average_tps:.1f}  ITPS {s.average_itps:.1f}  OTPS {s.average_otps:.1f}",
        f"TPS p50 {s.tps_percentiles.p50:.1f}  p75 {s.tps_percentiles.p75:.1f}  "
        f"p95 {s.tps_percentiles.p95:.1f}  max {s.tps_percentiles.p_max:.1f}",
    ]
    scope = f" (model {model})" if model else ''
    return '\n\n'.join([
        '\n'.join(header),
        f"By {period}{scope}:\n{format_period_table(buckets)}",
        f"By model:\n{format_model_table(report.model_stats)}",
        f"Sessions{scope}, newest first:\n{format_session_table(sessions)}",
    ])


async def run(args: argparse.Namespace) -> int:
    if args.clear_cache:
        try:
            await ResultCache(args.cache_db).clear()
        except CacheError as e:
            logger.warning("Could not clear cache: %s", e)

    cache = None if args.no_cache else ResultCache(args.cache_db)

    directory = Path(args.directory).expanduser()
    if not directory.is_dir():
        print(f"Error: directory not found: {directory}", file=sys.stderr)
        return 1

    files = discover_jsonl_files(directory)
    try:
        report = await process_files(files, on_progress=print_progress, cache=cache)
    except NoValidFilesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(file=sys.stderr)

    buckets = aggregate_by_period(points_for_model(report.all_metric_points, args.model), args.period)
    sessions = sessions_for_model(report.sessions, args.model)

    if args.json:
        output = {
            'period': args.period,
            'model': args.model,
            'periodStats': [b.model_dump(mode='json', by_alias=True) for b in buckets],
            'sessions': [s.model_dump(mode='json', by_alias=True) for s in sessions],
            'report': report.model_dump(mode='json', by_alias=True),
        }
        print(json.dumps(output, indent=2))
    else:
        print(format_report(report, args.period, buckets, sessions, args.model))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Token throughput report for Claude session logs")
    parser.add_argument('directory', nargs='?', default=str(CLAUDE_PROJECTS_DIR),
                        help='Directory scanned recursively for <uuid>.jsonl files')
    parser.add_argument('--period', default=DEFAULT_PERIOD, choices=PERIODS,
                        help='Aggregation period')
    parser.add_argument('--model', help='Limit period stats and the sessions list to one model')
    parser.add_argument('--json', action='store_true', help='Print the full report as JSON')
    parser.add_argument('--no-cache', action='store_true', help='Ignore the result cache')
    parser.add_argument('--clear-cache', action='store_true', help='Empty the cache before running (also with --no-cache)')
    parser.add_argument('--cache-db', type=Path, default=CACHE_DB_PATH, help='Cache database path')
    args = parser.parse_args(argv)

    setup_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
