"""Batch processing of session files into a throughput report.

Files are handled one at a time, in input order. A failure in one file is
logged and counted; it never stops the batch.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..cache import CacheError, ResultCache
from ..config import SESSION_FILE_EXTENSION, SESSION_FILENAME_PATTERN
from ..logging_config import get_logger
from ..models import CachedFileResult, MetricPoint, Report, RunSummary, SessionSummary
from ..utils import OrderedSet, safe_mean
from .aggregation import aggregate_by_model
from .parser import parse_jsonl
from .percentiles import calculate_percentiles
from .turns import calculate_tps

logger = get_logger(__name__, namespace='pipeline')

ProgressCallback = Callable[[int, int], None]


class NoValidFilesError(Exception):
    """Raised when none of the candidate files follow the <uuid>.jsonl convention."""

    def __init__(self, files_scanned: int):
        self.files_scanned = files_scanned
        super().__init__(
            f"No valid JSONL files found ({files_scanned} candidate(s); "
            "files must be named [uuid].jsonl)"
        )


def is_valid_session_filename(name: str) -> bool:
    """Check a filename against the <uuid>.jsonl convention."""
    return bool(SESSION_FILENAME_PATTERN.match(name))


def discover_jsonl_files(directory: Path) -> list[Path]:
    """Recursively list JSONL files under a directory, sorted by path."""
    return sorted(p for p in Path(directory).rglob(f"*{SESSION_FILE_EXTENSION}") if p.is_file())


def file_key(path: Path) -> str:
    """Cache key for a file: name:size:mtime in epoch milliseconds."""
    stat = path.stat()
    return f"{path.name}:{stat.st_size}:{stat.st_mtime_ns // 1_000_000}"


def build_session_summary(
    path: Path,
    points: list[MetricPoint],
    first_timestamp: Optional[datetime],
) -> SessionSummary:
    """Summarize one file's turns."""
    models: OrderedSet[str] = OrderedSet(p.model for p in points if p.model)

    return SessionSummary(
        id=path.name.removesuffix(SESSION_FILE_EXTENSION),
        filename=path.name,
        turn_count=len(points),
        total_tokens=sum(p.total_tokens for p in points),
        input_tokens=sum(p.input_tokens for p in points),
        output_tokens=sum(p.output_tokens for p in points),
        average_tps=safe_mean([p.tps for p in points]),
        average_itps=safe_mean([p.itps for p in points]),
        average_otps=safe_mean([p.otps for p in points]),
        timestamp=first_timestamp or datetime.now(timezone.utc),
        models=models.to_list(),
    )


async def compute_file_result(path: Path) -> CachedFileResult | None:
    """Parse and segment one file; None when it yields no usable turns."""
    content = await asyncio.to_thread(path.read_text, encoding='utf-8')
    parsed = parse_jsonl(content, path.name)

    if not parsed.events:
        logger.warning("%s: No valid user/assistant messages found", path.name)
        return None

    session_id = path.name.removesuffix(SESSION_FILE_EXTENSION)
    points = calculate_tps(parsed.events, session_id)

    if not points:
        logger.warning("%s: No valid TPS data calculated (no complete conversation turns)", path.name)
        return None

    session = build_session_summary(path, points, parsed.events[0].timestamp)
    return CachedFileResult(tps_data=points, session=session)


@dataclass
class BatchAccumulator:
    """Running state of a batch. Finalized once into an immutable Report."""
    files_scanned: int = 0
    files_rejected: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    files_from_cache: int = 0
    files_failed: int = 0
    total_tokens: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    sessions: list[SessionSummary] = field(default_factory=list)
    points: list[MetricPoint] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)

    def add_file(self, result: CachedFileResult, from_cache: bool = False):
        self.points.extend(result.tps_data)
        self.sessions.append(result.session)
        self.total_tokens += result.session.total_tokens
        self.total_input_tokens += result.session.input_tokens
        self.total_output_tokens += result.session.output_tokens
        self.files_processed += 1
        if from_cache:
            self.files_from_cache += 1

    def finalize(self) -> Report:
        model_stats = aggregate_by_model(self.points)
        elapsed = time.perf_counter() - self.started

        summary = RunSummary(
            files_scanned=self.files_scanned,
            files_rejected=self.files_rejected,
            files_processed=self.files_processed,
            files_skipped=self.files_skipped,
            files_from_cache=self.files_from_cache,
            files_failed=self.files_failed,
            total_sessions=len(self.sessions),
            total_turns=len(self.points),
            total_tokens=self.total_tokens,
            total_input_tokens=self.total_input_tokens,
            total_output_tokens=self.total_output_tokens,
            average_tps=safe_mean([p.tps for p in self.points]),
            average_itps=safe_mean([p.itps for p in self.points]),
            average_otps=safe_mean([p.otps for p in self.points]),
            tps_percentiles=calculate_percentiles(p.tps for p in self.points),
            itps_percentiles=calculate_percentiles(p.itps for p in self.points),
            otps_percentiles=calculate_percentiles(p.otps for p in self.points),
            models=[m.model for m in model_stats],
            elapsed_seconds=round(elapsed, 2),
        )

        logger.info(
            "Completed in %.2fs (%d processed, %d from cache, %d skipped, %d failed, "
            "%d rejected, %d sessions, %d turns)",
            elapsed, self.files_processed, self.files_from_cache, self.files_skipped,
            self.files_failed, self.files_rejected, len(self.sessions), len(self.points),
        )

        return Report(
            sessions=list(self.sessions),
            all_metric_points=list(self.points),
            model_stats=model_stats,
            summary=summary,
        )


async def _open_cache(cache: Optional[ResultCache]) -> Optional[ResultCache]:
    if cache is None:
        return None
    try:
        await cache.init()
    except CacheError as e:
        logger.warning("Failed to initialize cache, continuing without it: %s", e)
        return None
    return cache


async def _load_file(
    path: Path,
    store: Optional[ResultCache],
) -> tuple[CachedFileResult, bool] | None:
    """Result for one file and whether it came from the cache; None if skipped."""
    if store is None:
        result = await compute_file_result(path)
        return (result, False) if result is not None else None

    key = file_key(path)
    try:
        cached = await store.get(key)
    except CacheError as e:
        logger.warning("%s: Cache lookup failed, reprocessing: %s", path.name, e)
        cached = None

    if cached is not None:
        logger.debug("%s: Using cached data", path.name)
        return cached, True

    result = await compute_file_result(path)
    if result is None:
        return None

    try:
        await store.set(key, path.name, result)
    except CacheError as e:
        logger.warning("%s: Failed to cache data: %s", path.name, e)

    return result, False


async def process_files(
    files: Iterable[Path],
    on_progress: Optional[ProgressCallback] = None,
    cache: Optional[ResultCache] = None,
) -> Report:
    """Process session files into a throughput report.

    Args:
        files: Candidate JSONL files; names must follow <uuid>.jsonl
        on_progress: Called with (files_processed, total_files) after each
            file that contributes data
        cache: Optional result cache consulted before parsing

    Returns:
        Report with sessions, all metric points, model stats and summary

    Raises:
        NoValidFilesError: If no candidate file passes the naming check
    """
    candidates: Sequence[Path] = [Path(f) for f in files]
    admitted = [f for f in candidates if is_valid_session_filename(f.name)]

    acc = BatchAccumulator(
        files_scanned=len(candidates),
        files_rejected=len(candidates) - len(admitted),
    )

    if not admitted:
        raise NoValidFilesError(len(candidates))

    if acc.files_rejected:
        logger.warning("Skipped %d file(s) with non-UUID names", acc.files_rejected)

    logger.info("Starting to process %d file(s)", len(admitted))
    store = await _open_cache(cache)

    for path in admitted:
        try:
            loaded = await _load_file(path, store)
        except Exception as e:
            acc.files_failed += 1
            logger.error("%s: %s: %s", path.name, type(e).__name__, e)
            continue

        if loaded is None:
            acc.files_skipped += 1
            continue

        result, from_cache = loaded
        acc.add_file(result, from_cache=from_cache)

        if on_progress:
            on_progress(acc.files_processed, len(admitted))

    return acc.finalize()
