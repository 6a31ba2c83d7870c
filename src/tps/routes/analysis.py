"""Analysis routes."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..config import CLAUDE_PROJECTS_DIR, DEFAULT_PERIOD
from ..logging_config import get_log_buffer_handler, get_logger
from ..processing import (
    PERIODS,
    NoValidFilesError,
    aggregate_by_period,
    discover_jsonl_files,
    points_for_model,
    process_files,
    sessions_for_model,
)
from .cache import get_result_cache

logger = get_logger(__name__, namespace='api')

router = APIRouter(prefix="/api", tags=["analysis"])


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    directory: Optional[str] = None
    files: Optional[list[str]] = None
    period: str = DEFAULT_PERIOD
    use_cache: bool = Field(default=True, alias='useCache')
    model: Optional[str] = None


@router.post("/analyze")
async def analyze(request: AnalyzeRequest):
    """Analyze session files and aggregate them by period.

    Files come from the explicit list if given, otherwise from a recursive
    scan of the directory (default: the Claude projects directory). When a
    model is given, period stats and the sessions list cover only that model;
    the report itself always covers the whole run.
    """
    if request.files:
        files = [Path(f) for f in request.files]
    else:
        directory = Path(request.directory).expanduser() if request.directory else CLAUDE_PROJECTS_DIR
        if not directory.is_dir():
            raise HTTPException(status_code=400, detail=f"Directory not found: {directory}")
        files = discover_jsonl_files(directory)

    logger.info("Analyze request: %d candidate file(s), period=%s", len(files), request.period)
    cache = get_result_cache() if request.use_cache else None

    try:
        report = await process_files(files, cache=cache)
    except NoValidFilesError as e:
        raise HTTPException(status_code=400, detail=str(e))

    points = points_for_model(report.all_metric_points, request.model)

    return {
        'period': request.period,
        'model': request.model,
        'periodStats': aggregate_by_period(points, request.period),
        'sessions': sessions_for_model(report.sessions, request.model),
        'report': report,
    }


@router.get("/periods")
def list_periods():
    """List the supported aggregation periods."""
    return {'periods': list(PERIODS), 'default': DEFAULT_PERIOD}


@router.get("/logs")
def get_logs(count: int = 100):
    """Recent log entries from the in-memory buffer."""
    return {'logs': get_log_buffer_handler().get_history(count)}
