"""Result cache routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from ..cache import CacheError, ResultCache
from ..logging_config import get_logger

logger = get_logger(__name__, namespace='api')

router = APIRouter(prefix="/api/cache", tags=["cache"])

# Opened once per process; lives as long as the server
_result_cache: Optional[ResultCache] = None


def get_result_cache() -> ResultCache:
    """Get or create the process-wide result cache."""
    global _result_cache
    if _result_cache is None:
        _result_cache = ResultCache()
    return _result_cache


@router.get("/stats")
async def cache_stats():
    """Number of cached files."""
    try:
        return await get_result_cache().stats()
    except CacheError as e:
        logger.error("Cache stats failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("")
async def clear_cache():
    """Remove every cached result."""
    try:
        await get_result_cache().clear()
    except CacheError as e:
        logger.error("Cache clear failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e))
    return {'status': 'cleared'}
