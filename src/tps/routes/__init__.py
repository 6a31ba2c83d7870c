"""Route modules for the throughput analyzer API."""

from .analysis import router as analysis_router
from .cache import router as cache_router

__all__ = [
    'analysis_router',
    'cache_router',
]
