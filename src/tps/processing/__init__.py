"""Analytics pipeline for session JSONL files.

This package contains modules for:
- JSONL parsing (parser.py)
- Turn segmentation and per-turn throughput (turns.py)
- Nearest-rank percentiles (percentiles.py)
- Period and model aggregation (aggregation.py)
- Batch orchestration with caching (pipeline.py)

Import functions from here for a clean API:
    from src.tps.processing import process_files, aggregate_by_period
"""

# JSONL parsing
from .parser import parse_jsonl, parse_record

# Turn segmentation
from .turns import calculate_tps, calculate_turn_tps

# Percentiles
from .percentiles import calculate_percentiles

# Aggregation
from .aggregation import (
    PERIODS,
    aggregate_by_model,
    aggregate_by_period,
    points_for_model,
    sessions_for_model,
)

# Batch pipeline
from .pipeline import (
    NoValidFilesError,
    discover_jsonl_files,
    file_key,
    is_valid_session_filename,
    process_files,
)

__all__ = [
    # JSONL parsing
    'parse_jsonl',
    'parse_record',
    # Turn segmentation
    'calculate_tps',
    'calculate_turn_tps',
    # Percentiles
    'calculate_percentiles',
    # Aggregation
    'PERIODS',
    'aggregate_by_model',
    'aggregate_by_period',
    'points_for_model',
    'sessions_for_model',
    # Batch pipeline
    'NoValidFilesError',
    'discover_jsonl_files',
    'file_key',
    'is_valid_session_filename',
    'process_files',
]
