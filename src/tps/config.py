"""Configuration module for the token throughput analyzer.

Centralizes all configuration constants and environment variables
to eliminate scattered magic numbers and duplicated settings.
"""

import os
import re
from pathlib import Path

# ============================================================================
# Path Configuration
# ============================================================================

# Default directory scanned for session JSONL files
CLAUDE_PROJECTS_DIR = Path(os.getenv(
    "TPS_PROJECTS_DIR",
    str(Path.home() / ".claude" / "projects")
))

# SQLite database holding processed-file results
CACHE_DB_PATH = Path(os.getenv(
    "TPS_CACHE_DB",
    str(Path.home() / ".claude" / "tps_cache.db")
))


# ============================================================================
# Session File Admission
# ============================================================================

SESSION_FILE_EXTENSION = ".jsonl"

# Session files are named <uuid>.jsonl
SESSION_FILENAME_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.jsonl$',
    re.IGNORECASE,
)


# ============================================================================
# Parsing & Metrics
# ============================================================================

# Characters of a malformed line kept in a parse error record
PARSE_ERROR_EXCERPT_LENGTH = 100

# Only these record types take part in turn reconstruction
TRACKED_EVENT_TYPES = ('user', 'assistant')

# Model label used when no assistant message declared one
UNKNOWN_MODEL = 'unknown'

# Percentile levels reported next to pMax
PERCENTILE_LEVELS = (50, 75, 95)


# ============================================================================
# Aggregation
# ============================================================================

DEFAULT_PERIOD = os.getenv("TPS_DEFAULT_PERIOD", "day")

# IANA timezone used for period labels; empty means host local time
DISPLAY_TIMEZONE = os.getenv("TPS_TIMEZONE", "")


# ============================================================================
# Server Configuration
# ============================================================================

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = int(os.getenv("TPS_PORT", "8000"))

# Recent log entries kept in memory for GET /api/logs
LOG_BUFFER_SIZE = int(os.getenv("TPS_LOG_BUFFER_SIZE", "500"))
