"""Persistent cache of processed session files.

Results are keyed by file identity (name:size:mtime_ms), not content hash,
so a file rewritten with identical size and mtime is served stale. Entries
are never evicted; clear() is the only way to reclaim space.
"""

import asyncio
import sqlite3
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import CACHE_DB_PATH
from .logging_config import get_logger
from .models import CachedFileResult

logger = get_logger(__name__, namespace='cache')


class CacheError(Exception):
    """Raised when the cache store cannot be read or written."""


class ResultCache:
    """SQLite-backed store of per-file metric points and session summaries.

    Every public operation is a coroutine; the blocking sqlite3 work runs in
    a worker thread with its own short-lived connection.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path is not None else CACHE_DB_PATH
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_sync(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            c = conn.cursor()
            c.execute('''
                CREATE TABLE IF NOT EXISTS processed_files (
                    file_key TEXT PRIMARY KEY,
                    filename TEXT NOT NULL,
                    processed_at INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
            ''')

            # Filename lookups (not needed by get/set)
            c.execute('''
                CREATE INDEX IF NOT EXISTS idx_processed_files_filename
                ON processed_files(filename)
            ''')
            conn.commit()

    async def _run(self, func, *args):
        if not self._initialized:
            await self.init()
        try:
            return await asyncio.to_thread(func, *args)
        except (sqlite3.Error, OSError, ValidationError) as e:
            raise CacheError(f"{func.__name__.strip('_').removesuffix('_sync')} failed: {e}") from e

    async def init(self):
        """Create the schema if needed. Safe to call repeatedly."""
        if self._initialized:
            return
        try:
            await asyncio.to_thread(self._init_sync)
        except (sqlite3.Error, OSError) as e:
            raise CacheError(f"Cannot open cache at {self.db_path}: {e}") from e
        self._initialized = True

    def _get_sync(self, file_key: str) -> CachedFileResult | None:
        with self._connect() as conn:
            row = conn.execute(
                'SELECT data FROM processed_files WHERE file_key = ?', (file_key,)
            ).fetchone()
        return CachedFileResult.model_validate_json(row[0]) if row else None

    async def get(self, file_key: str) -> CachedFileResult | None:
        """Get cached data for a file key, or None if absent."""
        return await self._run(self._get_sync, file_key)

    def _get_by_filename_sync(self, filename: str) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute('''
                SELECT file_key, processed_at FROM processed_files
                WHERE filename = ?
                ORDER BY processed_at DESC
            ''', (filename,)).fetchall()
        return [{'fileKey': r[0], 'processedAt': r[1]} for r in rows]

    async def get_by_filename(self, filename: str) -> list[dict]:
        """List cache keys recorded for a filename, newest first."""
        return await self._run(self._get_by_filename_sync, filename)

    def _set_sync(self, file_key: str, filename: str, data: CachedFileResult):
        payload = data.model_dump_json(by_alias=True)
        with self._connect() as conn:
            conn.execute('''
                INSERT INTO processed_files (file_key, filename, processed_at, data)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(file_key) DO UPDATE SET
                    filename = excluded.filename,
                    processed_at = excluded.processed_at,
                    data = excluded.data
            ''', (file_key, filename, int(time.time() * 1000), payload))
            conn.commit()

    async def set(self, file_key: str, filename: str, data: CachedFileResult):
        """Store processed data for a file, replacing any existing entry."""
        await self._run(self._set_sync, file_key, filename, data)

    def _clear_sync(self):
        with self._connect() as conn:
            conn.execute('DELETE FROM processed_files')
            conn.commit()

    async def clear(self):
        """Remove every cached entry."""
        await self._run(self._clear_sync)
        logger.info("Cache cleared (%s)", self.db_path)

    def _stats_sync(self) -> dict:
        with self._connect() as conn:
            count = conn.execute('SELECT COUNT(*) FROM processed_files').fetchone()[0]
        return {'entryCount': count}

    async def stats(self) -> dict:
        """Get cache statistics."""
        return await self._run(self._stats_sync)
