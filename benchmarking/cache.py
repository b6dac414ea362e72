"""Persistent result cache for benchmark evaluations.

Entries live in a SQLite table keyed by the flat cache key string. Each
write is a single transaction, so readers in this or another process never
observe a half-written entry. A write under an existing key replaces it.

Callers in one process that share a cache file serialize on a per-key
lock, so a key is computed at most once while its lock is held.

Storage failures never abort an evaluation: an unreadable store is a miss
and an unwritable store is logged.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from config import RESULTS_CACHE_PATH

from .schemas import DetectorScores

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS results (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Seconds to wait for a lock held by another process
_CONNECT_TIMEOUT = 30.0


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


# (resolved cache path, key) -> lock; entries are dropped when no caller holds them
_key_locks: dict[tuple[str, str], _KeyLock] = {}
_key_locks_guard = threading.Lock()


@dataclass
class CacheStats:
    """Summary of the cache backing store."""

    path: Path
    entries: int
    size_bytes: int


class ResultCache:
    """Maps cache keys to DetectorScores, persisted across processes."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path is not None else RESULTS_CACHE_PATH

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=_CONNECT_TIMEOUT)
        conn.executescript(_SCHEMA)
        return conn

    @contextmanager
    def key_lock(self, key: str):
        """Hold the process-wide lock for key on this cache file."""
        registry_key = (str(self.path.resolve()), key)
        with _key_locks_guard:
            entry = _key_locks.get(registry_key)
            if entry is None:
                entry = _key_locks[registry_key] = _KeyLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with _key_locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del _key_locks[registry_key]

    def lookup(self, key: str) -> DetectorScores | None:
        """Return the cached scores for key, or None on a miss.

        Unreadable or corrupt storage is reported and treated as a miss.
        """
        if not self.path.exists():
            return None
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT payload FROM results WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Result cache %s unreadable, recomputing: %s", self.path, exc)
            return None

        if row is None:
            return None
        try:
            return DetectorScores.model_validate(json.loads(row[0]))
        except (ValueError, ValidationError) as exc:
            logger.warning("Corrupt cache entry for %s, recomputing: %s", key, exc)
            return None

    def store(self, key: str, scores: DetectorScores) -> bool:
        """Persist scores under key. Returns False if the write failed."""
        payload = json.dumps(scores.model_dump())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO results (key, payload) VALUES (?, ?)",
                        (key, payload),
                    )
        except (sqlite3.Error, OSError) as exc:
            logger.error("Could not store result in cache %s: %s", self.path, exc)
            return False
        return True

    def stats(self) -> CacheStats:
        """Count entries; an absent store has zero entries."""
        if not self.path.exists():
            return CacheStats(path=self.path, entries=0, size_bytes=0)
        with closing(self._connect()) as conn:
            (entries,) = conn.execute("SELECT COUNT(*) FROM results").fetchone()
        return CacheStats(path=self.path, entries=entries, size_bytes=self.path.stat().st_size)

    def clear(self, prefix: str | None = None) -> int:
        """Delete entries (all, or those whose key starts with prefix).

        Returns:
            Number of deleted entries.
        """
        if not self.path.exists():
            return 0
        with closing(self._connect()) as conn:
            with conn:
                if prefix is None:
                    cursor = conn.execute("DELETE FROM results")
                else:
                    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
                    cursor = conn.execute(
                        "DELETE FROM results WHERE key LIKE ? ESCAPE '\\'",
                        (escaped + "%",),
                    )
        logger.info("Deleted %d cached results from %s", cursor.rowcount, self.path)
        return cursor.rowcount
