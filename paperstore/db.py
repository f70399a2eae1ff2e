"""
Local copy of the hosted paper database.

The search service only ever reads three collections of the exported realtime
tree (papers, users, ratings). Each collection is one SQLite table of
(key TEXT, value BLOB) rows holding JSON documents, optionally zlib-compressed.
Nothing outside this package touches the file system.
"""

from __future__ import annotations

import json
import os
import re
import sqlite3
import time
import zlib
from contextlib import contextmanager

from loguru import logger

from config import settings

_TABLE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_TRANSACTION_MODES = ("DEFERRED", "IMMEDIATE", "EXCLUSIVE")

PAPERS_TABLE = "papers"
USERS_TABLE = "users"
RATINGS_TABLE = "ratings"


def _is_lock_error(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def _retrying(op, *args):
    """Run ``op(*args)``, backing off exponentially while SQLite reports a lock."""
    retries = max(1, int(settings.db.max_retries))
    base_sleep = float(settings.db.retry_base_sleep)
    for attempt in range(retries):
        try:
            return op(*args)
        except sqlite3.OperationalError as exc:
            if not _is_lock_error(exc) or attempt >= retries - 1:
                raise
            logger.trace(f"store busy, retry {attempt + 1}/{retries}")
            time.sleep(base_sleep * (2**attempt))


class SqliteKV:
    """
    Dict-like access to one collection of the store.

    ``flag='r'`` opens the file read-only and requires the table to exist;
    ``flag='c'`` creates both when missing. Iteration follows insertion order,
    and overwriting a key keeps its original position.
    """

    def __init__(
        self,
        db_path: str,
        tablename: str,
        flag: str = "r",
        autocommit: bool = True,
        compressed: bool = False,
    ):
        if flag not in ("r", "c"):
            raise ValueError(f"Invalid flag {flag!r}: expected 'r' (read-only) or 'c' (create)")
        if not _TABLE_NAME_RE.match(tablename or ""):
            raise ValueError(f"Invalid table name {tablename!r}")

        self.db_path = db_path
        self.tablename = tablename
        self.flag = flag
        self.autocommit = autocommit
        self.compressed = compressed
        self._conn = None

        timeout = int(settings.db.timeout)
        if flag == "r":
            if not os.path.exists(db_path):
                raise FileNotFoundError(f"Store not found: {db_path}")
            conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True, timeout=timeout, check_same_thread=False)
        else:
            parent = os.path.dirname(db_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)

        conn.execute(f"PRAGMA busy_timeout={timeout * 1000}")
        if flag == "c":
            try:
                conn.execute("PRAGMA journal_mode=WAL")
            except sqlite3.OperationalError as exc:
                logger.debug(f"WAL not enabled for {db_path}: {exc}")
            conn.execute(f"CREATE TABLE IF NOT EXISTS {tablename} (key TEXT PRIMARY KEY, value BLOB)")
            conn.commit()
        else:
            found = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (tablename,)
            ).fetchone()
            if found is None:
                conn.close()
                raise sqlite3.OperationalError(f"no such table: {tablename}")
        self._conn = conn

    # -- encoding

    def _dump(self, value) -> bytes:
        data = json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return zlib.compress(data) if self.compressed else data

    def _load(self, blob):
        data = bytes(blob)
        if self.compressed:
            data = zlib.decompress(data)
        return json.loads(data.decode("utf-8"))

    # -- plumbing

    def _query(self, sql: str, params=()):
        return _retrying(self._conn.execute, sql, params)

    def _require_writable(self):
        if self.flag == "r":
            raise RuntimeError(f"{self.tablename} is open read-only")

    def _upsert(self, key: str, value):
        self._query(
            f"INSERT INTO {self.tablename} (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, self._dump(value)),
        )

    def commit(self):
        if self._conn is not None:
            _retrying(self._conn.commit)

    # -- mapping protocol

    def __getitem__(self, key: str):
        row = self._query(f"SELECT value FROM {self.tablename} WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise KeyError(key)
        return self._load(row[0])

    def __setitem__(self, key: str, value):
        self._require_writable()
        self._upsert(key, value)
        if self.autocommit:
            self.commit()

    def __delitem__(self, key: str):
        self._require_writable()
        if self._query(f"DELETE FROM {self.tablename} WHERE key = ?", (key,)).rowcount == 0:
            raise KeyError(key)
        if self.autocommit:
            self.commit()

    def __contains__(self, key: str) -> bool:
        return self._query(f"SELECT 1 FROM {self.tablename} WHERE key = ? LIMIT 1", (key,)).fetchone() is not None

    def __len__(self) -> int:
        return self._query(f"SELECT COUNT(*) FROM {self.tablename}").fetchone()[0]

    def __iter__(self):
        return (key for key, _ in self.items())

    def get(self, key: str, default=None):
        try:
            return self[key]
        except KeyError:
            return default

    def items(self):
        """(key, value) pairs in insertion order."""
        for key, blob in self._query(f"SELECT key, value FROM {self.tablename} ORDER BY rowid"):
            yield key, self._load(blob)

    def get_many(self, keys) -> dict:
        """{key: value} for the keys that exist, looked up in chunks."""
        keys = list(keys)
        found = {}
        for start in range(0, len(keys), 500):
            chunk = keys[start : start + 500]
            marks = ",".join("?" * len(chunk))
            for key, blob in self._query(
                f"SELECT key, value FROM {self.tablename} WHERE key IN ({marks})", tuple(chunk)
            ):
                found[key] = self._load(blob)
        return found

    def set_many(self, mapping: dict):
        """Write every pair, committing once at the end."""
        self._require_writable()
        for key, value in mapping.items():
            self._upsert(key, value)
        if mapping and self.autocommit:
            self.commit()

    @contextmanager
    def transaction(self, mode: str = "IMMEDIATE"):
        """Group writes into one SQLite transaction; any exception rolls all of them back."""
        self._require_writable()
        mode_u = (mode or "IMMEDIATE").upper()
        if mode_u not in _TRANSACTION_MODES:
            raise ValueError(f"Invalid transaction mode: {mode}")

        saved = self.autocommit
        self.autocommit = False
        self._query(f"BEGIN {mode_u}")
        try:
            yield self
        except Exception:
            self._conn.rollback()
            raise
        else:
            self.commit()
        finally:
            self.autocommit = saved

    # -- lifecycle

    def close(self):
        conn, self._conn = getattr(self, "_conn", None), None
        if conn is None:
            return
        try:
            if self.flag == "c" and not self.autocommit:
                _retrying(conn.commit)
        finally:
            conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __del__(self):
        self.close()


# -----------------------------------------------------------------------------
# Store location


def db_file() -> str:
    """Path of the store file, resolved from settings on every call."""
    return str(settings.db_path)


def store_mtime(db_path: str | None = None) -> float:
    """Latest modification time across the store and its WAL side files (0.0 when absent).

    Writes land in ``-wal`` until a checkpoint, so the main file alone can look unchanged.
    """
    db_path = db_path or db_file()
    latest = 0.0
    for path in (db_path, f"{db_path}-wal", f"{db_path}-shm"):
        try:
            latest = max(latest, os.path.getmtime(path))
        except OSError:
            continue
    return latest


def _open(tablename: str, flag: str, autocommit: bool, compressed: bool) -> SqliteKV:
    """Open a collection; read-only opens on a fresh store create the empty table first."""
    path = db_file()
    try:
        return SqliteKV(path, tablename, flag=flag, autocommit=autocommit, compressed=compressed)
    except (FileNotFoundError, sqlite3.OperationalError):
        if flag != "r":
            raise
        logger.debug(f"Creating empty {tablename} table in {path}")
        SqliteKV(path, tablename, flag="c", compressed=compressed).close()
        return SqliteKV(path, tablename, flag="r", autocommit=autocommit, compressed=compressed)


def get_papers_db(flag="r", autocommit=True) -> SqliteKV:
    """Papers keyed "category::paperId" (e.g. "Research::-Nq1x8"); values are the exported paper dicts."""
    return _open(PAPERS_TABLE, flag, autocommit, compressed=True)


def get_users_db(flag="r", autocommit=True) -> SqliteKV:
    """User directory keyed by uid."""
    return _open(USERS_TABLE, flag, autocommit, compressed=False)


def get_ratings_db(flag="r", autocommit=True) -> SqliteKV:
    """Ratings keyed by paper id; values are {rater uid: rating}."""
    return _open(RATINGS_TABLE, flag, autocommit, compressed=False)


def paper_key(category: str, pid: str) -> str:
    return f"{category}::{pid}"


def parse_paper_key(key: str) -> tuple:
    """Split a papers key into (category, pid); uncategorized keys give ("", key)."""
    category, sep, pid = key.partition("::")
    if not sep:
        return "", key
    return category, pid
