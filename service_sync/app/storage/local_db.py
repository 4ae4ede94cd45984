"""
SQLite-backed local database.

Every public method is a coroutine; the blocking sqlite3 work runs in a
worker thread so the event loop is never blocked by storage I/O.
"""

import asyncio
import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from shared.logging import get_logger
from ..domain.models import CacheEntry, Site, SyncLogRecord, queue_entry_adapter


class LocalDatabase:
    """Durable store shared by CacheStore, SyncQueue, SyncLog and SiteRegistry."""

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS cache_entries (
        site_id TEXT NOT NULL DEFAULT '',
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        component TEXT NOT NULL,
        created_at REAL NOT NULL,
        expires_at REAL,
        PRIMARY KEY (site_id, key)
    );

    CREATE TABLE IF NOT EXISTS sync_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT NOT NULL,
        site_id TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS sync_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at REAL NOT NULL,
        component TEXT NOT NULL,
        message TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS sites (
        id TEXT PRIMARY KEY,
        data TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_cache_component ON cache_entries(component);
    CREATE INDEX IF NOT EXISTS idx_sync_queue_site ON sync_queue(site_id, id);
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.logger = get_logger("sync.local_db")
        self._write_lock = threading.Lock()
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(self.SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection for one unit of work."""
        conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    async def _run(self, func, *args):
        return await asyncio.to_thread(func, *args)

    # === Cache ===

    async def get_cache_entry(self, key: str, site_id: str = "") -> Optional[CacheEntry]:
        return await self._run(self._get_cache_entry, key, site_id)

    def _get_cache_entry(self, key: str, site_id: str) -> Optional[CacheEntry]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT site_id, key, value, component, created_at, expires_at FROM cache_entries "
                "WHERE site_id = ? AND key = ?",
                (site_id, key),
            ).fetchone()
        if row is None:
            return None
        return CacheEntry(
            key=row["key"],
            site_id=row["site_id"],
            value=json.loads(row["value"]),
            component=row["component"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    async def put_cache_entry(self, entry: CacheEntry) -> None:
        await self._run(self._put_cache_entry, entry)

    def _put_cache_entry(self, entry: CacheEntry) -> None:
        payload = json.dumps(entry.value)
        with self._write_lock, self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO cache_entries (site_id, key, value, component, created_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (entry.site_id, entry.key, payload, entry.component, entry.created_at, entry.expires_at),
            )
            conn.commit()

    async def delete_cache_entries(self, component: Optional[str] = None) -> int:
        return await self._run(self._delete_cache_entries, component)

    def _delete_cache_entries(self, component: Optional[str]) -> int:
        with self._write_lock, self._get_connection() as conn:
            if component is None:
                cursor = conn.execute("DELETE FROM cache_entries")
            else:
                cursor = conn.execute("DELETE FROM cache_entries WHERE component = ?", (component,))
            conn.commit()
            return cursor.rowcount

    # === Sync queue ===

    async def insert_queue_entry(self, entry) -> int:
        return await self._run(self._insert_queue_entry, entry)

    def _insert_queue_entry(self, entry) -> int:
        payload = entry.model_dump_json(exclude={"id"})
        with self._write_lock, self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO sync_queue (kind, site_id, payload, created_at) VALUES (?, ?, ?, ?)",
                (entry.kind, entry.site_id, payload, entry.created_at.isoformat()),
            )
            conn.commit()
            return int(cursor.lastrowid)

    async def list_queue_entries(self, site_id: Optional[str] = None) -> List[Any]:
        return await self._run(self._list_queue_entries, site_id)

    def _list_queue_entries(self, site_id: Optional[str]) -> List[Any]:
        with self._get_connection() as conn:
            if site_id is None:
                rows = conn.execute("SELECT id, payload FROM sync_queue ORDER BY id ASC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT id, payload FROM sync_queue WHERE site_id = ? ORDER BY id ASC",
                    (site_id,),
                ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def get_queue_entry(self, entry_id: int) -> Optional[Any]:
        return await self._run(self._get_queue_entry, entry_id)

    def _get_queue_entry(self, entry_id: int) -> Optional[Any]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT id, payload FROM sync_queue WHERE id = ?", (entry_id,)).fetchone()
        return self._row_to_entry(row) if row is not None else None

    async def delete_queue_entry(self, entry_id: int) -> bool:
        return await self._run(self._delete_queue_entry, entry_id)

    def _delete_queue_entry(self, entry_id: int) -> bool:
        with self._write_lock, self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM sync_queue WHERE id = ?", (entry_id,))
            conn.commit()
            return cursor.rowcount > 0

    async def count_queue_entries(self, site_id: Optional[str] = None) -> int:
        return await self._run(self._count_queue_entries, site_id)

    def _count_queue_entries(self, site_id: Optional[str]) -> int:
        with self._get_connection() as conn:
            if site_id is None:
                row = conn.execute("SELECT COUNT(*) FROM sync_queue").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM sync_queue WHERE site_id = ?", (site_id,)).fetchone()
        return int(row[0])

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> Any:
        data = json.loads(row["payload"])
        data["id"] = row["id"]
        return queue_entry_adapter.validate_python(data)

    # === Sync log ===

    async def append_log(self, record: SyncLogRecord, max_length: int) -> int:
        return await self._run(self._append_log, record, max_length)

    def _append_log(self, record: SyncLogRecord, max_length: int) -> int:
        with self._write_lock, self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO sync_log (created_at, component, message) VALUES (?, ?, ?)",
                (record.created_at, record.component, record.message),
            )
            conn.execute(
                "DELETE FROM sync_log WHERE id NOT IN (SELECT id FROM sync_log ORDER BY id DESC LIMIT ?)",
                (max_length,),
            )
            conn.commit()
            return int(cursor.lastrowid)

    async def list_log(self, limit: Optional[int] = None) -> List[SyncLogRecord]:
        return await self._run(self._list_log, limit)

    def _list_log(self, limit: Optional[int]) -> List[SyncLogRecord]:
        query = "SELECT id, created_at, component, message FROM sync_log ORDER BY id DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            SyncLogRecord(id=row["id"], created_at=row["created_at"], component=row["component"], message=row["message"])
            for row in rows
        ]

    # === Sites ===

    async def upsert_site(self, site: Site) -> None:
        await self._run(self._upsert_site, site)

    def _upsert_site(self, site: Site) -> None:
        with self._write_lock, self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sites (id, data) VALUES (?, ?)",
                (site.id, site.model_dump_json()),
            )
            conn.commit()

    async def get_site(self, site_id: str) -> Optional[Site]:
        return await self._run(self._get_site, site_id)

    def _get_site(self, site_id: str) -> Optional[Site]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT data FROM sites WHERE id = ?", (site_id,)).fetchone()
        return Site.model_validate_json(row["data"]) if row is not None else None

    async def list_sites(self) -> List[Site]:
        return await self._run(self._list_sites)

    def _list_sites(self) -> List[Site]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT data FROM sites ORDER BY id ASC").fetchall()
        return [Site.model_validate_json(row["data"]) for row in rows]

    async def delete_site(self, site_id: str) -> bool:
        return await self._run(self._delete_site, site_id)

    def _delete_site(self, site_id: str) -> bool:
        with self._write_lock, self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM sites WHERE id = ?", (site_id,))
            conn.commit()
            return cursor.rowcount > 0

    async def stats(self) -> Dict[str, int]:
        """Row counts per table, used by the health endpoint."""
        return await self._run(self._stats)

    def _stats(self) -> Dict[str, int]:
        with self._get_connection() as conn:
            return {
                table: int(conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])
                for table in ("cache_entries", "sync_queue", "sync_log", "sites")
            }
