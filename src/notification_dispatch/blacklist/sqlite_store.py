"""SQLite-backed blacklist store.

Uses aiosqlite; every operation opens and closes its own connection, which
keeps the store safe for concurrent use from many tasks. ``:memory:`` is
not usable here for the same reason (each connection would see a fresh
database), so tests use a file under ``tmp_path``.

Example:
    Basic usage::

        store = SqliteBlacklistStore("/data/blacklist.db")
        await store.init()
        await store.create(BlacklistEntry.now("bad@example.com"))
        entry = await store.read("bad@example.com")
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import aiosqlite

from ..errors import StoreError
from ..logger import get_logger
from ..models import BlacklistEntry
from .base import BlacklistStoreBase

logger = get_logger("SqliteBlacklistStore")


class SqliteBlacklistStore(BlacklistStoreBase):
    """Async SQLite blacklist table.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str = "/data/blacklist.db"):
        self.db_path = db_path

    async def init(self) -> None:
        """Create the ``blacklist`` table if missing."""
        parent = Path(self.db_path).expanduser().parent
        parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS blacklist (
                        email TEXT PRIMARY KEY,
                        date INTEGER NOT NULL
                    )
                    """
                )
                await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to initialise blacklist database: {exc}") from exc

    async def create(self, entry: BlacklistEntry) -> bool:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT INTO blacklist (email, date) VALUES (?, ?)
                    ON CONFLICT(email) DO UPDATE SET date = excluded.date
                    """,
                    (entry.key, entry.date),
                )
                await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to store blacklist entry {entry.key}: {exc}") from exc
        return True

    async def read(self, key: str) -> BlacklistEntry | None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute("SELECT email, date FROM blacklist WHERE email = ?", (key.lower(),)) as cur:
                    row = await cur.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to read blacklist entry {key}: {exc}") from exc
        if not row:
            return None
        return BlacklistEntry(email=row[0], date=row[1])

    async def delete(self, key: str) -> bool:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cur = await db.execute("DELETE FROM blacklist WHERE email = ?", (key.lower(),))
                await db.commit()
                removed = cur.rowcount
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to delete blacklist entry {key}: {exc}") from exc
        return removed > 0

    async def list_entries(self, limit: int = 100) -> list[BlacklistEntry]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    "SELECT email, date FROM blacklist ORDER BY date DESC, email LIMIT ?", (int(limit),)
                ) as cur:
                    rows = await cur.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to list blacklist entries: {exc}") from exc
        return [BlacklistEntry(email=email, date=date) for email, date in rows]

    async def ping(self) -> bool:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute("SELECT COUNT(*) FROM blacklist") as cur:
                    await cur.fetchone()
        except sqlite3.Error as exc:
            logger.warning("Blacklist database ping failed: %s", exc)
            return False
        return True
