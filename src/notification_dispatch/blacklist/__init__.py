"""Blacklist storage backends.

:func:`create_blacklist_store` builds the store selected in the settings:
``sqlite`` (default) or ``dynamodb``.
"""

from __future__ import annotations

from typing import Any

from .base import BlacklistStoreBase
from .sqlite_store import SqliteBlacklistStore

__all__ = ["BlacklistStoreBase", "SqliteBlacklistStore", "create_blacklist_store"]


def create_blacklist_store(backend: str, **options: Any) -> BlacklistStoreBase:
    backend = (backend or "sqlite").lower()
    if backend == "sqlite":
        return SqliteBlacklistStore(options.get("db_path") or "/data/blacklist.db")
    if backend == "dynamodb":
        from .dynamodb_store import DEFAULT_TABLE, DynamoBlacklistStore

        return DynamoBlacklistStore(
            options.get("table_name") or DEFAULT_TABLE,
            region=options.get("region"),
        )
    raise ValueError(f"Unknown blacklist backend: {backend}")
