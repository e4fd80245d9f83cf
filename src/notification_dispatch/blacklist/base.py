"""Base protocol for blacklist stores.

Stores are keyed by the lowercase email address. Implementations must be
safe for concurrent reads from many record resolutions and must surface
every backend failure as :class:`StoreError`.
"""

from __future__ import annotations

from ..models import BlacklistEntry


class BlacklistStoreBase:
    """Abstract CRUD contract for blacklist entries."""

    async def init(self) -> None:
        """Prepare the backend (create tables...). Idempotent."""
        return None

    async def create(self, entry: BlacklistEntry) -> bool:
        """Insert or overwrite ``entry``. Returns True when stored."""
        raise NotImplementedError

    async def read(self, key: str) -> BlacklistEntry | None:
        """Return the entry stored under ``key`` (lowercase email) or None."""
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        """Remove the entry under ``key``. Returns True if it existed."""
        raise NotImplementedError

    async def list_entries(self, limit: int = 100) -> list[BlacklistEntry]:
        raise NotImplementedError

    async def ping(self) -> bool:
        """Return True when the backend answers."""
        raise NotImplementedError

    async def close(self) -> None:
        return None
