# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Blacklist administration.

Validates and normalizes addresses before delegating to the blacklist
store. Adding an address that is already blacklisted overwrites its
timestamp.
"""

from __future__ import annotations

from .addresses import normalize_address
from .blacklist.base import BlacklistStoreBase
from .errors import StoreError
from .logger import get_logger
from .models import BlacklistEntry
from .prometheus import DispatchMetrics


class BlacklistAdminService:
    def __init__(self, store: BlacklistStoreBase, *, metrics: DispatchMetrics | None = None, logger=None):
        self.store = store
        self.metrics = metrics
        self.logger = logger or get_logger("BlacklistAdmin")

    async def add_to_blacklist(self, raw_email: str) -> BlacklistEntry:
        """Blacklist ``raw_email``.

        Raises:
            InvalidEmail: the address is syntactically invalid.
            StoreError: the store did not accept the entry.
        """
        entry = BlacklistEntry.now(normalize_address(raw_email))
        try:
            stored = await self.store.create(entry)
        except StoreError as exc:
            self.logger.error("Unable to save the email address %s: %s", entry.email, exc)
            raise
        if not stored:
            self.logger.error("Blacklist store rejected the email address %s", entry.email)
            raise StoreError(f"Blacklist store rejected {entry.email}")
        self.logger.info("Blacklisted %s", entry.email)
        if self.metrics:
            self.metrics.inc_blacklisted()
        return entry

    async def get_entry(self, raw_email: str) -> BlacklistEntry | None:
        return await self.store.read(normalize_address(raw_email))

    async def remove_from_blacklist(self, raw_email: str) -> bool:
        key = normalize_address(raw_email)
        removed = await self.store.delete(key)
        if removed:
            self.logger.info("Removed %s from the blacklist", key)
        return removed

    async def list_entries(self, limit: int = 100) -> list[BlacklistEntry]:
        return await self.store.list_entries(limit)
