# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Lightweight asyncio-friendly SMTP connection pool.

Records of a batch are sent concurrently, and an aiosmtplib client can only
carry one transaction at a time, so connections are checked out for the
duration of a send and returned to an idle list afterwards. Idle
connections are reused while they are younger than ``ttl`` and answer a
NOOP; otherwise they are closed and replaced.

Example:
    Sending through the pool::

        pool = SMTPPool(ttl=300)
        async with pool.connection("smtp.example.com", 587, "user", "secret", use_tls=True) as smtp:
            await smtp.send_message(message)

        # On shutdown
        await pool.close()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosmtplib

from .logger import get_logger

ConnectionParams = tuple[str, int, str | None, str | None, bool]

logger = get_logger("SMTPPool")


class SMTPPool:
    """Pool of idle SMTP connections keyed by connection parameters.

    Attributes:
        ttl: Maximum age in seconds of an idle connection before it is closed.
        max_idle: Maximum idle connections kept per parameter set.
        idle: Mapping of connection parameters to ``(smtp, last_used)`` entries.
        lock: Asyncio lock guarding ``idle``.
    """

    def __init__(self, ttl: int = 300, max_idle: int = 10):
        self.ttl = ttl
        self.max_idle = max(1, int(max_idle))
        self.idle: dict[ConnectionParams, list[tuple[aiosmtplib.SMTP, float]]] = {}
        self.lock = asyncio.Lock()

    async def _connect(self, host: str, port: int, user: str | None, password: str | None, use_tls: bool) -> aiosmtplib.SMTP:
        """Open and optionally authenticate a new SMTP connection.

        TLS behavior based on port and use_tls flag:
        - Port 465 with use_tls=True: Direct TLS (implicit TLS)
        - Other ports with use_tls=True: STARTTLS
        - use_tls=False: Plain SMTP

        Raises:
            asyncio.TimeoutError: If connection takes longer than 15 seconds.
            aiosmtplib.SMTPException: If connection or authentication fails.
        """
        if use_tls and port == 465:
            smtp = aiosmtplib.SMTP(hostname=host, port=port, start_tls=False, use_tls=True, timeout=10.0)
        elif use_tls:
            smtp = aiosmtplib.SMTP(hostname=host, port=port, start_tls=True, use_tls=False, timeout=10.0)
        else:
            smtp = aiosmtplib.SMTP(hostname=host, port=port, start_tls=False, use_tls=False, timeout=10.0)

        async def _do_connect():
            await smtp.connect()
            if user and password:
                await smtp.login(user, password)

        await asyncio.wait_for(_do_connect(), timeout=15.0)
        return smtp

    async def _is_alive(self, smtp: aiosmtplib.SMTP) -> bool:
        """Return True if the connection answers NOOP with 250 within 5s."""
        try:
            code, _ = await asyncio.wait_for(smtp.noop(), timeout=5.0)
            return code == 250
        except Exception:
            return False

    @staticmethod
    async def _quit(smtp: aiosmtplib.SMTP) -> None:
        try:
            await smtp.quit()
        except Exception as exc:
            logger.debug("Ignoring error while closing SMTP connection: %s", exc)

    async def get_connection(self, host: str, port: int, user: str | None, password: str | None, *, use_tls: bool) -> aiosmtplib.SMTP:
        """Check out a live connection, reusing an idle one when possible."""
        params: ConnectionParams = (host, port, user, password, use_tls)
        while True:
            async with self.lock:
                entries = self.idle.get(params)
                entry = entries.pop() if entries else None
            if entry is None:
                break
            smtp, last_used = entry
            if (time.time() - last_used) < self.ttl and await self._is_alive(smtp):
                return smtp
            await self._quit(smtp)
        return await self._connect(host, port, user, password, use_tls)

    async def release(self, smtp: aiosmtplib.SMTP, params: ConnectionParams) -> None:
        """Return a healthy connection to the idle list."""
        async with self.lock:
            entries = self.idle.setdefault(params, [])
            if len(entries) < self.max_idle:
                entries.append((smtp, time.time()))
                return
        await self._quit(smtp)

    @asynccontextmanager
    async def connection(
        self, host: str, port: int, user: str | None, password: str | None, *, use_tls: bool
    ) -> AsyncIterator[aiosmtplib.SMTP]:
        """Context manager around :meth:`get_connection`/:meth:`release`.

        A connection that raised during use is closed instead of pooled.
        """
        smtp = await self.get_connection(host, port, user, password, use_tls=use_tls)
        try:
            yield smtp
        except BaseException:
            await self._quit(smtp)
            raise
        await self.release(smtp, (host, port, user, password, use_tls))

    async def cleanup(self) -> None:
        """Close idle connections that expired or fail the health check."""
        now = time.time()
        async with self.lock:
            snapshot = {params: list(entries) for params, entries in self.idle.items()}
            self.idle = {}

        keep: dict[ConnectionParams, list[tuple[aiosmtplib.SMTP, float]]] = {}
        for params, entries in snapshot.items():
            for smtp, last_used in entries:
                if (now - last_used) <= self.ttl and await self._is_alive(smtp):
                    keep.setdefault(params, []).append((smtp, last_used))
                else:
                    await self._quit(smtp)

        async with self.lock:
            for params, entries in keep.items():
                self.idle.setdefault(params, []).extend(entries)

    async def close(self) -> None:
        """Close every idle connection."""
        async with self.lock:
            entries = [smtp for items in self.idle.values() for smtp, _ in items]
            self.idle = {}
        for smtp in entries:
            await self._quit(smtp)
