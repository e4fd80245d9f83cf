"""Deliver messages over SMTP with aiosmtplib."""

from __future__ import annotations

import asyncio

import aiosmtplib

from ..errors import SendError
from ..logger import get_logger
from ..models import ResolvedMessage
from ..smtp_pool import SMTPPool
from .base import EmailSenderBase
from .mime import build_email

logger = get_logger("SmtpEmailSender")


class SmtpEmailSender(EmailSenderBase):
    """Email sender backed by an SMTP relay.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        use_tls: Direct TLS on port 465, STARTTLS otherwise. Defaults to
            ``port == 465`` when not given.
        timeout: Seconds allowed for one ``send_message`` call.
        pool: Connection pool shared by concurrent sends.
    """

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        user: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        timeout: float = 30.0,
        default_sender: str | None = None,
        pool: SMTPPool | None = None,
    ):
        super().__init__(default_sender)
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.use_tls = self.port == 465 if use_tls is None else bool(use_tls)
        self.timeout = timeout
        self.pool = pool or SMTPPool()

    async def send(self, message: ResolvedMessage) -> str:
        built = build_email(message, self.default_sender)
        try:
            async with self.pool.connection(
                self.host, self.port, self.user, self.password, use_tls=self.use_tls
            ) as smtp:
                await asyncio.wait_for(
                    smtp.send_message(built.message, sender=built.envelope_from, recipients=built.recipients),
                    timeout=self.timeout,
                )
        except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as exc:
            smtp_code = getattr(exc, "code", None)
            detail = f"{exc} (SMTP {smtp_code})" if smtp_code else str(exc) or exc.__class__.__name__
            logger.error("SMTP delivery to %s:%s failed: %s", self.host, self.port, detail)
            raise SendError(f"SMTP delivery failed: {detail}") from exc
        return built.message_id

    async def close(self) -> None:
        await self.pool.close()
