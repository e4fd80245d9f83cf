"""Deliver messages through Amazon SES with aioboto3."""

from __future__ import annotations

from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import SendError
from ..logger import get_logger
from ..models import ResolvedMessage
from .base import EmailSenderBase
from .mime import build_email

logger = get_logger("SesEmailSender")


class SesEmailSender(EmailSenderBase):
    """Email sender using ``ses.send_raw_email``.

    The raw MIME message is built locally, so attachments and custom
    headers behave exactly as with the SMTP backend.
    """

    def __init__(
        self,
        *,
        region: str | None = None,
        default_sender: str | None = None,
        configuration_set: str | None = None,
        session: Any | None = None,
    ):
        super().__init__(default_sender)
        self.region = region
        self.configuration_set = configuration_set
        self._session = session or aioboto3.Session()

    async def send(self, message: ResolvedMessage) -> str:
        built = build_email(message, self.default_sender)
        request: dict[str, Any] = {
            "Source": built.envelope_from,
            "Destinations": built.recipients,
            "RawMessage": {"Data": built.message.as_bytes()},
        }
        if self.configuration_set:
            request["ConfigurationSetName"] = self.configuration_set
        try:
            async with self._session.client("ses", region_name=self.region) as ses:
                resp = await ses.send_raw_email(**request)
        except (ClientError, BotoCoreError) as exc:
            logger.error("SES delivery failed: %s", exc)
            raise SendError(f"SES delivery failed: {exc}") from exc
        return resp["MessageId"]
