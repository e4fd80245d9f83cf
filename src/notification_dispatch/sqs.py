# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQS event source.

Long-polls a queue with aioboto3 and hands batches of envelopes to the
dispatcher. Every received message is deleted after dispatch, whatever its
outcome: records get at most one attempt in normal operation.
"""

from __future__ import annotations

from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from .events import EventEnvelope, envelope_from_sqs_message
from .logger import get_logger

SQS_MAX_MESSAGES = 10

logger = get_logger("SqsEventSource")


class SqsEventSource:
    """Receive and acknowledge batches from one SQS queue.

    Attributes:
        queue_url: URL of the queue.
        max_messages: Messages per poll, capped at the SQS limit of 10.
        wait_time_seconds: Long-poll duration.
    """

    def __init__(
        self,
        queue_url: str,
        *,
        region: str | None = None,
        max_messages: int = SQS_MAX_MESSAGES,
        wait_time_seconds: int = 20,
        session: Any | None = None,
    ):
        self.queue_url = queue_url
        self.region = region
        self.max_messages = max(1, min(int(max_messages), SQS_MAX_MESSAGES))
        self.wait_time_seconds = max(0, min(int(wait_time_seconds), 20))
        self._session = session or aioboto3.Session()

    def _client(self):
        return self._session.client("sqs", region_name=self.region)

    async def receive(self) -> list[EventEnvelope]:
        """Long-poll one batch. Returns an empty list when the queue is idle."""
        async with self._client() as sqs:
            resp = await sqs.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=self.max_messages,
                WaitTimeSeconds=self.wait_time_seconds,
            )
        return [envelope_from_sqs_message(message) for message in resp.get("Messages", [])]

    async def acknowledge(self, envelopes: list[EventEnvelope]) -> int:
        """Delete the given messages from the queue. Returns how many were deleted."""
        entries = [
            {"Id": str(index), "ReceiptHandle": envelope.receipt_handle}
            for index, envelope in enumerate(envelopes)
            if envelope.receipt_handle
        ]
        if not entries:
            return 0
        try:
            async with self._client() as sqs:
                resp = await sqs.delete_message_batch(QueueUrl=self.queue_url, Entries=entries)
        except (ClientError, BotoCoreError) as exc:
            logger.error("Unable to delete %d messages from %s: %s", len(entries), self.queue_url, exc)
            return 0
        failed = resp.get("Failed", [])
        for failure in failed:
            logger.error("Failed to delete message %s: %s", failure.get("Id"), failure.get("Message"))
        return len(entries) - len(failed)
