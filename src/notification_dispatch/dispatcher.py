# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Batch dispatch with per-record failure isolation.

Each record goes through classify -> resolve -> send. Every step's failure
is converted into a ``failed`` outcome for that record only; a record with
no deliverable recipient becomes a ``skipped`` outcome. Records run
concurrently up to ``max_concurrency`` and outcomes are returned in input
order.

Delivery semantics: there is no retry inside a batch and the dispatcher
never raises to its caller, since re-running a batch would resend messages
that already went out. If the process dies between a successful send and
the acknowledgement of the triggering event, the event may be delivered
again (at-least-once on crash, at-most-once in normal operation).

Example:
    Dispatching a batch::

        dispatcher = NotificationDispatcher(classifier, resolver, sender)
        outcomes = await dispatcher.dispatch_batch(envelopes)
        for outcome in outcomes:
            print(outcome.record_id, outcome.status)
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from .classifier import MessageClassifier
from .errors import NoValidRecipients, NotificationError
from .events import EventEnvelope
from .logger import get_logger
from .models import DispatchOutcome
from .prometheus import DispatchMetrics
from .resolver import MessageResolver
from .senders.base import EmailSenderBase

DEFAULT_MAX_CONCURRENCY = 10
UNEXPECTED_ERROR_CODE = "unexpected_error"


class NotificationDispatcher:
    """Dispatch batches of raw event envelopes.

    Attributes:
        classifier: Decoder for raw payloads.
        resolver: Template and recipient resolution.
        sender: Delivery backend, invoked once per resolved record.
        max_concurrency: Maximum records processed at the same time.
        metrics: Prometheus metrics collector.
    """

    def __init__(
        self,
        classifier: MessageClassifier,
        resolver: MessageResolver,
        sender: EmailSenderBase,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        metrics: DispatchMetrics | None = None,
        log_delivery_activity: bool = False,
        logger=None,
    ):
        self.classifier = classifier
        self.resolver = resolver
        self.sender = sender
        self.max_concurrency = max(1, int(max_concurrency))
        self.metrics = metrics or DispatchMetrics()
        self.logger = logger or get_logger("NotificationDispatcher")
        self._log_delivery_activity = bool(log_delivery_activity)

    async def dispatch_batch(self, records: Iterable[EventEnvelope]) -> list[DispatchOutcome]:
        """Dispatch every record and return one outcome per record, in order.

        Never raises: a malformed batch is logged and yields an empty list.
        """
        try:
            batch: Sequence[EventEnvelope] = list(records)
        except Exception as exc:
            self.logger.exception("Unhandled error reading batch: %s", exc)
            return []

        self.metrics.set_batch_size(len(batch))
        if not batch:
            return []

        outcomes: list[DispatchOutcome | None] = [None] * len(batch)
        semaphore = asyncio.Semaphore(min(self.max_concurrency, len(batch)))

        async def _run(index: int, record: EventEnvelope) -> None:
            async with semaphore:
                outcomes[index] = await self.dispatch_record(record)

        try:
            await asyncio.gather(*(_run(index, record) for index, record in enumerate(batch)))
        except Exception as exc:  # pragma: no cover
            self.logger.exception("Unhandled error dispatching batch: %s", exc)

        return [
            outcome
            if outcome is not None
            else DispatchOutcome.failed(_record_id(record), "record was not processed", UNEXPECTED_ERROR_CODE)
            for outcome, record in zip(outcomes, batch, strict=True)
        ]

    async def dispatch_record(self, record: EventEnvelope) -> DispatchOutcome:
        """Classify, resolve and send a single record.

        Returns:
            A ``sent``, ``skipped`` or ``failed`` outcome. Exceptions other
            than cancellation are converted, never raised.
        """
        record_id = _record_id(record)
        self.logger.info("Received message: %s", record_id)
        try:
            message = self.classifier.classify(record.body)
            resolved = await self.resolver.resolve(message)
            if self._log_delivery_activity:
                self.logger.info(
                    "Attempting delivery for record %s to %s",
                    record_id,
                    ", ".join(resolved.envelope_recipients) or "-",
                )
            delivery_id = await self.sender.send(resolved)
        except NoValidRecipients as exc:
            self.logger.warning("Skipping record %s: %s", record_id, exc)
            self.metrics.inc_skipped()
            return DispatchOutcome.skipped(record_id, str(exc), exc.code)
        except NotificationError as exc:
            self.logger.error("Error processing record %s (%s): %s", record_id, exc.code, exc)
            self.metrics.inc_failed(exc.code)
            return DispatchOutcome.failed(record_id, str(exc), exc.code)
        except Exception as exc:
            self.logger.exception("Error processing record %s: %s", record_id, exc)
            self.metrics.inc_failed(UNEXPECTED_ERROR_CODE)
            return DispatchOutcome.failed(record_id, str(exc) or exc.__class__.__name__, UNEXPECTED_ERROR_CODE)

        self.logger.info("Email sent successfully: %s (record %s)", delivery_id, record_id)
        self.metrics.inc_sent()
        return DispatchOutcome.sent(record_id, delivery_id)


def _record_id(record: object) -> str | None:
    return getattr(record, "record_id", None)
