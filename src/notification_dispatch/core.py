# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Core orchestration for the notification dispatch service.

This module provides the NotificationService class, which wires the
dispatch pipeline together and owns its lifecycle:

- Blacklist store, template loader and email sender built from settings
- Classifier, resolver and dispatcher sharing one metrics collector
- The blacklist administration service used by the HTTP API and the CLI
- An optional background loop polling an SQS queue for new events

Example:
    Running the service::

        from notification_dispatch.config_loader import load_settings
        from notification_dispatch.core import NotificationService

        service = NotificationService.from_settings(load_settings())
        await service.start()
        # Events are now consumed from the queue (when one is configured)

        await service.stop()
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from .admin import BlacklistAdminService
from .blacklist import create_blacklist_store
from .blacklist.base import BlacklistStoreBase
from .classifier import MessageClassifier
from .config_loader import ServiceSettings
from .dispatcher import NotificationDispatcher
from .errors import DecodeError
from .events import EventEnvelope, envelopes_from_sns_event
from .logger import get_logger
from .models import DispatchOutcome
from .prometheus import DispatchMetrics
from .resolver import MessageResolver
from .senders import create_email_sender
from .senders.base import EmailSenderBase
from .sqs import SqsEventSource
from .templates import create_template_loader
from .templates.base import TemplateLoaderBase

HEALTHY = "Healthy"
UNHEALTHY = "Unhealthy"


class NotificationService:
    """Own the dispatch pipeline and its background tasks.

    Attributes:
        store: Blacklist store shared by the resolver and the admin service.
        loader: Template loader, ``None`` when templates are not configured.
        sender: Email delivery backend.
        metrics: Prometheus metrics collector.
        dispatcher: Batch dispatcher.
        admin: Blacklist administration service.
        event_source: Optional SQS source consumed by the poll loop.
    """

    def __init__(
        self,
        store: BlacklistStoreBase,
        sender: EmailSenderBase,
        *,
        loader: TemplateLoaderBase | None = None,
        event_source: SqsEventSource | None = None,
        metrics: DispatchMetrics | None = None,
        max_concurrency: int = 10,
        lookup_concurrency: int = 10,
        poll_interval: float = 5.0,
        log_delivery_activity: bool = False,
        logger=None,
    ):
        """Wire the pipeline around already-built backends.

        Args:
            store: Blacklist store.
            sender: Email sender.
            loader: Template loader. Templated messages fail with
                ``TemplateNotFound`` when omitted.
            event_source: SQS source. No poll loop runs when omitted.
            metrics: Prometheus metrics collector. If None, creates new instance.
            max_concurrency: Records dispatched at the same time.
            lookup_concurrency: Blacklist lookups in flight per record.
            poll_interval: Seconds to wait after an idle or failed poll.
            log_delivery_activity: Enable verbose delivery activity logging.
            logger: Custom logger instance. If None, uses default logger.
        """
        self.logger = logger or get_logger("NotificationService")
        self.metrics = metrics or DispatchMetrics()
        self.store = store
        self.loader = loader
        self.sender = sender
        self.event_source = event_source
        self.classifier = MessageClassifier()
        self.resolver = MessageResolver(
            store,
            loader,
            lookup_concurrency=lookup_concurrency,
            metrics=self.metrics,
            log_delivery_activity=log_delivery_activity,
        )
        self.dispatcher = NotificationDispatcher(
            self.classifier,
            self.resolver,
            sender,
            max_concurrency=max_concurrency,
            metrics=self.metrics,
            log_delivery_activity=log_delivery_activity,
        )
        self.admin = BlacklistAdminService(store, metrics=self.metrics)
        self._poll_interval = max(0.0, float(poll_interval))
        self._stop = asyncio.Event()
        self._task_poll: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: ServiceSettings, **overrides: Any) -> NotificationService:
        """Build every backend from ``settings``.

        Keyword overrides (``store``, ``sender``, ``loader``,
        ``event_source``, ``metrics``) replace the corresponding backend.

        Raises:
            ValueError: If a backend is unknown or misconfigured.
        """
        store = overrides.pop("store", None) or create_blacklist_store(
            settings.store_backend,
            db_path=settings.db_path,
            table_name=settings.dynamodb_table,
            region=settings.aws_region,
        )
        if "loader" in overrides:
            loader = overrides.pop("loader")
        elif settings.template_dir or settings.template_bucket:
            loader = create_template_loader(
                settings.template_backend,
                base_dir=settings.template_dir,
                bucket=settings.template_bucket,
                region=settings.aws_region,
            )
        else:
            loader = None
        sender = overrides.pop("sender", None) or create_email_sender(
            settings.sender_backend,
            default_sender=settings.default_sender,
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.send_timeout,
            region=settings.aws_region,
        )
        if "event_source" in overrides:
            event_source = overrides.pop("event_source")
        elif settings.sqs_queue_url:
            event_source = SqsEventSource(
                settings.sqs_queue_url,
                region=settings.aws_region,
                max_messages=settings.sqs_max_messages,
                wait_time_seconds=settings.sqs_wait_time_seconds,
            )
        else:
            event_source = None
        return cls(
            store,
            sender,
            loader=loader,
            event_source=event_source,
            max_concurrency=settings.max_concurrency,
            lookup_concurrency=settings.lookup_concurrency,
            poll_interval=settings.poll_interval,
            log_delivery_activity=settings.log_delivery_activity,
            **overrides,
        )

    async def init(self) -> None:
        """Prepare the blacklist store (schema creation for sqlite)."""
        await self.store.init()

    # ----------------------------------------------------------------- lifecycle
    async def start(self) -> None:
        """Initialize the store and launch the poll loop when a queue is configured."""
        self.logger.debug("Starting NotificationService...")
        await self.init()
        self._stop.clear()
        if self.event_source is not None:
            self.logger.info("Polling %s for notification events", self.event_source.queue_url)
            self._task_poll = asyncio.create_task(self._poll_loop(), name="sqs-poll-loop")

    async def stop(self) -> None:
        """Stop the poll loop and release every backend."""
        self._stop.set()
        if self._task_poll is not None:
            self._task_poll.cancel()
            await asyncio.gather(self._task_poll, return_exceptions=True)
            self._task_poll = None
        await self.sender.close()
        if self.loader is not None:
            await self.loader.close()
        await self.store.close()

    # ----------------------------------------------------------------- dispatch
    async def dispatch(self, envelopes: Iterable[EventEnvelope]) -> list[DispatchOutcome]:
        return await self.dispatcher.dispatch_batch(envelopes)

    async def dispatch_sns_event(self, event: Any) -> list[DispatchOutcome]:
        """Dispatch an SNS notification event.

        A malformed event is logged and yields an empty list, matching the
        never-raise contract of the dispatcher.
        """
        try:
            envelopes = envelopes_from_sns_event(event)
        except DecodeError as exc:
            self.logger.error("Unhandled error reading event: %s", exc)
            return []
        return await self.dispatch(envelopes)

    async def _poll_loop(self) -> None:
        """Background loop consuming the SQS queue until :meth:`stop`."""
        while not self._stop.is_set():
            try:
                processed = await self._process_poll_cycle()
            except Exception as exc:
                self.logger.exception("Unhandled error in poll loop: %s", exc)
                processed = 0
            if not processed:
                await self._wait(self._poll_interval)

    async def _process_poll_cycle(self) -> int:
        """Receive one batch, dispatch it and delete it from the queue.

        Returns:
            The number of records received.
        """
        if self.event_source is None:
            return 0
        envelopes = await self.event_source.receive()
        if not envelopes:
            return 0
        outcomes = await self.dispatch(envelopes)
        sent = sum(1 for outcome in outcomes if outcome.status == "sent")
        self.logger.info("Processed batch of %d records (%d sent)", len(envelopes), sent)
        await self.event_source.acknowledge(envelopes)
        return len(envelopes)

    async def _wait(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    # ------------------------------------------------------------------- health
    async def check_health(self) -> str:
        """Return ``"Healthy"`` when the blacklist store answers, else ``"Unhealthy"``."""
        try:
            healthy = await self.store.ping()
        except Exception as exc:
            self.logger.error("Health check failed: %s", exc)
            return UNHEALTHY
        return HEALTHY if healthy else UNHEALTHY
