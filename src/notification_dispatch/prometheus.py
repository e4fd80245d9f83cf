# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for monitoring the notification dispatcher.

All metrics use the ``nds_`` prefix (notification dispatch service).

Metrics exposed:
    - ``nds_sent_total``: Counter of records delivered to the email backend.
    - ``nds_skipped_total``: Counter of records with no deliverable recipient.
    - ``nds_failed_total``: Counter of failed records, labeled by error code.
    - ``nds_recipients_dropped_total``: Counter of dropped recipients,
      labeled by reason (``invalid`` or ``blacklisted``).
    - ``nds_blacklist_additions_total``: Counter of addresses blacklisted
      through the admin surface.
    - ``nds_batch_size``: Gauge with the size of the last dispatched batch.

Example:
    Accessing metrics via the REST API::

        GET /metrics
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


class DispatchMetrics:
    """Prometheus metrics collector for the dispatcher.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        sent: Counter tracking records handed to the email backend.
        skipped: Counter tracking records skipped for lack of recipients.
        failed: Counter tracking failed records per error code.
        dropped: Counter tracking recipients removed during filtering.
        blacklisted: Counter tracking admin blacklist additions.
        batch_size: Gauge showing the size of the last batch.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. A new one is
                created when omitted, so several services can coexist in
                one process (tests do this).
        """
        self.registry = registry or CollectorRegistry()
        self.sent = Counter(
            "nds_sent_total",
            "Total records delivered to the email backend",
            registry=self.registry,
        )
        self.skipped = Counter(
            "nds_skipped_total",
            "Total records skipped because no valid recipient remained",
            registry=self.registry,
        )
        self.failed = Counter(
            "nds_failed_total",
            "Total failed records",
            ["code"],
            registry=self.registry,
        )
        self.dropped = Counter(
            "nds_recipients_dropped_total",
            "Total recipients removed by filtering",
            ["reason"],
            registry=self.registry,
        )
        self.blacklisted = Counter(
            "nds_blacklist_additions_total",
            "Total addresses added to the blacklist",
            registry=self.registry,
        )
        self.batch_size = Gauge(
            "nds_batch_size",
            "Number of records in the last dispatched batch",
            registry=self.registry,
        )

    def inc_sent(self) -> None:
        self.sent.inc()

    def inc_skipped(self) -> None:
        self.skipped.inc()

    def inc_failed(self, code: str) -> None:
        """Increment the failure counter for an error code.

        Args:
            code: Error taxonomy code. Falls back to "unknown" if empty.
        """
        self.failed.labels(code=code or "unknown").inc()

    def inc_dropped(self, reason: str) -> None:
        self.dropped.labels(reason=reason).inc()

    def inc_blacklisted(self) -> None:
        self.blacklisted.inc()

    def set_batch_size(self, value: int) -> None:
        self.batch_size.set(value)

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
