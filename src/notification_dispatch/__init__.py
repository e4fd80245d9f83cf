# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Event-driven email notification dispatcher.

This package receives batches of notification events, turns each event
into an email and hands it to a delivery backend. Features include:

- Discriminated decoding of direct and templated messages
- Template loading from S3 or a local directory with parameter substitution
- Recipient filtering against a blacklist (SQLite or DynamoDB)
- Per-record failure isolation with ordered outcomes
- SMTP and Amazon SES delivery backends
- FastAPI surface to manage the blacklist, plus health and Prometheus metrics

Example:
    Dispatching a batch with the service wired from settings::

        from notification_dispatch.config_loader import load_settings
        from notification_dispatch.core import NotificationService
        from notification_dispatch.events import EventEnvelope

        service = NotificationService.from_settings(load_settings())
        await service.init()
        outcomes = await service.dispatcher.dispatch_batch(
            [EventEnvelope(record_id="1", body=payload_json)]
        )

Authors:
    Softwell S.r.l.
    Giovanni Porcari
"""

__version__ = "0.3.0"
