# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Inbound event envelopes.

An envelope carries one opaque payload (the raw message JSON) and the
identifier assigned by the delivering system, used for log correlation
only. Helpers convert the two shapes the service receives:

- SNS notification events: ``{"Records": [{"Sns": {"MessageId", "Message"}}]}``
- SQS messages, optionally wrapping an SNS notification in their body.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .errors import DecodeError


@dataclass(frozen=True)
class EventEnvelope:
    """One raw record of a batch."""

    record_id: str | None
    body: str | bytes | None
    receipt_handle: str | None = field(default=None, repr=False, compare=False)


def envelopes_from_sns_event(event: Any) -> list[EventEnvelope]:
    """Convert an SNS notification event into envelopes, keeping order.

    A record without an ``Sns.Message`` string still yields an envelope, with
    a ``None`` body, so it fails on its own when dispatched.

    Raises:
        DecodeError: if the event is not an object with a ``Records`` list.
    """
    if not isinstance(event, dict) or not isinstance(event.get("Records"), list):
        raise DecodeError("event must be an object with a 'Records' list")
    envelopes: list[EventEnvelope] = []
    for record in event["Records"]:
        sns = record.get("Sns") if isinstance(record, dict) else None
        if not isinstance(sns, dict):
            envelopes.append(EventEnvelope(record_id=None, body=None))
            continue
        message = sns.get("Message")
        envelopes.append(
            EventEnvelope(record_id=sns.get("MessageId"), body=message if isinstance(message, str) else None)
        )
    return envelopes


def envelope_from_sqs_message(message: dict[str, Any]) -> EventEnvelope:
    """Build an envelope from an SQS ``receive_message`` entry.

    Bodies published through an SNS subscription are wrapped in an SNS
    notification document; those are unwrapped so the envelope holds the
    original payload and the SNS message id.
    """
    body = message.get("Body", "")
    record_id = message.get("MessageId")
    try:
        document = json.loads(body)
    except (TypeError, ValueError):
        document = None
    if (
        isinstance(document, dict)
        and document.get("Type") == "Notification"
        and isinstance(document.get("Message"), str)
    ):
        body = document["Message"]
        record_id = document.get("MessageId") or record_id
    return EventEnvelope(record_id=record_id, body=body, receipt_handle=message.get("ReceiptHandle"))
