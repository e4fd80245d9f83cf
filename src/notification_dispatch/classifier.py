# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Discriminated decoding of raw event payloads.

A payload is first parsed into a generic JSON document. The mere presence of
a ``Template`` key selects the templated variant; everything else is decoded
as a direct message. Both decoders are strict pydantic validations, so a
malformed payload always ends in a single :class:`DecodeError`.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from .errors import DecodeError
from .models import DirectMessage, Message, TemplatedMessage

TEMPLATE_FIELD = "Template"


class MessageClassifier:
    """Turn raw payloads into :class:`DirectMessage` or :class:`TemplatedMessage`."""

    def parse_document(self, raw_payload: str | bytes | bytearray | None) -> dict[str, Any]:
        if raw_payload is None:
            raise DecodeError("record carries no message payload")
        if isinstance(raw_payload, (bytes, bytearray)):
            try:
                raw_payload = bytes(raw_payload).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(f"payload is not valid UTF-8: {exc}") from exc
        if not isinstance(raw_payload, str):
            raise DecodeError(f"payload must be text, got {type(raw_payload).__name__}")
        try:
            document = json.loads(raw_payload)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"payload is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise DecodeError("payload is not a JSON object")
        return document

    def classify_document(self, document: dict[str, Any]) -> Message:
        model = TemplatedMessage if TEMPLATE_FIELD in document else DirectMessage
        try:
            return model.model_validate(document)
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
            )
            raise DecodeError(f"invalid {model.__name__}: {errors}") from exc

    def classify(self, raw_payload: str | bytes | bytearray | None) -> Message:
        """Decode ``raw_payload`` into one of the two message variants.

        Raises:
            DecodeError: if the payload is not a JSON object or fails
                validation against the selected variant.
        """
        return self.classify_document(self.parse_document(raw_payload))
