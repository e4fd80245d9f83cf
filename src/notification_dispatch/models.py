# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for notification messages and dispatch results.

This module defines the data models used throughout the application for
validation, serialization, and type safety. Wire names follow the
PascalCase convention of the upstream producers (``Sender``, ``To``,
``HtmlBody``...); Python code uses the snake_case attribute names.

Models:
    - MailPriority: Priority levels with the producers' integer values
    - Attachment: Inline base64 attachment
    - DirectMessage: Message carrying a literal subject and body
    - TemplatedMessage: Message rendered from a stored template
    - ResolvedMessage: Send-ready message after template and recipient resolution
    - BlacklistEntry: Blacklisted address with its creation timestamp
    - DispatchOutcome: Per-record result of a batch dispatch
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from datetime import datetime, timezone
from enum import IntEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

AddressList = list[str] | None
ParameterValue = Union[str, int, float, bool, None]
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


class MailPriority(IntEnum):
    """Message priority.

    Integer values match what the upstream producers serialize, which is
    why ``NORMAL`` is zero.
    """

    NORMAL = 0
    LOW = 1
    HIGH = 2

    @classmethod
    def parse(cls, value: Any) -> MailPriority:
        """Accept an integer, a numeric string or a label (any case)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid priority: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            label = value.strip().upper()
            if label in cls.__members__:
                return cls[label]
            if label.isdigit():
                return cls(int(label))
        raise ValueError(f"invalid priority: {value!r}")


class Attachment(BaseModel):
    """Attachment carried inline as base64 content."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    filename: Annotated[str, Field(alias="FileName", min_length=1)]
    content: Annotated[str, Field(alias="Content", description="Base64 encoded payload")]
    content_type: Annotated[
        str | None,
        Field(default=None, alias="ContentType", description="MIME type, guessed from filename when omitted"),
    ]

    @field_validator("content")
    @classmethod
    def content_must_be_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Content must be base64 encoded") from exc
        return v

    def decoded(self) -> bytes:
        return base64.b64decode(self.content)


class MessageBase(BaseModel):
    """Fields shared by both message variants.

    Address lists are independently nullable: ``None`` means "not
    specified" and survives serialization as ``null``. Addresses are kept
    verbatim here; validation happens at resolution time.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: Annotated[str | None, Field(alias="Sender")]
    to: Annotated[AddressList, Field(default=None, alias="To")]
    cc: Annotated[AddressList, Field(default=None, alias="CC")]
    bcc: Annotated[AddressList, Field(default=None, alias="BCC")]
    reply_to: Annotated[AddressList, Field(default=None, alias="ReplyTo")]
    priority: Annotated[MailPriority, Field(default=MailPriority.NORMAL, alias="Priority")]
    sent_date: Annotated[datetime | None, Field(default=None, alias="SentDate")]
    headers: Annotated[dict[str, str] | None, Field(default=None, alias="Headers")]
    attachments: Annotated[list[Attachment] | None, Field(default=None, alias="Attachments")]

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> MailPriority:
        if v is None:
            return MailPriority.NORMAL
        return MailPriority.parse(v)

    @field_validator("sent_date", mode="before")
    @classmethod
    def trim_fractional_seconds(cls, v: Any) -> Any:
        # Producers emit 100ns precision (7 digits); keep microseconds.
        if isinstance(v, str):
            return _EXCESS_FRACTION.sub(r"\1", v)
        return v

    def to_json(self) -> str:
        """Serialize with wire names, keeping ``null`` lists as ``null``."""
        return self.model_dump_json(by_alias=True)


class DirectMessage(MessageBase):
    """Message carrying its own subject and body."""

    subject: Annotated[str | None, Field(default=None, alias="Subject")]
    html_body: Annotated[str | None, Field(default=None, alias="HtmlBody")]
    text_body: Annotated[str | None, Field(default=None, alias="TextBody")]


class TemplatedMessage(MessageBase):
    """Message whose HTML body comes from a stored template."""

    template: Annotated[str, Field(alias="Template")]
    parameters: Annotated[dict[str, ParameterValue], Field(default_factory=dict, alias="Parameters")]
    subject: Annotated[str | None, Field(default=None, alias="Subject")]

    @field_validator("parameters", mode="before")
    @classmethod
    def null_parameters_are_empty(cls, v: Any) -> Any:
        return {} if v is None else v


Message = Union[DirectMessage, TemplatedMessage]


class ResolvedMessage(BaseModel):
    """Send-ready message produced by the resolver.

    Recipient lists contain only valid, non-blacklisted addresses, in their
    original relative order. ``sender`` is ``None`` when the payload did
    not name one; the email sender then applies its configured default.
    """

    model_config = ConfigDict(frozen=True)

    sender: str | None
    to: AddressList = None
    cc: AddressList = None
    bcc: AddressList = None
    reply_to: AddressList = None
    subject: str = ""
    html_body: str | None = None
    text_body: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    priority: MailPriority = MailPriority.NORMAL
    sent_date: datetime | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    template: str | None = None

    @property
    def envelope_recipients(self) -> list[str]:
        """All addresses the message is delivered to (To, CC, BCC)."""
        return [*(self.to or []), *(self.cc or []), *(self.bcc or [])]


class BlacklistEntry(BaseModel):
    """A blacklisted address.

    The address itself is the key; it is always stored lowercase.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Annotated[str, Field(alias="Email", min_length=1)]
    date: Annotated[int, Field(alias="Date", ge=0, description="Creation time, seconds since epoch")]

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def key(self) -> str:
        return self.email

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.date, tz=timezone.utc)

    @classmethod
    def now(cls, email: str) -> BlacklistEntry:
        return cls(email=email, date=int(time.time()))


OutcomeStatus = Literal["sent", "skipped", "failed"]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class DispatchOutcome(BaseModel):
    """Result of dispatching one record of a batch."""

    model_config = ConfigDict(frozen=True)

    record_id: str | None
    status: OutcomeStatus
    delivery_id: str | None = None
    reason: str | None = None
    error_code: str | None = None
    timestamp: str = Field(default_factory=_utc_now_iso)

    @classmethod
    def sent(cls, record_id: str | None, delivery_id: str) -> DispatchOutcome:
        return cls(record_id=record_id, status="sent", delivery_id=delivery_id)

    @classmethod
    def skipped(cls, record_id: str | None, reason: str, error_code: str) -> DispatchOutcome:
        return cls(record_id=record_id, status="skipped", reason=reason, error_code=error_code)

    @classmethod
    def failed(cls, record_id: str | None, reason: str, error_code: str) -> DispatchOutcome:
        return cls(record_id=record_id, status="failed", reason=reason, error_code=error_code)
