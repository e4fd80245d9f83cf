"""Build MIME messages from resolved messages."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import format_datetime, getaddresses, make_msgid

from ..errors import SendError
from ..models import MailPriority, ResolvedMessage

# X-Priority / Importance values understood by common mail clients.
PRIORITY_HEADERS = {
    MailPriority.HIGH: ("1", "high"),
    MailPriority.NORMAL: ("3", "normal"),
    MailPriority.LOW: ("5", "low"),
}

RESERVED_HEADERS = {"from", "to", "cc", "bcc", "reply-to", "subject", "message-id", "date"}


@dataclass(frozen=True)
class BuiltEmail:
    """A MIME message with its SMTP envelope."""

    message: EmailMessage
    envelope_from: str
    recipients: list[str]
    message_id: str


def bare_addresses(values: list[str] | None) -> list[str]:
    return [address for _name, address in getaddresses(values or []) if address]


def guess_mime(filename: str) -> tuple[str, str]:
    """Guess the MIME type for the given filename."""
    mt, _ = mimetypes.guess_type(filename)
    if not mt:
        return ("application", "octet-stream")
    maintype, subtype = mt.split("/", 1)
    return maintype, subtype


def build_email(data: ResolvedMessage, default_sender: str | None = None) -> BuiltEmail:
    """Build an EmailMessage from a resolved message.

    BCC addresses only end up in the envelope; no ``Bcc`` header is written.

    Raises:
        SendError: If no sender is available or no envelope recipient remains.
    """
    sender = data.sender or default_sender
    if not sender:
        raise SendError("Message has no sender and no default sender is configured")
    sender_address = bare_addresses([sender])
    recipients = bare_addresses(data.envelope_recipients)
    if not sender_address:
        raise SendError(f"Invalid sender address: {sender}")
    if not recipients:
        raise SendError("Message has no envelope recipients")

    msg = EmailMessage()
    msg["From"] = sender
    if data.to:
        msg["To"] = ", ".join(data.to)
    if data.cc:
        msg["Cc"] = ", ".join(data.cc)
    if data.reply_to:
        msg["Reply-To"] = ", ".join(data.reply_to)
    try:
        msg["Subject"] = data.subject or ""
    except ValueError as exc:
        raise SendError(f"Invalid subject: {exc}") from exc
    sent_date = data.sent_date or datetime.now(timezone.utc)
    if sent_date.tzinfo is None:
        sent_date = sent_date.replace(tzinfo=timezone.utc)
    msg["Date"] = format_datetime(sent_date)
    domain = sender_address[0].rpartition("@")[2] or None
    message_id = make_msgid(domain=domain)
    msg["Message-ID"] = message_id
    x_priority, importance = PRIORITY_HEADERS[data.priority]
    msg["X-Priority"] = x_priority
    msg["Importance"] = importance

    for header, value in data.headers.items():
        if value is None or header.lower() in RESERVED_HEADERS:
            continue
        try:
            if header in msg:
                msg.replace_header(header, str(value))
            else:
                msg[header] = str(value)
        except ValueError as exc:
            raise SendError(f"Invalid header {header!r}: {exc}") from exc

    if data.text_body is not None and data.html_body is not None:
        msg.set_content(data.text_body)
        msg.add_alternative(data.html_body, subtype="html")
    elif data.html_body is not None:
        msg.set_content(data.html_body, subtype="html")
    else:
        msg.set_content(data.text_body or "")

    for att in data.attachments:
        if att.content_type and "/" in att.content_type:
            maintype, subtype = att.content_type.split("/", 1)
        else:
            maintype, subtype = guess_mime(att.filename)
        msg.add_attachment(att.decoded(), maintype=maintype, subtype=subtype, filename=att.filename)

    return BuiltEmail(message=msg, envelope_from=sender_address[0], recipients=recipients, message_id=message_id)
