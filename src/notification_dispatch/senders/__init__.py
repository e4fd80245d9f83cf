"""Email delivery backends.

:func:`create_email_sender` builds the sender selected in the settings:
``smtp`` (default) or ``ses``.
"""

from __future__ import annotations

from typing import Any

from .base import EmailSenderBase
from .mime import BuiltEmail, build_email
from .smtp_sender import SmtpEmailSender

__all__ = ["BuiltEmail", "EmailSenderBase", "SmtpEmailSender", "build_email", "create_email_sender"]


def create_email_sender(backend: str, **options: Any) -> EmailSenderBase:
    backend = (backend or "smtp").lower()
    default_sender = options.get("default_sender")
    if backend == "smtp":
        host = options.get("host")
        if not host:
            raise ValueError("sender.host is required for the smtp backend")
        return SmtpEmailSender(
            host,
            int(options.get("port") or 25),
            user=options.get("user"),
            password=options.get("password"),
            use_tls=options.get("use_tls"),
            timeout=float(options.get("timeout") or 30.0),
            default_sender=default_sender,
        )
    if backend == "ses":
        from .ses_sender import SesEmailSender

        return SesEmailSender(
            region=options.get("region"),
            default_sender=default_sender,
            configuration_set=options.get("configuration_set"),
        )
    raise ValueError(f"Unknown sender backend: {backend}")
