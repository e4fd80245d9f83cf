# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for the notification dispatcher.

Every domain error derives from :class:`NotificationError` and exposes a
stable ``code`` attribute. The dispatcher copies that code into the
``failed`` outcome of a record and the HTTP layer uses it in error bodies.
"""

from __future__ import annotations


class NotificationError(RuntimeError):
    """Base class for all errors raised by the dispatch pipeline."""

    code = "notification_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)


class DecodeError(NotificationError):
    """Payload is not well-formed JSON or matches neither message shape."""

    code = "decode_error"


class TemplateNotFound(NotificationError):
    """Template could not be loaded from the template store."""

    code = "template_not_found"

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"Template '{key}' not found")
        self.key = key


class RenderError(NotificationError):
    """Loaded template could not be rendered."""

    code = "render_error"


class NoValidRecipients(NotificationError):
    """Every recipient was invalid or blacklisted; the record is skipped."""

    code = "no_valid_recipients"


class InvalidEmail(NotificationError):
    """Address is not a syntactically valid email address."""

    code = "invalid_email"

    def __init__(self, address: str | None, message: str | None = None):
        super().__init__(message or f"'{address}' is not a valid email address")
        self.address = address


class SendError(NotificationError):
    """The delivery backend refused or failed to deliver the message."""

    code = "send_error"


class StoreError(NotificationError):
    """The blacklist backend is unavailable or returned an error."""

    code = "store_error"
