# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Email address parsing and validation.

Addresses arrive either bare (``jane@example.com``) or with a display name
(``"Jane Doe" <jane@example.com>``). Only the address part is validated,
with ``email-validator`` in syntax-only mode, and only the address part is
used as a blacklist key.
"""

from __future__ import annotations

from email.utils import getaddresses

from email_validator import EmailNotValidError, validate_email

from .errors import InvalidEmail


def parse_address(raw: str | None) -> str:
    """Return the bare address contained in ``raw``.

    Raises:
        InvalidEmail: if ``raw`` is empty, holds more or less than one
            address, or the address is syntactically invalid.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidEmail(raw)
    parsed = getaddresses([raw])
    if len(parsed) != 1:
        raise InvalidEmail(raw)
    _name, address = parsed[0]
    if not address:
        raise InvalidEmail(raw)
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError as exc:
        raise InvalidEmail(raw, f"'{raw}' is not a valid email address: {exc}") from exc
    return address


def normalize_address(raw: str | None) -> str:
    """Return the lowercase bare address used as blacklist key."""
    return parse_address(raw).lower()


def is_valid_address(raw: str | None) -> bool:
    try:
        parse_address(raw)
    except InvalidEmail:
        return False
    return True
