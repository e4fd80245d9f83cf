"""Best-effort ``{{Name}}`` placeholder substitution."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..errors import RenderError

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}")


def substitute(text: str, parameters: Mapping[str, Any]) -> str:
    """Replace known placeholders, leaving unknown ones verbatim."""
    if not parameters or "{{" not in text:
        return text

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in parameters:
            return match.group(0)
        value = parameters[name]
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(_replace, text)


def render_template(raw: bytes | str, parameters: Mapping[str, Any], *, key: str | None = None) -> str:
    """Decode template bytes as UTF-8 and substitute parameters.

    Raises:
        RenderError: if the template is not valid UTF-8.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RenderError(f"Template '{key}' is not valid UTF-8: {exc}") from exc
    return substitute(raw, parameters)
