# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Message resolution: template expansion and blacklist filtering.

The resolver turns a decoded message into a :class:`ResolvedMessage`:

- Templated messages load ``templates/emails/<key>`` through the template
  loader and substitute ``{{Name}}`` placeholders (best effort, unknown
  placeholders stay verbatim).
- Every address list (To, CC, BCC, ReplyTo) is filtered independently and
  stably: invalid addresses are dropped and logged, blacklisted addresses
  are dropped. ``None`` lists stay ``None``.
- When To, CC and BCC end up empty the record raises
  :class:`NoValidRecipients`, which the dispatcher reports as a skip.

Blacklist lookups are deduplicated per lowercase address and run
concurrently, bounded by ``lookup_concurrency``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from .addresses import normalize_address, parse_address
from .blacklist.base import BlacklistStoreBase
from .errors import InvalidEmail, NoValidRecipients, NotificationError, StoreError, TemplateNotFound
from .logger import get_logger
from .models import DirectMessage, Message, ResolvedMessage, TemplatedMessage
from .prometheus import DispatchMetrics
from .templates.base import TemplateLoaderBase
from .templates.render import render_template, substitute

TEMPLATE_PREFIX = "templates/emails"
DEFAULT_LOOKUP_CONCURRENCY = 10


def template_path(template_key: str) -> str:
    """Build the object key of a template, rejecting path tricks."""
    key = template_key.strip()
    segments = key.split("/")
    if not key or key.startswith("/") or any(seg in ("", ".", "..") for seg in segments):
        raise TemplateNotFound(template_key, f"Invalid template key '{template_key}'")
    return f"{TEMPLATE_PREFIX}/{key}"


class MessageResolver:
    """Resolve decoded messages into send-ready messages.

    Attributes:
        store: Blacklist store consulted for every candidate recipient.
        loader: Template loader used for templated messages.
        lookup_concurrency: Maximum blacklist lookups in flight per record.
    """

    def __init__(
        self,
        store: BlacklistStoreBase,
        loader: TemplateLoaderBase | None,
        *,
        lookup_concurrency: int = DEFAULT_LOOKUP_CONCURRENCY,
        metrics: DispatchMetrics | None = None,
        log_delivery_activity: bool = False,
        logger=None,
    ):
        self.store = store
        self.loader = loader
        self.lookup_concurrency = max(1, int(lookup_concurrency))
        self.metrics = metrics
        self.logger = logger or get_logger("MessageResolver")
        self._log_delivery_activity = bool(log_delivery_activity)

    async def resolve(self, message: Message) -> ResolvedMessage:
        """Resolve ``message``.

        Raises:
            InvalidEmail: The sender is present but malformed.
            TemplateNotFound: The template could not be loaded.
            RenderError: The template is not valid UTF-8.
            NoValidRecipients: No deliverable recipient is left.
            StoreError: The blacklist backend failed.
        """
        if message.sender is not None:
            parse_address(message.sender)

        if isinstance(message, TemplatedMessage):
            subject, html_body, text_body = await self._render(message)
            template = message.template
        elif isinstance(message, DirectMessage):
            subject, html_body, text_body = message.subject or "", message.html_body, message.text_body
            template = None
        else:
            raise TypeError(f"Unsupported message type: {type(message).__name__}")

        to, cc, bcc, reply_to = await self._filter_lists(
            [message.to, message.cc, message.bcc, message.reply_to]
        )

        if not (to or cc or bcc):
            raise NoValidRecipients("All recipients are invalid or blacklisted")

        return ResolvedMessage(
            sender=message.sender,
            to=to,
            cc=cc,
            bcc=bcc,
            reply_to=reply_to,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            attachments=list(message.attachments or []),
            priority=message.priority,
            sent_date=message.sent_date,
            headers=dict(message.headers or {}),
            template=template,
        )

    async def _render(self, message: TemplatedMessage) -> tuple[str, str, None]:
        if self.loader is None:
            raise TemplateNotFound(message.template, "No template loader configured")
        key = template_path(message.template)
        try:
            raw = await self.loader.load(key)
        except NotificationError:
            raise
        except Exception as exc:
            self.logger.error("Template %s could not be loaded: %s", key, exc)
            raise TemplateNotFound(message.template, f"Template '{key}' could not be loaded: {exc}") from exc
        html_body = render_template(raw, message.parameters, key=key)
        subject = substitute(message.subject or "", message.parameters)
        return subject, html_body, None

    # ------------------------------------------------------------ recipients
    async def filter_addresses(self, addresses: list[str] | None) -> list[str] | None:
        """Filter a single list. Exposed for callers that only need one list."""
        (filtered,) = await self._filter_lists([addresses])
        return filtered

    async def _filter_lists(self, lists: list[list[str] | None]) -> list[list[str] | None]:
        # Validate once per raw address; invalid entries are dropped here.
        keys: dict[str, str | None] = {}
        for raw in self._iter_candidates(lists):
            if raw in keys:
                continue
            try:
                keys[raw] = normalize_address(raw)
            except InvalidEmail:
                keys[raw] = None
                self.logger.error("An invalid email was provided: %s", raw)
                if self.metrics:
                    self.metrics.inc_dropped("invalid")

        blacklisted = await self._lookup_blacklisted({k for k in keys.values() if k})

        filtered: list[list[str] | None] = []
        for addresses in lists:
            if addresses is None:
                filtered.append(None)
                continue
            kept: list[str] = []
            for raw in addresses:
                key = keys.get(raw)
                if key is None:
                    continue
                if key in blacklisted:
                    self.logger.info("Skipping blacklisted recipient %s", key)
                    if self.metrics:
                        self.metrics.inc_dropped("blacklisted")
                    continue
                kept.append(raw)
            filtered.append(kept)
        return filtered

    @staticmethod
    def _iter_candidates(lists: Iterable[list[str] | None]) -> Iterable[str]:
        for addresses in lists:
            yield from addresses or []

    async def _lookup_blacklisted(self, keys: set[str]) -> set[str]:
        if not keys:
            return set()
        semaphore = asyncio.Semaphore(self.lookup_concurrency)

        async def _check(key: str) -> bool:
            async with semaphore:
                try:
                    entry = await self.store.read(key)
                except StoreError:
                    raise
                except Exception as exc:
                    raise StoreError(f"Blacklist lookup failed for {key}: {exc}") from exc
            if self._log_delivery_activity:
                self.logger.debug("Blacklist lookup %s -> %s", key, "hit" if entry else "miss")
            return entry is not None

        ordered = sorted(keys)
        results = await asyncio.gather(*(_check(key) for key in ordered), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return {key for key, hit in zip(ordered, results, strict=True) if hit}
