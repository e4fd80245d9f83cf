# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

This module builds a FastAPI application from the INI/environment settings
and ties the NotificationService lifecycle to the application lifespan.

Usage:
    uvicorn notification_dispatch.server:build_app --factory --host 0.0.0.0 --port 8000

Environment variables:
    NDS_CONFIG: Path to config.ini (default: config.ini)
    NDS_*: Any fallback documented in :mod:`notification_dispatch.config_loader`
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import create_app
from .config_loader import ServiceSettings, load_settings
from .core import NotificationService
from .logger import configure_logging


def build_app(settings: ServiceSettings | None = None, service: NotificationService | None = None) -> FastAPI:
    """Create the configured application.

    Args:
        settings: Resolved settings. Loaded with :func:`load_settings` when omitted.
        service: Prebuilt service. Built from ``settings`` when omitted.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    svc = service or NotificationService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler - starts and stops the service."""
        await svc.start()
        yield
        await svc.stop()

    return create_app(svc, api_token=settings.api_token, lifespan=lifespan)
