# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for the notification dispatcher.

Settings come from an INI file (default: ``config.ini``, overridable with
``NDS_CONFIG``) with environment variables as fallbacks. A value present in
the file wins over the environment.

Environment variables (all prefixed with NDS_):
    NDS_CONFIG - Path to config.ini file (default: config.ini)
    NDS_LOG_LEVEL - Logging level (default: INFO)
    NDS_HOST / NDS_PORT / NDS_API_TOKEN - HTTP server
    NDS_STORE_BACKEND - sqlite | dynamodb (default: sqlite)
    NDS_DB_PATH - SQLite database path (default: /data/blacklist.db)
    NDS_DYNAMODB_TABLE - DynamoDB table (default: Notification.BlackList)
    NDS_AWS_REGION - Region for every AWS client
    NDS_TEMPLATE_BACKEND - filesystem | s3 (default: filesystem)
    NDS_TEMPLATE_DIR / NDS_TEMPLATE_BUCKET - Template location
    NDS_SENDER_BACKEND - smtp | ses (default: smtp)
    NDS_DEFAULT_SENDER - Sender address for messages without one
    NDS_SMTP_HOST / NDS_SMTP_PORT / NDS_SMTP_USER / NDS_SMTP_PASSWORD / NDS_SMTP_USE_TLS
    NDS_SEND_TIMEOUT - Seconds allowed per send (default: 30)
    NDS_SQS_QUEUE_URL - Enables the SQS poll loop when set
    NDS_SQS_MAX_MESSAGES / NDS_SQS_WAIT_SECONDS / NDS_POLL_INTERVAL
    NDS_MAX_CONCURRENCY / NDS_LOOKUP_CONCURRENCY - Dispatch fan-out limits
    NDS_LOG_DELIVERY_ACTIVITY - Verbose delivery logging (default: False)

Config file sections/keys:
    [server] host, port, api_token
    [storage] backend, db_path, dynamodb_table, region
    [templates] backend, base_dir, bucket
    [sender] backend, default_sender, host, port, user, password, use_tls, timeout, region
    [queue] sqs_queue_url, max_messages, wait_time_seconds, poll_interval
    [dispatch] max_concurrency, lookup_concurrency
    [logging] level, delivery_activity
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path

from .logger import get_logger

logger = get_logger("ConfigLoader")


@dataclass
class ServiceSettings:
    """Resolved service configuration."""

    # Server
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    api_token: str | None = None

    # Blacklist store
    store_backend: str = "sqlite"
    db_path: str = "/data/blacklist.db"
    dynamodb_table: str = "Notification.BlackList"
    aws_region: str | None = None

    # Templates
    template_backend: str = "filesystem"
    template_dir: str | None = None
    template_bucket: str | None = None

    # Sender
    sender_backend: str = "smtp"
    default_sender: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 25
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool | None = None
    send_timeout: float = 30.0

    # Queue
    sqs_queue_url: str | None = None
    sqs_max_messages: int = 10
    sqs_wait_time_seconds: int = 20
    poll_interval: float = 5.0

    # Dispatch
    max_concurrency: int = 10
    lookup_concurrency: int = 10

    # Logging
    log_level: str = "INFO"
    log_delivery_activity: bool = False


def _parse_bool(value: str | None, default: bool | None) -> bool | None:
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    logger.warning("Invalid boolean value %r, using default %r", value, default)
    return default


def load_settings(config_path: str | os.PathLike[str] | None = None) -> ServiceSettings:
    """Load settings from an INI file with ``NDS_*`` environment fallbacks.

    Args:
        config_path: INI file to read. Defaults to ``$NDS_CONFIG`` or
            ``config.ini``. A missing file is not an error.

    Returns:
        ServiceSettings populated from file, environment and defaults.

    Raises:
        ValueError: If a numeric option cannot be parsed.
    """
    path = Path(config_path or os.getenv("NDS_CONFIG", "config.ini"))
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
    else:
        logger.debug("Config file %s not found, using environment and defaults", path)

    def get(section: str, option: str, env: str | None = None, default: str | None = None) -> str | None:
        if parser.has_option(section, option):
            value = parser.get(section, option).strip()
            return value or default
        if env:
            value = os.getenv(env)
            if value is not None and value.strip():
                return value.strip()
        return default

    def get_int(section: str, option: str, env: str, default: int) -> int:
        value = get(section, option, env)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise ValueError(f"[{section}] {option} must be an integer, got {value!r}") from exc

    def get_float(section: str, option: str, env: str, default: float) -> float:
        value = get(section, option, env)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError as exc:
            raise ValueError(f"[{section}] {option} must be a number, got {value!r}") from exc

    region = get("storage", "region", "NDS_AWS_REGION") or get("sender", "region")
    db_path = get("storage", "db_path", "NDS_DB_PATH", "/data/blacklist.db")
    template_dir = get("templates", "base_dir", "NDS_TEMPLATE_DIR")

    return ServiceSettings(
        http_host=get("server", "host", "NDS_HOST", "0.0.0.0"),
        http_port=get_int("server", "port", "NDS_PORT", 8000),
        api_token=get("server", "api_token", "NDS_API_TOKEN"),
        store_backend=get("storage", "backend", "NDS_STORE_BACKEND", "sqlite").lower(),
        db_path=os.path.expanduser(db_path),
        dynamodb_table=get("storage", "dynamodb_table", "NDS_DYNAMODB_TABLE", "Notification.BlackList"),
        aws_region=region,
        template_backend=get("templates", "backend", "NDS_TEMPLATE_BACKEND", "filesystem").lower(),
        template_dir=os.path.expanduser(template_dir) if template_dir else None,
        template_bucket=get("templates", "bucket", "NDS_TEMPLATE_BUCKET"),
        sender_backend=get("sender", "backend", "NDS_SENDER_BACKEND", "smtp").lower(),
        default_sender=get("sender", "default_sender", "NDS_DEFAULT_SENDER"),
        smtp_host=get("sender", "host", "NDS_SMTP_HOST"),
        smtp_port=get_int("sender", "port", "NDS_SMTP_PORT", 25),
        smtp_user=get("sender", "user", "NDS_SMTP_USER"),
        smtp_password=get("sender", "password", "NDS_SMTP_PASSWORD"),
        smtp_use_tls=_parse_bool(get("sender", "use_tls", "NDS_SMTP_USE_TLS"), None),
        send_timeout=get_float("sender", "timeout", "NDS_SEND_TIMEOUT", 30.0),
        sqs_queue_url=get("queue", "sqs_queue_url", "NDS_SQS_QUEUE_URL"),
        sqs_max_messages=get_int("queue", "max_messages", "NDS_SQS_MAX_MESSAGES", 10),
        sqs_wait_time_seconds=get_int("queue", "wait_time_seconds", "NDS_SQS_WAIT_SECONDS", 20),
        poll_interval=get_float("queue", "poll_interval", "NDS_POLL_INTERVAL", 5.0),
        max_concurrency=get_int("dispatch", "max_concurrency", "NDS_MAX_CONCURRENCY", 10),
        lookup_concurrency=get_int("dispatch", "lookup_concurrency", "NDS_LOOKUP_CONCURRENCY", 10),
        log_level=(get("logging", "level", "NDS_LOG_LEVEL", "INFO") or "INFO").upper(),
        log_delivery_activity=bool(
            _parse_bool(get("logging", "delivery_activity", "NDS_LOG_DELIVERY_ACTIVITY"), False)
        ),
    )
