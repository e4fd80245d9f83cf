"""Tests for settings loading from config.ini and NDS_* variables."""

import pytest

from notification_dispatch.config_loader import ServiceSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NDS_CONFIG", "NDS_PORT", "NDS_SMTP_HOST", "NDS_SMTP_USE_TLS", "NDS_AWS_REGION", "NDS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_file_missing(tmp_path):
    settings = load_settings(tmp_path / "missing.ini")
    assert settings == ServiceSettings()


def test_file_values(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("""
[server]
port = 9000
api_token = secret

[storage]
backend = DynamoDB
region = eu-west-1

[templates]
backend = s3
bucket = notification-templates

[sender]
backend = ses
default_sender = noreply@example.com
use_tls = yes
timeout = 12.5

[queue]
sqs_queue_url = https://sqs.eu-west-1.amazonaws.com/1/notifications
max_messages = 5

[logging]
level = debug
delivery_activity = on
""")

    settings = load_settings(config_file)

    assert settings.http_port == 9000
    assert settings.api_token == "secret"
    assert settings.store_backend == "dynamodb"
    assert settings.aws_region == "eu-west-1"
    assert settings.template_backend == "s3"
    assert settings.template_bucket == "notification-templates"
    assert settings.sender_backend == "ses"
    assert settings.default_sender == "noreply@example.com"
    assert settings.smtp_use_tls is True
    assert settings.send_timeout == 12.5
    assert settings.sqs_queue_url.endswith("/notifications")
    assert settings.sqs_max_messages == 5
    assert settings.log_level == "DEBUG"
    assert settings.log_delivery_activity is True


def test_file_wins_over_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[server]\nport = 9000\n")
    monkeypatch.setenv("NDS_PORT", "7000")
    monkeypatch.setenv("NDS_SMTP_HOST", "smtp.example.com")

    settings = load_settings(config_file)

    assert settings.http_port == 9000
    assert settings.smtp_host == "smtp.example.com"


def test_config_path_from_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "other.ini"
    config_file.write_text("[dispatch]\nmax_concurrency = 3\n")
    monkeypatch.setenv("NDS_CONFIG", str(config_file))
    assert load_settings().max_concurrency == 3


def test_sender_region_used_when_storage_has_none(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[sender]\nregion = us-east-1\n")
    assert load_settings(config_file).aws_region == "us-east-1"


def test_bad_integer_raises(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[server]\nport = eighty\n")
    with pytest.raises(ValueError, match="port"):
        load_settings(config_file)


def test_bad_boolean_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("NDS_SMTP_USE_TLS", "maybe")
    assert load_settings(tmp_path / "missing.ini").smtp_use_tls is None
