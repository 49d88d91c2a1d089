"""Tests for settings parsing."""

import pytest
from pydantic import ValidationError

from scheduling.config import Settings

REQUIRED = {"DATABASE_URL": "postgresql://scheduler@db/hospital", "JWT_SECRET_KEY": "s3cret-key"}


def test_async_database_url_selects_asyncpg():
    settings = Settings(**REQUIRED)

    assert settings.async_database_url == "postgresql+asyncpg://scheduler@db/hospital"


def test_async_database_url_keeps_explicit_driver():
    settings = Settings(**{**REQUIRED, "DATABASE_URL": "sqlite+aiosqlite:///./local.db"})

    assert settings.async_database_url == "sqlite+aiosqlite:///./local.db"


def test_cors_origins_from_comma_separated_string():
    settings = Settings(
        **REQUIRED, CORS_ORIGINS="https://ward.example.org, https://admin.example.org,"
    )

    assert settings.cors_origins == ["https://ward.example.org", "https://admin.example.org"]


def test_cors_origins_from_environment(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example.org,https://b.example.org")

    settings = Settings(**REQUIRED)

    assert settings.cors_origins == ["https://a.example.org", "https://b.example.org"]


def test_rejects_unknown_log_format():
    with pytest.raises(ValidationError):
        Settings(**REQUIRED, LOG_FORMAT="xml")
