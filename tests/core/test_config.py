"""Tests for settings parsing and validation."""

import pytest
from pydantic import ValidationError

from src.medrecords.core.config import Settings

SECRET = "test-secret-key-that-is-at-least-32-characters"


def test_list_properties():
    settings = Settings(
        SECRET_KEY=SECRET,
        CORS_ORIGINS="http://a.example, http://b.example,",
        ALLOWED_IMAGE_EXTENSIONS=".PNG, jpg ,",
        MAX_FILE_SIZE_MB=2,
    )

    assert settings.cors_origins_list == ["http://a.example", "http://b.example"]
    assert settings.allowed_image_extensions_list == ["png", "jpg"]
    assert settings.max_file_size_bytes == 2 * 1024 * 1024


def test_wildcard_cors_with_credentials_is_rejected():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY=SECRET, CORS_ORIGINS="*", CORS_ALLOW_CREDENTIALS=True)


def test_smtp_tls_and_ssl_are_exclusive():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY=SECRET, SMTP_USE_TLS=True, SMTP_USE_SSL=True)


@pytest.mark.parametrize(
    "overrides",
    [
        {"DEBUG": True},
        {"SECRET_KEY": "change-me-please-change-me-please"},
        {"DATABASE_URL": "postgresql+asyncpg://user:pw@localhost:5432/medrecords"},
    ],
)
def test_production_guards(overrides):
    values = {
        "APP_ENV": "production",
        "DEBUG": False,
        "SECRET_KEY": SECRET,
        "DATABASE_URL": "postgresql+asyncpg://user:pw@db.internal:5432/medrecords",
        **overrides,
    }

    with pytest.raises(ValidationError):
        Settings(**values)


def test_production_settings_accepted():
    settings = Settings(
        APP_ENV="production",
        DEBUG=False,
        SECRET_KEY=SECRET,
        DATABASE_URL="postgresql+asyncpg://user:pw@db.internal:5432/medrecords",
    )

    assert settings.is_production
    assert not settings.is_development
