"""Application Configuration Module.

Implements 12-factor app configuration using pydantic-settings.
All configuration is loaded from environment variables with sensible defaults.

Environment file loading priority:
1. If APP_ENV is set, loads .env.{APP_ENV} (e.g., .env.dev, .env.prod)
2. Falls back to .env if specific file doesn't exist
3. Environment variables always override file values
"""
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_file() -> str | tuple[str, ...]:
    """
    Determine which .env file(s) to load based on APP_ENV.

    Priority (later files override earlier):
    1. .env (base defaults)
    2. .env.{APP_ENV} (environment-specific overrides)
    """
    app_env = os.getenv("APP_ENV", "").lower()

    env_to_file = {
        "dev": "dev",
        "development": "dev",
        "prod": "prod",
        "production": "prod",
        "staging": "staging",
        "test": "test",
    }

    file_suffix = env_to_file.get(app_env, app_env)

    env_files: list[str] = []

    if Path(".env").exists():
        env_files.append(".env")

    if file_suffix:
        env_specific = f".env.{file_suffix}"
        if Path(env_specific).exists():
            env_files.append(env_specific)

    if env_files:
        return tuple(env_files)
    return ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment file loading:
    - Set APP_ENV=dev to load .env.dev
    - Set APP_ENV=prod to load .env.prod
    - Falls back to .env if specific file doesn't exist
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application Settings
    # ========================================
    APP_NAME: str = Field(
        default="medrecords-console-api",
        description="Application name used in logging"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Semantic version of the application"
    )
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (never enable in production)"
    )

    # ========================================
    # Logging
    # ========================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # ========================================
    # Database Configuration (PostgreSQL)
    # ========================================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL database connection URL (SQLAlchemy asyncpg format). Required in production."
    )
    DATABASE_POOL_SIZE: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Database connection pool size"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=10,
        ge=0,
        description="Max overflow connections beyond pool size"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30,
        ge=1,
        description="Timeout for getting connection from pool (seconds)"
    )
    DATABASE_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to logs"
    )

    # ========================================
    # Security Configuration
    # ========================================
    SECRET_KEY: str = Field(
        default="change-me-in-production-use-strong-random-key",
        min_length=32,
        description="Secret key for JWT signing"
    )
    ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60,
        ge=1,
        description="JWT access token expiration time (minutes)"
    )
    PASSWORD_RESET_EXPIRE_MINUTES: int = Field(
        default=30,
        ge=5,
        le=1440,
        description="Lifetime of password-reset tokens (minutes)"
    )
    PASSWORD_RESET_URL: str = Field(
        default="http://localhost:5173/reset-password",
        description="Console page that receives the reset token as ?token=..."
    )
    PASSWORD_MIN_LENGTH: int = Field(
        default=8,
        ge=6,
        le=128,
        description="Minimum accepted password length"
    )

    # ========================================
    # CORS Configuration
    # ========================================
    CORS_ORIGINS: str = Field(
        default="*",
        description=(
            "Comma-separated list of allowed CORS origins. "
            "Set explicit origins in production; browsers reject credentials "
            "when the server echoes the wildcard '*'."
        ),
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow credentials in CORS requests. Must be False when CORS_ORIGINS='*'."
    )
    CORS_ALLOW_METHODS: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS,PATCH,HEAD",
        description="Comma-separated list of allowed HTTP methods"
    )

    # ========================================
    # File Upload Settings
    # ========================================
    MAX_FILE_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum upload file size in MB"
    )
    ALLOWED_IMAGE_EXTENSIONS: str = Field(
        default="png,jpg,jpeg,gif,webp",
        description="Comma-separated list of allowed attachment extensions"
    )

    # ========================================
    # Blob Storage Configuration
    # ========================================
    STORAGE_BACKEND: Literal["local", "s3"] = Field(
        default="local",
        description="Storage backend to use: 'local' for filesystem, 's3' for AWS S3"
    )
    BLOB_STORAGE_PATH: str = Field(
        default="./blob_storage",
        description="Local filesystem path for blob storage"
    )
    BLOB_BASE_URL: str = Field(
        default="/api/v1/blobs",
        description="Base URL of the blob routes; record rows store URLs under it unless S3 serves them publicly"
    )
    DOCTOR_IMAGES_BUCKET: str = Field(
        default="doctor-images",
        description="Bucket holding doctor profile images"
    )
    PATIENT_REPORTS_BUCKET: str = Field(
        default="patient-reports",
        description="Bucket holding patient report images"
    )
    PURGE_ATTACHMENTS_ON_SOFT_DELETE: bool = Field(
        default=True,
        description="Best-effort removal of a record's attachment after it is soft-deleted"
    )
    BLOB_ORPHAN_GRACE_SECONDS: int = Field(
        default=3600,
        ge=0,
        description="Unreferenced blobs younger than this are left alone by the orphan sweep"
    )

    # AWS S3 Settings
    AWS_ACCESS_KEY_ID: str = Field(default="", description="AWS access key ID for S3")
    AWS_SECRET_ACCESS_KEY: str = Field(default="", description="AWS secret access key for S3")
    AWS_REGION: str = Field(default="us-east-1", description="AWS region for S3 bucket")
    AWS_S3_BUCKET: str = Field(default="", description="S3 bucket name for blob storage")
    AWS_S3_PREFIX: str = Field(
        default="medrecords",
        description="Prefix for S3 object keys (e.g., 'medrecords' -> medrecords/doctor-images/<id>.jpg)"
    )
    AWS_S3_USE_SIGNED_URLS: bool = Field(
        default=False,
        description="Use signed URLs for S3 objects (True) or public URLs (False)"
    )
    AWS_S3_SIGNED_URL_EXPIRY: int = Field(
        default=3600,
        ge=60,
        le=604800,
        description="Signed URL expiry time in seconds (default 1 hour)"
    )

    # ========================================
    # Email / SMTP Configuration
    # ========================================
    EMAIL_ENABLED: bool = Field(
        default=False,
        description="Enable outbound email (password reset links)."
    )
    SMTP_HOST: str = Field(default="", description="SMTP server hostname")
    SMTP_PORT: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port (587 = STARTTLS, 465 = SSL/TLS, 25 = plain)",
    )
    SMTP_USERNAME: str = Field(default="", description="SMTP authentication username")
    SMTP_PASSWORD: str = Field(default="", description="SMTP authentication password / API key")
    SMTP_USE_TLS: bool = Field(default=True, description="Use STARTTLS upgrade (port 587)")
    SMTP_USE_SSL: bool = Field(
        default=False,
        description="Use implicit SSL (port 465). Mutually exclusive with SMTP_USE_TLS.",
    )
    EMAIL_FROM_ADDRESS: str = Field(default="", description="From address for outbound email")
    EMAIL_FROM_NAME: str = Field(default="MedRecords Console", description="From display name")
    EMAIL_TEMPLATES_PATH: str = Field(
        default="config/email_templates.yaml",
        description="Path to the YAML file containing email subject/body templates",
    )
    EMAIL_TIMEOUT_SECONDS: int = Field(
        default=10,
        ge=1,
        le=60,
        description="Timeout for SMTP connection and send operations (seconds)",
    )

    # ========================================
    # Audit
    # ========================================
    AUDIT_LOG_DEFAULT_LIMIT: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Default page size for the audit trail"
    )

    # Computed Properties
    # ========================================
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def cors_methods_list(self) -> list[str]:
        """Parse CORS methods from comma-separated string."""
        return [method.strip() for method in self.CORS_ALLOW_METHODS.split(",")]

    @property
    def allowed_image_extensions_list(self) -> list[str]:
        """Parse allowed attachment extensions (lowercase, no dot)."""
        return [
            ext.strip().lower().lstrip(".")
            for ext in self.ALLOWED_IMAGE_EXTENSIONS.split(",")
            if ext.strip()
        ]

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    # ========================================
    # Validators
    # ========================================
    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Require DATABASE_URL; warn (not silently substitute) when absent in dev."""
        if not v:
            warnings.warn(
                "DATABASE_URL is not set. The application will fail on first DB access.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.CORS_ORIGINS.strip() == "*" and self.CORS_ALLOW_CREDENTIALS:
            raise ValueError(
                "CORS_ALLOW_CREDENTIALS cannot be True when CORS_ORIGINS is '*'. "
                "Set CORS_ORIGINS to an explicit comma-separated list of origins."
            )
        if self.SMTP_USE_TLS and self.SMTP_USE_SSL:
            raise ValueError("SMTP_USE_TLS and SMTP_USE_SSL are mutually exclusive")

        if self.is_production:
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if "change-me" in self.SECRET_KEY.lower():
                raise ValueError("SECRET_KEY must be changed in production")
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production")
            if "localhost" in self.DATABASE_URL or "127.0.0.1" in self.DATABASE_URL:
                raise ValueError("DATABASE_URL must not point to localhost in production")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings instance.

    Tests can reset it with ``get_settings.cache_clear()``.
    """
    return Settings()


settings = get_settings()
