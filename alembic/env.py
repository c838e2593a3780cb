"""Alembic environment for the medical records schema.

The database URL is taken from, in order:
    1. ``alembic -x db_url=...``
    2. ``ALEMBIC_DATABASE_URL`` or ``DATABASE_URL``
    3. the application settings (``.env``)

Async driver suffixes are swapped for their sync counterparts, so the same
``postgresql+asyncpg://`` URL the app uses works here too.
"""

from logging.config import fileConfig
import os
import sys

from alembic import context
from sqlalchemy import pool, engine_from_config

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

config = context.config


def _to_sync_url(url: str) -> str:
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


def _resolve_database_url() -> str:
    cli_url = context.get_x_argument(as_dictionary=True).get("db_url")
    if cli_url:
        return _to_sync_url(cli_url)

    env_url = os.environ.get("ALEMBIC_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if env_url:
        return _to_sync_url(env_url)

    try:
        from src.medrecords.core.config import get_settings

        return _to_sync_url(get_settings().DATABASE_URL)
    except Exception as exc:
        raise RuntimeError(
            "Cannot resolve database URL. Pass -x db_url=..., set "
            f"ALEMBIC_DATABASE_URL / DATABASE_URL, or fix .env. Original error: {exc}"
        ) from exc


config.set_main_option("sqlalchemy.url", _resolve_database_url())

from src.medrecords.db.session import Base  # noqa: E402
from src.medrecords.models import AuditLog, Doctor, Patient, StaffUser  # noqa: E402, F401

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it (``--sql``)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
