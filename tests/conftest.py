"""Pytest fixtures and configuration."""

from __future__ import annotations

import os

# Settings are read at import time; pin a test configuration first.
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")
os.environ.setdefault("PASSWORD_MIN_LENGTH", "8")

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.medrecords.core.config import get_settings
from src.medrecords.core.rbac import SessionContext
from src.medrecords.core.security import create_access_token, hash_password
from src.medrecords.db.session import Base, get_db
from src.medrecords.main import app
from src.medrecords.models import Doctor, Patient, StaffUser
from src.medrecords.models.enums import StaffRole
from src.medrecords.services.blob_storage_service import (
    LocalBlobStorageService,
    get_blob_storage_service,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "correct-horse-battery"

# Smallest valid PNG (1x1, transparent)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def user_password() -> str:
    return TEST_PASSWORD


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStorageService:
    return LocalBlobStorageService(base_path=tmp_path / "blobs", base_url="/api/v1/blobs")


@pytest_asyncio.fixture(scope="function")
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    blob_store: LocalBlobStorageService,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database and blob store."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage_service] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    async def _make_user(
        email: str,
        role: StaffRole = StaffRole.STAFF,
        *,
        password: str = TEST_PASSWORD,
        is_active: bool = True,
        full_name: str | None = None,
    ) -> StaffUser:
        async with session_factory() as session:
            user = StaffUser(
                email=email.lower(),
                full_name=full_name,
                password_hash=hash_password(password),
                role=role.value,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            return user

    return _make_user


@pytest_asyncio.fixture
async def admin_user(make_user: Callable) -> StaffUser:
    return await make_user("admin@clinic.example", StaffRole.ADMIN, full_name="Clinic Admin")


@pytest_asyncio.fixture
async def staff_user(make_user: Callable) -> StaffUser:
    return await make_user("nurse@clinic.example", StaffRole.STAFF, full_name="Ward Nurse")


def auth_headers_for(user: StaffUser) -> dict[str, str]:
    token, _ = create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role,
        settings=get_settings(),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[StaffUser], dict[str, str]]:
    return auth_headers_for


@pytest.fixture
def admin_headers(admin_user: StaffUser) -> dict[str, str]:
    return auth_headers_for(admin_user)


@pytest.fixture
def staff_headers(staff_user: StaffUser) -> dict[str, str]:
    return auth_headers_for(staff_user)


@pytest.fixture
def admin_session(admin_user: StaffUser) -> SessionContext:
    return SessionContext(user_id=admin_user.id, email=admin_user.email, role=StaffRole.ADMIN)


@pytest.fixture
def staff_session(staff_user: StaffUser) -> SessionContext:
    return SessionContext(user_id=staff_user.id, email=staff_user.email, role=StaffRole.STAFF)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_doctor_data() -> dict:
    return {
        "name": "Dr. Jane Smith",
        "specialization": "Cardiology",
        "email": "jane.smith@clinic.example",
        "phone": "+1-555-0123",
        "experience": 5,
    }


@pytest.fixture
def sample_patient_data() -> dict:
    return {
        "name": "John Doe",
        "age": 42,
        "gender": "Male",
        "contact": "+1-555-0199",
        "diagnosis": "Hypertension",
    }


@pytest.fixture
def make_doctor(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    async def _make_doctor(name: str = "Dr. Jane Smith", **fields) -> Doctor:
        async with session_factory() as session:
            doctor = Doctor(name=name, **fields)
            session.add(doctor)
            await session.commit()
            return doctor

    return _make_doctor


@pytest.fixture
def make_patient(session_factory: async_sessionmaker[AsyncSession]) -> Callable:
    async def _make_patient(name: str = "John Doe", age: int = 40, **fields) -> Patient:
        async with session_factory() as session:
            patient = Patient(name=name, age=age, **fields)
            session.add(patient)
            await session.commit()
            return patient

    return _make_patient
