"""Field helpers shared by the record schemas."""
from __future__ import annotations

from typing import Any

from ..core.config import get_settings


def blank_to_none(value: Any) -> Any:
    """Console forms submit empty strings for untouched optional inputs."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def require_text(value: str | None, field: str = "Name") -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def check_password_strength(value: str) -> str:
    min_length = get_settings().PASSWORD_MIN_LENGTH
    if len(value) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    return value
