"""Tests for password hashing and the HS256 token helpers."""

from datetime import UTC, datetime

import pytest

from src.medrecords.core.config import Settings
from src.medrecords.core.exceptions import UnauthorizedError
from src.medrecords.core.security import (
    _decode_jwt,
    _encode_jwt,
    create_access_token,
    create_password_reset_token,
    decode_access_token,
    decode_password_reset_token,
    hash_password,
    password_fingerprint,
    verify_password,
)

SECRET = "test-secret-key-that-is-at-least-32-characters"


@pytest.fixture
def mock_settings():
    return Settings(SECRET_KEY=SECRET, APP_ENV="development")


def _now() -> int:
    return int(datetime.now(UTC).timestamp())


# --- passwords ---

def test_hash_and_verify_password():
    password_hash = hash_password("correct-horse-battery")

    assert password_hash != "correct-horse-battery"
    assert verify_password("correct-horse-battery", password_hash)
    assert not verify_password("wrong", password_hash)


@pytest.mark.parametrize("stored", [None, "", "not-a-known-hash-format"])
def test_verify_password_unusable_hash(stored):
    assert verify_password("anything", stored) is False


def test_fingerprint_follows_password_hash():
    first = hash_password("one-password")
    second = hash_password("one-password")

    assert password_fingerprint(first) == password_fingerprint(first)
    assert password_fingerprint(first) != password_fingerprint(second)


# --- access tokens ---

def test_access_token_round_trip(mock_settings):
    token, expires_in = create_access_token(user_id=7, email="a@clinic.example", role="admin", settings=mock_settings)

    payload = decode_access_token(token, settings=mock_settings)
    assert payload["sub"] == "7"
    assert payload["role"] == "admin"
    assert expires_in == mock_settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_decode_jwt_expired(mock_settings):
    token = _encode_jwt({"sub": "1", "exp": _now() - 10}, secret=SECRET)

    with pytest.raises(UnauthorizedError) as exc:
        _decode_jwt(token, settings=mock_settings)
    assert exc.value.error_code == "TOKEN_EXPIRED"


def test_decode_jwt_invalid_signature(mock_settings):
    token = _encode_jwt({"sub": "1", "exp": _now() + 60}, secret="some-other-secret")

    with pytest.raises(UnauthorizedError) as exc:
        _decode_jwt(token, settings=mock_settings)
    assert exc.value.error_code == "INVALID_TOKEN"
    assert "signature" in exc.value.message.lower()


@pytest.mark.parametrize("token", ["not-a-token", "a.b", "a.b.c.d"])
def test_decode_jwt_invalid_format(mock_settings, token):
    with pytest.raises(UnauthorizedError):
        _decode_jwt(token, settings=mock_settings)


def test_decode_jwt_invalid_exp(mock_settings):
    token = _encode_jwt({"sub": "1", "exp": "never"}, secret=SECRET)

    with pytest.raises(UnauthorizedError) as exc:
        _decode_jwt(token, settings=mock_settings)
    assert "expiration" in exc.value.message.lower()


def test_encode_rejects_other_algorithms():
    with pytest.raises(ValueError):
        _encode_jwt({"sub": "1"}, secret=SECRET, algorithm="RS256")


# --- reset tokens ---

def test_reset_token_round_trip(mock_settings):
    password_hash = hash_password("old-password")
    token = create_password_reset_token(user_id=3, password_hash=password_hash, settings=mock_settings)

    payload = decode_password_reset_token(token, settings=mock_settings)
    assert payload["sub"] == "3"
    assert payload["fp"] == password_fingerprint(password_hash)


def test_reset_token_is_not_an_access_token(mock_settings):
    token = create_password_reset_token(user_id=3, password_hash="x", settings=mock_settings)

    with pytest.raises(UnauthorizedError) as exc:
        decode_access_token(token, settings=mock_settings)
    assert exc.value.error_code == "INVALID_TOKEN"


def test_access_token_is_not_a_reset_token(mock_settings):
    token, _ = create_access_token(user_id=3, email="a@clinic.example", role="staff", settings=mock_settings)

    with pytest.raises(UnauthorizedError) as exc:
        decode_password_reset_token(token, settings=mock_settings)
    assert exc.value.error_code == "INVALID_RESET_TOKEN"
