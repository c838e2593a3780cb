"""Security helpers: HS256 JWTs and password hashing.

Access tokens and password-reset tokens share the same minimal HS256
encoder. Reset tokens carry ``purpose="password_reset"`` and a short
fingerprint of the account's current password hash, so a token stops
verifying as soon as the password it was issued against changes.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import UTC, datetime, timedelta
from typing import Any

from passlib.context import CryptContext

from .config import Settings
from .exceptions import UnauthorizedError

PASSWORD_RESET_PURPOSE = "password_reset"

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised hash format in the database
        return False


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a stored hash, embedded in reset tokens."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------------
# JWT encoding / decoding
# ---------------------------------------------------------------------------

def _base64url_encode(data: bytes) -> str:
    """Encode bytes using base64 URL-safe encoding without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Decode a base64url-encoded string, handling missing padding."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _encode_jwt(payload: dict[str, Any], *, secret: str, algorithm: str = "HS256") -> str:
    """Minimal HS256 JWT encoder."""
    if algorithm != "HS256":
        raise ValueError("Only HS256 algorithm is supported in this implementation")

    header = {"alg": algorithm, "typ": "JWT"}

    header_json = json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8")
    payload_json = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    encoded_header = _base64url_encode(header_json)
    encoded_payload = _base64url_encode(payload_json)

    signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
    signature = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    encoded_signature = _base64url_encode(signature)

    return f"{encoded_header}.{encoded_payload}.{encoded_signature}"


def _decode_jwt(token: str, *, settings: Settings) -> dict[str, Any]:
    """Decode and validate an HS256 JWT.

    - Verifies signature with SECRET_KEY
    - Checks the exp claim against current UTC time
    """
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise UnauthorizedError(
            message="Invalid token format",
            error_code="INVALID_TOKEN",
        ) from exc

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_sig = hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        signing_input,
        hashlib.sha256,
    ).digest()
    expected_sig_b64 = _base64url_encode(expected_sig)

    if not hmac.compare_digest(signature_b64, expected_sig_b64):
        raise UnauthorizedError(
            message="Invalid token signature",
            error_code="INVALID_TOKEN",
        )

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as exc:
        raise UnauthorizedError(
            message="Invalid token payload",
            error_code="INVALID_TOKEN",
        ) from exc

    if not isinstance(payload, dict):
        raise UnauthorizedError(message="Invalid token payload", error_code="INVALID_TOKEN")

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise UnauthorizedError(
            message="Invalid token expiration",
            error_code="INVALID_TOKEN",
        )

    now_ts = int(datetime.now(UTC).timestamp())
    if now_ts >= exp:
        raise UnauthorizedError(
            message="Token has expired",
            error_code="TOKEN_EXPIRED",
        )

    return payload


def create_access_token(
    *,
    user_id: int,
    email: str,
    role: str,
    settings: Settings,
) -> tuple[str, int]:
    """Create a signed access token. Returns ``(token, expires_in_seconds)``."""
    now = datetime.now(UTC)
    expire_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + expire_delta).timestamp()),
        "email": email,
        "role": role,
    }
    token = _encode_jwt(claims, secret=settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, int(expire_delta.total_seconds())


def create_password_reset_token(
    *,
    user_id: int,
    password_hash: str,
    settings: Settings,
) -> str:
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "purpose": PASSWORD_RESET_PURPOSE,
        "fp": password_fingerprint(password_hash),
    }
    return _encode_jwt(claims, secret=settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, *, settings: Settings) -> dict[str, Any]:
    """Decode an access token; reset tokens are not accepted as credentials."""
    payload = _decode_jwt(token, settings=settings)
    if payload.get("purpose") is not None:
        raise UnauthorizedError(message="Invalid token type", error_code="INVALID_TOKEN")
    return payload


def decode_password_reset_token(token: str, *, settings: Settings) -> dict[str, Any]:
    payload = _decode_jwt(token, settings=settings)
    if payload.get("purpose") != PASSWORD_RESET_PURPOSE:
        raise UnauthorizedError(message="Invalid reset token", error_code="INVALID_RESET_TOKEN")
    return payload
