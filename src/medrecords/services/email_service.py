"""
Email Service.

Async SMTP email delivery using aiosmtplib + stdlib email.mime.
Templates are loaded from config/email_templates.yaml and rendered
with simple str.format_map() substitution.

Usage
-----
    email_svc: EmailService = Depends(get_email_service)
    await email_svc.send_password_reset(
        to_address="nurse@clinic.example",
        template_vars=email_svc.build_template_vars(full_name="Ann", reset_link="https://..."),
    )
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any

import aiosmtplib
import structlog
import yaml
from fastapi import Depends

from ..core.config import Settings, get_settings

log = structlog.get_logger(__name__)

PASSWORD_RESET_TEMPLATE = "password_reset"

# ---------------------------------------------------------------------------
# Template loading
# ---------------------------------------------------------------------------

_TEMPLATE_CACHE: dict[str, Any] | None = None


def _load_templates(path: str) -> dict[str, Any]:
    """Load email templates from YAML, cached for the process lifetime."""
    global _TEMPLATE_CACHE  # noqa: PLW0603
    if _TEMPLATE_CACHE is None:
        resolved = Path(path)
        if not resolved.is_absolute():
            # Relative to the project root (the directory holding src/)
            resolved = Path(__file__).parents[3] / path
        with resolved.open(encoding="utf-8") as fh:
            _TEMPLATE_CACHE = yaml.safe_load(fh) or {}
        log.info("email_templates_loaded", path=str(resolved))
    return _TEMPLATE_CACHE


def _invalidate_template_cache() -> None:
    """Force next call to _load_templates to re-read disk.  Intended for tests."""
    global _TEMPLATE_CACHE  # noqa: PLW0603
    _TEMPLATE_CACHE = None


def get_template(name: str, templates_path: str) -> dict[str, str]:
    """Return the raw (un-rendered) subject + body_html + body_text for *name*."""
    tmpl = _load_templates(templates_path).get(name)
    if not tmpl:
        raise ValueError(f"No email template found for '{name}'")
    return {
        "subject": tmpl.get("subject", ""),
        "body_html": tmpl.get("body_html", ""),
        "body_text": tmpl.get("body_text", ""),
    }


def render_template(template: dict[str, str], variables: dict[str, str]) -> dict[str, str]:
    """Substitute ``{placeholders}``; unknown placeholders are left as-is."""

    class _SafeMap(dict):  # type: ignore[type-arg]
        def __missing__(self, key: str) -> str:
            return f"{{{key}}}"

    safe = _SafeMap(variables)
    return {key: value.format_map(safe) for key, value in template.items()}


# ---------------------------------------------------------------------------
# EmailService
# ---------------------------------------------------------------------------


class EmailService:
    """Async SMTP email service, instantiated per request."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.EMAIL_ENABLED

    def build_template_vars(self, *, full_name: str | None, reset_link: str) -> dict[str, str]:
        return {
            "full_name": full_name or "there",
            "reset_link": reset_link,
            "expires_minutes": str(self._settings.PASSWORD_RESET_EXPIRE_MINUTES),
            "platform_name": self._settings.EMAIL_FROM_NAME,
            "support_email": self._settings.EMAIL_FROM_ADDRESS,
        }

    async def send_password_reset(self, *, to_address: str, template_vars: dict[str, str]) -> None:
        """Send the password reset link.

        Raises:
            RuntimeError: If email is disabled in settings.
            aiosmtplib.SMTPException: On SMTP transport errors (caller should catch).
        """
        if not self.enabled:
            raise RuntimeError(
                "Email sending is disabled.  Set EMAIL_ENABLED=true and configure SMTP settings."
            )

        raw = get_template(PASSWORD_RESET_TEMPLATE, self._settings.EMAIL_TEMPLATES_PATH)
        rendered = render_template(raw, template_vars)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = rendered["subject"]
        msg["From"] = f"{self._settings.EMAIL_FROM_NAME} <{self._settings.EMAIL_FROM_ADDRESS}>"
        msg["To"] = to_address

        # Plain text first, HTML second (RFC 2046 preference order)
        msg.attach(MIMEText(rendered["body_text"], "plain", "utf-8"))
        msg.attach(MIMEText(rendered["body_html"], "html", "utf-8"))

        await self._smtp_send(msg)
        log.info("email_sent", template=PASSWORD_RESET_TEMPLATE)

    # ------------------------------------------------------------------
    # SMTP transport
    # ------------------------------------------------------------------

    async def _smtp_send(self, msg: MIMEMultipart) -> None:
        """Low-level SMTP dispatch.  Handles STARTTLS and implicit-SSL modes."""
        s = self._settings
        kwargs: dict[str, Any] = {
            "hostname": s.SMTP_HOST,
            "port": s.SMTP_PORT,
            "timeout": s.EMAIL_TIMEOUT_SECONDS,
            "use_tls": s.SMTP_USE_SSL,
        }

        try:
            async with aiosmtplib.SMTP(**kwargs) as smtp:
                if s.SMTP_USE_TLS and not s.SMTP_USE_SSL:
                    await smtp.starttls()
                if s.SMTP_USERNAME and s.SMTP_PASSWORD:
                    await smtp.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
                await smtp.send_message(msg)
        except aiosmtplib.SMTPException as exc:
            log.error("smtp_error", error=str(exc), smtp_host=s.SMTP_HOST, smtp_port=s.SMTP_PORT)
            raise
        except TimeoutError as exc:
            log.error("smtp_timeout", smtp_host=s.SMTP_HOST, smtp_port=s.SMTP_PORT)
            raise aiosmtplib.SMTPConnectTimeoutError(
                f"SMTP connection timed out after {s.EMAIL_TIMEOUT_SECONDS}s"
            ) from exc


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def get_email_service(
    settings: Settings = Depends(get_settings),
) -> EmailService:
    """FastAPI dependency - returns a per-request ``EmailService`` instance."""
    return EmailService(settings)
