"""Transactional email through the Resend HTTP API.

Reads credentials from environment variables:
  RESEND_API_KEY           API key; when unset emails are only logged (dev mode)
  CONFIRMATION_FROM_EMAIL  Display name <email> (default: Sunset Net <onboarding@resend.dev>)
"""
import logging
from typing import Optional

import requests

from funnel.infrastructure.settings import http_timeout, resend_config

RESEND_URL = "https://api.resend.com/emails"

WELCOME_SUBJECT = "Welcome to Sunset Net"
INVITE_SUBJECT = "You're approved — Sunset Net"

log = logging.getLogger("funnel.email")


class EmailDeliveryError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def email_enabled() -> bool:
    return bool(resend_config()["api_key"])


def _welcome_html() -> str:
    return "\n".join([
        "<p>Welcome to Sunset Net.</p>",
        "<p>Your free trial is ready. Log in to get started.</p>",
        "<p>— Sunset Net</p>",
    ])


def _invite_html() -> str:
    return "\n".join([
        "<p>You've been approved for Sunset Net.</p>",
        "<p>Your account is ready. Log in to get started with your free trial.</p>",
        "<p>Welcome aboard.</p>",
        "<p>— Sunset Net</p>",
    ])


def send_email(to_email: str, subject: str, html: str,
               session: Optional[requests.Session] = None) -> None:
    """Send one HTML email. Raises EmailDeliveryError when Resend rejects it.

    Without RESEND_API_KEY the message is logged and nothing is sent.
    """
    cfg = resend_config()

    if not cfg["api_key"]:
        log.info("[DEV MODE] Email to %s not sent: %s", to_email, subject)
        return

    payload = {
        "from": cfg["from"],
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {cfg['api_key']}",
    }
    sender = session or requests
    try:
        resp = sender.post(RESEND_URL, json=payload, headers=headers, timeout=http_timeout())
    except requests.RequestException as exc:
        log.error("Email to %s failed: %s", to_email, exc)
        raise EmailDeliveryError(str(exc)) from exc

    if not resp.ok:
        log.error("Resend rejected email to %s: %s %s", to_email, resp.status_code, resp.text[:500])
        raise EmailDeliveryError(f"Resend returned {resp.status_code}", resp.status_code)

    log.info("Email '%s' sent to %s", subject, to_email)


def send_welcome_email(to_email: str) -> None:
    send_email(to_email, WELCOME_SUBJECT, _welcome_html())


def send_invite_email(to_email: str) -> None:
    send_email(to_email, INVITE_SUBJECT, _invite_html())
