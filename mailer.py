from html import escape

import resend
from loguru import logger

from config import Settings


def configure_mailer(settings: Settings) -> bool:
    # the resend client reads a process-wide key, set it once at startup
    api_key = (settings.resend_api_key or "").strip()
    if api_key:
        resend.api_key = api_key
    return bool(api_key)


def send_email(settings: Settings, to: str, subject: str, html: str, text: str) -> bool:
    """Send one email through Resend. Returns False (and logs) instead of raising."""
    api_key = (settings.resend_api_key or "").strip()
    if not api_key:
        logger.debug(f"Email to {to} skipped, RESEND_API_KEY is not configured")
        return False

    payload = {
        "from": settings.mail_from,
        "to": [to],
        "subject": subject,
        "html": html,
        "text": text,
    }

    try:
        response = resend.Emails.send(payload)
    except Exception as exc:
        logger.warning(f"Email to {to} failed: {exc}")
        return False

    if not isinstance(response, dict) or not response.get("id"):
        logger.warning(f"Email to {to} was not accepted: {response}")
        return False

    return True


def send_welcome_email(settings: Settings, user: dict) -> bool:
    name = user.get("name") or user["username"]
    html = f"<p>Hi {escape(name)},</p><p>Your account <strong>{escape(user['username'])}</strong> is ready.</p>"
    text = f"Hi {name}, your account {user['username']} is ready."
    return send_email(settings, user["email"], "Welcome to Storefront", html, text)
