"""SendGrid email service.

Only the password-reset email is sent today. The synchronous SendGrid
client is wrapped with asyncio.to_thread.
"""

import asyncio
import logging

import sendgrid
from sendgrid.helpers.mail import Email, HtmlContent, Mail, To

logger = logging.getLogger(__name__)


def _get_config():
    """Get email config from app settings (lazy to avoid import-time issues)."""
    from estateguard.app.config import get_settings
    s = get_settings()
    return s.sendgrid_api_key, s.email_from, s.frontend_url.rstrip("/")


def _send_mail(mail: Mail) -> bool:
    """Synchronous send via SendGrid. Returns True on success."""
    api_key, _, _ = _get_config()
    client = sendgrid.SendGridAPIClient(api_key=api_key)
    response = client.send(mail)
    if response.status_code in (200, 201, 202):
        return True
    logger.error(
        "SendGrid returned status %s: %s",
        response.status_code,
        response.body,
    )
    return False


def _build_reset_html(name: str, reset_url: str, minutes: int) -> str:
    return f"""
<div style="font-family: Georgia, serif; max-width: 520px; margin: 0 auto; color: #1a1a1a;">
  <h2 style="color: #d4af37;">Reset your EstateGuard password</h2>
  <p>Hi {name},</p>
  <p>We received a request to reset the password on your agency account.
  The link below works once and expires in {minutes} minutes.</p>
  <p><a href="{reset_url}" style="background: #d4af37; color: #000; padding: 10px 18px;
  text-decoration: none; border-radius: 4px;">Choose a new password</a></p>
  <p style="font-size: 12px; color: #666;">If you did not ask for this, you can ignore this email.</p>
</div>
"""


async def send_password_reset(email: str, name: str, token: str, minutes: int) -> bool:
    """Email a password-reset link.

    Returns:
        True on success, False when skipped or on failure.
    """
    api_key, sender, frontend_url = _get_config()
    if not api_key:
        logger.warning("SENDGRID_API_KEY not set, skipping password reset email")
        return False

    try:
        reset_url = f"{frontend_url}/reset-password?token={token}"
        mail = Mail(
            from_email=Email(sender, "EstateGuard AI"),
            to_emails=To(email),
            subject="Reset your EstateGuard password",
            html_content=HtmlContent(_build_reset_html(name, reset_url, minutes)),
        )
        result = await asyncio.to_thread(_send_mail, mail)
        if result:
            logger.info("Password reset email sent to %s", email)
        return result
    except Exception:
        logger.exception("Failed to send password reset email to %s", email)
        return False
