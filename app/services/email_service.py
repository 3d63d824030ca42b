"""
Outbound email.

Password reset mails go through the Resend HTTP API. Leave decisions are not
sent by the service: it only builds a Gmail compose link for the reviewer to open.
"""
import html
import logging
from typing import Dict, List, Union
from urllib.parse import quote, urlencode

import requests

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

GMAIL_COMPOSE_URL = "https://mail.google.com/mail/"


def send_email(to: Union[str, List[str]], subject: str, html: str) -> Dict:
    """POST one message to the transactional email API. Raises EmailDeliveryError on any failure."""
    email_settings = settings.email
    if not email_settings.resend_api_key:
        logger.error("Email delivery is not configured (RESEND_API_KEY missing)")
        raise EmailDeliveryError("Email delivery is not configured")

    recipients = [to] if isinstance(to, str) else list(to)
    try:
        response = requests.post(
            email_settings.api_url,
            headers={
                "Authorization": f"Bearer {email_settings.resend_api_key}",
                "Content-Type": "application/json",
            },
            json={
                "from": email_settings.sender,
                "to": recipients,
                "subject": subject,
                "html": html,
            },
            timeout=email_settings.timeout_seconds,
        )
    except requests.RequestException as e:
        logger.error(f"Email API request failed: {e}")
        raise EmailDeliveryError("Failed to reach the email service")

    if response.status_code >= 400:
        logger.error(
            f"Email API rejected message: {response.status_code}",
            extra={"response": response.text[:500]},
        )
        raise EmailDeliveryError("Failed to send email")

    logger.info(f"Email sent to {len(recipients)} recipient(s)", extra={"subject": subject})
    return response.json() if response.content else {}


def password_reset_html(name: str, reset_url: str, ttl_minutes: int) -> str:
    name = html.escape(name or "")
    reset_url = html.escape(reset_url)
    return f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #1f2937; max-width: 560px; margin: 0 auto;">
  <h2 style="color: #1e40af;">Reset your password</h2>
  <p>Hi {name},</p>
  <p>We received a request to reset the password for your account. Click the button below to choose a new one.</p>
  <p style="text-align: center; margin: 32px 0;">
    <a href="{reset_url}" style="background: #1e40af; color: #ffffff; padding: 12px 24px; border-radius: 6px; text-decoration: none;">Reset Password</a>
  </p>
  <p>This link expires in {ttl_minutes} minutes. If you did not request a reset, you can ignore this email.</p>
  <p style="font-size: 12px; color: #6b7280;">{reset_url}</p>
</body>
</html>
"""


def build_gmail_compose_url(to: str, subject: str, body: str) -> str:
    query = urlencode(
        {"view": "cm", "fs": "1", "to": to, "su": subject, "body": body},
        quote_via=quote,
    )
    return f"{GMAIL_COMPOSE_URL}?{query}"
