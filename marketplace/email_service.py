"""
Email delivery using Resend
Implements the NotificationSender capability for the email channel
"""

import html
import logging
from typing import Optional

import resend

logger = logging.getLogger(__name__)


def render_message_html(subject: str, message: str) -> str:
    """Wrap a plain-text message in a minimal responsive HTML body"""
    paragraphs = "".join(
        f"<p style=\"margin:0 0 12px 0;\">{html.escape(line)}</p>"
        for line in message.splitlines()
        if line.strip()
    )
    return (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:0 auto;color:#1f2937;\">"
        f"<h2 style=\"font-size:18px;\">{html.escape(subject)}</h2>"
        f"{paragraphs}"
        "</div>"
    )


class ResendEmailSender:
    """NotificationSender that delivers through the Resend API"""

    channel = "email"

    def __init__(self, api_key: Optional[str], from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    def send(self, to: str, subject: str, message: str) -> bool:
        if not to:
            logger.debug(f"⚠️ No recipient for '{subject}', skipping email")
            return False

        if not self.api_key:
            logger.warning(f"⚠️ RESEND_API_KEY not configured - email '{subject}' to {to} not sent")
            return False

        resend.api_key = self.api_key
        email_data = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": render_message_html(subject, message),
            "text": message,
        }

        try:
            response = resend.Emails.send(email_data)
            logger.info(f"✅ Email sent successfully via Resend: {response}")
            return True
        except Exception as e:
            logger.error(f"❌ Email send error to {to}: {e}")
            return False
