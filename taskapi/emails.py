import logging
from html import escape
from typing import Optional

import httpx
from fastapi import Depends

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class Mailer:
    """Account notification mail sent through the SendGrid HTTP API.

    Sending never raises: failures are logged and dropped so the request
    that triggered the mail is unaffected. Without an API key every message
    is only logged.
    """

    def __init__(self, api_key: Optional[str], sender: str, timeout: float = 10.0):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_key:
            logger.info("Mail disabled, skipping %r to %s", subject, to)
            return False

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.sender},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        try:
            response = httpx.post(
                SENDGRID_SEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send %r to %s: %s", subject, to, exc)
            return False

        logger.info("Sent %r to %s", subject, to)
        return True

    def send_welcome_email(self, email: str, name: str) -> bool:
        return self.send(
            to=email,
            subject="Thanks for joining in!",
            html=f"Welcome to the app, <strong>{escape(name)}</strong>. Let me know how you get along with the app.",
        )

    def send_cancelation_email(self, email: str, name: str) -> bool:
        return self.send(
            to=email,
            subject="Sorry to see you go",
            html=f"Goodbye <strong>{escape(name)}</strong>. <br> I hope to see you again soon!",
        )


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    return Mailer(api_key=settings.sendgrid_api_key, sender=settings.sendgrid_email)
