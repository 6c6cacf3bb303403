"""
Transactional mail through the Brevo HTTP API.

`send` never raises: delivery problems are logged and reported as False so
callers decide how to surface them.
"""

import logging
from functools import lru_cache
from typing import Optional

import httpx

from clinigoal import config

logger = logging.getLogger(__name__)


class BrevoMailer:
    def __init__(
        self,
        api_key: Optional[str],
        sender_email: str,
        sender_name: str,
        api_url: str = config.BREVO_API_URL,
        timeout: float = 20.0
    ):
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.api_url = api_url
        self.timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_key:
            logger.warning("Mail not sent to %s: BREVO_API_KEY is not configured", to)
            return False

        payload = {
            "sender": {"email": self.sender_email, "name": self.sender_name},
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html,
        }
        headers = {"api-key": self.api_key, "accept": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("❌ Error sending email to %s: %s", to, e)
            return False

        logger.info("✅ Email sent to %s: %s", to, response.json().get("messageId"))
        return True


@lru_cache()
def get_mailer() -> BrevoMailer:
    return BrevoMailer(
        api_key=config.BREVO_API_KEY,
        sender_email=config.EMAIL_USER,
        sender_name=config.EMAIL_SENDER_NAME,
    )
