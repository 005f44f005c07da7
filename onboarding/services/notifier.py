"""Onboarding credential delivery (SendGrid dynamic templates)."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from onboarding.config import Settings
from onboarding.errors import NotificationError

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class OnboardingNotifier(ABC):
    @abstractmethod
    async def send_onboarding_credential(self, to_email: str, full_name: str, credential: str) -> None:
        """Deliver the plaintext credential; raise NotificationError on failure."""


class SendGridNotifier(OnboardingNotifier):
    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        template_id: str,
        app_name: str,
        timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._template_id = template_id
        self._app_name = app_name
        self._timeout = timeout

    def build_payload(self, to_email: str, full_name: str, credential: str) -> dict:
        name = full_name or "Student"
        return {
            "personalizations": [
                {
                    "to": [{"email": to_email, "name": name}],
                    "dynamic_template_data": {
                        "passcode": credential,
                        "name": name,
                        "app_name": self._app_name,
                    },
                }
            ],
            "from": {"email": self._from_email, "name": self._from_name},
            "template_id": self._template_id,
        }

    async def send_onboarding_credential(self, to_email: str, full_name: str, credential: str) -> None:
        payload = self.build_payload(to_email, full_name, credential)
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(SENDGRID_SEND_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationError(f"SendGrid request failed: {e}") from e
        if resp.status_code >= 300:
            raise NotificationError(f"SendGrid error {resp.status_code}: {resp.text}")
        logger.info("Temporary password sent to %s via SendGrid template", to_email)


def build_notifier(settings: Settings) -> Optional[OnboardingNotifier]:
    if not (settings.sendgrid_api_key and settings.sendgrid_from_email and settings.sendgrid_template_id):
        logger.warning("SENDGRID_API_KEY / FROM_EMAIL / TEMPLATE_ID not set. Credentials will be returned to the caller.")
        return None
    return SendGridNotifier(
        api_key=settings.sendgrid_api_key,
        from_email=settings.sendgrid_from_email,
        from_name=settings.sendgrid_from_name,
        template_id=settings.sendgrid_template_id,
        app_name=settings.onboarding_app_name,
    )
