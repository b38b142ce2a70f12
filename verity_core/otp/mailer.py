"""
Mail Delivery
=============
Outbound email interface and a Resend HTTP implementation.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log

from ..errors import DeliveryFailure

logger = structlog.get_logger(__name__)
retry_logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"


@dataclass(frozen=True)
class EmailMessage:
    from_address: str
    to: str
    subject: str
    html: str


class Mailer(Protocol):
    async def send(self, message: EmailMessage) -> None:
        ...


def render_otp_email(code: str, expiry_minutes: int, brand: str = "Easy Sales Export") -> str:
    """HTML body carrying the plaintext code."""
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #2563eb;">{brand}</h2>
    <p>Your verification code is:</p>
    <div style="background: #f3f4f6; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
        <h1 style="color: #1f2937; letter-spacing: 8px; font-size: 36px; margin: 0;">{code}</h1>
    </div>
    <p style="color: #6b7280;">This code will expire in {expiry_minutes} minutes.</p>
    <p style="color: #6b7280; font-size: 14px;">If you didn't request this code, please ignore this email.</p>
</div>
""".strip()


class _TransientSendError(Exception):
    """Network error or 5xx from the mail API; worth retrying."""


class ResendMailer:
    """
    Sends email through the Resend HTTP API.

    Network errors and 5xx responses are retried; anything still failing
    surfaces as ``DeliveryFailure``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = RESEND_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @retry(
        retry=retry_if_exception_type(_TransientSendError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        before_sleep=before_sleep_log(retry_logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, payload: dict) -> None:
        try:
            response = await self.client.post("/emails", json=payload)
        except httpx.TransportError as e:
            raise _TransientSendError(str(e))

        if response.status_code >= 500:
            raise _TransientSendError(f"HTTP {response.status_code}")
        response.raise_for_status()

    async def send(self, message: EmailMessage) -> None:
        """
        Raises:
            DeliveryFailure: If the message could not be handed to Resend
        """
        payload = {
            "from": message.from_address,
            "to": message.to,
            "subject": message.subject,
            "html": message.html,
        }
        try:
            await self._post(payload)
        except (_TransientSendError, httpx.HTTPError) as e:
            logger.error("email_send_failed", error=str(e))
            raise DeliveryFailure() from e
