"""
Email Client - Delivery Provider Implementation

Sends a single HTML message through the configured provider with
open and click tracking enabled.

Providers:
- Postmark (default): POST https://api.postmarkapp.com/email
  Auth: X-Postmark-Server-Token header
  Response: { MessageID: "...", ErrorCode: 0, Message: "OK" }
- Resend: resend SDK, POST https://api.resend.com/emails
  Response: { id: "..." }
"""

import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

import httpx
import requests
import resend

from config import Settings

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"


class EmailProvider(str, Enum):
    """Supported email providers"""
    POSTMARK = "postmark"
    RESEND = "resend"


class EmailStatus(str, Enum):
    """Outcome of a provider call"""
    SENT = "sent"
    FAILED = "failed"


@dataclass
class EmailResult:
    """Result of an email operation"""
    success: bool
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    status: EmailStatus = EmailStatus.FAILED
    status_code: Optional[int] = None
    provider_response: Optional[Dict[str, Any]] = None


@dataclass
class EmailMessage:
    """Represents an email message to send"""
    to: str
    subject: str
    html_body: str
    from_address: Optional[str] = None
    track_opens: bool = True
    track_links: str = "HtmlAndText"


class EmailClient:
    """
    Email Client for the configured delivery provider.

    Usage:
        client = EmailClient.from_settings(settings)
        result = await client.send_email(EmailMessage(
            to="user@example.com",
            subject="Hello",
            html_body="<p>Welcome!</p>"
        ))
    """

    def __init__(
        self,
        api_key: str = "",
        from_address: str = "",
        provider: str = EmailProvider.POSTMARK.value,
        message_stream: str = "outbound",
        timeout: float = 10.0,
    ):
        """
        Initialize email client.

        Args:
            api_key: Provider API key (Postmark server token or Resend key)
            from_address: Default sender address
            provider: Provider name (postmark or resend)
            message_stream: Postmark message stream
            timeout: HTTP timeout in seconds
        """
        self.api_key = api_key
        self.from_address = from_address
        self.provider = EmailProvider(provider.lower())
        self.message_stream = message_stream
        self.timeout = timeout

        if not self.api_key:
            logger.warning(f"Email client not configured - no API key for {self.provider.value}")
        elif self.provider == EmailProvider.RESEND:
            resend.api_key = self.api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailClient":
        return cls(
            api_key=settings.email_api_key,
            from_address=settings.FROM_EMAIL,
            provider=settings.EMAIL_PROVIDER,
            message_stream=settings.POSTMARK_MESSAGE_STREAM,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )

    def missing_configuration(self) -> Optional[str]:
        """Name of the first missing setting, or None when ready to send."""
        if not self.api_key:
            return "RESEND_API_KEY" if self.provider == EmailProvider.RESEND else "POSTMARK_API_KEY"
        if not self.from_address:
            return "FROM_EMAIL"
        return None

    def is_configured(self) -> bool:
        """Check if email client is properly configured."""
        return self.missing_configuration() is None

    async def send_email(self, message: EmailMessage) -> EmailResult:
        """
        Send an email via the configured provider.

        Never raises for provider or network errors; they are reported in
        the returned EmailResult.
        """
        if not self.is_configured():
            return EmailResult(
                success=False,
                error=f"Email client not configured: {self.missing_configuration()} is not set",
            )

        if self.provider == EmailProvider.RESEND:
            return self._send_resend(message)
        return await self._send_postmark(message)

    async def _send_postmark(self, message: EmailMessage) -> EmailResult:
        payload = {
            "From": message.from_address or self.from_address,
            "To": message.to,
            "Subject": message.subject,
            "HtmlBody": message.html_body,
            "MessageStream": self.message_stream,
            "TrackOpens": message.track_opens,
            "TrackLinks": message.track_links,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Postmark-Server-Token": self.api_key,
        }

        logger.info(f"Sending email to {message.to} via Postmark")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(POSTMARK_API_URL, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error("Postmark request timed out")
            return EmailResult(success=False, error="Postmark error: request timed out")
        except httpx.HTTPError as e:
            logger.error(f"Postmark connection error: {e}")
            return EmailResult(success=False, error=f"Postmark error: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {"Message": response.text}

        if response.status_code != 200 or body.get("ErrorCode", 0) != 0:
            error_msg = body.get("Message") or f"HTTP {response.status_code}"
            logger.error(f"Postmark API error ({response.status_code}): {error_msg}")
            return EmailResult(
                success=False,
                error=f"Postmark error: {error_msg}",
                status_code=response.status_code,
                provider_response=body,
            )

        provider_msg_id = body.get("MessageID")
        logger.info(f"Email sent successfully: {provider_msg_id}")
        return EmailResult(
            success=True,
            provider_message_id=provider_msg_id,
            status=EmailStatus.SENT,
            status_code=response.status_code,
            provider_response=body,
        )

    def _send_resend(self, message: EmailMessage) -> EmailResult:
        # Resend configures open/click tracking per domain, not per message
        params: Dict[str, Any] = {
            "from": message.from_address or self.from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
        }

        logger.info(f"Sending email to {message.to} via Resend")
        try:
            response = resend.Emails.send(params)
        except resend.exceptions.ResendError as e:
            logger.error(f"Resend API error: {e}")
            return EmailResult(success=False, error=f"Resend error: {e}")
        except requests.RequestException as e:
            logger.error(f"Resend connection error: {e}")
            return EmailResult(success=False, error=f"Resend error: {e}")

        if isinstance(response, dict):
            provider_msg_id = response.get("id")
        else:
            provider_msg_id = getattr(response, "id", None)

        logger.info(f"Email sent successfully: {provider_msg_id}")
        return EmailResult(
            success=True,
            provider_message_id=provider_msg_id,
            status=EmailStatus.SENT,
            provider_response=response if isinstance(response, dict) else {"id": provider_msg_id},
        )

    def get_status(self) -> Dict[str, Any]:
        """Get client configuration status."""
        return {
            "provider": self.provider.value,
            "configured": self.is_configured(),
            "from_address": self.from_address or "Not set",
            "api_key_set": bool(self.api_key),
        }
