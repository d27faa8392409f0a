"""
SMS notification channel using Twilio.
"""
import logging
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

from app.config import get_settings
from app.services.notifications.base import (
    ChannelMessage,
    NotificationChannel,
    NotificationResult,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Two concatenated SMS segments
MAX_SMS_LENGTH = 320


class SMSNotificationChannel(NotificationChannel):
    """
    SMS notification channel using Twilio API.

    Sends short text messages, mostly for overdue deadlines.
    """

    def __init__(self):
        """Initialize Twilio client."""
        self._client: Optional[TwilioClient] = None
        if self.is_configured():
            self._client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
            )

    @property
    def channel_name(self) -> str:
        return "sms"

    def is_configured(self) -> bool:
        """Check if Twilio credentials are configured."""
        return bool(
            settings.twilio_account_sid
            and settings.twilio_auth_token
            and settings.twilio_phone_number
        )

    def _build_message(self, message: ChannelMessage) -> str:
        """Build SMS body, truncated to the segment limit."""
        body = message.text
        if len(body) > MAX_SMS_LENGTH:
            body = body[: MAX_SMS_LENGTH - 3] + "..."
        return body

    async def send(self, recipient: str, message: ChannelMessage) -> NotificationResult:
        """
        Send SMS to a phone number.

        Args:
            recipient: Phone number in E.164 format
            message: Message data

        Returns:
            NotificationResult with success status
        """
        if not self.is_configured():
            logger.warning("Twilio not configured, SMS not sent")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error="Twilio credentials not configured",
            )

        if not self._client:
            self._client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
            )

        try:
            sms = self._client.messages.create(
                body=self._build_message(message),
                from_=settings.twilio_phone_number,
                to=recipient,
            )

            logger.info(f"SMS sent to {recipient}, sid={sms.sid}")

            return NotificationResult(
                success=True,
                channel=self.channel_name,
                message_id=sms.sid,
            )

        except TwilioRestException as e:
            logger.error(f"Twilio error for {recipient}: {e}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=f"Twilio error: {e.msg}",
            )
        except Exception as e:
            logger.error(f"Error sending SMS to {recipient}: {e}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=str(e),
            )


# Singleton instance
_sms_channel: Optional[SMSNotificationChannel] = None


def get_sms_channel() -> SMSNotificationChannel:
    """Get singleton SMS notification channel."""
    global _sms_channel
    if _sms_channel is None:
        _sms_channel = SMSNotificationChannel()
    return _sms_channel
