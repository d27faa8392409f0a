"""
Notification channels package.

Provides multi-channel delivery:
- Email via SendGrid
- Telegram via Bot API
- SMS via Twilio
"""
from app.services.notifications.base import (
    ChannelMessage,
    NotificationChannel,
    NotificationResult,
)
from app.services.notifications.email import EmailNotificationChannel, get_email_channel
from app.services.notifications.sms import SMSNotificationChannel, get_sms_channel
from app.services.notifications.telegram import (
    TelegramNotificationChannel,
    get_telegram_channel,
)

__all__ = [
    "ChannelMessage",
    "NotificationChannel",
    "NotificationResult",
    "EmailNotificationChannel",
    "TelegramNotificationChannel",
    "SMSNotificationChannel",
    "get_email_channel",
    "get_telegram_channel",
    "get_sms_channel",
]
