"""
Telegram notification channel using python-telegram-bot.
"""
import html
import logging
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from app.config import get_settings
from app.services.notifications.base import (
    ChannelMessage,
    NotificationChannel,
    NotificationResult,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class TelegramNotificationChannel(NotificationChannel):
    """
    Telegram notification channel using Bot API.

    Messages are sent with HTML formatting: the title in bold,
    the rest escaped.
    """

    def __init__(self):
        """Initialize Telegram bot."""
        self._bot: Optional[Bot] = None
        if self.is_configured():
            self._bot = Bot(token=settings.telegram_bot_token)

    @property
    def channel_name(self) -> str:
        return "telegram"

    def is_configured(self) -> bool:
        """Check if Telegram bot token is configured."""
        return bool(settings.telegram_bot_token)

    def _build_message(self, message: ChannelMessage) -> str:
        """Build Telegram message with HTML formatting."""
        text = message.text
        body = text[len(message.title):].strip() if text.startswith(message.title) else text

        parts = [f"<b>{html.escape(message.title)}</b>"]
        if body:
            parts.append(html.escape(body))
        if message.link:
            parts.append(f'<a href="{html.escape(message.link)}">Открыть в системе</a>')
        return "\n\n".join(parts)

    async def send(self, recipient: str, message: ChannelMessage) -> NotificationResult:
        """
        Send Telegram message to a chat.

        Args:
            recipient: Telegram chat ID
            message: Message data

        Returns:
            NotificationResult with success status
        """
        if not self.is_configured():
            logger.warning("Telegram bot token not configured, message not sent")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error="Telegram bot token not configured",
            )

        if not self._bot:
            self._bot = Bot(token=settings.telegram_bot_token)

        try:
            result = await self._bot.send_message(
                chat_id=recipient,
                text=self._build_message(message),
                parse_mode="HTML",
                disable_web_page_preview=True,
            )

            logger.info(f"Telegram message sent to chat {recipient}")

            return NotificationResult(
                success=True,
                channel=self.channel_name,
                message_id=str(result.message_id),
            )

        except TelegramError as e:
            logger.error(f"Telegram error for chat {recipient}: {e}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=str(e),
            )
        except Exception as e:
            logger.error(f"Error sending Telegram message: {e}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=str(e),
            )


# Singleton instance
_telegram_channel: Optional[TelegramNotificationChannel] = None


def get_telegram_channel() -> TelegramNotificationChannel:
    """Get singleton Telegram notification channel."""
    global _telegram_channel
    if _telegram_channel is None:
        _telegram_channel = TelegramNotificationChannel()
    return _telegram_channel
