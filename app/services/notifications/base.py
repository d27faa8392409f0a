"""
Base notification channel interface and data structures.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class ChannelMessage:
    """
    Message to deliver through an external channel.

    Contains everything a channel needs to render its own format
    (email, telegram, sms).
    """
    title: str
    text: str
    link: Optional[str] = None

    @classmethod
    def from_parts(
        cls, title: str, body: Optional[str] = None, link: Optional[str] = None
    ) -> "ChannelMessage":
        """Build a message whose text is the title followed by the body."""
        text = f"{title}\n\n{body}" if body else title
        return cls(title=title, text=text, link=link)


@dataclass
class NotificationResult:
    """Result of sending a message."""
    success: bool
    channel: str  # email, telegram, sms
    error: Optional[str] = None
    message_id: Optional[str] = None


class NotificationChannel(ABC):
    """
    Abstract base class for notification channels.

    Implementations:
    - EmailNotificationChannel (SendGrid)
    - TelegramNotificationChannel (Telegram Bot API)
    - SMSNotificationChannel (Twilio)
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Return channel identifier."""
        pass

    @abstractmethod
    async def send(self, recipient: str, message: ChannelMessage) -> NotificationResult:
        """
        Send a message to a recipient address.

        Args:
            recipient: Channel-specific address (email, chat id, phone)
            message: Message data

        Returns:
            NotificationResult with success status
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if channel is properly configured.

        Returns:
            True if all required settings are present
        """
        pass
