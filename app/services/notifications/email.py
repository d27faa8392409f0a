"""
Email notification channel using SendGrid.
"""
import html
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Mail, To

from app.config import get_settings
from app.services.notifications.base import (
    ChannelMessage,
    NotificationChannel,
    NotificationResult,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class EmailNotificationChannel(NotificationChannel):
    """
    Email notification channel using SendGrid API.

    Sends plain text notifications with an HTML alternative.
    """

    def __init__(self):
        """Initialize SendGrid client."""
        self._client: Optional[SendGridAPIClient] = None
        if self.is_configured():
            self._client = SendGridAPIClient(settings.sendgrid_api_key)

    @property
    def channel_name(self) -> str:
        return "email"

    def is_configured(self) -> bool:
        """Check if SendGrid API key is configured."""
        return bool(settings.sendgrid_api_key)

    def _build_html_content(self, message: ChannelMessage) -> str:
        """Build HTML email content."""
        paragraphs = "".join(
            f'<p style="margin: 0 0 12px 0;">{html.escape(line)}</p>'
            for line in message.text.split("\n")
            if line.strip()
        )

        button = ""
        if message.link:
            button = f"""
            <div style="text-align: center; margin-top: 24px;">
                <a href="{html.escape(message.link)}"
                   style="display: inline-block; background-color: #0d6efd; color: white;
                          padding: 12px 24px; text-decoration: none; border-radius: 4px;">
                    Открыть в системе
                </a>
            </div>
            """

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
                     line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <div style="background-color: #f8f9fa; border-radius: 8px; padding: 24px;">
                {paragraphs}
                {button}
                <div style="margin-top: 24px; padding-top: 16px; border-top: 1px solid #dee2e6;
                            text-align: center; color: #6c757d; font-size: 12px;">
                    Это автоматическое уведомление DMED.
                </div>
            </div>
        </body>
        </html>
        """

    def _build_plain_text(self, message: ChannelMessage) -> str:
        """Build plain text email content."""
        if message.link:
            return f"{message.text}\n\n{message.link}"
        return message.text

    async def send(self, recipient: str, message: ChannelMessage) -> NotificationResult:
        """
        Send email to a recipient address.

        Args:
            recipient: Email address
            message: Message data

        Returns:
            NotificationResult with success status
        """
        if not self.is_configured():
            logger.warning("SendGrid not configured, email not sent")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error="SendGrid API key not configured",
            )

        if not self._client:
            self._client = SendGridAPIClient(settings.sendgrid_api_key)

        try:
            mail = Mail(
                from_email=settings.notification_from_email,
                to_emails=To(recipient),
                subject=message.title,
            )
            mail.add_content(Content("text/plain", self._build_plain_text(message)))
            mail.add_content(Content("text/html", self._build_html_content(message)))

            response = self._client.send(mail)

            if response.status_code in (200, 201, 202):
                logger.info(f"Email sent to {recipient}")
                return NotificationResult(
                    success=True,
                    channel=self.channel_name,
                    message_id=response.headers.get("X-Message-Id"),
                )

            logger.error(f"Failed to send email to {recipient}: status={response.status_code}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=f"SendGrid returned status {response.status_code}",
            )

        except Exception as e:
            logger.error(f"Error sending email to {recipient}: {e}")
            return NotificationResult(
                success=False,
                channel=self.channel_name,
                error=str(e),
            )


# Singleton instance
_email_channel: Optional[EmailNotificationChannel] = None


def get_email_channel() -> EmailNotificationChannel:
    """Get singleton email notification channel."""
    global _email_channel
    if _email_channel is None:
        _email_channel = EmailNotificationChannel()
    return _email_channel
