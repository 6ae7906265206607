"""Base email provider interface."""

from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional
import logging

from ..models import EmailMessage, SendResult

logger = logging.getLogger(__name__)


class BaseEmailProvider(ABC):
    """Abstract base class for email providers."""

    name = "base"

    def __init__(self, from_email: str, from_name: Optional[str] = None):
        """Initialize the provider.

        Args:
            from_email: Default sender email address
            from_name: Default sender display name
        """
        self.from_email = from_email
        self.from_name = from_name

    @abstractmethod
    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        """Send an email message.

        Implementations never raise for delivery problems; they return a
        FAILED SendResult carrying the reason instead.
        """
        pass

    @abstractmethod
    def validate_connection(self) -> bool:
        """Return True if the provider is configured and reachable."""
        pass

    def _get_from_email(self, message: EmailMessage) -> str:
        return message.from_email or self.from_email

    def _get_from_name(self, message: EmailMessage) -> Optional[str]:
        return message.from_name or self.from_name

    def _create_mime_message(self, message: EmailMessage) -> MIMEMultipart:
        """Build a multipart/alternative MIME message."""
        mime_message = MIMEMultipart("alternative")
        mime_message["To"] = message.recipient
        mime_message["From"] = formataddr(
            (self._get_from_name(message) or "", self._get_from_email(message))
        )
        mime_message["Subject"] = message.subject

        if message.reply_to:
            mime_message["Reply-To"] = message.reply_to

        if message.text_body:
            mime_message.attach(MIMEText(message.text_body, "plain", "utf-8"))
        if message.html_body:
            mime_message.attach(MIMEText(message.html_body, "html", "utf-8"))

        return mime_message
