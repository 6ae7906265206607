"""SendGrid email provider."""

import logging
import time
from typing import Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, CustomArg, Email, Mail, ReplyTo, To

from ..models import EmailMessage, SendResult, SendStatus
from ..exceptions import AuthenticationError, RateLimitError, DeliveryError
from .base import BaseEmailProvider

logger = logging.getLogger(__name__)


class SendGridProvider(BaseEmailProvider):
    """SendGrid email provider."""

    name = "sendgrid"

    def __init__(self, from_email: str, api_key: str, from_name: Optional[str] = None):
        """Initialize SendGrid provider.

        Args:
            from_email: Sender email address
            api_key: SendGrid API key
            from_name: Sender display name
        """
        super().__init__(from_email, from_name)
        self.api_key = api_key
        self.client = SendGridAPIClient(api_key)

    def validate_connection(self) -> bool:
        try:
            response = self.client.client.scopes.get()
            return response.status_code == 200
        except Exception as e:
            logger.error(f"SendGrid connection validation failed: {e}")
            return False

    def _build_mail(self, message: EmailMessage) -> Mail:
        mail = Mail(
            from_email=Email(self._get_from_email(message), self._get_from_name(message)),
            to_emails=To(message.recipient),
            subject=message.subject,
        )
        # SendGrid wants text/plain before text/html
        if message.text_body:
            mail.add_content(Content("text/plain", message.text_body))
        if message.html_body:
            mail.add_content(Content("text/html", message.html_body))
        if message.reply_to:
            mail.reply_to = ReplyTo(message.reply_to)
        for key, value in message.metadata.items():
            mail.add_custom_arg(CustomArg(key, str(value)))
        return mail

    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        result = SendResult(
            recipient=message.recipient,
            status=SendStatus.FAILED,
            provider=self.name,
            correlation_id=correlation_id,
        )

        try:
            response = self._send_with_retry(self._build_mail(message))
            result.status = SendStatus.SUCCESS
            result.message_id = response.headers.get("X-Message-Id")
            logger.info(
                f"Email sent to {message.recipient} via SendGrid (correlation_id: {correlation_id})"
            )
        except RateLimitError as e:
            result.error_reason = f"Rate limited: {e}"
            logger.warning(f"Rate limit exceeded for {message.recipient}: {e}")
        except (AuthenticationError, DeliveryError) as e:
            result.error_reason = str(e)
            logger.error(f"SendGrid error for {message.recipient}: {e}")
        except Exception as e:
            result.error_reason = str(e)
            logger.error(f"Error sending email to {message.recipient} via SendGrid: {e}")

        return result

    def _send_with_retry(self, mail: Mail, max_retries: int = 3, base_delay: float = 1.0):
        """Send a message with exponential backoff retry.

        Raises:
            RateLimitError: If rate limit is exceeded
            AuthenticationError: If the API key is rejected
            DeliveryError: If delivery fails
        """
        for attempt in range(max_retries):
            try:
                return self.client.send(mail)
            except HTTPError as e:
                status = e.status_code
                if status == 401:
                    raise AuthenticationError("SendGrid rejected the API key") from e
                if status == 429 or status in (500, 502, 503):
                    if attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning(
                            f"SendGrid returned {status}. Retrying in {delay}s (attempt {attempt + 1}/{max_retries})"
                        )
                        time.sleep(delay)
                        continue
                    if status == 429:
                        raise RateLimitError("Rate limit exceeded after retries") from e
                    raise DeliveryError(f"Server error {status} after retries") from e
                raise DeliveryError(f"SendGrid returned status {status}: {e.body}") from e

        raise DeliveryError(f"Failed to send message after {max_retries} attempts")
