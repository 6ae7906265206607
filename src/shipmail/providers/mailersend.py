"""MailerSend email provider (REST API)."""

import logging
import time
from typing import Any, Dict, Optional

import requests

from ..models import EmailMessage, SendResult, SendStatus
from ..exceptions import AuthenticationError, RateLimitError, DeliveryError
from .base import BaseEmailProvider

logger = logging.getLogger(__name__)

API_URL = "https://api.mailersend.com/v1/email"


class MailerSendProvider(BaseEmailProvider):
    """MailerSend email provider."""

    name = "mailersend"

    def __init__(
        self,
        from_email: str,
        api_key: str,
        from_name: Optional[str] = None,
        api_url: str = API_URL,
        timeout: float = 15.0,
    ):
        """Initialize MailerSend provider.

        Args:
            from_email: Verified sender address on the MailerSend domain
            api_key: MailerSend API token
            from_name: Sender display name
        """
        super().__init__(from_email, from_name)
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "X-Requested-With": "XMLHttpRequest",
            }
        )

    def validate_connection(self) -> bool:
        try:
            response = self.session.get(
                "https://api.mailersend.com/v1/api-quota", timeout=self.timeout
            )
            return response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.error(f"MailerSend connection validation failed: {e}")
            return False

    def _build_payload(self, message: EmailMessage) -> Dict[str, Any]:
        sender = {"email": self._get_from_email(message)}
        if self._get_from_name(message):
            sender["name"] = self._get_from_name(message)

        payload: Dict[str, Any] = {
            "from": sender,
            "to": [{"email": message.recipient}],
            "subject": message.subject,
        }
        if message.text_body:
            payload["text"] = message.text_body
        if message.html_body:
            payload["html"] = message.html_body
        if message.reply_to:
            payload["reply_to"] = {"email": message.reply_to}
        return payload

    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        result = SendResult(
            recipient=message.recipient,
            status=SendStatus.FAILED,
            provider=self.name,
            correlation_id=correlation_id,
        )

        try:
            response = self._send_with_retry(self._build_payload(message))
            result.status = SendStatus.SUCCESS
            result.message_id = response.headers.get("X-Message-Id")
            logger.info(
                f"Email sent to {message.recipient} via MailerSend (correlation_id: {correlation_id})"
            )
        except RateLimitError as e:
            result.error_reason = f"Rate limited: {e}"
            logger.warning(f"Rate limit exceeded for {message.recipient}: {e}")
        except (AuthenticationError, DeliveryError) as e:
            result.error_reason = str(e)
            logger.error(f"MailerSend error for {message.recipient}: {e}")

        return result

    def _send_with_retry(
        self, payload: Dict[str, Any], max_retries: int = 3, base_delay: float = 1.0
    ) -> requests.Response:
        """POST the message with exponential backoff on 429 and 5xx.

        Raises:
            RateLimitError: If rate limit is exceeded after retries
            AuthenticationError: If the API token is rejected
            DeliveryError: If delivery fails
        """
        for attempt in range(max_retries):
            try:
                response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                if attempt < max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request error. Retrying in {delay}s (attempt {attempt + 1}/{max_retries}): {e}"
                    )
                    time.sleep(delay)
                    continue
                raise DeliveryError(f"Request failed after {max_retries} attempts: {e}") from e

            status = response.status_code
            if status in (200, 202):
                return response
            if status == 401:
                raise AuthenticationError("MailerSend rejected the API token")
            if status == 429 or status in (500, 502, 503):
                if attempt < max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"MailerSend returned {status}. Retrying in {delay}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                if status == 429:
                    raise RateLimitError("Rate limit exceeded after retries")
                raise DeliveryError(f"Server error {status} after retries")
            raise DeliveryError(f"MailerSend returned status {status}: {response.text}")

        raise DeliveryError(f"Failed to send message after {max_retries} attempts")
