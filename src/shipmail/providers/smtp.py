"""SMTP email provider."""

import logging
import smtplib
import ssl
import time
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from typing import Optional

from ..models import EmailMessage, SendResult, SendStatus
from ..exceptions import AuthenticationError, DeliveryError
from .base import BaseEmailProvider

logger = logging.getLogger(__name__)


class SMTPProvider(BaseEmailProvider):
    """Delivers mail through an SMTP relay.

    ``use_ssl`` opens an implicit TLS connection (usually port 465); otherwise
    the connection is upgraded with STARTTLS when the server offers it.
    """

    name = "smtp"

    def __init__(
        self,
        from_email: str,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        from_name: Optional[str] = None,
        timeout: float = 30.0,
    ):
        super().__init__(from_email, from_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls(context=context)
                server.ehlo()

        if self.username and self.password:
            try:
                server.login(self.username, self.password)
            except smtplib.SMTPAuthenticationError as e:
                server.close()
                raise AuthenticationError(f"SMTP login failed for {self.username}") from e
        return server

    def validate_connection(self) -> bool:
        try:
            server = self._connect()
            server.noop()
            server.quit()
            return True
        except Exception as e:
            logger.error(f"SMTP connection validation failed: {e}")
            return False

    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        result = SendResult(
            recipient=message.recipient,
            status=SendStatus.FAILED,
            provider=self.name,
            correlation_id=correlation_id,
        )

        try:
            mime_message = self._create_mime_message(message)
            mime_message["Message-ID"] = make_msgid()
            self._send_with_retry(mime_message, message.recipient)

            result.status = SendStatus.SUCCESS
            result.message_id = mime_message["Message-ID"]
            logger.info(
                f"Email sent to {message.recipient} via SMTP {self.host} (correlation_id: {correlation_id})"
            )
        except AuthenticationError as e:
            result.error_reason = str(e)
            logger.error(f"SMTP authentication error: {e}")
        except DeliveryError as e:
            result.error_reason = str(e)
            logger.error(f"SMTP delivery error for {message.recipient}: {e}")
        except Exception as e:
            result.error_reason = str(e)
            logger.error(f"Error sending email to {message.recipient} via SMTP: {e}")

        return result

    def _send_with_retry(
        self,
        mime_message: MIMEMultipart,
        recipient: str,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        """Send with exponential backoff on transient (4xx / disconnect) failures.

        Raises:
            AuthenticationError: If login fails
            DeliveryError: If delivery fails permanently or after retries
        """
        for attempt in range(max_retries):
            try:
                server = self._connect()
                try:
                    server.sendmail(self.from_email, [recipient], mime_message.as_string())
                finally:
                    server.quit()
                return
            except AuthenticationError:
                raise
            except smtplib.SMTPRecipientsRefused as e:
                raise DeliveryError(f"Recipient refused: {recipient}") from e
            except (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError) as e:
                reason = f"connection error: {e}"
            except smtplib.SMTPResponseException as e:
                reason = f"SMTP {e.smtp_code}: {e.smtp_error!r}"
                if not 400 <= e.smtp_code < 500:
                    raise DeliveryError(reason) from e
            # smtplib errors subclass OSError, so socket failures go last
            except OSError as e:
                reason = f"connection error: {e}"

            if attempt < max_retries - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"SMTP {reason}. Retrying in {delay}s (attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)

        raise DeliveryError(f"Failed to send message after {max_retries} attempts: {reason}")
