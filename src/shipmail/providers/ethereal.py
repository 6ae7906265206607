"""Ethereal test-inbox provider.

Ethereal (https://ethereal.email) accepts mail over SMTP and never delivers
it; messages can be inspected in the account's web inbox. It is the last
resort of the delivery chain so local setups without real credentials still
exercise the whole send path.
"""

import logging
from typing import Optional

import requests

from ..models import EmailMessage, SendResult, SendStatus
from ..exceptions import AuthenticationError
from .base import BaseEmailProvider
from .smtp import SMTPProvider

logger = logging.getLogger(__name__)

ACCOUNT_API_URL = "https://api.nodemailer.com/user"
WEB_URL = "https://ethereal.email"


class EtherealProvider(BaseEmailProvider):
    """Sends through a throwaway Ethereal SMTP account."""

    name = "ethereal"

    def __init__(
        self,
        from_email: str,
        from_name: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        requestor: str = "shipmail",
        timeout: float = 15.0,
    ):
        super().__init__(from_email, from_name)
        self.username = username
        self.password = password
        self.requestor = requestor
        self.timeout = timeout
        self._smtp: Optional[SMTPProvider] = None

    def _create_account(self) -> dict:
        from .. import __version__

        try:
            response = requests.post(
                ACCOUNT_API_URL,
                json={"requestor": self.requestor, "version": __version__},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise AuthenticationError(f"Could not create Ethereal account: {e}") from e

        if data.get("status") != "success":
            raise AuthenticationError(f"Ethereal account creation failed: {data.get('error')}")
        logger.info(f"Created Ethereal test account {data['user']} (inbox: {data.get('web', WEB_URL)})")
        return data

    def _get_smtp(self) -> SMTPProvider:
        if self._smtp is not None:
            return self._smtp

        host, port, secure = "smtp.ethereal.email", 587, False
        if not (self.username and self.password):
            account = self._create_account()
            self.username, self.password = account["user"], account["pass"]
            smtp = account.get("smtp") or {}
            host = smtp.get("host", host)
            port = int(smtp.get("port", port))
            secure = bool(smtp.get("secure", secure))

        self._smtp = SMTPProvider(
            from_email=self.from_email,
            from_name=self.from_name,
            host=host,
            port=port,
            username=self.username,
            password=self.password,
            use_ssl=secure,
        )
        return self._smtp

    def validate_connection(self) -> bool:
        try:
            return self._get_smtp().validate_connection()
        except AuthenticationError as e:
            logger.error(f"Ethereal connection validation failed: {e}")
            return False

    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        try:
            smtp = self._get_smtp()
        except AuthenticationError as e:
            logger.error(str(e))
            return SendResult(
                recipient=message.recipient,
                status=SendStatus.FAILED,
                provider=self.name,
                error_reason=str(e),
                correlation_id=correlation_id,
            )

        result = smtp.send(message, correlation_id=correlation_id)
        result.provider = self.name
        if result.ok:
            logger.info(
                f"Ethereal captured message for {message.recipient}; view it at {WEB_URL}/messages "
                f"(login {self.username})"
            )
        return result
