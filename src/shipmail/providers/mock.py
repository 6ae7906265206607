"""Mock email provider for tests and local development."""

from typing import List, Optional

from ..models import EmailMessage, SendResult, SendStatus
from .base import BaseEmailProvider


class MockEmailProvider(BaseEmailProvider):
    """Provider that records messages instead of sending them.

    Set ``fail_with`` to make every send return a FAILED result.
    """

    name = "mock"

    def __init__(self, from_email: str, from_name: Optional[str] = None, fail_with: str = None):
        super().__init__(from_email, from_name)
        self.fail_with = fail_with
        self.sent: List[EmailMessage] = []

    def send(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        if self.fail_with:
            return SendResult(
                recipient=message.recipient,
                status=SendStatus.FAILED,
                provider=self.name,
                error_reason=self.fail_with,
                correlation_id=correlation_id,
            )

        self.sent.append(message)
        return SendResult(
            recipient=message.recipient,
            status=SendStatus.SUCCESS,
            provider=self.name,
            message_id=f"mock-{correlation_id or 'test'}",
            correlation_id=correlation_id,
        )

    def validate_connection(self) -> bool:
        return self.fail_with is None
