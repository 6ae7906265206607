"""Data models for outgoing mail."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from datetime import datetime, timezone
from enum import Enum


class SendStatus(str, Enum):
    """Status of an email send operation."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class EmailMessage:
    """Represents an email message."""

    recipient: str
    subject: str
    html_body: Optional[str] = None
    text_body: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.html_body and not self.text_body:
            raise ValueError("Either html_body or text_body must be provided")


@dataclass
class TemplateMetadata:
    """Metadata about a template, read from its YAML file."""

    name: str
    subject: str
    required_variables: List[str]
    optional_variables: List[str] = field(default_factory=list)
    has_html: bool = True
    has_text: bool = True
    description: Optional[str] = None


@dataclass
class SendResult:
    """Result of sending an email."""

    recipient: str
    status: SendStatus
    provider: Optional[str] = None
    message_id: Optional[str] = None
    error_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = None
    attempts: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == SendStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "recipient": self.recipient,
            "status": self.status.value,
            "provider": self.provider,
            "message_id": self.message_id,
            "error_reason": self.error_reason,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
            "attempts": list(self.attempts),
        }
