"""Templated transactional email with a provider fallback chain."""

__version__ = "0.1.0"

from .exceptions import (
    MailError,
    TemplateError,
    ProviderError,
    AuthenticationError,
    RateLimitError,
    DeliveryError,
)
from .models import EmailMessage, TemplateMetadata, SendResult, SendStatus
from .template import TemplateLoader
from .sender import EmailSender
from .validators import validate_email_address

__all__ = [
    "MailError",
    "TemplateError",
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "DeliveryError",
    "EmailMessage",
    "TemplateMetadata",
    "SendResult",
    "SendStatus",
    "TemplateLoader",
    "EmailSender",
    "validate_email_address",
]
