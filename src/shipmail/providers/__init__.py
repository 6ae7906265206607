"""Email provider implementations."""

from .base import BaseEmailProvider
from .ethereal import EtherealProvider
from .mailersend import MailerSendProvider
from .mock import MockEmailProvider
from .sendgrid import SendGridProvider
from .smtp import SMTPProvider

__all__ = [
    "BaseEmailProvider",
    "EtherealProvider",
    "MailerSendProvider",
    "MockEmailProvider",
    "SendGridProvider",
    "SMTPProvider",
]
