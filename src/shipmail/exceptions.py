"""Errors raised inside shipmail.

``EmailSender`` turns them into FAILED or SKIPPED ``SendResult`` objects;
only code that drives a provider or ``TemplateLoader`` directly sees them raised.
"""


class MailError(Exception):
    """Root of the shipmail error tree."""


class TemplateError(MailError):
    """A template file is missing, malformed, or lacks a required variable."""


class ProviderError(MailError):
    """Base for failures reported by one delivery provider.

    The sender moves on to the next provider in the chain.
    """


class AuthenticationError(ProviderError):
    """Login or API key rejected; retrying the same provider will not help."""


class RateLimitError(ProviderError):
    """Still throttled once the provider's retry budget is spent."""


class DeliveryError(ProviderError):
    """The provider answered but refused to take the message."""
