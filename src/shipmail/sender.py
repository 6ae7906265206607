"""Templated email sending over an ordered chain of providers."""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import TemplateError
from .models import EmailMessage, SendResult, SendStatus
from .providers.base import BaseEmailProvider
from .template import TemplateLoader
from .validators import validate_email_address

logger = logging.getLogger(__name__)


class EmailSender:
    """Coordinates template rendering and delivery.

    Providers are tried in order; the first one that reports success wins
    and the remaining ones are not contacted.
    """

    def __init__(
        self,
        template_dir: str,
        providers: Sequence[BaseEmailProvider],
        reply_to: Optional[str] = None,
    ):
        """Initialize the email sender.

        Args:
            template_dir: Path to template directory
            providers: Delivery providers, in preference order
            reply_to: Reply-To address added to every message
        """
        self.template_dir = template_dir
        self.providers = list(providers)
        self.reply_to = reply_to
        self.template_loader = TemplateLoader(template_dir)

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self.providers]

    def validate_providers(self) -> Dict[str, bool]:
        """Check every provider's connection."""
        return {provider.name: provider.validate_connection() for provider in self.providers}

    def deliver(self, message: EmailMessage, correlation_id: str = None) -> SendResult:
        """Send ``message`` through the provider chain."""
        correlation_id = correlation_id or str(uuid.uuid4())
        attempts = []
        errors = []

        for provider in self.providers:
            result = provider.send(message, correlation_id=correlation_id)
            attempts.append(provider.name)
            if result.ok:
                result.attempts = attempts
                return result
            errors.append(f"{provider.name}: {result.error_reason}")
            logger.warning(
                f"Provider {provider.name} failed for {message.recipient}, trying next: {result.error_reason}"
            )

        reason = "; ".join(errors) if errors else "No email providers configured"
        logger.error(f"All email providers failed for {message.recipient}: {reason}")
        return SendResult(
            recipient=message.recipient,
            status=SendStatus.FAILED,
            error_reason=reason,
            correlation_id=correlation_id,
            attempts=attempts,
        )

    def send_template(
        self,
        template_name: str,
        recipient: str,
        context: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SendResult:
        """Render ``template_name`` for ``recipient`` and deliver it.

        Invalid addresses and incomplete contexts are reported as SKIPPED;
        rendering problems as FAILED. Nothing is raised.
        """
        correlation_id = str(uuid.uuid4())

        is_valid, normalized = validate_email_address(recipient)
        if not is_valid:
            logger.warning(f"Skipping invalid email {recipient}: {normalized}")
            return SendResult(
                recipient=recipient,
                status=SendStatus.SKIPPED,
                error_reason=f"Invalid email address: {normalized}",
                correlation_id=correlation_id,
            )

        try:
            missing = self.template_loader.missing_variables(template_name, context)
            if missing:
                logger.warning(f"Skipping {template_name} for {recipient}: missing {missing}")
                return SendResult(
                    recipient=recipient,
                    status=SendStatus.SKIPPED,
                    error_reason=f"Missing required fields: {missing}",
                    correlation_id=correlation_id,
                )

            rendered = self.template_loader.render_template(template_name, context)
        except TemplateError as e:
            logger.error(f"Error rendering {template_name} for {recipient}: {e}")
            return SendResult(
                recipient=recipient,
                status=SendStatus.FAILED,
                error_reason=str(e),
                correlation_id=correlation_id,
            )

        message = EmailMessage(
            recipient=normalized,
            subject=rendered.subject,
            html_body=rendered.html_body,
            text_body=rendered.text_body,
            reply_to=self.reply_to,
            metadata=dict(metadata or {}),
        )
        return self.deliver(message, correlation_id=correlation_id)
