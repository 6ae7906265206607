"""Shipment email notifications."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from shipmail import EmailSender, SendResult, SendStatus
from shipmail.providers import (
    BaseEmailProvider,
    EtherealProvider,
    MailerSendProvider,
    SendGridProvider,
    SMTPProvider,
)

from .config import Settings
from .models import Shipment, to_iso, utcnow
from .status import ShipmentStatus

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates" / "email"


def build_providers(settings: Settings) -> List[BaseEmailProvider]:
    """Build the delivery chain: SMTP, MailerSend, SendGrid, then Ethereal.

    A provider is only included when its credentials are configured.
    """
    email = settings.email
    providers: List[BaseEmailProvider] = []

    if settings.smtp.configured:
        providers.append(SMTPProvider(
            from_email=email.from_email,
            from_name=email.from_name,
            host=settings.smtp.host,
            port=settings.smtp.port,
            username=settings.smtp.username,
            password=settings.smtp.password,
            use_ssl=settings.smtp.use_ssl,
        ))

    if settings.mailersend.api_key:
        providers.append(MailerSendProvider(
            from_email=settings.mailersend.from_email or email.from_email,
            from_name=settings.mailersend.from_name or email.from_name,
            api_key=settings.mailersend.api_key,
        ))

    if settings.sendgrid.api_key:
        providers.append(SendGridProvider(
            from_email=settings.sendgrid.from_email or email.from_email,
            from_name=settings.sendgrid.from_name or email.from_name,
            api_key=settings.sendgrid.api_key,
        ))

    if email.ethereal_enabled:
        providers.append(EtherealProvider(
            from_email=email.from_email,
            from_name=email.from_name,
            requestor=settings.app_name,
        ))

    return providers


def build_email_sender(settings: Settings) -> EmailSender:
    template_dir = settings.email.templates_dir or str(DEFAULT_TEMPLATES_DIR)
    sender = EmailSender(template_dir, build_providers(settings), reply_to=settings.email.reply_to)
    logger.info(f"Email provider chain: {', '.join(sender.provider_names) or 'none'}")
    return sender


class ShipmentNotifier:
    """Sends shipment emails to the receiver.

    Delivery problems are logged and returned as results; nothing here
    raises, so a failing provider never fails the request that triggered it.
    """

    def __init__(
        self,
        sender: EmailSender,
        track_base_url: str,
        app_name: str = "shiptrack",
        enabled: bool = True,
    ):
        self.sender = sender
        self.track_base_url = track_base_url.rstrip("/")
        self.app_name = app_name
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShipmentNotifier":
        return cls(
            build_email_sender(settings),
            track_base_url=settings.email.track_base_url,
            app_name=settings.app_name,
            enabled=settings.email.enabled,
        )

    def track_url(self, tracking_id: str) -> str:
        return f"{self.track_base_url}/{tracking_id}"

    def _context(self, shipment: Shipment) -> Dict[str, Any]:
        current = shipment.current_location
        estimated = shipment.estimated_delivery_date
        return {
            "receiver_name": shipment.receiver.name or None,
            "tracking_id": shipment.tracking_id,
            "status": shipment.status.label,
            "package_name": shipment.package.name or None,
            "origin": shipment.origin.label or None,
            "destination": shipment.destination.label or None,
            "current_location": current.name if current else None,
            "estimated_delivery": estimated.strftime("%B %d, %Y") if estimated else None,
            "track_url": self.track_url(shipment.tracking_id),
        }

    def _send(self, template_name: str, shipment: Shipment, context: Dict[str, Any]) -> Optional[SendResult]:
        if not self.enabled:
            logger.debug(f"Notifications disabled, not sending {template_name}")
            return None
        if not shipment.receiver.email:
            logger.info(f"Shipment {shipment.tracking_id} has no receiver email, not sending {template_name}")
            return None

        try:
            result = self.sender.send_template(
                template_name,
                shipment.receiver.email,
                context,
                metadata={"tracking_id": shipment.tracking_id},
            )
        except Exception:
            logger.exception(f"Unexpected error sending {template_name} for {shipment.tracking_id}")
            return None

        if result.status == SendStatus.SUCCESS:
            logger.info(
                f"Sent {template_name} for {shipment.tracking_id} via {result.provider}",
                extra={"correlation_id": result.correlation_id},
            )
        else:
            logger.warning(
                f"Could not send {template_name} for {shipment.tracking_id}: {result.error_reason}",
                extra={"correlation_id": result.correlation_id},
            )
        return result

    def shipment_created(self, shipment: Shipment) -> Optional[SendResult]:
        return self._send("shipment_created", shipment, self._context(shipment))

    def status_changed(
        self,
        shipment: Shipment,
        previous_status: Optional[ShipmentStatus] = None,
        notes: Optional[str] = None,
    ) -> Optional[SendResult]:
        context = self._context(shipment)
        context["previous_status"] = previous_status.label if previous_status else None
        context["notes"] = notes or None
        return self._send("status_update", shipment, context)

    def send_test_email(self, to: str) -> SendResult:
        """Send the test template to ``to`` through the full provider chain."""
        return self.sender.send_template(
            "test_email",
            to,
            {"app_name": self.app_name, "sent_at": to_iso(utcnow())},
        )
