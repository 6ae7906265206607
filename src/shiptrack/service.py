"""Shipment operations shared by the HTTP API and the CLI."""

import logging
import math
from typing import Any, Dict, List, Optional

from .exceptions import ShipmentNotFoundError, StorageError, ValidationError
from .models import (
    Contact,
    Coordinates,
    CurrentLocation,
    PackageDetails,
    Place,
    Shipment,
    generate_tracking_id,
    parse_timestamp,
    utcnow,
)
from .notifications import ShipmentNotifier
from .status import ShipmentStatus, check_transition, parse_status
from .storage.base import ShipmentStore

logger = logging.getLogger(__name__)

MAX_TRACKING_ID_ATTEMPTS = 5

UPDATABLE_FIELDS = frozenset({
    "status",
    "estimatedDeliveryDate",
    "origin",
    "destination",
    "sender",
    "receiver",
    "package",
    "currentLocation",
    "currentCoordinates",
    "notes",
})


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _real_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("lat and lng are required numbers", field=field_name)
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise ValidationError("lat and lng are required numbers", field=field_name)
    return number


def _coordinates(value: Any, field_name: str) -> Optional[Coordinates]:
    if value is None:
        return None
    coordinates = Coordinates.from_dict(value, field_name)
    return coordinates if coordinates.is_set else None


class ShipmentService:
    """Creates, updates and looks up shipments.

    Every history append happens inside ``store.update`` so that two
    concurrent updates of one shipment both land in ``trackingHistory``.
    Emails go out after the write has committed.
    """

    def __init__(self, store: ShipmentStore, notifier: Optional[ShipmentNotifier] = None):
        self.store = store
        self.notifier = notifier

    def _new_tracking_id(self) -> str:
        for _ in range(MAX_TRACKING_ID_ATTEMPTS):
            tracking_id = generate_tracking_id()
            if self.store.find_by_tracking_id(tracking_id) is None:
                return tracking_id
            logger.warning(f"Tracking ID collision on {tracking_id}, generating another")
        raise StorageError("Could not generate a unique tracking ID")

    def create_shipment(self, payload: Any) -> Shipment:
        payload = _require_object(payload)

        origin = Place.from_dict(payload.get("origin"), "origin")
        shipment = Shipment(
            tracking_id=self._new_tracking_id(),
            status=parse_status(payload.get("status") or ShipmentStatus.PENDING),
            estimated_delivery_date=parse_timestamp(
                payload.get("estimatedDeliveryDate"), "estimatedDeliveryDate", strict=True
            ),
            origin=origin,
            destination=Place.from_dict(payload.get("destination"), "destination"),
            sender=Contact.from_dict(payload.get("sender"), "sender").validated("sender"),
            receiver=Contact.from_dict(payload.get("receiver"), "receiver").validated("receiver"),
            package=PackageDetails.from_payload(payload),
            current_location=CurrentLocation.from_value(payload.get("currentLocation")),
        )

        now = utcnow()
        shipment.created_at = now
        shipment.record(
            shipment.status,
            location=origin.city or "Origin",
            coordinates=origin.coordinates if origin.coordinates.is_set else None,
            notes="Shipment created",
            at=now,
        )

        shipment.id = self.store.add(shipment.to_document())
        logger.info(f"Created shipment {shipment.tracking_id} ({shipment.id})")

        if self.notifier:
            self.notifier.shipment_created(shipment)
        return shipment

    def list_shipments(self, status: Optional[str] = None) -> List[Shipment]:
        """All shipments, newest first, optionally limited to one status."""
        wanted = parse_status(status) if status else None
        shipments = [Shipment.from_document(document) for document in self.store.list_all()]
        if wanted is not None:
            shipments = [shipment for shipment in shipments if shipment.status == wanted]
        return shipments

    def get_shipment(self, shipment_id: str) -> Shipment:
        document = self.store.get(shipment_id)
        if document is None:
            raise ShipmentNotFoundError()
        return Shipment.from_document(document)

    def update_shipment(self, shipment_id: str, payload: Any) -> Shipment:
        """Apply whitelisted changes; a ``status`` appends to the history.

        Raises:
            ShipmentNotFoundError: If the shipment does not exist
            InvalidTransitionError: If the status change is not allowed
            ValidationError: If the payload is malformed
        """
        payload = _require_object(payload)
        changes = {key: value for key, value in payload.items() if key in UPDATABLE_FIELDS}

        new_status = parse_status(changes["status"]) if changes.get("status") else None
        location = CurrentLocation.from_value(changes.get("currentLocation"))
        coordinates = _coordinates(changes.get("currentCoordinates"), "currentCoordinates")
        notes = changes.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string", field="notes")
        if "estimatedDeliveryDate" in changes:
            estimated = parse_timestamp(
                changes["estimatedDeliveryDate"], "estimatedDeliveryDate", strict=True
            )

        previous: Dict[str, ShipmentStatus] = {}

        def mutate(document: Dict[str, Any]) -> Dict[str, Any]:
            shipment = Shipment.from_document(document)
            previous["status"] = shipment.status

            if "estimatedDeliveryDate" in changes:
                shipment.estimated_delivery_date = estimated
            if "origin" in changes:
                shipment.origin = shipment.origin.merged(changes["origin"], "origin")
            if "destination" in changes:
                shipment.destination = shipment.destination.merged(changes["destination"], "destination")
            if "sender" in changes:
                shipment.sender = shipment.sender.merged(changes["sender"], "sender").validated("sender")
            if "receiver" in changes:
                shipment.receiver = shipment.receiver.merged(changes["receiver"], "receiver").validated("receiver")
            if "package" in changes:
                shipment.package = shipment.package.merged(changes["package"])
            if location is not None:
                if location.coordinates is None and coordinates is not None:
                    location.coordinates = coordinates
                shipment.current_location = location

            now = utcnow()
            if new_status is not None:
                check_transition(shipment.status, new_status)
                shipment.status = new_status
                current = shipment.current_location
                shipment.record(
                    new_status,
                    location=(current.name if current else None) or "Unknown",
                    coordinates=coordinates,
                    notes=notes or f"Status changed to {new_status.value}",
                    at=now,
                )
            shipment.last_updated = now
            return shipment.to_document()

        document = self.store.update(shipment_id, mutate)
        if document is None:
            raise ShipmentNotFoundError()

        shipment = Shipment.from_document(document)
        logger.info(f"Updated shipment {shipment.tracking_id} ({', '.join(sorted(changes)) or 'touch'})")

        if new_status is not None and previous["status"] != new_status and self.notifier:
            self.notifier.status_changed(shipment, previous_status=previous["status"], notes=notes)
        return shipment

    def update_location(
        self,
        shipment_id: str,
        lat: Any,
        lng: Any,
        location_name: Optional[str] = None,
    ) -> Shipment:
        """Record a position report; the status is left unchanged."""
        coordinates = Coordinates(lat=_real_number(lat, "lat"), lng=_real_number(lng, "lng"))
        if location_name is not None and not isinstance(location_name, str):
            raise ValidationError("locationName must be a string", field="locationName")
        location_name = (location_name or "").strip() or None

        def mutate(document: Dict[str, Any]) -> Dict[str, Any]:
            shipment = Shipment.from_document(document)
            shipment.record(
                shipment.status if document.get("status") else ShipmentStatus.IN_TRANSIT,
                location=location_name or "Current Location",
                coordinates=coordinates,
                notes="Location updated",
            )
            shipment.current_location = CurrentLocation(name=location_name, coordinates=coordinates)
            return shipment.to_document()

        document = self.store.update(shipment_id, mutate)
        if document is None:
            raise ShipmentNotFoundError()
        return Shipment.from_document(document)

    def delete_shipment(self, shipment_id: str) -> None:
        if not self.store.delete(shipment_id):
            raise ShipmentNotFoundError()
        logger.info(f"Deleted shipment {shipment_id}")

    def track(self, tracking_id: str) -> Shipment:
        """Look a shipment up by its public tracking ID."""
        document = self.store.find_by_tracking_id(tracking_id.strip())
        if document is None:
            raise ShipmentNotFoundError("Tracking ID not found")
        return Shipment.from_document(document)

    def summary(self) -> Dict[str, Any]:
        """Shipment counts per status for the dashboard."""
        counts = self.store.count_by_status()
        by_status = {status.value: counts.get(status.value, 0) for status in ShipmentStatus}
        total = sum(counts.values())
        active = sum(
            count for value, count in by_status.items()
            if not ShipmentStatus(value).is_terminal
        )
        return {"total": total, "active": active, "byStatus": by_status}
