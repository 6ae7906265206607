"""Shipment document model.

Documents are stored and served with the camelCase keys the admin dashboard
and the public tracking page already use (``trackingID``,
``trackingHistory``...). Timestamps are ISO-8601 UTC strings with millisecond
precision so they sort lexicographically in any store.
"""

from __future__ import annotations

import math
import re
import secrets
import string
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shipmail.validators import validate_email_address

from .exceptions import ValidationError
from .status import ShipmentStatus, parse_status

TRACKING_ID_PREFIX = "TRANS"
_BASE36 = string.digits + string.ascii_uppercase
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _normalize_iso(text: str) -> str:
    """Make ``text`` acceptable to ``datetime.fromisoformat`` on every supported Python.

    Older interpreters only take a six digit fraction and no ``Z`` suffix.
    """
    text = text.strip().replace("Z", "+00:00")
    return _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)


def parse_timestamp(value: Any, field_name: str = "timestamp", strict: bool = False) -> Optional[datetime]:
    """Coerce ISO strings, datetimes, epoch seconds and ``{"seconds": n}`` maps.

    Unparseable values become ``None`` unless ``strict`` is set, in which
    case a ValidationError is raised.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    seconds = value.get("seconds", value.get("_seconds")) if isinstance(value, dict) else value
    if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(_normalize_iso(value))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass

    if strict:
        raise ValidationError(f"Invalid date for {field_name}: {value!r}", field=field_name)
    return None


def _to_base36(number: int) -> str:
    digits = []
    while True:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
        if not number:
            break
    return "".join(reversed(digits))


def generate_tracking_id() -> str:
    """``TRANS`` + base-36 epoch milliseconds + 6 random base-36 characters."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{TRACKING_ID_PREFIX}{stamp}{suffix}"


def _text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"{field_name} must be a string", field=field_name)


def _number(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if isinstance(value, (int, float, str)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            pass
        else:
            if math.isfinite(number):
                return number
    raise ValidationError(f"{field_name} must be a number", field=field_name)


def _mapping(value: Any, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object", field=field_name)
    return value


@dataclass
class Coordinates:
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any, field_name: str = "coordinates") -> "Coordinates":
        data = _mapping(data, field_name)
        return cls(
            lat=_number(data.get("lat"), f"{field_name}.lat"),
            lng=_number(data.get("lng"), f"{field_name}.lng"),
        )

    @property
    def is_set(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"lat": self.lat, "lng": self.lng}


def _optional_coordinates(value: Any, field_name: str) -> Optional[Coordinates]:
    if value is None:
        return None
    coordinates = Coordinates.from_dict(value, field_name)
    return coordinates if coordinates.is_set else None


@dataclass
class Place:
    """Origin or destination of a shipment."""

    city: str = ""
    state: str = ""
    country: str = ""
    facility: str = ""
    address: str = ""
    coordinates: Coordinates = field(default_factory=Coordinates)

    @classmethod
    def from_dict(cls, data: Any, field_name: str = "place") -> "Place":
        data = _mapping(data, field_name)
        return cls(
            city=_text(data.get("city"), f"{field_name}.city"),
            state=_text(data.get("state"), f"{field_name}.state"),
            country=_text(data.get("country"), f"{field_name}.country"),
            facility=_text(data.get("facility"), f"{field_name}.facility"),
            address=_text(data.get("address"), f"{field_name}.address"),
            coordinates=Coordinates.from_dict(data.get("coordinates"), f"{field_name}.coordinates"),
        )

    def merged(self, patch: Any, field_name: str = "place") -> "Place":
        return Place.from_dict({**self.to_dict(), **_mapping(patch, field_name)}, field_name)

    @property
    def label(self) -> str:
        return ", ".join(part for part in (self.city, self.state, self.country) if part)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "facility": self.facility,
            "address": self.address,
            "coordinates": self.coordinates.to_dict(),
        }


@dataclass
class Contact:
    """Sender or receiver of a shipment."""

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @classmethod
    def from_dict(cls, data: Any, field_name: str = "contact") -> "Contact":
        data = _mapping(data, field_name)
        return cls(
            name=_text(data.get("name"), f"{field_name}.name"),
            email=_text(data.get("email"), f"{field_name}.email"),
            phone=_text(data.get("phone"), f"{field_name}.phone"),
            address=_text(data.get("address"), f"{field_name}.address"),
        )

    def merged(self, patch: Any, field_name: str = "contact") -> "Contact":
        return Contact.from_dict({**self.to_dict(), **_mapping(patch, field_name)}, field_name)

    def validated(self, field_name: str = "contact") -> "Contact":
        """Return a copy with a normalized email; raise if the email is malformed."""
        if not self.email:
            return self
        is_valid, normalized = validate_email_address(self.email)
        if not is_valid:
            raise ValidationError(f"Invalid {field_name} email: {normalized}", field=f"{field_name}.email")
        return replace(self, email=normalized)

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email, "phone": self.phone, "address": self.address}


# payload key -> document key; flat keys are what the admin form posts
FLAT_PACKAGE_KEYS = {
    "packageName": "name",
    "packageDescription": "description",
    "packageCategory": "category",
    "cost": "cost",
    "weight": "weight",
    "dimensions": "dimensions",
    "paymentMethod": "paymentMethod",
    "serviceType": "serviceType",
    "carrierId": "carrierId",
    "driverId": "driverId",
}


@dataclass
class PackageDetails:
    name: str = ""
    description: str = ""
    category: str = ""
    cost: Optional[float] = None
    weight: Optional[float] = None
    dimensions: str = ""
    payment_method: str = ""
    service_type: str = "standard"
    carrier_id: str = ""
    driver_id: str = ""

    @classmethod
    def from_dict(cls, data: Any, field_name: str = "package") -> "PackageDetails":
        data = _mapping(data, field_name)
        return cls(
            name=_text(data.get("name"), f"{field_name}.name"),
            description=_text(data.get("description"), f"{field_name}.description"),
            category=_text(data.get("category"), f"{field_name}.category"),
            cost=_number(data.get("cost"), f"{field_name}.cost"),
            weight=_number(data.get("weight"), f"{field_name}.weight"),
            dimensions=_text(data.get("dimensions"), f"{field_name}.dimensions"),
            payment_method=_text(data.get("paymentMethod"), f"{field_name}.paymentMethod"),
            service_type=_text(data.get("serviceType"), f"{field_name}.serviceType") or "standard",
            carrier_id=_text(data.get("carrierId"), f"{field_name}.carrierId"),
            driver_id=_text(data.get("driverId"), f"{field_name}.driverId"),
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PackageDetails":
        """Build from a create payload; flat form keys win over ``package.*``."""
        merged = dict(_mapping(payload.get("package"), "package"))
        for flat_key, key in FLAT_PACKAGE_KEYS.items():
            if payload.get(flat_key) not in (None, ""):
                merged[key] = payload[flat_key]
        return cls.from_dict(merged)

    def merged(self, patch: Any) -> "PackageDetails":
        return PackageDetails.from_dict({**self.to_dict(), **_mapping(patch, "package")})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "cost": self.cost,
            "weight": self.weight,
            "dimensions": self.dimensions,
            "paymentMethod": self.payment_method,
            "serviceType": self.service_type,
            "carrierId": self.carrier_id,
            "driverId": self.driver_id,
        }


@dataclass
class CurrentLocation:
    name: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @classmethod
    def from_value(cls, value: Any, field_name: str = "currentLocation") -> Optional["CurrentLocation"]:
        """Accept a bare place name or ``{name, coordinates}``."""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return cls(name=value.strip())
        data = _mapping(value, field_name)
        return cls(
            name=_text(data.get("name"), f"{field_name}.name") or None,
            coordinates=_optional_coordinates(data.get("coordinates"), f"{field_name}.coordinates"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
        }


@dataclass
class TrackingEvent:
    """One entry of the append-only tracking history."""

    status: str
    location: str
    timestamp: Optional[datetime]
    coordinates: Optional[Coordinates] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "TrackingEvent":
        data = _mapping(data, "trackingHistory[]")
        location = data.get("location")
        # Older documents stored the whole currentLocation object here
        if isinstance(location, dict):
            location = location.get("name")
        return cls(
            status=_text(data.get("status"), "trackingHistory.status"),
            location=location if isinstance(location, str) else "",
            timestamp=parse_timestamp(data.get("timestamp")),
            coordinates=_optional_coordinates(data.get("coordinates"), "trackingHistory.coordinates"),
            notes=_text(data.get("notes"), "trackingHistory.notes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "location": self.location,
            "timestamp": to_iso(self.timestamp),
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "notes": self.notes,
        }


@dataclass
class Shipment:
    tracking_id: str
    status: ShipmentStatus = ShipmentStatus.PENDING
    id: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    origin: Place = field(default_factory=Place)
    destination: Place = field(default_factory=Place)
    sender: Contact = field(default_factory=Contact)
    receiver: Contact = field(default_factory=Contact)
    package: PackageDetails = field(default_factory=PackageDetails)
    current_location: Optional[CurrentLocation] = None
    tracking_history: List[TrackingEvent] = field(default_factory=list)

    @classmethod
    def from_document(cls, document: Dict[str, Any], doc_id: Optional[str] = None) -> "Shipment":
        history = document.get("trackingHistory") or []
        return cls(
            id=doc_id or document.get("id"),
            tracking_id=document.get("trackingID") or "",
            status=parse_status(document.get("status") or ShipmentStatus.PENDING),
            estimated_delivery_date=parse_timestamp(document.get("estimatedDeliveryDate")),
            created_at=parse_timestamp(document.get("createdAt")),
            last_updated=parse_timestamp(document.get("lastUpdated")),
            origin=Place.from_dict(document.get("origin"), "origin"),
            destination=Place.from_dict(document.get("destination"), "destination"),
            sender=Contact.from_dict(document.get("sender"), "sender"),
            receiver=Contact.from_dict(document.get("receiver"), "receiver"),
            package=PackageDetails.from_dict(document.get("package")),
            current_location=CurrentLocation.from_value(document.get("currentLocation")),
            tracking_history=[TrackingEvent.from_dict(entry) for entry in history],
        )

    def record(
        self,
        status: ShipmentStatus,
        location: str,
        coordinates: Optional[Coordinates] = None,
        notes: str = "",
        at: Optional[datetime] = None,
    ) -> TrackingEvent:
        """Append a history entry and bump ``last_updated``."""
        at = at or utcnow()
        event = TrackingEvent(
            status=status.value,
            location=location,
            timestamp=at,
            coordinates=coordinates,
            notes=notes,
        )
        self.tracking_history.append(event)
        self.last_updated = at
        return event

    @property
    def latest_event(self) -> Optional[TrackingEvent]:
        return self.tracking_history[-1] if self.tracking_history else None

    def to_document(self) -> Dict[str, Any]:
        return {
            "trackingID": self.tracking_id,
            "status": self.status.value,
            "estimatedDeliveryDate": to_iso(self.estimated_delivery_date),
            "createdAt": to_iso(self.created_at),
            "lastUpdated": to_iso(self.last_updated),
            "origin": self.origin.to_dict(),
            "destination": self.destination.to_dict(),
            "sender": self.sender.to_dict(),
            "receiver": self.receiver.to_dict(),
            "package": self.package.to_dict(),
            "currentLocation": self.current_location.to_dict() if self.current_location else None,
            "trackingHistory": [event.to_dict() for event in self.tracking_history],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.to_document()}

    def to_public_dict(self) -> Dict[str, Any]:
        """Lookup view for anonymous callers: contacts are reduced to names."""
        document = self.to_dict()
        document.pop("createdAt")
        document["sender"] = {"name": self.sender.name}
        document["receiver"] = {"name": self.receiver.name}
        return document
