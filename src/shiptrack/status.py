"""Shipment statuses and the transitions allowed between them."""

import enum
from typing import Dict, FrozenSet, Union

from .exceptions import InvalidTransitionError, ValidationError


class ShipmentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    IN_TRANSIT = "in-transit"
    OUT_FOR_DELIVERY = "out-for-delivery"
    ON_HOLD = "on-hold"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        """Human readable form used in emails, e.g. ``Out for delivery``."""
        return self.value.replace("-", " ").capitalize()

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


TRANSITIONS: Dict[ShipmentStatus, FrozenSet[ShipmentStatus]] = {
    ShipmentStatus.PENDING: frozenset({
        ShipmentStatus.PROCESSING,
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.ON_HOLD,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.PROCESSING: frozenset({
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.ON_HOLD,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.IN_TRANSIT: frozenset({
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.ON_HOLD,
        ShipmentStatus.DELIVERED,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.OUT_FOR_DELIVERY: frozenset({
        ShipmentStatus.DELIVERED,
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.ON_HOLD,
    }),
    ShipmentStatus.ON_HOLD: frozenset({
        ShipmentStatus.PROCESSING,
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.OUT_FOR_DELIVERY,
        ShipmentStatus.CANCELLED,
    }),
    ShipmentStatus.DELIVERED: frozenset(),
    ShipmentStatus.CANCELLED: frozenset(),
}


def parse_status(value: Union[str, ShipmentStatus]) -> ShipmentStatus:
    """Parse a status leniently: ``"In Transit"`` and ``in_transit`` both work.

    Raises:
        ValidationError: If the value is not a known status
    """
    if isinstance(value, ShipmentStatus):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Status must be a string, got {type(value).__name__}", field="status")

    normalized = "-".join(value.strip().lower().replace("_", " ").split())
    try:
        return ShipmentStatus(normalized)
    except ValueError:
        allowed = ", ".join(s.value for s in ShipmentStatus)
        raise ValidationError(f"Unknown status '{value}'. Expected one of: {allowed}", field="status")


def can_transition(current: ShipmentStatus, new: ShipmentStatus) -> bool:
    """Re-posting a non-terminal status is a checkpoint and always allowed."""
    if current == new:
        return not current.is_terminal
    return new in TRANSITIONS[current]


def check_transition(current: ShipmentStatus, new: ShipmentStatus) -> None:
    """Raise InvalidTransitionError when ``current -> new`` is not allowed."""
    if not can_transition(current, new):
        raise InvalidTransitionError(current.value, new.value)
