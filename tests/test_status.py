"""Tests for the shipment status machine."""

import pytest

from shiptrack.exceptions import InvalidTransitionError, ValidationError
from shiptrack.status import (
    TRANSITIONS,
    ShipmentStatus,
    can_transition,
    check_transition,
    parse_status,
)


class TestParseStatus:

    @pytest.mark.parametrize("raw, expected", [
        ("pending", ShipmentStatus.PENDING),
        ("In Transit", ShipmentStatus.IN_TRANSIT),
        ("in_transit", ShipmentStatus.IN_TRANSIT),
        ("  OUT-FOR-DELIVERY ", ShipmentStatus.OUT_FOR_DELIVERY),
        ("on hold", ShipmentStatus.ON_HOLD),
    ])
    def test_lenient_parsing(self, raw, expected):
        assert parse_status(raw) is expected

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_status("lost")
        assert exc_info.value.field == "status"
        assert exc_info.value.http_status == 400

    def test_non_string(self):
        with pytest.raises(ValidationError):
            parse_status(3)

    def test_label(self):
        assert ShipmentStatus.OUT_FOR_DELIVERY.label == "Out for delivery"


class TestTransitions:

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(ShipmentStatus)

    def test_terminal_statuses(self):
        assert ShipmentStatus.DELIVERED.is_terminal
        assert ShipmentStatus.CANCELLED.is_terminal
        assert not ShipmentStatus.ON_HOLD.is_terminal

    @pytest.mark.parametrize("current, new", [
        (ShipmentStatus.PENDING, ShipmentStatus.PROCESSING),
        (ShipmentStatus.PENDING, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.IN_TRANSIT, ShipmentStatus.OUT_FOR_DELIVERY),
        (ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.DELIVERED),
        (ShipmentStatus.ON_HOLD, ShipmentStatus.IN_TRANSIT),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)
        check_transition(current, new)

    @pytest.mark.parametrize("current, new", [
        (ShipmentStatus.PENDING, ShipmentStatus.DELIVERED),
        (ShipmentStatus.PROCESSING, ShipmentStatus.PENDING),
        (ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.CANCELLED),
        (ShipmentStatus.DELIVERED, ShipmentStatus.IN_TRANSIT),
        (ShipmentStatus.CANCELLED, ShipmentStatus.PENDING),
    ])
    def test_rejected(self, current, new):
        assert not can_transition(current, new)
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(current, new)
        assert exc_info.value.http_status == 409
        assert exc_info.value.requested == new.value

    def test_same_status_is_a_checkpoint(self):
        assert can_transition(ShipmentStatus.IN_TRANSIT, ShipmentStatus.IN_TRANSIT)

    def test_terminal_status_cannot_be_reposted(self):
        assert not can_transition(ShipmentStatus.DELIVERED, ShipmentStatus.DELIVERED)
