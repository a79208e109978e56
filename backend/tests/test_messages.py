"""Tests for live feed message parsing and outbound control messages."""

import pytest

from conftest import make_route

from live_tracker.schemas.messages import (
    LiveMessage,
    ReleaseMessage,
    SubscriptionMessage,
    parse_checkpoints,
    parse_fix,
)


@pytest.mark.parametrize("payload", [
    {"latitude": 12.9, "longitude": 80.1},
    {"lat": 12.9, "lon": 80.1},
    {"lattitude": 12.9, "long": 80.1},
    {"lattude": "12.9", "long": "80.1"},
])
def test_coordinate_aliases(payload):
    fix = parse_fix(payload)
    assert (fix.lat, fix.lon) == (12.9, 80.1)


@pytest.mark.parametrize("payload", [
    {},
    {"lat": 12.9},
    {"lat": None, "long": 80.1},
    {"lat": "abc", "long": 80.1},
    {"lat": float("inf"), "long": 80.1},
    {"lat": 12.9, "long": float("nan")},
    {"lat": True, "lon": False},
    {"latitude": 12.9, "longitude": True},
])
def test_unusable_coordinates(payload):
    assert parse_fix(payload) is None


def test_speed_aliases_and_leniency():
    assert parse_fix({"lat": 1, "long": 2, "speedInMeters": 4.5}).speed == 4.5
    assert parse_fix({"lat": 1, "long": 2, "speed_meters": "3"}).speed == 3.0
    assert parse_fix({"lat": 1, "long": 2, "speed": "fast"}).speed == 0.0
    assert parse_fix({"lat": 1, "long": 2}).speed == 0.0


def test_checkpoint_parsing():
    assert parse_checkpoints({"arrival_status": {"1": "08:01", "3": "08:20"}}) == {1: "08:01", 3: "08:20"}
    assert parse_checkpoints({"arrivalStatus": {"2": "08:11"}}) == {2: "08:11"}
    assert parse_checkpoints({"arrival_status": {"x": "08:01", "2": None}}) == {2: ""}
    assert parse_checkpoints({"arrival_status": "none"}) == {}
    assert parse_checkpoints({}) == {}


def test_live_message_carries_both_parts():
    msg = LiveMessage.from_payload({"lat": "bad", "arrival_status": {"2": "08:11"}})
    assert msg.fix is None
    assert msg.checkpoints == {2: "08:11"}


def test_subscription_message_for_route():
    payload = SubscriptionMessage.for_route(make_route()).model_dump()
    assert payload == {
        "bus_id": "21",
        "route_id": 7,
        "route_name": "Tambaram - Guindy",
        "driver_id": "D-104",
        "direction": "UP",
    }


def test_release_message_defaults():
    assert ReleaseMessage(driver_id="exit").model_dump() == {
        "driver_id": "exit",
        "route_id": 0,
        "direction": "up",
    }


def test_blank_checkpoint_keeps_its_sequence():
    checkpoints = parse_checkpoints({"arrival_status": {"1": "08:10", "3": ""}})
    assert checkpoints == {1: "08:10", 3: ""}
    assert max(checkpoints) == 3


def test_boolean_coordinates_give_no_fix():
    assert LiveMessage.from_payload({"lat": True, "lon": False}).fix is None
