"""
tests/test_formatters.py
~~~~~~~~~~~~~~~~~~~~~~~~
Unit conversions and the plain-English snapshot summary.
"""

from __future__ import annotations

import pytest

from tailwatch import formatters as fmt
from tailwatch.state_normalizer import StateSnapshot, normalize_state


@pytest.mark.parametrize(
    "func",
    [
        fmt.format_altitude,
        fmt.format_speed,
        fmt.format_vertical_rate,
        fmt.format_distance,
        fmt.format_direction,
        fmt.format_callsign,
        fmt.format_timestamp,
        fmt.format_position_source,
    ],
)
def test_none_is_unknown(func):
    assert func(None) == "Unknown"


def test_altitude_in_feet():
    assert fmt.format_altitude(10668.0) == "35,000 ft"
    assert fmt.format_altitude(0) == "0 ft"


def test_speed_in_knots():
    assert fmt.format_speed(231.5) == "450 kts"


def test_vertical_rate_signed():
    assert fmt.format_vertical_rate(-2.54) == "-500 ft/min"
    assert fmt.format_vertical_rate(5.08).startswith("+1,000")


def test_distance_in_nautical_miles():
    assert fmt.format_distance(1852 * 3.5) == "3.5 NM"


@pytest.mark.parametrize(
    "degrees, expected",
    [(0, "0° (N)"), (90, "90° (E)"), (225, "225° (SW)"), (359, "359° (N)")],
)
def test_direction(degrees, expected):
    assert fmt.format_direction(degrees) == expected


def test_callsign_blank():
    assert fmt.format_callsign("   ") == "Unknown"
    assert fmt.format_callsign(" UAL1 ") == "UAL1"


def test_timestamp_is_utc_iso():
    assert fmt.format_timestamp(0) == "1970-01-01T00:00:00+00:00"


@pytest.mark.parametrize(
    "age, expected",
    [
        (10, "just now"),
        (60, "1 minute ago"),
        (150, "2 minutes ago"),
        (3_600, "1 hour ago"),
        (7_300, "2 hours ago"),
    ],
)
def test_relative_time(age, expected):
    now = 1_000_000.0
    assert fmt.format_relative_time(now - age, now) == expected


def test_relative_time_falls_back_to_date():
    assert fmt.format_relative_time(0, 200_000).startswith("1970-01-01T")


def test_position_source_names():
    assert fmt.format_position_source(2) == "MLAT"
    assert fmt.format_position_source(9) == "Unknown"


def test_describe_state_airborne(raw_state, clock):
    text = fmt.describe_state(normalize_state(raw_state(), clock=clock))

    assert "abc123" in text
    assert "airborne" in text
    assert "35,000 ft" in text
    assert "Squawking 3421" in text
    assert "ADS-B" in text


def test_describe_state_sparse():
    text = fmt.describe_state(StateSnapshot(icao24="abc123", timestamp=0, on_ground=True))
    assert "on the ground" in text
    assert "unknown position" in text
    assert "Squawking" not in text
