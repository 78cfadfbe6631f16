"""
formatters.py
~~~~~~~~~~~~~
Human-readable renderings of snapshot values (aviation units) used by the
JSON ``summary`` field and by the chat assistant's context message.

Every helper accepts ``None`` and renders it as ``"Unknown"``.
"""

from __future__ import annotations

import datetime as dt
from typing import Final

from dateutil import tz

from .state_normalizer import StateSnapshot

UTC: Final = tz.UTC
UNKNOWN: Final[str] = "Unknown"

FEET_PER_METER: Final[float] = 3.28084
KNOTS_PER_MPS: Final[float] = 1.94384
METERS_PER_NM: Final[float] = 1852.0

COMPASS: Final[tuple[str, ...]] = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)

POSITION_SOURCES: Final[dict[int, str]] = {
    0: "ADS-B",
    1: "ASTERIX",
    2: "MLAT",
    3: "FLARM",
}


def format_altitude(meters: float | None) -> str:
    if meters is None:
        return UNKNOWN
    return f"{round(meters * FEET_PER_METER):,} ft"


def format_speed(mps: float | None) -> str:
    if mps is None:
        return UNKNOWN
    return f"{round(mps * KNOTS_PER_MPS)} kts"


def format_vertical_rate(mps: float | None) -> str:
    """Climb/descent in ft/min with an explicit sign."""
    if mps is None:
        return UNKNOWN
    fpm = round(mps * FEET_PER_METER * 60)
    return f"{fpm:+,} ft/min"


def format_distance(meters: float | None) -> str:
    if meters is None:
        return UNKNOWN
    return f"{meters / METERS_PER_NM:.1f} NM"


def format_direction(degrees: float | None) -> str:
    """``90.0`` → ``"90° (E)"``."""
    if degrees is None:
        return UNKNOWN
    index = round(degrees / 22.5) % 16
    return f"{round(degrees)}° ({COMPASS[index]})"


def format_callsign(callsign: str | None) -> str:
    if not callsign or not callsign.strip():
        return UNKNOWN
    return callsign.strip()


def format_timestamp(epoch: float | None) -> str:
    """Epoch seconds → ISO-8601 in UTC."""
    if epoch is None:
        return UNKNOWN
    return dt.datetime.fromtimestamp(epoch, UTC).isoformat()


def format_relative_time(epoch: float | None, now: float) -> str:
    """``"just now"``, ``"3 minutes ago"``, ``"2 hours ago"`` or an ISO date."""
    if epoch is None:
        return UNKNOWN
    diff = now - epoch
    if diff < 60:
        return "just now"
    if diff < 3_600:
        minutes = int(diff // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if diff < 86_400:
        hours = int(diff // 3_600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    return format_timestamp(epoch)


def format_position_source(code: int | None) -> str:
    if code is None:
        return UNKNOWN
    return POSITION_SOURCES.get(code, UNKNOWN)


def describe_state(snapshot: StateSnapshot, now: float | None = None) -> str:
    """One-paragraph plain-English summary of *snapshot*."""
    now = snapshot.timestamp if now is None else now
    status = "on the ground" if snapshot.on_ground else "airborne"

    if snapshot.has_position:
        where = f"at {snapshot.latitude:.4f}, {snapshot.longitude:.4f}"
    else:
        where = "at an unknown position"

    parts = [
        f"Aircraft {snapshot.icao24} (callsign {format_callsign(snapshot.callsign)}, "
        f"registered in {snapshot.origin_country or UNKNOWN}) is {status} {where}.",
        f"Altitude {format_altitude(snapshot.baro_altitude)} barometric, "
        f"{format_altitude(snapshot.geo_altitude)} geometric.",
        f"Ground speed {format_speed(snapshot.velocity)}, "
        f"track {format_direction(snapshot.true_track)}, "
        f"vertical rate {format_vertical_rate(snapshot.vertical_rate)}.",
    ]
    if snapshot.squawk:
        parts.append(f"Squawking {snapshot.squawk}.")
    parts.append(
        f"Source {format_position_source(snapshot.position_source)}, "
        f"last contact {format_relative_time(snapshot.last_contact, now)}."
    )
    return " ".join(parts)


__all__ = [
    "describe_state",
    "format_altitude",
    "format_callsign",
    "format_direction",
    "format_distance",
    "format_position_source",
    "format_relative_time",
    "format_speed",
    "format_timestamp",
    "format_vertical_rate",
]
