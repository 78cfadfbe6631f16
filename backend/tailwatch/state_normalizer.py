"""state_normalizer.py
~~~~~~~~~~~~~~~~~~~~~~
Turn one raw OpenSky state vector (a positional list) into a named,
immutable :class:`StateSnapshot`.

OpenSky state vector layout (``/states/all``, ``extended=1`` adds index 17)::

    0 icao24          6 latitude         12 sensors
    1 callsign        7 baro_altitude    13 geo_altitude
    2 origin_country  8 on_ground        14 squawk
    3 time_position   9 velocity         15 spi
    4 last_contact   10 true_track       16 position_source
    5 longitude      11 vertical_rate    17 category

Unknown values stay ``None``. Altitude ``0`` is a real reading and must
never be confused with "no altitude reported".
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Final, Sequence

from .clock import SYSTEM_CLOCK, Clock

# ── Field table ──────────────────────────────────────────────────────────
FIELD_INDEX: Final[dict[str, int]] = {
    "icao24": 0,
    "callsign": 1,
    "origin_country": 2,
    "time_position": 3,
    "last_contact": 4,
    "longitude": 5,
    "latitude": 6,
    "baro_altitude": 7,
    "on_ground": 8,
    "velocity": 9,
    "true_track": 10,
    "vertical_rate": 11,
    "sensors": 12,
    "geo_altitude": 13,
    "squawk": 14,
    "spi": 15,
    "position_source": 16,
    "category": 17,
}

#: Number of fields in an extended state vector
STATE_VECTOR_LENGTH: Final[int] = len(FIELD_INDEX)


@dataclass(frozen=True)
class StateSnapshot:
    """One aircraft at one instant, as observed by this client."""

    icao24: str
    timestamp: float
    callsign: str | None = None
    origin_country: str | None = None
    time_position: int | None = None
    last_contact: int | None = None
    longitude: float | None = None
    latitude: float | None = None
    baro_altitude: float | None = None
    geo_altitude: float | None = None
    velocity: float | None = None
    true_track: float | None = None
    vertical_rate: float | None = None
    on_ground: bool = False
    squawk: str | None = None
    spi: bool = False
    position_source: int = 0
    category: int | None = None
    sensors: tuple[int, ...] | None = None
    cached: bool = False

    def with_cached(self, cached: bool = True) -> "StateSnapshot":
        """Copy of this snapshot with the ``cached`` flag set."""
        if self.cached == cached:
            return self
        return dataclasses.replace(self, cached=cached)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        if self.sensors is not None:
            data["sensors"] = list(self.sensors)
        return data


# ── Coercion helpers ─────────────────────────────────────────────────────
def _field(raw: Sequence[Any], name: str) -> Any:
    idx = FIELD_INDEX[name]
    return raw[idx] if idx < len(raw) else None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> int | None:
    number = _as_float(value)
    return int(number) if number is not None else None


def _as_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _as_flag(value: Any) -> bool:
    # The feed sends null for "not flagged".
    return value is True or value == 1


def _as_sensors(value: Any) -> tuple[int, ...] | None:
    if not isinstance(value, (list, tuple)):
        return None
    ids = [_as_int(v) for v in value]
    return tuple(i for i in ids if i is not None)


# ── Public helper ────────────────────────────────────────────────────────
def normalize_state(
    raw: Sequence[Any],
    collected_at: float | None = None,
    *,
    clock: Clock | None = None,
) -> StateSnapshot:
    """
    Map a raw state vector onto a :class:`StateSnapshot`.

    Args:
        raw:           Positional record as returned by OpenSky. Records
                       shorter than 18 fields are fine; missing trailing
                       fields read as unknown.
        collected_at:  Batch-level collection time (epoch seconds). When
                       omitted, the snapshot is stamped with ``clock.now()``.
        clock:         Time source, defaults to the system clock.

    The caller guarantees ``raw[0]`` (the ICAO24 address) is present.
    """
    clock = clock or SYSTEM_CLOCK
    timestamp = collected_at if collected_at is not None else clock.now()

    position_source = _as_int(_field(raw, "position_source"))

    return StateSnapshot(
        icao24=str(_field(raw, "icao24")).strip().lower(),
        timestamp=float(timestamp),
        callsign=_as_text(_field(raw, "callsign")),
        origin_country=_as_text(_field(raw, "origin_country")),
        time_position=_as_int(_field(raw, "time_position")),
        last_contact=_as_int(_field(raw, "last_contact")),
        longitude=_as_float(_field(raw, "longitude")),
        latitude=_as_float(_field(raw, "latitude")),
        baro_altitude=_as_float(_field(raw, "baro_altitude")),
        geo_altitude=_as_float(_field(raw, "geo_altitude")),
        velocity=_as_float(_field(raw, "velocity")),
        true_track=_as_float(_field(raw, "true_track")),
        vertical_rate=_as_float(_field(raw, "vertical_rate")),
        on_ground=_as_flag(_field(raw, "on_ground")),
        squawk=_as_text(_field(raw, "squawk")),
        spi=_as_flag(_field(raw, "spi")),
        position_source=position_source if position_source is not None else 0,
        category=_as_int(_field(raw, "category")),
        sensors=_as_sensors(_field(raw, "sensors")),
        cached=False,
    )


__all__ = ["FIELD_INDEX", "STATE_VECTOR_LENGTH", "StateSnapshot", "normalize_state"]
