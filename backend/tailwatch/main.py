"""
main.py – FastAPI entry point
=============================

Routes
------
* ``GET  /healthz``                 – liveness probe.
* ``GET  /lookup/{tail_number}``    – tail number → ICAO24 (ADSBDB).
* ``GET  /state/{icao24}.json``     – live state, cache-first and quota-aware.
* ``GET  /track/{tail_number}.json``– lookup + state in one round-trip.
* ``GET  /trail/{icao24}.json``     – recent cached positions for the map.
* ``POST /chat``                    – forward a question to the chat model.
* ``GET  /limiter_stats``           – rate limiter / cache diagnostics.

The lifespan builds one :class:`FlightTracker` (limiter + cache + OpenSky
transport) and one shared ``httpx.AsyncClient`` for the life of the
process, and runs the hourly cache cleanup loop.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import asyncio
import contextlib
import datetime as dt
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# ─── Project modules ──────────────────────────────────────────────────
from .chat_service import ask
from .constants import USER_AGENT
from .errors import RateLimited, TrackerError
from .flight_tracker import FlightTracker
from .formatters import describe_state
from .opensky_service import OpenSkyTransport
from .rate_limiter import RateLimiter
from .registry_service import is_icao24, lookup_icao24
from .settings import Settings
from .snapshot_cache import SnapshotCache
from .state_normalizer import StateSnapshot

# ─── Logging ──────────────────────────────────────────────────────────
LOG_BG = logging.getLogger("bg")
LOG = logging.getLogger("tailwatch")

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s - %(message)s"))
_MODULE_LOGGERS = (
    "flight_tracker",
    "rate_limiter",
    "snapshot_cache",
    "opensky",
    "registry",
    "chat",
    "extapi",
    "settings",
)
for _logger in (LOG_BG, LOG, *map(logging.getLogger, _MODULE_LOGGERS)):
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------
load_dotenv()

UTC = dt.timezone.utc

# Per-IP limiter for the chat proxy (each call costs model tokens)
limiter = Limiter(key_func=get_remote_address)

STATUS_BY_KIND: dict[str, int] = {
    "RateLimited": 429,
    "QuotaExceeded": 429,
    "NotFound": 404,
    "UpstreamError": 502,
}


# ---------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------
def build_tracker(settings: Settings, client: httpx.AsyncClient) -> FlightTracker:
    """Create the process-wide tracker from *settings*."""
    transport = OpenSkyTransport(
        client,
        settings.opensky_base_url,
        auth=settings.opensky_auth,
        default_retry_after=settings.min_request_interval,
    )
    limiter_ = RateLimiter(
        max_requests_per_day=settings.max_requests_per_day,
        min_request_interval=settings.min_request_interval,
    )
    cache = SnapshotCache(
        poll_interval=settings.poll_interval,
        cache_duration=settings.cache_duration,
        max_states_per_aircraft=settings.max_states_per_aircraft,
    )
    return FlightTracker(transport, limiter_, cache)


def _state_payload(icao24: str, state: StateSnapshot | None) -> dict[str, Any]:
    return {
        "icao24": icao24,
        "state": state.to_dict() if state else None,
        "cached": bool(state and state.cached),
        "summary": describe_state(state) if state else None,
        "timestamp": dt.datetime.now(UTC).isoformat(),
    }


def _require_icao24(value: str) -> str:
    if not is_icao24(value):
        raise HTTPException(
            status_code=422, detail=f"{value!r} is not a 6-digit hex ICAO24 address"
        )
    return value.strip().lower()


# ---------------------------------------------------------------------
# Lifespan – shared client, tracker and cache cleanup loop
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: N802 – FastAPI naming style
    """Build services, start the cleanup loop, tear both down on exit."""
    settings = Settings.from_env()
    client = httpx.AsyncClient(
        timeout=float(settings.http_timeout), headers={"User-Agent": USER_AGENT}
    )
    tracker = build_tracker(settings, client)

    app.state.settings = settings
    app.state.http = client
    app.state.tracker = tracker

    async def _loop() -> None:
        while True:
            await asyncio.sleep(settings.cleanup_interval)
            try:
                removed = tracker.cleanup()
                LOG_BG.info(
                    "[cleanup] removed=%d remaining=%d", removed, len(tracker.cache)
                )
            except Exception as exc:
                LOG_BG.error("[cleanup] crashed: %s", exc, exc_info=True)

    task = asyncio.create_task(_loop())
    LOG.info(
        "[startup] quota=%d/day min_interval=%ss poll=%ss cache=%ss",
        settings.max_requests_per_day,
        settings.min_request_interval,
        settings.poll_interval,
        settings.cache_duration,
    )

    yield  # ⇢ application runs here

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    await client.aclose()


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
app = FastAPI(title="tailwatch", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 when a client exceeds the per-IP chat limit."""
    return JSONResponse(
        status_code=429,
        content={"kind": "RateLimited", "detail": "Rate limit exceeded. Try again later."},
    )


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    """Surface tracker failures verbatim: kind + message."""
    headers = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    status = STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        LOG.warning("[api] %s %s: %s", request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict(), headers=headers)


ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Health probe --------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
@app.get("/lookup/{tail_number}")
async def lookup(tail_number: str, request: Request) -> dict[str, str]:
    """Resolve a registration to its ICAO24 address."""
    settings: Settings = request.app.state.settings
    icao24 = await lookup_icao24(
        request.app.state.http, tail_number, settings.adsbdb_base_url
    )
    return {"tail_number": tail_number.strip().upper(), "icao24": icao24}


@app.get("/state/{icao24}.json")
async def state(icao24: str, request: Request) -> JSONResponse:
    """
    Current state for *icao24*.

    ``state`` is ``null`` when the aircraft is not broadcasting; the
    ``cached`` flag tells whether the answer came from the local cache.
    """
    key = _require_icao24(icao24)
    tracker: FlightTracker = request.app.state.tracker
    snapshot = await tracker.get_current_state(key)
    return JSONResponse(content=jsonable_encoder(_state_payload(key, snapshot)))


@app.get("/track/{tail_number}.json")
async def track(tail_number: str, request: Request) -> JSONResponse:
    """Tail number in, live state out."""
    settings: Settings = request.app.state.settings
    icao24 = await lookup_icao24(
        request.app.state.http, tail_number, settings.adsbdb_base_url
    )
    tracker: FlightTracker = request.app.state.tracker
    snapshot = await tracker.get_current_state(icao24)
    payload = _state_payload(icao24, snapshot)
    payload["tail_number"] = tail_number.strip().upper()
    return JSONResponse(content=jsonable_encoder(payload))


@app.get("/trail/{icao24}.json")
async def trail(icao24: str, request: Request) -> dict[str, Any]:
    """Cached positions for the map trail, oldest first. Never hits OpenSky."""
    key = _require_icao24(icao24)
    tracker: FlightTracker = request.app.state.tracker
    points = [
        {
            "lat": s.latitude,
            "lon": s.longitude,
            "altitude": s.baro_altitude,
            "ts": s.timestamp,
        }
        for s in tracker.get_trail(key)
        if s.has_position
    ]
    return {"icao24": key, "points": points}


@app.post("/chat")
@limiter.limit("20/minute")
async def chat(body: dict, request: Request) -> dict[str, Any]:
    """
    Forward ``{"prompt", "conversation"?, "icao24"?}`` to the chat model.

    When ``icao24`` is given and fresh data is cached for it, the model gets
    a summary of that snapshot. This route never polls OpenSky itself.
    """
    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise HTTPException(status_code=400, detail="prompt required")

    snapshot = None
    icao24 = body.get("icao24")
    if isinstance(icao24, str) and is_icao24(icao24):
        tracker: FlightTracker = request.app.state.tracker
        snapshot = tracker.cache.get_latest_state(icao24.lower())

    settings: Settings = request.app.state.settings
    message = await ask(
        request.app.state.http,
        prompt.strip(),
        api_key=settings.openai_api_key,
        conversation=body.get("conversation"),
        state=snapshot,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
    )
    return {"response": message}


@app.get("/limiter_stats")
async def limiter_stats(request: Request) -> dict[str, Any]:
    """Quota usage and cache occupancy."""
    tracker: FlightTracker = request.app.state.tracker
    return {"ok": True, **tracker.stats()}
