"""
api_logging.py
~~~~~~~~~~~~~~
Send one outbound HTTP request through an ``httpx.AsyncClient`` and emit
**one concise log line** for it (verb, URL, status, latency).

Usage example
-------------
>>> async with httpx.AsyncClient() as cli:
...     resp = await logged_request(cli, "get", "https://example.org/json",
...                                 raise_for_status=False)
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")


def _log_response(verb: str, url: str, code: int, latency_ms: float) -> None:
    """
    * **404** – INFO; per-aircraft endpoints return it when nothing is known.
    * **429** – WARNING; the provider is throttling us.
    * **≥500** – WARNING.
    """
    if code == 429 or code >= 500:
        LOG.warning("%s %s → %s (%.0f ms)", verb, url, code, latency_ms)
    else:
        LOG.info("%s %s → %s (%.0f ms)", verb, url, code, latency_ms)


async def logged_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *args: Any,
    raise_for_status: bool = True,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one request and log it.

    Parameters
    ----------
    client:
        ``httpx.AsyncClient`` (or anything with awaitable verb methods).
    method:
        HTTP verb, e.g. ``"get"`` or ``"post"``.
    url:
        Absolute URL.
    raise_for_status:
        *True* ⇒ 5xx responses raise :class:`httpx.HTTPStatusError`.
        *False* ⇒ never raise; the caller inspects the status.

    Network failures are logged and re-raised unchanged.
    """
    verb = method.upper()
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s %.0f ms %s", verb, url, latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    _log_response(verb, url, response.status_code, latency_ms)

    if raise_for_status and response.status_code >= 500:
        response.raise_for_status()

    return response


__all__ = ["logged_request"]
