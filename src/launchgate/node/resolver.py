"""Node Resolver: find the first healthy node endpoint among candidates.

Each candidate is polled with the readiness probe, then the general
health probe, at a fixed interval until a per-candidate deadline.
Clock and sleep are injectable so the deadline logic is testable.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from launchgate.errors import NodeUnreachable

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_DEADLINE = 45.0
READINESS_PATH = "/ext/health/readiness"
HEALTH_PATH = "/ext/health"

MIN_REQUEST_TIMEOUT = 1.0
MAX_REQUEST_TIMEOUT = 4.0
MIN_POLL_INTERVAL = 0.25
MAX_POLL_INTERVAL = 1.0

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class NodeNotHealthy(Exception):
    """A single candidate did not report healthy before its deadline."""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


async def _probe(
    client: httpx.AsyncClient, url: str, timeout: float
) -> dict[str, Any] | None:
    """GET url and return the payload if it reports healthy, else None."""
    response = await client.get(url, timeout=timeout)
    if not response.is_success:
        return None
    payload = response.json()
    if isinstance(payload, dict) and bool(payload.get("healthy")):
        return payload
    return None


async def wait_for_healthy(
    node_url: str,
    deadline_seconds: float = DEFAULT_HEALTH_DEADLINE,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> dict[str, Any]:
    """Poll one node until it reports healthy or the deadline passes.

    Returns:
        The healthy payload plus a "source" key naming the probe that
        succeeded ("readiness" or "health").

    Raises:
        NodeNotHealthy: If the deadline passes first.
    """
    deadline = clock() + deadline_seconds
    last_error: str | None = None

    async with httpx.AsyncClient(transport=transport) as client:
        while clock() < deadline:
            for source, path in (("readiness", READINESS_PATH), ("health", HEALTH_PATH)):
                remaining = deadline - clock()
                if remaining <= 0:
                    break
                request_timeout = _clamp(remaining, MIN_REQUEST_TIMEOUT, MAX_REQUEST_TIMEOUT)
                try:
                    payload = await _probe(client, f"{node_url}{path}", request_timeout)
                except (httpx.HTTPError, ValueError) as exc:
                    last_error = f"{source}: {str(exc) or type(exc).__name__}"
                    continue
                if payload is not None:
                    return {**payload, "source": source}

            remaining = deadline - clock()
            if remaining <= 0:
                break
            # Fixed interval, never sleeping past the deadline
            await sleep(min(remaining, _clamp(remaining, MIN_POLL_INTERVAL, MAX_POLL_INTERVAL)))

    detail = f" ({last_error})" if last_error else ""
    raise NodeNotHealthy(
        f"node did not become healthy within {deadline_seconds:g}s: {node_url}{detail}"
    )


async def resolve_healthy_node(
    candidates: list[str],
    deadline_seconds: float = DEFAULT_HEALTH_DEADLINE,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """Return the first candidate that becomes healthy.

    Raises:
        NodeUnreachable: If no candidate becomes healthy, carrying every
            attempted candidate and the last error.
    """
    last_error: str | None = None
    for candidate in candidates:
        logger.info("Waiting for node health: %s", candidate)
        try:
            await wait_for_healthy(
                candidate,
                deadline_seconds,
                transport=transport,
                clock=clock,
                sleep=sleep,
            )
        except NodeNotHealthy as exc:
            last_error = str(exc)
            logger.warning("%s", exc)
            continue
        return candidate
    raise NodeUnreachable(candidates, last_error)
