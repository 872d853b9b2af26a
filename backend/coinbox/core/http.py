"""
Shared HTTP helpers for price and FX providers.

Turns httpx failures into NetworkError and bad payloads into MalformedResponse
so callers only deal with the error taxonomy.
"""

import math
from typing import Any, Dict, Optional

import httpx

from coinbox.core.errors import MalformedResponse, NetworkError


async def get_json(
    url: str,
    params: Optional[Dict[str, str]] = None,
    timeout_sec: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """GET a URL and decode the JSON body within a bounded timeout."""
    try:
        async with httpx.AsyncClient(timeout=timeout_sec, transport=transport) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
    except httpx.TimeoutException as exc:
        raise NetworkError(f"Timed out after {timeout_sec}s: {url}") from exc
    except httpx.HTTPError as exc:
        raise NetworkError(f"Request to {url} failed: {exc}") from exc

    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedResponse(f"Invalid JSON from {url}") from exc


def dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, raising MalformedResponse on the first missing key."""
    current = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            raise MalformedResponse(f"Missing field {'.'.join(path)!r}")
        current = current[key]
    return current


def parse_price(value: Any, field: str = "price") -> float:
    """Coerce a provider number; only finite, non-negative values are accepted."""
    if isinstance(value, bool):
        raise MalformedResponse(f"{field} is not a number: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedResponse(f"{field} is not a number: {value!r}") from exc
    if not math.isfinite(number) or number < 0:
        raise MalformedResponse(f"{field} is out of range: {value!r}")
    return number


def parse_rate(value: Any, field: str = "rate") -> float:
    """Like parse_price, but a rate must also be strictly positive."""
    number = parse_price(value, field)
    if number <= 0:
        raise MalformedResponse(f"{field} must be positive: {value!r}")
    return number
