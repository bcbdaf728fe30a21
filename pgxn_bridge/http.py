"""httpx helpers shared by the PGXN, registry, and GitHub clients."""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from .config import USER_AGENT
from .errors import DeserializationError, NetworkError

_HTTP_ERROR_STATUS_THRESHOLD = 400

T = typ.TypeVar("T")


def build_http_client(
    timeout_s: float, *, headers: dict[str, str] | None = None
) -> httpx.AsyncClient:
    """Return an AsyncClient with the bridge's user agent and redirects on."""
    merged = {"User-Agent": USER_AGENT}
    if headers:
        merged.update(headers)
    return httpx.AsyncClient(
        timeout=timeout_s,
        headers=merged,
        follow_redirects=True,
    )


async def get_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """GET ``url`` and return the body, raising :class:`NetworkError` on failure."""
    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        raise NetworkError.transport(url, exc) from exc
    if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
        raise NetworkError.http_error(url, response.status_code)
    return response.content


async def get_json(client: httpx.AsyncClient, url: str, *, into: type[T]) -> T:
    """GET ``url`` and decode the JSON body into ``into``."""
    body = await get_bytes(client, url)
    try:
        return msgspec.json.decode(body, type=into)
    except msgspec.DecodeError as exc:
        raise DeserializationError.for_source(url, exc) from exc


__all__ = ["build_http_client", "get_bytes", "get_json"]
