from __future__ import annotations

from typing import Optional

import httpx

from dragonfly2imgproxy.config import Settings

_client: Optional[httpx.AsyncClient] = None


def get_http_client(settings: Settings) -> httpx.AsyncClient:
    global _client
    if _client is None:
        limits = httpx.Limits(
            max_connections=settings.upstream_max_connections,
            max_keepalive_connections=settings.upstream_max_keepalive,
        )
        _client = httpx.AsyncClient(
            base_url=settings.imgproxy_url,
            timeout=settings.upstream_timeout_s,
            limits=limits,
        )
    return _client


def set_http_client(client: Optional[httpx.AsyncClient]) -> None:
    """Swap the shared client (tests inject one backed by httpx.MockTransport)."""
    global _client
    _client = client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
