# dragonfly2imgproxy/routes/upstream.py
# Summary: relays rewritten imgproxy requests to the configured upstream.
# - Registered last; it catches every path the rewrite middleware produced.
# - Uses the raw path so percent-escapes from the translator reach imgproxy verbatim.
# - Transport failures become 502; upstream statuses are relayed as-is.

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from dragonfly2imgproxy.net.http_client import get_http_client
from dragonfly2imgproxy.observability.metrics import upstream_report

router = APIRouter(tags=["upstream"])

_log = logging.getLogger("dragonfly2imgproxy.upstream")

_FORWARD_HEADERS = ("accept",)
_RELAY_HEADERS = (
    "content-type",
    "cache-control",
    "etag",
    "last-modified",
    "expires",
    "vary",
)


def _raw_path(request: Request) -> str:
    raw = request.scope.get("raw_path")
    if isinstance(raw, (bytes, bytearray)) and raw:
        return bytes(raw).decode("utf-8", errors="replace")
    return request.url.path


@router.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def forward(request: Request, path: str) -> Response:
    client = get_http_client(request.app.state.settings)
    headers = {
        name: request.headers[name] for name in _FORWARD_HEADERS if name in request.headers
    }
    target = _raw_path(request)
    try:
        upstream = await client.request(request.method, target, headers=headers)
    except httpx.HTTPError as exc:
        _log.warning("upstream request failed path=%s: %s", target, exc)
        upstream_report(status=None)
        return PlainTextResponse("Bad Gateway", status_code=502)

    upstream_report(status=upstream.status_code)
    relay = {
        name: upstream.headers[name] for name in _RELAY_HEADERS if name in upstream.headers
    }
    return Response(content=upstream.content, status_code=upstream.status_code, headers=relay)
