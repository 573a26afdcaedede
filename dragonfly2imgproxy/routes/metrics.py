# dragonfly2imgproxy/routes/metrics.py
# Summary: Prometheus /metrics exposition.
# - Hidden (404) when DRAGONFLY_METRICS_ENABLED is false.
# - Forces Prometheus text exposition v0.0.4 content type regardless of library defaults.

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from prometheus_client import REGISTRY, generate_latest

router = APIRouter()

# Force the classic Prometheus text exposition content type.
TEXT_EXPO_V004 = "text/plain; version=0.0.4; charset=utf-8"


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request) -> Response:
    if not request.app.state.settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Not Found")

    payload: bytes = generate_latest(REGISTRY)

    # Build a raw Response and force the exact v0.0.4 header (avoid lib defaults).
    resp = Response(content=payload)
    resp.headers["Content-Type"] = TEXT_EXPO_V004
    return resp
