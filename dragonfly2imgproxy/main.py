# dragonfly2imgproxy/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from dragonfly2imgproxy.config import Settings, load_settings
from dragonfly2imgproxy.middleware.dragonfly import DragonflyRewriteMiddleware
from dragonfly2imgproxy.middleware.json_logging import install_json_logging
from dragonfly2imgproxy.net.http_client import close_http_client
from dragonfly2imgproxy.routes.health import router as health_router
from dragonfly2imgproxy.routes.metrics import router as metrics_router
from dragonfly2imgproxy.routes.upstream import router as upstream_router

_log = logging.getLogger("dragonfly2imgproxy")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_http_client()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the rewrite proxy.

    Raises ConfigError when no signing secret is configured, so a
    misconfigured deployment fails at startup instead of on first request.
    """
    settings = settings or load_settings()
    config = settings.to_config()

    app = FastAPI(
        title="dragonfly2imgproxy",
        description="Verifies signed Dragonfly media URLs and relays them to imgproxy.",
        lifespan=_lifespan,
    )
    app.state.settings = settings

    # Order matters: the catch-all relay must come after the fixed routes.
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(upstream_router)

    app.add_middleware(
        DragonflyRewriteMiddleware,
        config=config,
        exempt_paths=settings.exempt_path_list,
        client_error_status=settings.client_error_status,
    )
    if settings.log_json:
        install_json_logging(app, level=settings.log_level)
    else:
        logging.getLogger().setLevel(settings.log_level)

    _log.info(
        "dragonfly2imgproxy ready upstream=%s url_prefix=%r",
        settings.imgproxy_url,
        settings.url_prefix,
    )
    return app
