from __future__ import annotations

import logging
from typing import Iterable

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from dragonfly2imgproxy.config import DragonflyConfig
from dragonfly2imgproxy.errors import DragonflyError
from dragonfly2imgproxy.observability.metrics import (
    rewrite_failure_report,
    rewrite_report,
)
from dragonfly2imgproxy.rewriter import apply_rewrite, plan_rewrite

_log = logging.getLogger("dragonfly2imgproxy")

_STAGE_HEADER = "X-Dragonfly-Stage"

# Request-state keys; read back by the access log.
STAGE_STATE_KEY = "dragonfly_stage"
PATH_STATE_KEY = "dragonfly_imgproxy_path"


class DragonflyRewriteMiddleware:
    """
    Rewrites signed Dragonfly media URLs into imgproxy paths.

    - Verifies the sha before translating; on any failure answers with a
      plain-text error and never calls the wrapped app.
    - On success hands the wrapped app a scope with the imgproxy path, an
      empty query string and, for convert=false, no Accept header.
    - Paths listed in ``exempt_paths`` (health, metrics) pass through.
    - Leaves the failing stage or the imgproxy path in the request state for
      the access log.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: DragonflyConfig,
        *,
        exempt_paths: Iterable[str] = (),
        client_error_status: bool = False,
    ) -> None:
        self.app = app
        self.config = config
        self.exempt_paths = frozenset(exempt_paths)
        self.client_error_status = client_error_status

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or scope.get("path") in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        try:
            rewrite = plan_rewrite(
                self.config, scope.get("path", ""), scope.get("query_string", b"")
            )
        except DragonflyError as exc:
            _log.warning("dragonfly rewrite failed stage=%s: %s", exc.stage, exc.message)
            rewrite_failure_report(stage=exc.stage)
            scope.setdefault("state", {})[STAGE_STATE_KEY] = exc.stage
            response = PlainTextResponse(
                exc.message,
                status_code=exc.status_code(self.client_error_status),
            )
            response.headers[_STAGE_HEADER] = exc.stage
            await response(scope, receive, send)
            return

        rewrite_report(convert_disabled=rewrite.drop_accept)
        scope.setdefault("state", {})[PATH_STATE_KEY] = rewrite.path
        await self.app(apply_rewrite(scope, rewrite), receive, send)
