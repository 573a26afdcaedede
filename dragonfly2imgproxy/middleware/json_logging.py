from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Dict

from fastapi import FastAPI, Request, Response

from dragonfly2imgproxy.middleware.dragonfly import PATH_STATE_KEY, STAGE_STATE_KEY


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "time": int(time.time() * 1000),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def access_record(request: Request, status: int, duration_ms: float) -> Dict[str, Any]:
    """One access line: the client's path plus what the rewrite made of it."""
    rec: Dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "status": status,
        "duration_ms": round(duration_ms, 2),
    }
    stage = getattr(request.state, STAGE_STATE_KEY, None)
    if stage:
        rec["stage"] = stage
    imgproxy_path = getattr(request.state, PATH_STATE_KEY, None)
    if imgproxy_path:
        rec["imgproxy_path"] = imgproxy_path
    return rec


def install_json_logging(app: FastAPI, level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)
    # Clean handlers so we don't duplicate on app re-creation
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # Installed outermost: sees rejected requests and the original path.
    @app.middleware("http")
    async def _json_access_log(request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        dur_ms = (time.perf_counter() - start) * 1000
        logging.getLogger("access").info(
            json.dumps(access_record(request, response.status_code, dur_ms))
        )
        return response
