# tests/conftest.py
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest
from starlette.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dragonfly2imgproxy.config import DragonflyConfig, Settings  # noqa: E402
from dragonfly2imgproxy.main import create_app  # noqa: E402
from dragonfly2imgproxy.net.http_client import set_http_client  # noqa: E402

TEST_SECRET = "my-super-secret-key"
TEST_URL_PREFIX = "https://images.example.com/"
TEST_UPSTREAM = "http://imgproxy.test"


class Upstream:
    """Records requests reaching the fake imgproxy and answers with ``handler``."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = self._default

    @staticmethod
    def _default(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=b"img-bytes",
            headers={"content-type": "image/jpeg", "cache-control": "max-age=60"},
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "DRAGONFLY_SECRET",
        "DRAGONFLY_URL_PREFIX",
        "DRAGONFLY_CLIENT_ERROR_STATUS",
        "DRAGONFLY_EXEMPT_PATHS",
        "DRAGONFLY_LOG_JSON",
        "DRAGONFLY_METRICS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def config() -> DragonflyConfig:
    return DragonflyConfig(secret=TEST_SECRET, url_prefix=TEST_URL_PREFIX)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        secret=TEST_SECRET,
        url_prefix=TEST_URL_PREFIX,
        imgproxy_url=TEST_UPSTREAM,
        log_json=False,
    )


@pytest.fixture()
def upstream():
    fake = Upstream()
    set_http_client(
        httpx.AsyncClient(transport=httpx.MockTransport(fake), base_url=TEST_UPSTREAM)
    )
    yield fake
    set_http_client(None)


@pytest.fixture()
def app(settings, upstream):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Minimal asyncio support without requiring pytest-asyncio."""

    test_func = pyfuncitem.obj
    if asyncio.iscoroutinefunction(test_func):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            call_kwargs = {
                name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
            }
            loop.run_until_complete(test_func(**call_kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None
