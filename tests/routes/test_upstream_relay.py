from __future__ import annotations

import httpx
import pytest

from conftest import TEST_SECRET
from dragonfly2imgproxy.config import Settings
from dragonfly2imgproxy.errors import ConfigError
from dragonfly2imgproxy.jobs import Fetch, Thumb
from dragonfly2imgproxy.main import create_app
from dragonfly2imgproxy.signing import media_url

JOBS = [Fetch(path="public/images/test.jpg"), Thumb(size_spec="400x300#")]
EXPECTED = b"/insecure/rs:fill:400:300:g:ce/plain/https://images.example.com/public/images/test.jpg"
ACCEPT = "image/avif,image/webp,*/*"


def test_signed_request_is_relayed(client, upstream) -> None:
    r = client.get(media_url(TEST_SECRET, JOBS, ext="jpg"), headers={"Accept": ACCEPT})
    assert r.status_code == 200
    assert r.content == b"img-bytes"
    assert r.headers["content-type"] == "image/jpeg"
    assert r.headers["cache-control"] == "max-age=60"

    assert len(upstream.requests) == 1
    sent = upstream.requests[0]
    assert sent.method == "GET"
    assert sent.url.host == "imgproxy.test"
    assert sent.url.raw_path == EXPECTED
    assert sent.headers["accept"] == ACCEPT


def test_escaped_filename_reaches_upstream_verbatim(client, upstream) -> None:
    jobs = [Fetch(path="public/my nice image.jpg")]
    r = client.get(media_url(TEST_SECRET, jobs))
    assert r.status_code == 200
    assert upstream.requests[0].url.raw_path == (
        b"/insecure/plain/https://images.example.com/public/my%20nice%20image.jpg"
    )


def test_convert_false_drops_client_accept(client, upstream) -> None:
    r = client.get(media_url(TEST_SECRET, JOBS, convert=False), headers={"Accept": ACCEPT})
    assert r.status_code == 200
    assert upstream.requests[0].headers.get("accept") != ACCEPT


def test_bad_signature_never_reaches_upstream(client, upstream) -> None:
    url = media_url(TEST_SECRET, JOBS).replace("sha=", "sha=0")
    r = client.get(url)
    assert r.status_code == 500
    assert r.text == "SHA validate failed"
    assert upstream.requests == []


def test_wrong_secret_never_reaches_upstream(client, upstream) -> None:
    r = client.get(media_url("someone-else", JOBS))
    assert r.status_code == 500
    assert upstream.requests == []


def test_upstream_status_is_relayed(client, upstream) -> None:
    upstream.handler = lambda request: httpx.Response(404, text="not found")
    r = client.get(media_url(TEST_SECRET, JOBS))
    assert r.status_code == 404
    assert r.text == "not found"


def test_upstream_transport_error_is_bad_gateway(client, upstream) -> None:
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstream.handler = _boom
    r = client.get(media_url(TEST_SECRET, JOBS))
    assert r.status_code == 502
    assert r.text == "Bad Gateway"


def test_head_is_relayed(client, upstream) -> None:
    r = client.head(media_url(TEST_SECRET, JOBS))
    assert r.status_code == 200
    assert upstream.requests[0].method == "HEAD"


def test_client_error_status_setting(settings, upstream) -> None:
    from starlette.testclient import TestClient

    strict = settings.model_copy(update={"client_error_status": True})
    with TestClient(create_app(strict)) as c:
        assert c.get("/foo/bar").status_code == 400
        assert c.get(media_url("someone-else", JOBS)).status_code == 403
    assert upstream.requests == []


def test_missing_secret_fails_at_construction() -> None:
    with pytest.raises(ConfigError, match="DragonflySecret required"):
        create_app(Settings(secret="", log_json=False))
