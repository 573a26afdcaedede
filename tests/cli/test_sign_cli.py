from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from conftest import TEST_SECRET
from dragonfly2imgproxy.cli import main
from dragonfly2imgproxy.jobs import Fetch, Thumb, decode_jobs
from dragonfly2imgproxy.matcher import extract_payload


def test_prints_signed_url(capsys) -> None:
    rc = main(
        [
            "--secret",
            TEST_SECRET,
            "--fetch",
            "public/images/some-image.jpg",
            "--thumb",
            "400x300#",
            "--ext",
            "jpg",
            "--base-url",
            "https://cdn.example.com",
        ]
    )
    assert rc == 0
    url = capsys.readouterr().out.strip()
    parts = urlsplit(url)
    assert parts.netloc == "cdn.example.com"
    assert parts.path.endswith(".jpg")
    assert decode_jobs(extract_payload(parts.path)) == (
        Fetch(path="public/images/some-image.jpg"),
        Thumb(size_spec="400x300#"),
    )
    assert parse_qs(parts.query) == {"sha": ["ed169fbef25cac31"]}


def test_secret_from_environment(monkeypatch, capsys) -> None:
    monkeypatch.setenv("DRAGONFLY_SECRET", TEST_SECRET)
    assert main(["--fetch", "a.jpg", "--no-convert"]) == 0
    url = capsys.readouterr().out.strip()
    assert url.startswith("/media/")
    assert url.endswith("&convert=false")


def test_missing_secret(capsys) -> None:
    assert main(["--fetch", "a.jpg"]) == 2
    assert "DragonflySecret required" in capsys.readouterr().err


def test_rejects_bad_thumb(capsys) -> None:
    assert main(["--secret", TEST_SECRET, "--fetch", "a.jpg", "--thumb", "huge"]) == 2
    assert "invalid thumb size" in capsys.readouterr().err
