"""Dragonfly job lists.

A Dragonfly URL carries its processing steps as a JSON array of string
arrays, base64url encoded without padding::

    [["f", "public/images/cat.jpg"], ["p", "thumb", "400x300#"]]

Each inner array is one job. ``f`` fetches a source and ``p``/``thumb``
resizes it; every other job is kept as :class:`Unrecognized` so the list
round-trips, but it has no effect on the translated URL.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from dragonfly2imgproxy.errors import DecodeError

FETCH_TAG = "f"
PROCESS_TAG = "p"
THUMB_OP = "thumb"

_B64URL_INVALID = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class Fetch:
    path: str

    def to_wire(self) -> List[str]:
        return [FETCH_TAG, self.path]


@dataclass(frozen=True)
class Thumb:
    size_spec: str

    def to_wire(self) -> List[str]:
        return [PROCESS_TAG, THUMB_OP, self.size_spec]


@dataclass(frozen=True)
class Unrecognized:
    parts: Tuple[str, ...]

    @property
    def tag(self) -> str:
        return self.parts[0]

    def to_wire(self) -> List[str]:
        return list(self.parts)


Job = Union[Fetch, Thumb, Unrecognized]
JobList = Tuple[Job, ...]


def _is_utf8(value: str) -> bool:
    # json.loads lets lone surrogates such as "\ud800" through.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def parse_job(raw: Any, index: int = 0) -> Job:
    """Turn one decoded inner array into a typed job."""
    if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
        raise DecodeError(f"job {index}: expected an array of strings")
    if not raw:
        raise DecodeError(f"job {index}: empty job")
    if not all(_is_utf8(p) for p in raw):
        raise DecodeError(f"job {index}: string is not valid UTF-8")

    tag = raw[0]
    if tag == FETCH_TAG:
        if len(raw) < 2:
            raise DecodeError(f"job {index}: fetch job requires a path")
        return Fetch(path=raw[1])
    if tag == PROCESS_TAG:
        if len(raw) < 2:
            raise DecodeError(f"job {index}: process job requires an operation")
        if raw[1] == THUMB_OP:
            if len(raw) < 3:
                raise DecodeError(f"job {index}: thumb job requires a size")
            return Thumb(size_spec=raw[2])
    return Unrecognized(parts=tuple(raw))


def _b64url_decode(token: str) -> bytes:
    bad = _B64URL_INVALID.search(token)
    if bad is not None:
        raise DecodeError(f"illegal base64 data at input byte {bad.start()}")
    if len(token) % 4 == 1:
        raise DecodeError(f"illegal base64 data at input byte {len(token) - 1}")
    try:
        return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4))
    except (binascii.Error, ValueError) as exc:  # pragma: no cover - guarded above
        raise DecodeError(f"illegal base64 data: {exc}") from exc


def decode_jobs(token: str) -> JobList:
    """Decode a URL token into an ordered job list.

    Either the whole list decodes or :class:`DecodeError` is raised; there is
    no partial result.
    """
    raw = _b64url_decode(token)
    try:
        doc = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise DecodeError(f"payload is not UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise DecodeError("invalid JSON: nested too deeply") from exc

    if not isinstance(doc, list):
        raise DecodeError("job list must be a JSON array")
    return tuple(parse_job(item, i) for i, item in enumerate(doc))


def encode_jobs(jobs: Sequence[Job]) -> str:
    """Encode a job list into the unpadded base64url token used in URLs."""
    wire = [job.to_wire() for job in jobs]
    raw = json.dumps(wire, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
