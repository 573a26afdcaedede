from __future__ import annotations

import re
from typing import Any

from dragonfly2imgproxy.errors import ExtractionError, MissingSignatureError

# /media/<payload>[.<ext>]...; the lazy payload group leaves decorative
# image extensions out of the token.
MEDIA_PATH_PATTERN = re.compile(r"/media/(.+?)(\.(?:gif|png|jpeg|jpg|webp|avif))*\Z")

SIGNATURE_PARAM = "sha"
CONVERT_PARAM = "convert"


def _first(params: Any, name: str) -> str:
    # starlette QueryParams expose getlist(); parse_qs() output is a dict of lists.
    getlist = getattr(params, "getlist", None)
    if callable(getlist):
        values = list(getlist(name))
    else:
        values = list(params.get(name) or ())
    return values[0] if values else ""


def extract_payload(path: str) -> str:
    """Return the encoded job token embedded in a ``/media/...`` path."""
    match = MEDIA_PATH_PATTERN.search(path)
    if match is None:
        raise ExtractionError()
    return match.group(1)


def require_signature(params: Any) -> str:
    sha = _first(params, SIGNATURE_PARAM)
    if not sha:
        raise MissingSignatureError()
    return sha


def wants_convert_disabled(params: Any) -> bool:
    return _first(params, CONVERT_PARAM) == "false"
