from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from starlette.datastructures import QueryParams
from starlette.types import Scope

from dragonfly2imgproxy.config import DragonflyConfig
from dragonfly2imgproxy.jobs import JobList, decode_jobs
from dragonfly2imgproxy.matcher import (
    extract_payload,
    require_signature,
    wants_convert_disabled,
)
from dragonfly2imgproxy.signing import verify_signature
from dragonfly2imgproxy.translator import translate

_log = logging.getLogger("dragonfly2imgproxy")

_ACCEPT = b"accept"


@dataclass(frozen=True)
class Rewrite:
    path: str
    drop_accept: bool
    jobs: JobList


def plan_rewrite(
    config: DragonflyConfig, path: str, query_string: Union[str, bytes] = ""
) -> Rewrite:
    """
    Run the full pipeline for one request path and query.

    Order is fixed: extract, require sha, decode, verify, translate. The
    signature is checked before anything is translated; any failure raises
    a DragonflyError and nothing is returned.
    """
    if isinstance(query_string, bytes):
        query_string = query_string.decode("latin-1")
    params = QueryParams(query_string)

    token = extract_payload(path)
    sha = require_signature(params)
    jobs = decode_jobs(token)
    verify_signature(config.secret, jobs, sha)
    imgproxy_path = translate(config.url_prefix, jobs)

    drop_accept = wants_convert_disabled(params)
    _log.info("generate imgproxy url=%s", imgproxy_path)
    return Rewrite(path=imgproxy_path, drop_accept=drop_accept, jobs=jobs)


def apply_rewrite(scope: Scope, rewrite: Rewrite) -> Scope:
    """Return a copy of ``scope`` targeting the translated path."""
    new_scope = dict(scope)
    new_scope["path"] = rewrite.path
    new_scope["raw_path"] = rewrite.path.encode("utf-8")
    new_scope["query_string"] = b""
    if rewrite.drop_accept:
        _log.info("convert=false turn off Accept header")
        new_scope["headers"] = [
            (name, value)
            for name, value in scope.get("headers") or ()
            if name.lower() != _ACCEPT
        ]
    return new_scope
