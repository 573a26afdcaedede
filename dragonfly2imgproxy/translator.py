"""Translate a Dragonfly job list into an imgproxy path.

The job list is interpreted in order by folding it into a
:class:`TranslationContext`::

    [f public/cat.gif, p thumb 150x150#]
      -> /insecure/rs:fill:150:150:g:ce/f:gif/plain/<prefix>public/cat.gif
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, replace
from functools import reduce
from typing import Sequence, Tuple
from urllib.parse import quote

from dragonfly2imgproxy.errors import SizeSpecError
from dragonfly2imgproxy.jobs import Fetch, Job, Thumb

# <width>x<height?><operator?>; ASCII digits only.
SIZE_SPEC_PATTERN = re.compile(r"([0-9]+)x([0-9]*)([>#]?)")

PLAIN_PREFIX = "/plain/"
INSECURE_PREFIX = "/insecure"
FORCE_GIF = "/f:gif"
FORCE_SVG = "/f:svg"


@dataclass(frozen=True)
class TranslationContext:
    source: str = ""
    resize: str = ""
    force_gif: bool = False
    force_svg: bool = False


def escape_filename(name: str) -> str:
    """Query-style escaping with spaces as %20 instead of '+'."""
    return quote(name, safe="")


def split_path(path: str) -> Tuple[str, str]:
    """Split after the last '/'; the directory keeps its trailing slash."""
    idx = path.rfind("/")
    return path[: idx + 1], path[idx + 1 :]


def join_path(directory: str, name: str) -> str:
    parts = [p for p in (directory, name) if p]
    if not parts:
        return ""
    cleaned = posixpath.normpath("/".join(parts))
    # normpath keeps a leading '//' (POSIX allows it); collapse it like any other run.
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def resize_directive(size_spec: str) -> str:
    match = SIZE_SPEC_PATTERN.fullmatch(size_spec)
    if match is None:
        raise SizeSpecError(size_spec)
    width, height, operator = match.groups()
    if operator == ">":
        return f"/rs:fit:{width}:{height}:0"
    if operator == "#":
        return f"/rs:fill:{width}:{height}:g:ce"
    return f"/rs:fit:{width}:{height}"


def apply_job(ctx: TranslationContext, job: Job) -> TranslationContext:
    if isinstance(job, Fetch):
        directory, name = split_path(job.path)
        encoded = join_path(directory, escape_filename(name))
        return replace(
            ctx,
            source=PLAIN_PREFIX + ctx.source + encoded,
            force_gif=name.endswith(".gif"),
            force_svg=name.endswith(".svg"),
        )
    if isinstance(job, Thumb):
        directive = resize_directive(job.size_spec)
        if ctx.force_gif:
            directive += FORCE_GIF
        return replace(ctx, resize=ctx.resize + directive)
    return ctx


def assemble(ctx: TranslationContext) -> str:
    return INSECURE_PREFIX + ctx.resize + (FORCE_SVG if ctx.force_svg else "") + ctx.source


def translate(url_prefix: str, jobs: Sequence[Job]) -> str:
    """Build the imgproxy path for ``jobs``; raises SizeSpecError on a bad size."""
    ctx = reduce(apply_job, jobs, TranslationContext(source=url_prefix))
    return assemble(ctx)
