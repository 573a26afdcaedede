from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

from prometheus_client import REGISTRY, CollectorRegistry, Counter

_log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Best-effort helper for observability: do not raise from metrics code paths.
# Failures are logged at debug level only.
# -----------------------------------------------------------------------------
def _best_effort(msg: str, fn: Callable[[], Any]) -> None:
    try:
        fn()
    except Exception as e:  # pragma: no cover
        _log.debug("%s: %s", msg, e)


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Tuple[str, ...] = (),
    registry: Optional[CollectorRegistry] = None,
) -> Counter:
    reg = registry or REGISTRY
    # Reuse a collector already registered under this name.
    names_map = getattr(reg, "_names_to_collectors", None)
    if isinstance(names_map, dict):
        existing = names_map.get(name) or names_map.get(f"{name}_total")
        if isinstance(existing, Counter):
            return existing
    try:
        return Counter(name, doc, labelnames=labelnames, registry=reg)
    except ValueError:
        # Registered under a different collector type; keep an unexposed counter.
        return Counter(name, doc, labelnames=labelnames, registry=None)


# --- Rewrite pipeline ---------------------------------------------------------

_rewrites_total = _get_or_create_counter(
    "dragonfly_rewrites_total",
    "Dragonfly URLs verified and rewritten to imgproxy paths",
    ("convert",),
)
_rewrite_failures_total = _get_or_create_counter(
    "dragonfly_rewrite_failures_total",
    "Dragonfly requests rejected, by failing pipeline stage",
    ("stage",),
)

# --- Upstream ----------------------------------------------------------------

_upstream_responses_total = _get_or_create_counter(
    "dragonfly_upstream_responses_total",
    "Responses relayed from the imgproxy upstream, by status bucket",
    ("status_bucket",),
)


def rewrite_report(*, convert_disabled: bool = False) -> None:
    label = "off" if convert_disabled else "on"
    _best_effort("inc rewrite metrics", lambda: _rewrites_total.labels(convert=label).inc())


def rewrite_failure_report(*, stage: str) -> None:
    _best_effort(
        "inc rewrite failure metrics",
        lambda: _rewrite_failures_total.labels(stage=stage or "unknown").inc(),
    )


def status_bucket(status: Optional[int]) -> str:
    if status is None:
        return "error"
    return f"{status // 100}xx"


def upstream_report(*, status: Optional[int]) -> None:
    bucket = status_bucket(status)
    _best_effort(
        "inc upstream metrics",
        lambda: _upstream_responses_total.labels(status_bucket=bucket).inc(),
    )
