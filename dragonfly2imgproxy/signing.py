from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional, Sequence

from dragonfly2imgproxy.errors import SignatureMismatchError
from dragonfly2imgproxy.jobs import PROCESS_TAG, Fetch, Job, Thumb, encode_jobs

SIGNATURE_LENGTH = 16

_log = logging.getLogger("dragonfly2imgproxy.signing")


def _message_part(job: Job) -> str:
    if isinstance(job, Fetch):
        return "f" + job.path
    if isinstance(job, Thumb):
        return "pthumb" + job.size_spec
    # Issuers sign every processing step as tag + operation + argument.
    if job.tag == PROCESS_TAG:
        return "".join(job.parts[:3])
    return ""


def canonical_message(jobs: Sequence[Job]) -> str:
    """Concatenate the signed parts of each job in list order."""
    return "".join(_message_part(job) for job in jobs)


def compute_signature(secret: str, jobs: Sequence[Job]) -> str:
    """Return the first 16 hex chars of HMAC-SHA256(secret, message)."""
    message = canonical_message(jobs)
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
    sha = digest.hexdigest()[:SIGNATURE_LENGTH]
    _log.debug("message=%r calculated sha=%s", message, sha)
    return sha


def verify_signature(secret: str, jobs: Sequence[Job], supplied: str) -> None:
    expected = compute_signature(secret, jobs)
    if not hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8")):
        raise SignatureMismatchError()


def media_url(
    secret: str,
    jobs: Sequence[Job],
    *,
    ext: Optional[str] = None,
    convert: bool = True,
    base_url: str = "",
) -> str:
    """Issue a signed ``/media/<payload>[.ext]?sha=...`` URL for ``jobs``."""
    url = f"{base_url.rstrip('/')}/media/{encode_jobs(jobs)}"
    if ext:
        url += "." + ext.lstrip(".")
    url += f"?sha={compute_signature(secret, jobs)}"
    if not convert:
        url += "&convert=false"
    return url

