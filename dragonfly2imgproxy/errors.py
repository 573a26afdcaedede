"""Error taxonomy for the Dragonfly to imgproxy rewrite pipeline.

Every request-time failure is a :class:`DragonflyError`. Each subclass names
the pipeline stage that failed; the middleware maps it to an HTTP status and
never forwards the request.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Raised when the rewriter is constructed with invalid configuration."""


class DragonflyError(Exception):
    """Base class for request-time rewrite failures."""

    stage: str = "unknown"
    # Status used when DRAGONFLY_CLIENT_ERROR_STATUS is enabled.
    client_status: int = 400
    default_message: str = "Dragonfly rewrite failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def status_code(self, client_error_status: bool = False) -> int:
        return self.client_status if client_error_status else 500


class ExtractionError(DragonflyError):
    stage = "extract"
    default_message = "Failed to extract base64 string from URL."


class MissingSignatureError(DragonflyError):
    stage = "signature"
    default_message = "Failed to get sha from query string."


class DecodeError(DragonflyError):
    """The payload is not base64url, not JSON, or not an array of jobs."""

    stage = "decode"
    default_message = "Failed to decode job list."

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class SignatureMismatchError(DragonflyError):
    stage = "verify"
    client_status = 403
    default_message = "SHA validate failed"


class SizeSpecError(DragonflyError):
    stage = "translate"
    default_message = "Failed to extract job"

    def __init__(self, size_spec: str) -> None:
        self.size_spec = size_spec
        super().__init__(f"Failed to extract job: invalid thumb size {size_spec!r}")
