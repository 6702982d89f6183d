"""Error taxonomy for the token directory pipeline.

Per-source and per-item errors are caught at the source boundary and logged by
category; none of them aborts a cycle. Only ``DirectoryUnavailableError`` makes
a cycle skip, leaving the previously published directory in place.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.source}] {message}" if self.source else message


class SourceUnavailableError(PipelineError):
    """Transport failure, timeout or unexpected HTTP status."""


class SourceParseError(PipelineError):
    """Malformed or schema-mismatched payload."""


class AuthenticationError(PipelineError):
    """Credentials rejected by the source; recurs until configuration is fixed."""


class MissingCredentialsError(PipelineError):
    """Credentials for an authenticated source are not configured."""


class RateLimitError(PipelineError):
    """The source asked us to slow down."""


class PayloadTooLargeError(PipelineError):
    """The source refused a response because of its size; the batch size must shrink."""


class DirectoryUnavailableError(PipelineError):
    """Nothing to reconcile against: the cycle is skipped."""
