"""Exception taxonomy for the generation pipeline.

Each error carries a stable ``code`` that travels on the wire inside the
``error`` frame so clients can distinguish, for example, a rate limit from
a provider outage without parsing the message.
"""

from __future__ import annotations


class SitegenError(Exception):
    """Base class for all sitegen-stream errors."""

    code = "internal"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.code


class ConfigError(SitegenError):
    """Invalid configuration."""

    code = "config"


class UpstreamError(SitegenError):
    """The model provider could not serve the request."""

    code = "upstream_unavailable"

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(UpstreamError):
    """The model provider returned a non-success response or dropped the connection."""


class UpstreamRateLimited(UpstreamError):
    """Too many requests. Wait a few seconds before trying again."""

    code = "upstream_rate_limited"


class EmptyExtraction(SitegenError):
    """The model finished without producing any markup."""

    code = "empty_extraction"


class ReasoningUnclosed(SitegenError):
    """The model never closed its reasoning block."""

    code = "reasoning_unclosed"


class MalformedFrame(SitegenError):
    """A wire record could not be decoded."""

    code = "malformed_frame"
