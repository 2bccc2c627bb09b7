"""Exception hierarchy for the calendar enhancer.

The rewriting core never raises for calendar text; these exceptions describe
conditions around it (upstream fetch, size limits) and each maps to one HTTP
status in the subscribe route.
"""

from typing import Optional


class CalendarEnhancerError(Exception):
    """Base exception for all calendar enhancer errors."""


class UpstreamFetchError(CalendarEnhancerError):
    """Base exception for upstream calendar fetch errors."""


class UpstreamURLError(UpstreamFetchError):
    """Upstream URL is malformed, uses a forbidden scheme or host.

    Should result in HTTP 400 Bad Request response.
    """


class UpstreamStatusError(UpstreamFetchError):
    """Upstream answered with a status other than 200.

    Should result in HTTP 502 Bad Gateway response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamNetworkError(UpstreamFetchError):
    """Connection, DNS or timeout failure after all retries.

    Should result in HTTP 502 Bad Gateway response.
    """


class UnsupportedContentTypeError(UpstreamFetchError):
    """Upstream content type is not a calendar or plain-text format.

    Should result in HTTP 415 Unsupported Media Type response.
    """

    def __init__(self, message: str, content_type: str = ""):
        super().__init__(message)
        self.content_type = content_type


class CalendarContentTooLargeError(UpstreamFetchError):
    """Calendar body exceeds the configured size cap.

    Raised from the Content-Length check before streaming starts (HTTP 413),
    or from the running byte count while streaming.
    """

    def __init__(self, message: str, limit_bytes: Optional[int] = None):
        super().__init__(message)
        self.limit_bytes = limit_bytes
