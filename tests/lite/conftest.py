from __future__ import annotations

from collections.abc import AsyncIterator, Generator, Iterable
from typing import Any, Callable

import httpx
import pytest

from calendar_enhancer.core.http_client import close_all_clients


class AsyncByteStream:
    """Async iterator over a fixed list of byte chunks.

    Stands in for ``httpx.Response.aiter_bytes()`` in pipeline tests. When
    ``error`` is given it is raised after the last chunk, the way a dropped
    upstream connection surfaces mid-body.
    """

    def __init__(self, chunks: Iterable[bytes], error: Exception | None = None) -> None:
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self) -> "AsyncByteStream":
        return self

    async def __anext__(self) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        raise StopAsyncIteration


@pytest.fixture
def async_byte_stream() -> type[AsyncByteStream]:
    """Return the AsyncByteStream class so tests can build upstream bodies."""
    return AsyncByteStream


@pytest.fixture
def enhancer_settings() -> dict[str, Any]:
    """Minimal, deterministic configuration used by fetcher and route tests.

    Fields:
      - allowed_hosts: single upstream host accepted by the URL check
      - max_body_bytes: small cap so size tests stay fast
      - request_timeout / max_retries / retry_backoff_factor: HTTP tuning
    """
    return {
        "allowed_hosts": ["calendar.example.edu"],
        "max_body_bytes": 64 * 1024,
        "request_timeout": 5,
        "max_retries": 2,
        "retry_backoff_factor": 1.5,
        "calendar_name": "My Schedule+",
        "download_filename": "srh-enhanced.ics",
    }


@pytest.fixture
def mock_client_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Return a builder for httpx clients backed by ``httpx.MockTransport``."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)

    return build


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear CALENDAR_ENHANCER_* variables so a developer's shell cannot leak in."""
    for key in (
        "CALENDAR_ENHANCER_DEBUG",
        "CALENDAR_ENHANCER_LOG_LEVEL",
        "CALENDAR_ENHANCER_WEB_HOST",
        "CALENDAR_ENHANCER_WEB_PORT",
        "CALENDAR_ENHANCER_ALLOWED_HOSTS",
        "CALENDAR_ENHANCER_MAX_BODY_BYTES",
        "CALENDAR_ENHANCER_REQUEST_TIMEOUT",
        "CALENDAR_ENHANCER_MAX_RETRIES",
        "CALENDAR_ENHANCER_CALENDAR_NAME",
        "CALENDAR_ENHANCER_DOWNLOAD_FILENAME",
    ):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_course() -> str:
    """
    Return a campus calendar with one course event.

    The event carries personal free text (DESCRIPTION, ATTENDEE, ORGANIZER)
    that must never reach the output, plus allowlisted scheduling properties.
    """
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//Campus Test//EN\r\n"
        "CALSCALE:GREGORIAN\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:course-001@campus.test\r\n"
        "DTSTAMP:20240115T090000Z\r\n"
        "DTSTART:20240115T100000Z\r\n"
        "DTEND:20240115T113000Z\r\n"
        "SUMMARY:🔒 k_BCS_008 - Computer Security 💻\r\n"
        "LOCATION:CUBE 1.03\r\n"
        "DESCRIPTION:Lecturer phone +49 30 1234567\r\n"
        "ORGANIZER;CN=Prof. Example:mailto:prof@example.edu\r\n"
        "ATTENDEE;CN=Student:mailto:student@example.edu\r\n"
        "RRULE:FREQ=WEEKLY;COUNT=10\r\n"
        "STATUS:CONFIRMED\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )
