"""Shared test fixtures for safehttp.

Provides a recording fake transport so request-building tests can inspect
exactly what would have been sent without any network I/O.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest

from safehttp.models import RequestDescriptor


class RecordingTransport:
    """Fake transport that records every call and returns a canned response.

    Attributes:
        calls: ``(url, request)`` tuples in call order.
    """

    def __init__(self, status_code: int = 200, json_body: Any = None) -> None:
        self.status_code = status_code
        self.json_body = {} if json_body is None else json_body
        self.calls: list[tuple[str, RequestDescriptor]] = []

    async def __call__(self, url: str, request: RequestDescriptor) -> httpx.Response:
        self.calls.append((url, request))
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def last_url(self) -> Optional[str]:
        return self.calls[-1][0] if self.calls else None

    @property
    def last_request(self) -> Optional[RequestDescriptor]:
        return self.calls[-1][1] if self.calls else None


@pytest.fixture
def transport() -> RecordingTransport:
    """A fresh recording transport answering ``200 {}``."""
    return RecordingTransport()


@pytest.fixture
def make_transport():
    """Factory for recording transports with a custom status and JSON body."""

    def _make(status_code: int = 200, json_body: Any = None) -> RecordingTransport:
        return RecordingTransport(status_code=status_code, json_body=json_body)

    return _make
