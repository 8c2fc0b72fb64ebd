"""
Shared fixtures: an in-memory stand-in for requests.Session serving canned pages.
"""
from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence, Union

import pytest
import requests
from requests.structures import CaseInsensitiveDict

HTML = "text/html; charset=utf-8"


class FakeResponse:
    """Enough of requests.Response for streamed reads; with `gate`, chunks after the first wait for it."""

    def __init__(
        self,
        chunks: Sequence[bytes],
        content_type: str = HTML,
        truncated: bool = False,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.headers = CaseInsensitiveDict()
        if content_type is not None:
            self.headers["Content-Type"] = content_type
        self.encoding = "utf-8"
        self.closed = False
        self._chunks = list(chunks)
        self._truncated = truncated
        self._gate = gate

    def iter_content(self, chunk_size: int = 1):
        for n, chunk in enumerate(self._chunks):
            if n == 1 and self._gate is not None:
                self._gate.wait(timeout=5)
            yield chunk
        if self._truncated:
            raise requests.exceptions.ChunkedEncodingError("Connection broken: IncompleteRead")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


Page = Union[str, FakeResponse, Exception]


class FakeSession:
    """Serves pages keyed by absolute URL and records every request."""

    def __init__(self, pages: Optional[Dict[str, Page]] = None) -> None:
        self.pages: Dict[str, Page] = dict(pages or {})
        self.headers: Dict[str, str] = {}
        self.requested: List[str] = []
        self.gates: Dict[str, threading.Event] = {}
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url: str, timeout: Optional[float] = None, stream: bool = False) -> FakeResponse:
        with self._lock:
            self.requested.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            gate.wait(timeout=5)
        page = self.pages.get(url)
        if page is None:
            raise requests.exceptions.ConnectionError(f"no route to {url}")
        if isinstance(page, Exception):
            raise page
        if isinstance(page, FakeResponse):
            return page
        return FakeResponse([page.encode("utf-8")])

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def site() -> FakeSession:
    """The two-page site: /a.html links to /b.html, /b.html back to /a.html and on to /c.html."""
    return FakeSession({
        "http://site.com/a.html": (
            '<html>'
            '<body><a href="/b.html">b</a><img src="/logo.png"/></body></html>'
        ),
        "http://site.com/b.html": '<html><body><a href="/a.html">a</a><a href="/c.html">c</a></body></html>',
        "http://site.com/c.html": '<html><body><a href="/d.html">d</a></body></html>',
    })
