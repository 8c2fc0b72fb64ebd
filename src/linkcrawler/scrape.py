"""
Fetch a single resource and stream the references it contains.

The body is fed to lxml's pull parser chunk by chunk, so references are
handed on while the rest of the page is still downloading.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union
from urllib.parse import SplitResult, urljoin, urlsplit

import requests
from bs4.dammit import EncodingDetector
from lxml import etree

from linkcrawler.errors import (
    AddressResolutionFailure,
    CrawlCancelled,
    CrossHostRejection,
    MalformedMarkup,
    TransportFailure,
    UnsupportedContentType,
    UnsupportedScheme,
)
from linkcrawler.models import Resource, Task

log = logging.getLogger(__name__)

ALLOWED_SCHEMES: frozenset[str] = frozenset(("http", "https"))

# Case-sensitive; at least one character (the parameters) must follow it
HTML_CONTENT_TYPE_PREFIX = "text/html;"

CHUNK_SIZE = 4 * 1024

# Tag -> attribute holding the reference. Only hyperlinks are followed;
# stylesheets, scripts and images are recorded as edges only.
REFERENCE_ATTRS = {"a": "href", "link": "href", "script": "src", "img": "src"}
FOLLOWED_TAGS: frozenset[str] = frozenset(("a",))


@dataclass(frozen=True, slots=True)
class Reference:
    """A reference found in a page; `follow` marks it as a crawl candidate."""
    target: Resource
    follow: bool = False


def host_of(parts: SplitResult) -> str:
    """Host and port of a URL, without user info."""
    return parts.netloc.rpartition("@")[2]


def resolve_target(task: Task) -> str:
    """
    Resolve the task's target against its base URL and check it may be fetched.

    Raises AddressResolutionFailure, CrossHostRejection or UnsupportedScheme.
    No network access happens here.
    """
    try:
        url = urljoin(task.base_url, task.target)
        parts = urlsplit(url)
        base = urlsplit(task.base_url)
    except ValueError:
        raise AddressResolutionFailure(task.target) from None

    if host_of(parts) != host_of(base):
        raise CrossHostRejection(host_of(parts))
    if parts.scheme not in ALLOWED_SCHEMES:
        raise UnsupportedScheme(parts.scheme)
    return url


def is_html_content_type(content_type: str) -> bool:
    return len(content_type) > len(HTML_CONTENT_TYPE_PREFIX) and content_type.startswith(HTML_CONTENT_TYPE_PREFIX)


def declared_encoding(response: requests.Response, first_chunk: bytes) -> Optional[str]:
    """Charset from the Content-Type header, else from a <meta> in the first chunk."""
    if "charset=" in response.headers.get("Content-Type", "").lower():
        return requests.utils.get_encoding_from_headers(response.headers)
    return EncodingDetector.find_declared_encoding(first_chunk, is_html=True)


def iter_body(response: requests.Response, cancel: Optional[threading.Event] = None) -> Iterator[bytes]:
    """Yield a streamed response body, checking for cancellation between chunks."""
    try:
        for chunk in response.iter_content(CHUNK_SIZE):
            if cancel is not None and cancel.is_set():
                raise CrawlCancelled()
            if chunk:
                yield chunk
    except requests.RequestException as e:
        raise MalformedMarkup(f"body truncated: {e}") from e


class ReferenceParser:
    """
    Incremental reference extraction.

    Each <a>, <link>, <script> and <img> start tag contributes the value of
    its reference attribute, if present; empty values are kept. References
    come back from `feed` as soon as their tag has been read.
    """

    def __init__(self, encoding: Optional[str] = None) -> None:
        self.encoding = encoding
        self._parser: Optional[etree.HTMLPullParser] = None

    def feed(self, data: bytes) -> List[Reference]:
        if self._parser is None:
            try:
                self._parser = etree.HTMLPullParser(events=("start",), encoding=self.encoding)
            except LookupError:
                log.debug("unknown encoding %r, letting the parser detect it", self.encoding)
                self._parser = etree.HTMLPullParser(events=("start",))
        try:
            self._parser.feed(data)
        except etree.LxmlError as e:
            raise MalformedMarkup(str(e)) from e
        return self._collect()

    def close(self) -> List[Reference]:
        """Flush the parser at end of document."""
        if self._parser is None:
            return []
        try:
            self._parser.close()
        except etree.LxmlError as e:
            raise MalformedMarkup(str(e)) from e
        return self._collect()

    def _collect(self) -> List[Reference]:
        references: List[Reference] = []
        for _, element in self._parser.read_events():
            attr = REFERENCE_ATTRS.get(element.tag) if isinstance(element.tag, str) else None
            if attr is None:
                continue
            value = element.get(attr)
            if value is None:
                continue
            references.append(Reference(Resource(value), follow=element.tag in FOLLOWED_TAGS))
        return references


def extract_references(markup: Union[str, bytes], encoding: Optional[str] = None) -> List[Reference]:
    """Extract references from a complete HTML document, in document order."""
    if isinstance(markup, str):
        markup, encoding = markup.encode("utf-8"), "utf-8"
    parser = ReferenceParser(encoding)
    return parser.feed(markup) + parser.close()


class Scraper:
    """Fetch-and-extract for one task at a time; safe to share between workers."""

    def __init__(
        self,
        session: requests.Session,
        timeout_s: float = 15.0,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.session = session
        self.timeout_s = timeout_s
        self.cancel = cancel or threading.Event()

    def fetch(self, url: str) -> requests.Response:
        if self.cancel.is_set():
            raise CrawlCancelled()
        try:
            return self.session.get(url, timeout=self.timeout_s, stream=True)
        except requests.RequestException as e:
            raise TransportFailure(e) from e

    def scrape(self, task: Task) -> Iterator[Reference]:
        """
        Yield the references found on the task's page while it downloads.

        Rejections are raised as ScrapeRejected subclasses before anything is
        yielded. A body that is cut off, or markup the parser gives up on,
        ends the scrape early without an error.
        """
        url = resolve_target(task)
        response = self.fetch(url)

        with response:
            content_type = response.headers.get("Content-Type", "")
            if not is_html_content_type(content_type):
                raise UnsupportedContentType(content_type)

            parser: Optional[ReferenceParser] = None
            try:
                for chunk in iter_body(response, self.cancel):
                    if parser is None:
                        parser = ReferenceParser(declared_encoding(response, chunk))
                    yield from parser.feed(chunk)
                if parser is not None:
                    yield from parser.close()
            except MalformedMarkup as e:
                log.warning("malformed markup [%s]: %s", task.target, e)
