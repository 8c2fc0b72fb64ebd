"""
Exceptions raised while configuring and running a crawl.

Everything a single fetch can go wrong with is a `ScrapeRejected` subclass:
the worker catches it, logs the reason and moves on. None of these abort
the crawl.
"""
from __future__ import annotations

from typing import Optional


class CrawlError(Exception):
    """Base class for crawler errors."""


class ConfigError(CrawlError, ValueError):
    """Invalid crawl configuration."""


class CrawlCancelled(CrawlError):
    """The crawl was cancelled while waiting at a suspension point."""


class ScrapeRejected(CrawlError):
    """A task produced no edges because its resource was not scraped."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AddressResolutionFailure(ScrapeRejected):
    def __init__(self, target: str) -> None:
        super().__init__(f"Rejected due to unresolvable address={target}")


class CrossHostRejection(ScrapeRejected):
    def __init__(self, host: str) -> None:
        super().__init__(f"Rejected due to hostname={host}")


class UnsupportedScheme(ScrapeRejected):
    def __init__(self, scheme: str) -> None:
        super().__init__(f"Rejected due to scheme={scheme}")


class TransportFailure(ScrapeRejected):
    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__("HTTP error")
        self.cause = cause


class UnsupportedContentType(ScrapeRejected):
    def __init__(self, content_type: str) -> None:
        super().__init__(f"Rejected due to content-type={content_type}")


class MalformedMarkup(CrawlError):
    """The markup stream stopped: the body was cut off or the parser gave up."""
