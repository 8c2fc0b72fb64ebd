"""
Startup parameters for a crawl.
"""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from linkcrawler.errors import ConfigError

DEFAULT_USER_AGENT = "LinkCrawler/1.0"


@dataclass(slots=True)
class CrawlConfig:
    """Crawl configuration; the CLI fills it from command-line flags."""

    workers: int = 3
    target: str = "http://localhost:8080"
    page: str = "/index.html"

    # Tasks at this depth or deeper are completed without being fetched
    max_depth: int = 2

    # Network
    timeout_s: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT

    # Channel bounds (backpressure on workers)
    submit_capacity: int = 100
    edge_capacity: int = 100

    def validate(self) -> "CrawlConfig":
        """Raise ConfigError on values the crawler cannot run with."""
        if self.workers <= 0:
            raise ConfigError(f"workers must be > 0, got {self.workers}")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.timeout_s <= 0:
            raise ConfigError(f"timeout_s must be > 0, got {self.timeout_s}")
        if self.submit_capacity <= 0 or self.edge_capacity <= 0:
            raise ConfigError("channel capacities must be > 0")

        parsed = urlparse(self.target)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid target base URL: {self.target}")
        return self
