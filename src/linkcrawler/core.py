"""
Crawl wiring: frontier, worker pool and edge stream.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import List, Optional, Tuple

import requests

from linkcrawler.config import CrawlConfig
from linkcrawler.errors import CrawlError
from linkcrawler.frontier import EdgeStream, Frontier
from linkcrawler.models import CrawlStats, Resource, Task
from linkcrawler.scrape import Scraper
from linkcrawler.sink import LinkGraph
from linkcrawler.worker import Worker

log = logging.getLogger(__name__)


class Crawler:
    """
    One crawl of one site.

    `start()` returns the edge stream; read it to the end, then `wait()`
    for the statistics. `finished` resolves when the stream closes, either
    because the crawl ran out of work or because it was cancelled.
    """

    def __init__(self, config: Optional[CrawlConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = (config or CrawlConfig()).validate()

        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = self.config.user_agent
        self.session = session

        self.cancel_event = threading.Event()
        self.edges = EdgeStream(self.config.edge_capacity, self.cancel_event)
        self.frontier = Frontier(self.edges, self.config.submit_capacity, self.cancel_event)
        scraper = Scraper(self.session, self.config.timeout_s, self.cancel_event)
        self.workers: List[Worker] = [
            Worker(n, self.frontier, self.edges, scraper, self.config.max_depth)
            for n in range(self.config.workers)
        ]
        self._started = False

    @property
    def finished(self) -> Future:
        return self.frontier.finished

    def start(self) -> EdgeStream:
        """Launch the frontier and workers and submit the seed page."""
        if self._started:
            raise CrawlError("crawl already started")
        self._started = True

        log.info(
            "starting crawl of %s%s with %d workers",
            self.config.target,
            self.config.page,
            self.config.workers,
        )
        self.frontier.start()
        for worker in self.workers:
            worker.start()
        self.frontier.submit(Task(self.config.target, Resource(self.config.page), 0))
        return self.edges

    def cancel(self) -> None:
        log.info("cancelling crawl")
        self.cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> CrawlStats:
        """
        Block until the edge stream is closed and return the statistics.

        The frontier and workers are joined before an owned session is closed;
        a worker still inside a request gets up to `timeout_s` to return.
        """
        stats = self.finished.result(timeout)
        try:
            self.frontier.join(self.config.timeout_s)
            for worker in self.workers:
                worker.join(self.config.timeout_s)
                if worker.is_alive():
                    log.warning("worker=%d still running after %.1fs", worker.worker_id, self.config.timeout_s)
        finally:
            if self._owns_session:
                self.session.close()
        return stats


def crawl(
    config: Optional[CrawlConfig] = None,
    session: Optional[requests.Session] = None,
) -> Tuple[LinkGraph, CrawlStats]:
    """
    Crawl a site and collect the link graph on the calling thread.

    Args:
        config: Startup parameters; defaults to CrawlConfig().
        session: HTTP session to share between workers. One is created
                 (and closed afterwards) if not given.

    Returns:
        Tuple of (link graph, crawl statistics).
    """
    crawler = Crawler(config, session)
    graph = LinkGraph()
    try:
        graph.consume(crawler.start())
    except KeyboardInterrupt:
        crawler.cancel()
        # keep reading until the frontier closes the stream
        graph.consume(crawler.edges)
    return graph, crawler.wait()
