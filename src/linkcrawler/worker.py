"""
Scrape workers.

Workers take tasks from the frontier, scrape the page, send newly found
hyperlinks back to the frontier and every reference to the edge stream, then
report the task as complete so the frontier can tell when the crawl is done.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from linkcrawler.errors import CrawlCancelled, ScrapeRejected
from linkcrawler.frontier import EdgeStream, Frontier
from linkcrawler.models import Edge, Task, TaskOutcome
from linkcrawler.scrape import Scraper

log = logging.getLogger(__name__)

STATUS_SKIPPED = "Skipped"
STATUS_FAILED = "Failed"


class Worker:
    def __init__(
        self,
        worker_id: int,
        frontier: Frontier,
        edges: EdgeStream,
        scraper: Scraper,
        max_depth: int = 2,
    ) -> None:
        self.worker_id = worker_id
        self.frontier = frontier
        self.edges = edges
        self.scraper = scraper
        self.max_depth = max_depth
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name=f"worker-{self.worker_id}", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        """Process tasks until the frontier has no more work or the crawl is cancelled."""
        try:
            while True:
                task = self.frontier.dispatch()
                if task is None:
                    break
                outcome = TaskOutcome()
                try:
                    self.process(task, outcome)
                except CrawlCancelled:
                    raise
                except Exception:
                    log.exception("worker=%d failed [%s]", self.worker_id, task.target)
                    outcome.status = STATUS_FAILED
                    outcome.rejection = "InternalError"
                self.frontier.complete(outcome)
        except CrawlCancelled:
            log.debug("worker=%d cancelled", self.worker_id)
        log.debug("worker=%d exiting", self.worker_id)

    def process(self, task: Task, outcome: TaskOutcome) -> None:
        """Scrape one task, forwarding child tasks and edges as they are found."""
        if task.depth >= self.max_depth:
            outcome.status = STATUS_SKIPPED
            outcome.skipped = True
            log.debug("worker=%d depth cutoff [%s] depth=%d", self.worker_id, task.target, task.depth)
            return

        try:
            for ref in self.scraper.scrape(task):
                if ref.follow:
                    self.frontier.submit(Task(task.base_url, ref.target, task.depth + 1))
                if self.edges.emit(Edge(task.target, ref.target)):
                    outcome.edges += 1
        except ScrapeRejected as e:
            outcome.status = e.reason
            outcome.rejection = type(e).__name__

        log.info("worker=%d %s [%s]", self.worker_id, outcome.status, task.target)
