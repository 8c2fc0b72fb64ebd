"""
Task frontier and edge channel.

The frontier runs on its own thread and is the only owner of the pending
queue, the visited set and the in-flight counter. Workers never touch that
state: they post messages to the frontier's bounded inbox (submit, dispatch
request, completion) and, for dispatch, wait on a one-slot reply queue.
The inbox is FIFO, so a worker's submissions are always handled before the
completion it sends afterwards.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Deque, Iterator, Optional, Set

from linkcrawler.errors import CrawlCancelled
from linkcrawler.models import CrawlStats, Edge, Resource, Task, TaskOutcome

log = logging.getLogger(__name__)

# How often a blocked caller wakes up to look at the cancellation token
POLL_INTERVAL_S = 0.05

_CLOSED = object()


def put_cancellable(
    q: queue.Queue,
    item: Any,
    cancel: threading.Event,
    gone: Optional[threading.Event] = None,
) -> bool:
    """
    Put `item` on a bounded queue, blocking while it is full.

    Raises CrawlCancelled once `cancel` is set. Returns False without
    putting anything if `gone` is set (nobody will read the queue again).
    """
    while True:
        if cancel.is_set():
            raise CrawlCancelled()
        if gone is not None and gone.is_set():
            return False
        try:
            q.put(item, timeout=POLL_INTERVAL_S)
            return True
        except queue.Full:
            continue


class EdgeStream:
    """Bounded multi-producer channel of edges, closed exactly once."""

    def __init__(self, capacity: int = 100, cancel: Optional[threading.Event] = None) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._cancel = cancel or threading.Event()
        self._lock = threading.Lock()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, edge: Edge) -> bool:
        """Send an edge to the sink; edges offered after close are dropped."""
        with self._lock:
            if self._closed:
                log.warning("edge emitted after close dropped: %s -> %s", edge.source, edge.target)
                return False
            put_cancellable(self._queue, edge, self._cancel)
            return True

    def close(self) -> bool:
        """Terminate the stream. Returns False if it was already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            # Blocks until the sink makes room; the sink reads to the end.
            self._queue.put(_CLOSED)
            return True

    def __iter__(self) -> Iterator[Edge]:
        while not self._drained:
            item = self._queue.get()
            if item is _CLOSED:
                self._drained = True
                return
            yield item


@dataclass(slots=True)
class _Submit:
    task: Task


@dataclass(slots=True)
class _Dispatch:
    reply: queue.Queue


@dataclass(slots=True)
class _Complete:
    outcome: TaskOutcome


class Frontier:
    """
    Deduplicating task queue that detects when the crawl is finished.

    `submit`, `dispatch` and `complete` are safe to call from any thread.
    Once the pending queue is empty, no task is in flight and at least one
    task was accepted, the edge stream is closed and `finished` resolves
    with the crawl statistics.
    """

    def __init__(
        self,
        edges: EdgeStream,
        capacity: int = 100,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.edges = edges
        self.finished: Future = Future()
        self._inbox: queue.Queue = queue.Queue(maxsize=capacity)
        self._cancel = cancel or threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Owned by the frontier thread
        self._pending: Deque[Task] = deque()
        self._visited: Set[Resource] = set()
        self._in_flight = 0
        self._started = False
        self._waiting: Deque[queue.Queue] = deque()
        self._stats = CrawlStats()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="frontier", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # Worker side

    def submit(self, task: Task) -> None:
        """Offer a task; duplicates of an already seen resource are dropped."""
        if not put_cancellable(self._inbox, _Submit(task), self._cancel, self._stopped):
            log.debug("submit after close dropped [%s]", task.target)

    def dispatch(self) -> Optional[Task]:
        """Wait for the next task. Returns None once the crawl is over."""
        reply: queue.Queue = queue.Queue(maxsize=1)
        if not put_cancellable(self._inbox, _Dispatch(reply), self._cancel, self._stopped):
            return None
        while True:
            try:
                return reply.get(timeout=POLL_INTERVAL_S)
            except queue.Empty:
                pass
            if self._cancel.is_set():
                raise CrawlCancelled()
            if self._stopped.is_set():
                try:
                    return reply.get_nowait()
                except queue.Empty:
                    return None

    def complete(self, outcome: Optional[TaskOutcome] = None) -> None:
        """Report that a dispatched task is finished, whatever happened to it."""
        if not put_cancellable(self._inbox, _Complete(outcome or TaskOutcome()), self._cancel, self._stopped):
            log.debug("completion after close dropped")

    # Frontier thread

    def _run(self) -> None:
        try:
            while not self._stopped.is_set():
                if self._cancel.is_set():
                    self._shutdown(cancelled=True)
                    break
                try:
                    message = self._inbox.get(timeout=POLL_INTERVAL_S)
                except queue.Empty:
                    continue
                self._handle(message)
                if self._quiescent():
                    self._shutdown()
        except BaseException as exc:
            log.exception("frontier stopped unexpectedly")
            self._stopped.set()
            self.edges.close()
            if not self.finished.done():
                self.finished.set_exception(exc)
            raise

    def _handle(self, message: Any) -> None:
        if isinstance(message, _Submit):
            self._accept(message.task)
        elif isinstance(message, _Dispatch):
            self._waiting.append(message.reply)
        elif isinstance(message, _Complete):
            if self._in_flight == 0:
                log.error("completion without a task in flight ignored")
                return
            self._in_flight -= 1
            self._stats.record(message.outcome)
        self._hand_out()

    def _accept(self, task: Task) -> None:
        if task.target in self._visited:
            self._stats.duplicates_dropped += 1
            log.debug("duplicate dropped [%s]", task.target)
            return
        self._visited.add(task.target)
        self._pending.append(task)
        self._in_flight += 1
        self._started = True
        self._stats.tasks_accepted += 1

    def _hand_out(self) -> None:
        while self._pending and self._waiting:
            task = self._pending.popleft()
            self._waiting.popleft().put_nowait(task)
            log.debug("dispatched [%s] depth=%d", task.target, task.depth)

    def _quiescent(self) -> bool:
        return not self._pending and self._in_flight == 0 and self._started

    def _shutdown(self, cancelled: bool = False) -> None:
        self._stopped.set()
        self._stats.cancelled = cancelled
        if cancelled:
            log.info("crawl cancelled: %d tasks in flight, %d pending", self._in_flight, len(self._pending))
        else:
            log.info(
                "crawl finished: %d tasks, %d edges",
                self._stats.tasks_accepted,
                self._stats.edges_emitted,
            )
        while self._waiting:
            self._waiting.popleft().put_nowait(None)
        self.edges.close()
        self.finished.set_result(self._stats)
