from __future__ import annotations

import threading
import time

import pytest

from linkcrawler.frontier import EdgeStream, Frontier
from linkcrawler.models import Edge, Resource, Task, TaskOutcome

BASE = "http://site.com"


def task(target: str, depth: int = 0) -> Task:
    return Task(BASE, Resource(target), depth)


@pytest.fixture
def frontier():
    edges = EdgeStream(capacity=10)
    f = Frontier(edges, capacity=10)
    f.start()
    yield f
    f.join(timeout=2)


def test_concurrent_duplicates_are_dispatched_once(frontier):
    threads = [threading.Thread(target=frontier.submit, args=(task("/a.html"),)) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert frontier.dispatch() == task("/a.html")
    frontier.complete()

    stats = frontier.finished.result(timeout=2)
    assert stats.tasks_accepted == 1
    assert stats.duplicates_dropped == 9
    assert stats.tasks_completed == 1
    assert frontier.dispatch() is None


def test_dedup_ignores_depth_and_base(frontier):
    frontier.submit(task("/a.html", depth=2))
    frontier.submit(Task("http://elsewhere.com", Resource("/a.html"), 0))
    frontier.submit(task("/b.html"))

    assert frontier.dispatch() == task("/a.html", depth=2)
    assert frontier.dispatch() == task("/b.html")
    frontier.complete()
    frontier.complete()

    stats = frontier.finished.result(timeout=2)
    assert stats.tasks_accepted == 2
    assert stats.duplicates_dropped == 1


def test_tasks_are_dispatched_in_submission_order(frontier):
    for name in ("/1", "/2", "/3"):
        frontier.submit(task(name))
    got = [frontier.dispatch().target for _ in range(3)]
    assert got == ["/1", "/2", "/3"]
    for _ in range(3):
        frontier.complete()
    frontier.finished.result(timeout=2)


def test_does_not_close_while_tasks_in_flight(frontier):
    frontier.submit(task("/a.html"))
    first = frontier.dispatch()
    frontier.submit(task("/b.html", depth=1))
    second = frontier.dispatch()
    frontier.complete()

    time.sleep(0.2)
    assert not frontier.finished.done()
    assert not frontier.edges.closed

    frontier.complete()
    frontier.finished.result(timeout=2)
    assert first.target == "/a.html" and second.target == "/b.html"
    assert frontier.edges.closed


def test_child_submitted_before_parent_completes_keeps_crawl_open(frontier):
    frontier.submit(task("/a.html"))
    frontier.dispatch()
    frontier.submit(task("/b.html", depth=1))
    frontier.complete()

    assert frontier.dispatch() == task("/b.html", depth=1)
    assert not frontier.finished.done()
    frontier.complete()
    assert frontier.finished.result(timeout=2).tasks_completed == 2


def test_dispatch_waits_for_work(frontier):
    got = []
    waiter = threading.Thread(target=lambda: got.append(frontier.dispatch()))
    waiter.start()
    time.sleep(0.1)
    assert not got

    frontier.submit(task("/late.html"))
    waiter.join(timeout=2)
    assert got == [task("/late.html")]
    frontier.complete()
    frontier.finished.result(timeout=2)


def test_idle_dispatchers_are_released_on_close(frontier):
    frontier.submit(task("/a.html"))
    frontier.dispatch()

    got = []
    waiter = threading.Thread(target=lambda: got.append(frontier.dispatch()))
    waiter.start()
    time.sleep(0.1)
    frontier.complete()

    waiter.join(timeout=2)
    assert got == [None]


def test_empty_crawl_never_closes_until_cancelled():
    cancel = threading.Event()
    edges = EdgeStream(capacity=10, cancel=cancel)
    frontier = Frontier(edges, capacity=10, cancel=cancel)
    frontier.start()

    time.sleep(0.2)
    assert not frontier.finished.done()

    cancel.set()
    stats = frontier.finished.result(timeout=2)
    assert stats.cancelled
    assert list(edges) == []


def test_closure_is_terminal(frontier):
    frontier.submit(task("/a.html"))
    frontier.dispatch()
    assert frontier.edges.emit(Edge(Resource("/a.html"), Resource("/b.html")))
    frontier.complete()
    stats = frontier.finished.result(timeout=2)

    frontier.submit(task("/late.html"))
    frontier.complete()
    assert frontier.dispatch() is None
    assert not frontier.edges.emit(Edge(Resource("/late.html"), Resource("/x")))
    assert not frontier.edges.close()

    assert list(frontier.edges) == [Edge(Resource("/a.html"), Resource("/b.html"))]
    assert stats.tasks_accepted == 1


def test_extra_completion_does_not_go_negative(frontier):
    frontier.complete()
    frontier.submit(task("/a.html"))
    assert frontier.dispatch() == task("/a.html")
    time.sleep(0.1)
    assert not frontier.finished.done()
    frontier.complete(TaskOutcome(edges=3))
    assert frontier.finished.result(timeout=2).edges_emitted == 3


def test_edge_stream_applies_backpressure():
    edges = EdgeStream(capacity=1)
    assert edges.emit(Edge(Resource("/a"), Resource("/b")))

    done = threading.Event()

    def second():
        edges.emit(Edge(Resource("/a"), Resource("/c")))
        done.set()

    threading.Thread(target=second, daemon=True).start()
    assert not done.wait(timeout=0.2)

    reader = iter(edges)
    assert next(reader).target == "/b"
    assert done.wait(timeout=2)
    assert next(reader).target == "/c"
