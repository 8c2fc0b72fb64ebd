"""
Crawl data structures: tasks, edges and statistics.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, NewType, Optional

# A reference exactly as it appeared in the markup (relative or absolute).
Resource = NewType("Resource", str)

# Worker outcome for a task that was scraped to the end of the document.
STATUS_DONE = "Done"


@dataclass(frozen=True, slots=True)
class Task:
    """Fetch `target` resolved against `base_url`, at crawl depth `depth`."""
    base_url: str
    target: Resource
    depth: int = 0


@dataclass(frozen=True, slots=True)
class Edge:
    """A reference found on page `source` pointing at `target`."""
    source: Resource
    target: Resource


@dataclass(slots=True)
class TaskOutcome:
    """What a worker reports back to the frontier when a task completes."""
    status: str = STATUS_DONE
    edges: int = 0
    skipped: bool = False
    rejection: Optional[str] = None


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    tasks_accepted: int = 0
    duplicates_dropped: int = 0
    tasks_completed: int = 0
    pages_scraped: int = 0
    depth_skipped: int = 0
    edges_emitted: int = 0
    rejections: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    cancelled: bool = False

    def record(self, outcome: TaskOutcome) -> None:
        """Fold one completed task into the totals."""
        self.tasks_completed += 1
        self.edges_emitted += outcome.edges
        if outcome.skipped:
            self.depth_skipped += 1
        elif outcome.rejection:
            self.rejections[outcome.rejection] += 1
        elif outcome.status == STATUS_DONE:
            self.pages_scraped += 1
