"""
Concurrent single-site crawler that records the links between resources
as a stream of edges and draws them as a graph.
"""
from linkcrawler.config import CrawlConfig
from linkcrawler.core import Crawler, crawl
from linkcrawler.models import CrawlStats, Edge, Resource, Task
from linkcrawler.sink import LinkGraph

__version__ = "1.0.0"
__all__ = ["crawl", "Crawler", "CrawlConfig", "CrawlStats", "Edge", "LinkGraph", "Resource", "Task"]
