"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from linkcrawler.config import DEFAULT_USER_AGENT, CrawlConfig
from linkcrawler.core import crawl
from linkcrawler.errors import ConfigError
from linkcrawler.logs import configure_logging
from linkcrawler.models import CrawlStats


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY" + (" (cancelled)" if stats.cancelled else "") + "\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Resources discovered:   {stats.tasks_accepted}\n")
    sys.stderr.write(f"Pages scraped:          {stats.pages_scraped}\n")
    sys.stderr.write(f"Beyond depth limit:     {stats.depth_skipped}\n")
    sys.stderr.write(f"Edges found:            {stats.edges_emitted}\n\n")

    if stats.rejections:
        sys.stderr.write("Rejections by type:\n")
        for kind, count in sorted(stats.rejections.items()):
            sys.stderr.write(f"  {kind}: {count}\n")
    else:
        sys.stderr.write("No rejections.\n")

    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    defaults = CrawlConfig()
    parser = argparse.ArgumentParser(
        description="Crawl a site from one page and draw the graph of its links."
    )
    parser.add_argument("--workers", type=int, default=defaults.workers,
                        help=f"Number of concurrent http requests (default: {defaults.workers})")
    parser.add_argument("--target", default=defaults.target,
                        help=f"Target base url e.g. http://website.com (default: {defaults.target})")
    parser.add_argument("--page", default=defaults.page, help=f"Page to start at (default: {defaults.page})")
    parser.add_argument("--max-depth", type=int, default=defaults.max_depth,
                        help=f"Depth at which pages are no longer fetched (default: {defaults.max_depth})")
    parser.add_argument("--timeout", type=float, default=defaults.timeout_s,
                        help=f"Request timeout in seconds (default: {defaults.timeout_s:g})")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--format", choices=("html", "json"), default="html", help="Output format (default: html)")
    parser.add_argument("--out", help="Output file path (default: output.html or output.json)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Log every dispatched task and print a summary")
    parser.add_argument("--log-file", help="Write log records to this file instead of stderr")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO", to_file=args.log_file)

    config = CrawlConfig(
        workers=args.workers,
        target=args.target,
        page=args.page,
        max_depth=args.max_depth,
        timeout_s=args.timeout,
        user_agent=args.user_agent,
    )
    try:
        config.validate()
    except ConfigError as e:
        sys.stderr.write(f"error: {e}\n")
        return 2

    graph, stats = crawl(config)

    if args.verbose:
        print_summary(stats)

    output_path = Path(args.out or f"output.{args.format}")
    sys.stderr.write(f"Writing to {output_path}\n")
    if args.format == "json":
        graph.write_json(output_path, pretty=args.pretty)
    else:
        graph.write_html(output_path)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
