#!/usr/bin/env python3
"""
Command-line entry point
========================
Crawl a web-based analytics platform and classify what it exposes.

All configuration flows through ``CrawlConfig``: an optional JSON input
object (``--input``) supplies camelCase keys, and explicit flags override it.
Credentials fall back to ``RECON_USERNAME`` / ``RECON_PASSWORD`` (a ``.env``
file is honoured).

Run with: python -m webrecon [url] [options]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .errors import DriverFatalFailure
from .queue_manager import CrawlQueueManager
from .run_config import CrawlConfig
from .storage import REPORT_KEY, open_storage

logger = logging.getLogger(__name__)


def _load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()  # tries CWD


def _load_input(path: str) -> dict:
    """Read the JSON input object, exiting on unreadable files."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read input file {path}: {e}")
        sys.exit(2)
    if not isinstance(data, dict):
        print(f"Error: input file {path} must contain a JSON object")
        sys.exit(2)
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='webrecon',
        description='Crawl an analytics platform and report its data sources, markets and methodology',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webrecon                                   # Default target, anonymous
  python -m webrecon https://app.example.com/ --pages 5
  python -m webrecon --input input.json --output-docx report.docx
  RECON_USERNAME=me RECON_PASSWORD=secret python -m webrecon
        """
    )

    parser.add_argument('url', nargs='?', help='Start URL (default: input startUrl or built-in target)')
    parser.add_argument('--input', type=str, metavar='FILE', help='JSON input object (camelCase keys)')
    parser.add_argument('--pages', type=int, help='Maximum pages to visit (default: 20)')
    parser.add_argument('--wait', type=int, metavar='MS', help='Settle delay after navigation in ms (default: 5000)')

    # ── Authentication flags ──────────────────────────────────────
    auth_group = parser.add_argument_group('Authentication',
        'Credentials enable a single login before the first page. '
        'Without both username and password the crawl runs anonymously.')
    auth_group.add_argument('--login-url', type=str, metavar='URL', help='Login page URL')
    auth_group.add_argument('--username', type=str, help='Login username (or set RECON_USERNAME)')
    auth_group.add_argument('--password', type=str, help='Login password (or set RECON_PASSWORD)')
    auth_group.add_argument(
        '--success-selector', type=str, metavar='CSS',
        help='Selector that must be present after login to count as authenticated',
    )

    # ── Extraction flags ──────────────────────────────────────────
    extract_group = parser.add_argument_group('Extraction')
    extract_group.add_argument('--no-screenshots', action='store_true', help='Disable full-page screenshots')
    extract_group.add_argument('--no-data-sources', action='store_true', help='Skip data-source passes')
    extract_group.add_argument('--no-markets', action='store_true', help='Skip market passes')
    extract_group.add_argument('--no-methodology', action='store_true', help='Skip methodology link pass')
    extract_group.add_argument(
        '--static-fallback', action='store_true',
        help='Fetch failed pages with plain HTTP and extract from static HTML',
    )

    # ── Output flags ──────────────────────────────────────────────
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--storage-dir', type=str, metavar='DIR', help='Dataset / key-value store directory (default: ./storage)')
    output_group.add_argument('--output-docx', type=str, metavar='FILE', help='Also export the report as DOCX')
    output_group.add_argument('--headed', action='store_true', help='Show the browser window')
    output_group.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def run(cfg: CrawlConfig):
    """Run one crawl with file-backed storage and return the CrawlResult."""
    sink, store = open_storage(cfg.storage_dir)
    manager = CrawlQueueManager(cfg, record_sink=sink, blob_store=store)

    def progress_cb(pages_visited, current_url, stats):
        print(f"[Page {pages_visited}/{cfg.max_pages}] {current_url[:70]}...")

    manager.set_progress_callback(progress_cb)
    result = asyncio.run(manager.crawl())

    exported = [str(sink.path), str(store.root / REPORT_KEY)]
    if cfg.output_docx and result.report is not None:
        from .word_exporter import export_docx
        try:
            exported.append(export_docx(result.report, cfg.output_docx, stats=result.stats))
        except Exception as exc:
            logger.error(f"DOCX export failed: {exc}", exc_info=True)

    print("\n" + "-" * 40)
    for path in exported:
        print(f"  Exported: {path}")
    print("-" * 40)
    return result


def print_summary(result) -> None:
    """Print crawl summary."""
    stats = result.stats
    report = result.report
    print("\n" + "=" * 65)
    print("RECON COMPLETE")
    print("=" * 65)
    print(f"  Pages visited:       {stats.get('pages_visited', 0)}")
    print(f"  Failed pages:        {stats.get('pages_failed', 0)}")
    print(f"  Links enqueued:      {stats.get('links_enqueued', 0)}")
    print(f"  Authenticated:       {'yes' if result.authenticated else 'no'}")
    if report is not None:
        print(f"  Providers:           {', '.join(report.providers) or 'none'}")
        print(f"  Markets:             {', '.join(report.markets) or 'none'}")
        print(f"  API endpoints:       {len(report.api_endpoints)}")
        print(f"  Domain content:      {'yes' if report.has_shrimp_content else 'no'}")
    print(f"  Total time:          {stats.get('elapsed_time', 0):.1f}s")
    print(f"  Stop reason:         {stats.get('stop_reason', 'completed')}")
    print("=" * 65)
    if report is not None and report.recommendations:
        print("\nRecommendations:")
        for rec in report.recommendations:
            print(f"  - {rec}")


def main(argv=None) -> int:
    _load_env()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    data = _load_input(args.input) if args.input else None
    if args.url and not args.url.startswith(('http://', 'https://')):
        args.url = 'https://' + args.url

    try:
        cfg = CrawlConfig.from_cli_args(args, data)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    cfg.log_summary()

    try:
        result = run(cfg)
    except DriverFatalFailure as e:
        logger.error(f"Crawl aborted: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nCrawl interrupted.")
        return 130

    print_summary(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
