"""
L&D Job Scraper — batch job scraping pipeline
CLI entry point for running one batch, sweeping the whole search space,
listing stored jobs, or serving the HTTP endpoint.
"""

import argparse
import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.settings import ConfigurationError, configure_logging, settings
from graph.context import build_context
from graph.workflow import run_batch
from models.search import ScrapeRequest
from tools.file_handler import generate_summary
from tools.job_store import ALLOWED_SOURCES, StorageError


logger = logging.getLogger(__name__)


def _split(value):
    if not value:
        return None
    return [item.strip() for item in value.split(";") if item.strip()]


def run_all(context, terms=None, locations=None, start_index: int = 0) -> list[dict]:
    """Run batches from start_index until the search space is exhausted."""
    batches = []
    batch_index = start_index
    while batch_index is not None:
        request = ScrapeRequest(search_terms=terms, locations=locations, batch_index=batch_index)
        response = run_batch(request, context)
        batches.append(response.model_dump())
        print(f"  {response.progress}: {response.inserted} new / {response.total_found} found")
        batch_index = response.next_batch_index if response.has_more else None
    return batches


def list_jobs(context, limit: int) -> None:
    rows = context.store.recent_jobs(ALLOWED_SOURCES, limit)
    if not rows:
        print("No jobs stored yet.")
        return
    for row in rows:
        print(f"   • {row.get('title')} at {row.get('company')} — {row.get('location')} [{row.get('source')}]")
    print(f"\n{len(rows)} job(s) shown, {context.store.count()} stored.")


def main():
    """Main entry point for the job scraping pipeline."""
    parser = argparse.ArgumentParser(
        description="L&D Job Scraper — batch job scraping pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py
  python run.py --batch-index 2
  python run.py --all --storage sqlite
  python run.py --terms "Instructional Designer" --locations "Remote;Tampa, FL"
  python run.py --list
  python run.py --serve --port 8000
        """,
    )

    parser.add_argument("--terms", type=str, default=None, help="Search terms, separated by ';'")
    parser.add_argument("--locations", type=str, default=None, help="Locations, separated by ';'")
    parser.add_argument("--batch-index", type=int, default=0, help="Batch to run (default: 0)")
    parser.add_argument("--all", action="store_true", help="Keep running batches until the search space is exhausted")
    parser.add_argument("--strategy", type=str, default=None, help="Extraction strategy: job_search, extract, markdown or links")
    parser.add_argument("--storage", type=str, default=None, help="Storage backend: supabase or sqlite")
    parser.add_argument("--db-path", type=str, default=None, help=f"SQLite database path (default: {settings.db_path})")
    parser.add_argument("--config", type=str, default=None, help="Path to a search config YAML file")
    parser.add_argument("--list", type=int, nargs="?", const=20, default=None, metavar="N", help="Print the N most recent stored jobs")
    parser.add_argument("--serve", action="store_true", help="Serve the HTTP endpoint instead of running a batch")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    # Update settings
    if args.strategy:
        settings.extraction_strategy = args.strategy
    if args.storage:
        settings.storage_backend = args.storage
    if args.db_path:
        settings.db_path = args.db_path
    if args.config:
        if not os.path.exists(args.config):
            print(f"❌ Config file not found: {args.config}")
            sys.exit(1)
        settings.search_config_path = args.config

    configure_logging(settings.log_level)

    if args.serve:
        import uvicorn

        uvicorn.run("server:app", host=args.host, port=args.port)
        return

    if args.batch_index < 0:
        print("❌ --batch-index must be 0 or greater")
        sys.exit(1)

    try:
        context = build_context(settings)
    except ConfigurationError as e:
        print(f"❌ {e}")
        print("   See .env.example for configuration details.")
        sys.exit(1)

    if args.list is not None:
        list_jobs(context, args.list)
        return

    terms = _split(args.terms)
    locations = _split(args.locations)

    print("=" * 60)
    print("  🔍 L&D Job Scraper")
    print("=" * 60)
    print(f"  Strategy: {settings.extraction_strategy}")
    print(f"  Storage:  {settings.storage_backend}")
    print(f"  Batch:    {'all' if args.all else args.batch_index} (size {settings.batch_size})")
    print("=" * 60)
    print()

    try:
        if args.all:
            batches = run_all(context, terms, locations, args.batch_index)
            print()
            print(generate_summary(batches))
            found = sum(batch["total_found"] for batch in batches)
            inserted = sum(batch["inserted"] for batch in batches)
            print(f"\n✅ Scrape complete! Found {found} jobs, added {inserted} new jobs.")
        else:
            request = ScrapeRequest(search_terms=terms, locations=locations, batch_index=args.batch_index)
            response = run_batch(request, context)
            print(f"\n✅ {response.progress}: found {response.total_found}, "
                  f"added {response.inserted}, skipped {response.skipped}.")
            if response.has_more:
                print(f"   More searches remain — next: --batch-index {response.next_batch_index}")

    except KeyboardInterrupt:
        print("\n\n⛔ Scraping interrupted by user.")
        sys.exit(1)
    except ConfigurationError as e:
        print(f"\n❌ {e}")
        sys.exit(1)
    except StorageError as e:
        print(f"\n❌ Storage error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
