#!/usr/bin/env python3
"""
Discover restaurant candidates from places API, scraped pages and social
feeds, deduplicate them against approved locations and write moderation CSVs
"""
import os
import sys
import asyncio
import argparse
import logging
from contextlib import AsyncExitStack
from pathlib import Path

from dotenv import load_dotenv

from restaurant_discovery.clients.page_fetchers import HttpPageFetcher
from restaurant_discovery.clients.places_client import PlacesClient
from restaurant_discovery.clients.social_client import SocialFeedClient
from restaurant_discovery.data.config import DiscoveryConfig
from restaurant_discovery.data.errors import ConfigError
from restaurant_discovery.data.models import DiscoveryResult, DiscoverySource
from restaurant_discovery.orchestrator.orchestrator import DiscoveryOrchestrator
from restaurant_discovery.searchers.places_adapter import PlacesApiAdapter
from restaurant_discovery.searchers.scraping_adapter import ScrapingAdapter
from restaurant_discovery.searchers.social_adapter import SocialFeedAdapter
from restaurant_discovery.utils.loader import CSVExistingLocationsLoader
from restaurant_discovery.utils.report_generator import ModerationReportGenerator
from restaurant_discovery.utils.ttl_cache import TTLCache

load_dotenv()

project_root = Path(__file__).parent
logs_dir = project_root / "logs"
logs_dir.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(logs_dir / 'discovery.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Restaurant discovery and deduplication pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--sources', '-s',
        default='api,scraping,social',
        help='Comma-separated sources to enable (api, scraping, social)'
    )
    parser.add_argument(
        '--concurrency', '-c',
        type=int,
        default=3,
        help='Maximum concurrent adapter tasks'
    )
    parser.add_argument(
        '--existing', '-e',
        default=None,
        help='CSV file of already approved locations'
    )
    parser.add_argument(
        '--output', '-o',
        default='data/output',
        help='Output directory for moderation CSVs'
    )
    parser.add_argument(
        '--run-timeout',
        type=float,
        default=300.0,
        help='Run-level timeout in seconds'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Apply the stricter cuisine-mismatch penalty'
    )
    parser.add_argument(
        '--browser',
        action='store_true',
        help='Render scraped pages in headless Chromium (requires the browser extra)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def build_config(args: argparse.Namespace) -> DiscoveryConfig:
    sources = [s.strip() for s in args.sources.split(',') if s.strip()]
    return DiscoveryConfig.from_input({
        "enabled_sources": sources,
        "concurrency": args.concurrency,
        "run_timeout": args.run_timeout,
        "adapter_timeout": min(60.0, args.run_timeout),
        "strict_domain_match": args.strict,
    })


async def run(args: argparse.Namespace, config: DiscoveryConfig) -> DiscoveryResult:
    cache = TTLCache()
    async with AsyncExitStack() as stack:
        adapters = []

        if DiscoverySource.API in config.enabled_sources:
            places_client = await stack.enter_async_context(
                PlacesClient(api_key=os.getenv("GOOGLE_PLACES_API_KEY"))
            )
            adapters.append(PlacesApiAdapter(places_client, cache=cache))

        if DiscoverySource.SCRAPING in config.enabled_sources:
            if args.browser:
                from restaurant_discovery.clients.browser_fetcher import BrowserPageFetcher
                fetcher = await stack.enter_async_context(BrowserPageFetcher())
            else:
                fetcher = await stack.enter_async_context(HttpPageFetcher())
            adapters.append(ScrapingAdapter(fetcher, cache=cache))

        if DiscoverySource.SOCIAL in config.enabled_sources:
            social_client = await stack.enter_async_context(
                SocialFeedClient(bearer_token=os.getenv("SOCIAL_FEED_BEARER_TOKEN"))
            )
            adapters.append(SocialFeedAdapter(social_client, cache=cache))

        existing = CSVExistingLocationsLoader(args.existing, region_centroid=config.region_centroid) if args.existing else None
        orchestrator = DiscoveryOrchestrator(adapters=adapters, existing_locations=existing)
        return await orchestrator.run_discovery(config)


def main():
    args = build_parser().parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if args.existing and not Path(args.existing).exists():
        logger.error(f"Existing locations file not found: {args.existing}")
        sys.exit(1)

    try:
        result = asyncio.run(run(args, config))
    except (ConfigError, ValueError) as e:
        # Missing API keys surface as ValueError from the client constructors
        logger.error(f"Failed to start discovery: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Discovery interrupted by user")
        sys.exit(1)

    files = ModerationReportGenerator().run(result, args.output)
    _log_discovery_result(result, files)
    sys.exit(0)


def _log_discovery_result(result: DiscoveryResult, files: dict) -> None:
    logger.info("\n" + "=" * 80)
    logger.info("DISCOVERY SUMMARY")
    logger.info("=" * 80)
    if result.is_empty:
        logger.info("No candidates discovered this run")
    logger.info(f"Accepted for moderation: {len(result.accepted)}")
    logger.info(f"Duplicates: {len(result.duplicates)}")
    logger.info(f"Rejected: {len(result.rejected)}")

    if result.stats.existing_lookup_failed:
        logger.warning("Existing locations could not be loaded; duplicates were only checked within this run")

    for kind, path in files.items():
        if path:
            logger.info(f"{kind.capitalize()} report: {path}")

    logger.info("=" * 80)


if __name__ == "__main__":
    main()
