#!/usr/bin/env python3

"""
NSW Job Spider - Main Entry Point
Crawls listings, optionally fetches details, writes JSON output and run metrics
"""

import argparse
import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from .config_loader import ConfigLoader, load_config
from .errors import MissingDetailURLError
from .models import JobDetails, JobListing, SpiderConfig, SpiderMetrics
from .spider import SpiderService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def setup_logging(config: ConfigLoader) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, str(config.get_log_level()).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logger.info(f"Logging initialized: {log_file}")


def display_config(config: ConfigLoader) -> None:
    """Display loaded configuration"""
    print("\n" + "="*60)
    print("🕷️  NSW JOB SPIDER - Configuration Loaded")
    print("="*60)

    print(f"\n🌐 Search URL: {config.get_base_url()}")
    print(f"📊 Page size: {config.get_page_size() or 'site maximum'}")
    print(f"🔢 Max records: {config.get_max_records() or 'no limit'}")

    print(f"\n⚙️  BROWSER SETTINGS:")
    print(f"  Headless mode: {config.is_headless()}")
    print(f"  Stealth: {config.use_stealth()}")
    print(f"  Navigation timeout: {config.get_navigation_timeout()/1000}s")

    print(f"\n💾 FIXTURES:")
    print(f"  Dir: {config.get_fixture_dir()}")
    print(f"  Replay: {config.is_fixture_replay_enabled()}  Save: {config.is_fixture_save_enabled()}")

    print("\n" + "="*60 + "\n")


def metrics_to_dict(metrics: SpiderMetrics, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = metrics.to_json_dict()
    end_time = metrics.end_time or datetime.now()
    payload["durationSeconds"] = round(max((end_time - metrics.start_time).total_seconds(), 0.0), 6)
    if extra:
        payload["extra"] = dict(extra)
    return payload


def write_metrics(metrics: SpiderMetrics, template: str,
                  extra: Optional[Dict[str, Any]] = None) -> Path:
    """Write a metrics snapshot as JSON; {timestamp} in the template is filled in."""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    template = template or 'output/run_metrics_{timestamp}.json'
    path = Path(template.replace('{timestamp}', timestamp))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(metrics_to_dict(metrics, extra), indent=2, sort_keys=True), encoding="utf-8")
    logger.info("Run metrics written to %s", path)
    return path


async def run_with_retries(operation: Callable[[], Awaitable[T]], *, attempts: int,
                           delay: float, label: str) -> T:
    """Run an async operation, retrying on failure with a fixed delay."""
    attempts = max(attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except MissingDetailURLError:
            raise
        except Exception as exc:
            if attempt >= attempts:
                raise
            logger.warning("%s failed (attempt %s/%s): %s", label, attempt, attempts, exc)
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")


async def collect_details(spider: SpiderService, listings: List[JobListing],
                          config: SpiderConfig) -> List[JobDetails]:
    """Fetch details per listing; one bad posting does not stop the batch."""
    details: List[JobDetails] = []
    for index, listing in enumerate(listings, 1):
        logger.info("Detail %s/%s: %s", index, len(listings), listing.id)
        try:
            result = await run_with_retries(
                lambda: spider.fetch_details(listing),
                attempts=config.retry_attempts,
                delay=config.retry_delay,
                label=f"Details for {listing.id}",
            )
        except Exception as exc:
            logger.error("Skipping job %s: %s", listing.id, exc)
            continue
        details.append(result)
    return details


async def crawl(config: ConfigLoader, *, max_records: Optional[int], with_details: bool) -> dict:
    spider_config = config.build_spider_config()
    async with SpiderService(
        spider_config,
        rules=config.build_extraction_rules(),
        fixtures=config.build_fixture_store(),
    ) as spider:
        listings = await run_with_retries(
            lambda: spider.fetch_listings(max_records),
            attempts=spider_config.retry_attempts,
            delay=spider_config.retry_delay,
            label="Listing scrape",
        )
        details = await collect_details(spider, listings, spider_config) if with_details else []
        write_metrics(spider.get_metrics(), config.get_metrics_template())
        return {
            "listings": [listing.to_json_dict() for listing in listings],
            "details": [detail.to_json_dict() for detail in details],
            "metrics": spider.get_metrics().to_json_dict(),
        }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl NSW Government job listings")
    parser.add_argument("--config", default="config/settings.yaml", help="Path to settings.yaml")
    parser.add_argument("--max-records", type=int, default=None, help="Cap on listings collected")
    parser.add_argument("--details", action="store_true", help="Also fetch each posting's detail page")
    parser.add_argument("--output", default=None, help="Output JSON path (defaults to output.json_file)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return 1

    setup_logging(config)
    display_config(config)
    max_records = args.max_records if args.max_records is not None else config.get_max_records()

    try:
        result = asyncio.run(crawl(config, max_records=max_records, with_details=args.details))
    except KeyboardInterrupt:
        logger.warning("Interrupted; browser released")
        return 130
    except Exception as exc:
        logger.error("Crawl failed: %s", exc)
        return 1

    output_path = config.get_output_path() if args.output is None else args.output
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(result, indent=2), encoding="utf-8")
    logger.info(
        "Wrote %s listings and %s details to %s",
        len(result["listings"]), len(result["details"]), output_path,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
