"""
Spider Service - One crawl run over the listing and detail pages
"""

import logging
from typing import Callable, List, Optional

from playwright.async_api import async_playwright

from .browser_session import BrowserSession, PageAcquirer
from .detail_extractor import DetailExtractor
from .fixtures import FixtureStore
from .listing_crawler import ListingCrawler
from .metrics import MetricsCollector
from .models import JobDetails, JobListing, SpiderConfig, SpiderMetrics
from .rules import ExtractionRules

logger = logging.getLogger(__name__)


class SpiderService:
    """
    Crawls job listings and their detail pages with one shared browser.

    A service instance is one crawl run: metrics start at zero and are only
    reset by building a new service. Always release the browser with
    cleanup(), or use the service as an async context manager.
    """

    def __init__(self, config: SpiderConfig, *, rules: Optional[ExtractionRules] = None,
                 fixtures: Optional[FixtureStore] = None,
                 playwright_factory: Callable = async_playwright):
        self.config = config
        self.rules = rules or ExtractionRules()
        self.fixtures = fixtures
        self.metrics = MetricsCollector()
        self.session = BrowserSession(config, playwright_factory=playwright_factory)
        self.pages = PageAcquirer(self.session, config)
        self.listings = ListingCrawler(config, self.pages, self.metrics, self.rules, fixtures)
        self.details = DetailExtractor(config, self.pages, self.metrics, self.rules, fixtures)
        logger.info('Spider "nsw gov jobs" ready for %s', config.base_url)

    async def fetch_listings(self, max_records: Optional[int] = None) -> List[JobListing]:
        return await self.listings.fetch_listings(max_records)

    async def fetch_details(self, listing: JobListing) -> JobDetails:
        return await self.details.fetch_details(listing)

    def get_metrics(self) -> SpiderMetrics:
        return self.metrics.snapshot()

    async def cleanup(self) -> None:
        await self.session.shutdown()

    async def __aenter__(self) -> "SpiderService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()
