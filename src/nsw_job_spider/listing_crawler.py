"""
Listing Crawler - Walks the paginated search results
Handles page size, sort order, result cards and pagination
"""

import asyncio
import logging
import random
import re
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import Tag
from playwright.async_api import (
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from .browser_session import PageAcquirer, close_quietly, goto
from .dom import element_text, first_element, first_text, parse_html
from .errors import NavigationTimeoutError, NoResultsFoundError
from .fixtures import FixtureStore
from .metrics import MetricsCollector
from .models import NOT_SPECIFIED, JobListing, SpiderConfig
from .rules import ExtractionRules

logger = logging.getLogger(__name__)


def _split_dates(text: str, rules: ExtractionRules) -> tuple[str, str]:
    if not text:
        return "", ""
    parts = [part.strip() for part in re.split(r"\s+-\s+", text, maxsplit=1)]
    posted = re.sub(rules.posted_date_prefix, "", parts[0], flags=re.IGNORECASE).strip()
    closing = ""
    if len(parts) > 1:
        closing = re.sub(rules.closing_date_prefix, "", parts[1], flags=re.IGNORECASE).strip()
    return posted, closing


def _link_title(link: Tag) -> str:
    return element_text(link.select_one("span")) or element_text(link)


def parse_listing_card(card: Tag, page_url: str, rules: ExtractionRules) -> Optional[JobListing]:
    """Build a listing from one result card; None when title or id is missing."""
    # Icon-only links (favourite, share) carry no text and are skipped
    title_elem = first_element(card, rules.title_link_selectors, accept=lambda link: bool(_link_title(link)))
    title = ""
    href = ""
    if title_elem is not None:
        title = _link_title(title_elem)
        href = (title_elem.get("href") or "").strip()

    reference = first_text(card, rules.reference_selectors)
    if not title or not reference:
        return None

    posted_date, closing_date = _split_dates(first_text(card, rules.date_selectors), rules)

    return JobListing(
        id=reference,
        title=title,
        agency=first_text(card, rules.agency_selectors) or rules.default_agency,
        location=first_text(card, rules.location_selectors) or rules.default_location,
        salary=first_text(card, rules.salary_selectors) or NOT_SPECIFIED,
        posted_date=posted_date,
        closing_date=closing_date,
        url=urljoin(page_url, href) if href else "",
        job_reference=reference,
    )


def parse_listing_page(html: str, page_url: str, rules: ExtractionRules) -> List[JobListing]:
    soup = parse_html(html)
    listings = []
    for card in soup.select(rules.card_selector):
        listing = parse_listing_card(card, page_url, rules)
        if listing is not None:
            listings.append(listing)
        else:
            logger.debug("Skipping result card without title or reference")
    return listings


class ListingCrawler:
    """Collects job listings from the search results pages"""

    def __init__(self, config: SpiderConfig, pages: PageAcquirer, metrics: MetricsCollector,
                 rules: Optional[ExtractionRules] = None, fixtures: Optional[FixtureStore] = None):
        self.config = config
        self.pages = pages
        self.metrics = metrics
        self.rules = rules or ExtractionRules()
        self.fixtures = fixtures

    async def _rate_limit_delay(self) -> None:
        """Polite pause between result pages"""
        delay = self.config.rate_limit_delay + random.uniform(0, self.config.rate_limit_jitter)
        await asyncio.sleep(delay)

    async def _open_search(self, page: Page) -> None:
        logger.info("Loading initial URL: %s", self.config.base_url)
        try:
            await goto(page, self.config.base_url, timeout_ms=self.config.navigation_timeout_ms)
        except NavigationTimeoutError as exc:
            logger.warning("%s; trying to proceed anyway", exc)
        logger.info("Current URL after navigation: %s", page.url)

    async def _apply_page_size(self, page: Page) -> None:
        size = self.config.page_size or self.rules.max_page_size
        selector = self.rules.page_size_selector
        try:
            await page.wait_for_selector(selector, timeout=self.config.control_timeout_ms)
            await page.select_option(selector, str(size))
            await asyncio.sleep(self.config.settle_delay)
            logger.info("Set page size to %s", size)
        except PlaywrightError as exc:
            logger.warning("Page size selector not found or could not be set: %s", exc)
            logger.info("Continuing with default page size")

    async def _apply_sort(self, page: Page) -> None:
        try:
            for selector in self.rules.sort_select_selectors:
                if await page.query_selector(selector):
                    await page.select_option(selector, self.rules.sort_select_value)
                    await self._settle(page)
                    logger.info("Sorted results by date using %s", selector)
                    return
            for selector in self.rules.sort_button_selectors:
                element = await page.query_selector(selector)
                if element:
                    await element.click()
                    await self._settle(page)
                    logger.info("Sorted results by date using %s", selector)
                    return
        except PlaywrightError as exc:
            logger.warning("Sort control could not be used: %s", exc)
            return
        logger.warning("No sort control found; keeping default ordering")

    async def _read_reported_total(self, page: Page) -> Optional[int]:
        """Job count shown by the site, logged for comparison with what was collected."""
        try:
            element = await page.query_selector(self.rules.result_count_selector)
            text = await element.text_content() if element else None
        except PlaywrightError as exc:
            logger.warning("Could not read job count: %s", exc)
            return None
        match = re.search(r"\d[\d,]*", text or "")
        if not match:
            logger.info("Site did not report a job count")
            return None
        total = int(match.group(0).replace(",", ""))
        logger.info("Site reports %s jobs", total)
        return total

    async def _settle(self, page: Page) -> None:
        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.control_timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Page did not go idle after changing results; continuing")

    async def _wait_for_cards(self, page: Page, page_number: int) -> None:
        selector = self.rules.card_selector
        try:
            await page.wait_for_selector(
                selector, timeout=self.config.card_wait_timeout_ms, state="visible"
            )
        except PlaywrightTimeoutError:
            logger.warning("Timeout waiting for job cards, checking if any are present")
            cards = await page.query_selector_all(selector)
            if not cards:
                raise NoResultsFoundError(f"No job cards found on page {page_number}")
            logger.info("Found %s job cards despite timeout", len(cards))

    async def _find_next_control(self, page: Page):
        """Return the enabled next-page control, or None on the last page."""
        for selector in self.rules.next_page_selectors:
            element = await page.query_selector(selector)
            if not element:
                continue
            aria_disabled = (await element.get_attribute("aria-disabled") or "").lower()
            disabled_attr = await element.get_attribute("disabled")
            classes = (await element.get_attribute("class") or "").split()
            if aria_disabled in ("true", "disabled") or disabled_attr is not None or "disabled" in classes:
                return None
            return element
        return None

    async def _go_to_next_page(self, page: Page, page_number: int) -> bool:
        control = await self._find_next_control(page)
        if control is None:
            logger.info("No enabled next page control; reached last page")
            return False

        logger.info("Moving to page %s", page_number + 1)
        try:
            async with page.expect_navigation(
                wait_until="networkidle", timeout=self.config.navigation_timeout_ms
            ):
                await control.click()
        except PlaywrightTimeoutError:
            logger.warning("Navigation to page %s timed out; continuing", page_number + 1)
        await self._rate_limit_delay()
        return True

    async def _crawl(self, page: Page, max_records: Optional[int]) -> List[JobListing]:
        await self._open_search(page)
        await self._apply_page_size(page)
        await self._apply_sort(page)
        reported_total = await self._read_reported_total(page)

        listings: List[JobListing] = []
        last_first_url: Optional[str] = None
        page_number = 1
        while True:
            await self._wait_for_cards(page, page_number)
            batch = parse_listing_page(await page.content(), page.url, self.rules)
            logger.info(
                "Extracted %s listings from page %s (total %s)",
                len(batch), page_number, len(listings) + len(batch),
            )

            first_url = batch[0].url if batch else None
            if first_url and first_url == last_first_url:
                logger.info("First result repeated on page %s; stopping pagination", page_number)
                break
            last_first_url = first_url or last_first_url

            listings.extend(batch)
            if self.fixtures is not None:
                self._save_listings(batch, page=page_number)

            if max_records and len(listings) >= max_records:
                listings = listings[:max_records]
                logger.info("Reached maximum of %s listings; stopping pagination", max_records)
                break
            if self.config.max_pages and page_number >= self.config.max_pages:
                logger.info("Reached page limit of %s", self.config.max_pages)
                break
            if not await self._go_to_next_page(page, page_number):
                break
            page_number += 1

        if reported_total is not None:
            logger.info("Collected %s of %s reported jobs", len(listings), reported_total)
        return listings

    def _save_listings(self, listings: List[JobListing], page: Optional[int] = None) -> None:
        try:
            self.fixtures.save_listings(listings, page=page)
        except Exception as exc:
            logger.warning("Error saving job listings fixture: %s", exc)

    async def fetch_listings(self, max_records: Optional[int] = None) -> List[JobListing]:
        """Scrape listing summaries, following pagination until done or capped."""
        if max_records is not None and max_records < 0:
            raise ValueError(f"max_records must be non-negative, got {max_records}")

        self.metrics.mark_started()
        logger.info("Starting job listings scrape")

        if self.fixtures is not None:
            cached = self.fixtures.load_listings()
            if cached is not None:
                logger.info("Loaded %s job listings from fixtures", len(cached))
                self.metrics.set_total_jobs(len(cached))
                self.metrics.record_success()
                return cached

        page = None
        try:
            page = await self.pages.acquire()
            listings = await self._crawl(page, max_records)
        except Exception as exc:
            self.metrics.record_failure(self.config.base_url, exc)
            logger.error("Error scraping job listings: %s", exc)
            raise
        finally:
            await close_quietly(page)

        suffix = f" (limited by max_records={max_records})" if max_records else ""
        logger.info("Found %s job listings%s", len(listings), suffix)
        self.metrics.set_total_jobs(len(listings))
        self.metrics.record_success()

        if self.fixtures is not None:
            self._save_listings(listings)
        return listings
