"""
Fake Playwright objects for driving the spider without a browser.

FakePage serves canned HTML and answers selector queries with BeautifulSoup,
so the crawler's real selector chains run against the test markup.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional

import pytest
from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from nsw_job_spider.models import SpiderConfig

BASE_URL = "https://jobs.example.test/search"


class FakeElement:
    def __init__(self, page: "FakePage", tag):
        self.page = page
        self.tag = tag

    async def get_attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    async def text_content(self) -> str:
        return self.tag.get_text()

    async def click(self) -> None:
        self.page.clicks.append(self.tag.get("aria-label") or self.tag.name)
        self.page.advance()


class FakePage:
    """A tab whose content is a list of HTML documents; clicking moves to the next one."""

    def __init__(self, documents: List[str], *, goto_error: Optional[Exception] = None,
                 slow_selectors: Iterable[str] = ()):
        self.documents = list(documents) or [""]
        # Selectors whose wait always times out, even when the element exists
        self.slow_selectors = set(slow_selectors)
        self.index = 0
        self.goto_error = goto_error
        self.gotos: List[str] = []
        self.clicks: List[str] = []
        self.selected: List[tuple] = []
        self.default_timeout = None
        self.closed = False
        self._url = "about:blank"

    @property
    def url(self) -> str:
        if self.index:
            return f"{self._url}?page={self.index + 1}"
        return self._url

    def _soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.documents[self.index], "html.parser")

    def advance(self) -> None:
        if self.index < len(self.documents) - 1:
            self.index += 1

    def set_default_timeout(self, timeout) -> None:
        self.default_timeout = timeout

    async def goto(self, url, wait_until=None, timeout=None):
        self.gotos.append(url)
        self._url = url
        if self.goto_error is not None:
            raise self.goto_error

    async def content(self) -> str:
        return self.documents[self.index]

    async def wait_for_selector(self, selector, timeout=None, state=None):
        tag = self._soup().select_one(selector)
        if tag is None or selector in self.slow_selectors:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return FakeElement(self, tag)

    async def query_selector(self, selector):
        tag = self._soup().select_one(selector)
        return FakeElement(self, tag) if tag is not None else None

    async def query_selector_all(self, selector):
        return [FakeElement(self, tag) for tag in self._soup().select(selector)]

    async def select_option(self, selector, value):
        self.selected.append((selector, value))
        return [value]

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    @asynccontextmanager
    async def expect_navigation(self, **kwargs):
        yield None

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.queued: List[FakePage] = []
        self.opened: List[FakePage] = []
        self.page_options: List[dict] = []
        self.closed = False

    async def new_page(self, **options) -> FakePage:
        self.page_options.append(options)
        page = self.queued.pop(0) if self.queued else FakePage([""])
        self.opened.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeChromium:
    def __init__(self, browser: FakeBrowser):
        self.browser = browser
        self.launches = 0
        self.launch_error: Optional[Exception] = None

    async def launch(self, **kwargs) -> FakeBrowser:
        self.launches += 1
        # Yield so concurrent callers overlap the launch
        await asyncio.sleep(0)
        if self.launch_error is not None:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    """Stands in for both async_playwright() and the started driver."""

    def __init__(self):
        self.browser = FakeBrowser()
        self.chromium = FakeChromium(self.browser)
        self.stop_calls = 0

    def __call__(self) -> "FakePlaywright":
        return self

    async def start(self) -> "FakePlaywright":
        return self

    async def stop(self) -> None:
        self.stop_calls += 1

    def queue(self, *pages: FakePage) -> None:
        self.browser.queued.extend(pages)


def listing_card(ref: str, title: str, *, agency="NSW Health", location="Sydney",
                 salary="$90,000 - $100,000") -> str:
    return f"""
    <div class="job-card">
      <div class="card-header"><a href="/job/{ref}"><span>{title}</span></a></div>
      <div class="card-body"><p>Job posting: 01 Oct 2026 - Closing date: 15 Oct 2026</p></div>
      <div class="job-search-result-right"><h2>{agency}</h2></div>
      <p class="location">{location}</p>
      <span class="salary">{salary}</span>
      <span class="job-search-result-ref-no">{ref}</span>
    </div>
    """


def listing_document(cards: List[str], *, last: bool, disabled_attr: str = " disabled",
                     extra: str = "") -> str:
    disabled = disabled_attr if last else ""
    return (
        "<html><body>" + extra + "<div class='results'>"
        + "".join(cards)
        + f"</div><button aria-label='Pagination - Go to Next'{disabled}>Next</button>"
        + "</body></html>"
    )


DETAIL_HTML = """
<html><body>
<table class="job-summary">
  <tr><th>Organisation / Entity</th><td>Ministry of Health</td></tr>
  <tr><th>Work Type</th><td>Full-Time</td></tr>
  <tr><th>Job Location</th><td>Parramatta</td></tr>
  <tr><th>Reference Number</th><td>REQ-9999</td></tr>
</table>
<div class="job-detail-des">
  <p>Responsibilities include managing a team of nurses.</p>
  <p>Key selection criteria 1. Registered nurse qualification 2. Leadership experience</p>
  <p>About us: We are the largest health employer in NSW.</p>
  <p>Note: a working with children check is required.</p>
  <p>Contact Jane Smith, phone 02 9876 5432, email jane.smith@health.nsw.gov.au</p>
</div>
<p><a href="/docs/rd.pdf">Role Description</a></p>
<p><a href="/docs/info-pack.pdf">Information Pack</a></p>
<p><a href="/docs/firefighter.docx">Candidate Information Pack for Firefighter</a></p>
<p><a href="mailto:jane.smith@health.nsw.gov.au">Email Jane</a></p>
</body></html>
"""


@pytest.fixture
def spider_config() -> SpiderConfig:
    return SpiderConfig(
        base_url=BASE_URL,
        rate_limit_delay=0,
        rate_limit_jitter=0,
        settle_delay=0,
    )


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright()


@pytest.fixture
def two_page_results() -> List[str]:
    return [
        listing_document([listing_card("REQ1001", "Registered Nurse"),
                          listing_card("REQ1002", "Policy Officer")], last=False),
        listing_document([listing_card("REQ1003", "Firefighter"),
                          listing_card("REQ1004", "Librarian")], last=True),
    ]
