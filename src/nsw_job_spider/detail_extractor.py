"""
Detail Extractor - Reads one posting's detail page
Pulls the summary table, description sections, contacts and documents
"""

import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .browser_session import PageAcquirer, close_quietly, goto
from .dom import block_text, element_text, first_element, parse_html
from .errors import ExtractionFailureError
from .fixtures import FixtureStore
from .metrics import MetricsCollector
from .models import (
    ContactDetails,
    JobDetails,
    JobDetailsRaw,
    JobDocument,
    JobListing,
    PageLink,
    SpiderConfig,
)
from .rules import ExtractionRules

logger = logging.getLogger(__name__)

CONTACT_SECTION_RE = re.compile(
    r"\b(?:enquiries|contact|email|phone|tel)[\s\S]*?(?=\n\n|\n?$)", re.IGNORECASE
)
EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.\w+")
PHONE_RE = re.compile(r"\b(?:phone|tel|mob)[a-z]*[.: ]*(\+?\(?\d[\d ()-]{5,}\d)", re.IGNORECASE)
NAME_RE = re.compile(r"\b(?i:contact|attention)[.: ]*([A-Z][A-Za-z'-]+(?:[ ]+[A-Z][A-Za-z'-]+)*)")
SKIPPED_HREF_PREFIXES = ("mailto:", "tel:", "javascript:", "#")


def infer_document_type(url: str) -> str:
    """Document type from the URL path extension."""
    path = urlparse(url).path.lower()
    for extension in ("pdf", "docx", "doc"):
        if path.endswith(f".{extension}"):
            return extension
    return "unknown"


def is_relevant_document(text: str, rules: ExtractionRules) -> bool:
    """
    Primary keywords always qualify. Secondary keywords ("information pack")
    only qualify alongside a role-context term, since generic packs are noise.
    """
    lowered = (text or "").lower()
    if any(keyword in lowered for keyword in rules.primary_document_keywords):
        return True
    if any(keyword in lowered for keyword in rules.secondary_document_keywords):
        return any(term in lowered for term in rules.role_context_terms)
    return False


def extract_links(soup: BeautifulSoup, page_url: str) -> List[Tuple[PageLink, str]]:
    """Every navigable anchor as (link, parent text)."""
    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
            continue
        link = PageLink(url=urljoin(page_url, href), text=element_text(anchor))
        links.append((link, element_text(anchor.parent)))
    return links


def classify_documents(links: List[Tuple[PageLink, str]], rules: ExtractionRules) -> List[JobDocument]:
    documents: List[JobDocument] = []
    seen = set()
    for link, parent_text in links:
        if link.url in seen:
            continue
        if is_relevant_document(link.text, rules) or is_relevant_document(parent_text, rules):
            seen.add(link.url)
            documents.append(JobDocument(
                url=link.url,
                title=link.text or None,
                type=infer_document_type(link.url),
            ))
    return documents


def read_summary_table(soup: BeautifulSoup, rules: ExtractionRules) -> Dict[str, str]:
    rows = soup.select(rules.summary_row_selector)
    values = {}
    for field_name, label in rules.summary_labels.items():
        label = label.lower()
        values[field_name] = ""
        for row in rows:
            cells = row.find_all(["td", "th"])
            if not cells:
                continue
            if label in element_text(cells[0]).lower():
                values[field_name] = element_text(cells[-1])
                break
    return values


def classify_sections(description: str, rules: ExtractionRules) -> Dict[str, List[str]]:
    """
    Sort blank-line separated sections into categories by keyword.

    Unmatched sections are dropped unless keep_unclassified_sections is set,
    in which case they are kept as notes.
    """
    buckets: Dict[str, List[str]] = {
        "requirements": [], "responsibilities": [], "about_us": [], "notes": [],
    }
    sections = [s.strip() for s in re.split(r"\n\s*\n", description or "") if s.strip()]
    for section in sections:
        lowered = section.lower()
        category = next(
            (name for name, keywords in rules.section_keywords.items()
             if any(keyword in lowered for keyword in keywords)),
            None,
        )
        if category == "requirements":
            items = [item.strip() for item in re.split(r"\d+\.", section)]
            buckets["requirements"].extend(item for item in items if item)
        elif category is not None:
            buckets[category].append(section)
        elif rules.keep_unclassified_sections:
            buckets["notes"].append(section)
    return buckets


def extract_contact_details(description: str) -> ContactDetails:
    match = CONTACT_SECTION_RE.search(description or "")
    if not match:
        return ContactDetails()
    section = match.group(0)

    email = EMAIL_RE.search(section)
    phone = PHONE_RE.search(section)
    name = NAME_RE.search(section)
    return ContactDetails(
        name=name.group(1).strip() if name else None,
        phone=phone.group(1).strip() if phone else None,
        email=email.group(0) if email else None,
    )


def parse_detail_page(html: str, page_url: str, listing: JobListing,
                      rules: ExtractionRules) -> JobDetailsRaw:
    """Extract details from a detail page and merge them over the listing."""
    soup = parse_html(html)
    summary = read_summary_table(soup, rules)
    # Empty placeholders earlier in the chain are skipped
    description = block_text(
        first_element(soup, rules.description_selectors, accept=lambda element: bool(block_text(element)))
    )
    sections = classify_sections(description, rules)
    links = extract_links(soup, page_url)

    merged = listing.model_dump()
    for field_name in ("agency", "location", "job_reference"):
        if summary.get(field_name):
            merged[field_name] = summary[field_name]

    return JobDetailsRaw(
        **merged,
        job_type=summary.get("job_type", ""),
        description=description,
        responsibilities=sections["responsibilities"],
        requirements=sections["requirements"],
        notes=sections["notes"],
        about_us="\n\n".join(sections["about_us"]),
        contact_details=extract_contact_details(description),
        documents=classify_documents(links, rules),
        links=[link for link, _ in links],
    )


class DetailExtractor:
    """Fetches and parses posting detail pages"""

    def __init__(self, config: SpiderConfig, pages: PageAcquirer, metrics: MetricsCollector,
                 rules: Optional[ExtractionRules] = None, fixtures: Optional[FixtureStore] = None):
        self.config = config
        self.pages = pages
        self.metrics = metrics
        self.rules = rules or ExtractionRules()
        self.fixtures = fixtures

    def _save_fixture(self, listing: JobListing, html: str, details: JobDetailsRaw) -> None:
        try:
            self.fixtures.save_details(listing, html, details)
        except Exception as exc:
            logger.warning("Error saving job details fixture for %s: %s", listing.id, exc)

    def _log_summary(self, details: JobDetails) -> None:
        if details.documents:
            logger.info(
                "Found %s attached documents: %s",
                len(details.documents),
                ", ".join(f"{doc.title or doc.url} ({doc.type})" for doc in details.documents),
            )
        else:
            logger.info("No attached documents found")
        logger.info(
            "Job content summary for %s: description=%s chars, responsibilities=%s, "
            "requirements=%s, notes=%s, about_us=%s chars",
            details.id,
            len(details.description),
            len(details.responsibilities),
            len(details.requirements),
            len(details.notes),
            len(details.about_us),
        )

    async def fetch_details(self, listing: JobListing) -> JobDetails:
        url = listing.detail_url()
        logger.info("Scraping details for job: %s (%s)", listing.title, url)

        if self.fixtures is not None:
            cached = self.fixtures.load_details(listing.id)
            if cached is not None:
                logger.info("Loaded job details from fixtures for job %s", listing.id)
                self.metrics.record_success()
                return cached

        page = None
        try:
            page = await self.pages.acquire()
            await goto(page, url, timeout_ms=self.config.navigation_timeout_ms)
            html = await page.content()
            try:
                raw = parse_detail_page(html, page.url or url, listing, self.rules)
            except Exception as exc:
                raise ExtractionFailureError(f"Could not parse detail page {url}: {exc}") from exc
            if self.fixtures is not None:
                self._save_fixture(listing, html, raw)
        except Exception as exc:
            self.metrics.record_failure(url, exc)
            logger.error("Error scraping job details for %s: %s", listing.title, exc)
            raise
        finally:
            await close_quietly(page)

        details = raw.to_details()
        self._log_summary(details)
        self.metrics.record_success()
        return details
