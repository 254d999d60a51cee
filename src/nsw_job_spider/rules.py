"""
Extraction rules for the NSW jobs site
Selector chains and keyword tables, overridable from settings.yaml
"""

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

SECTION_CATEGORIES = ("requirements", "responsibilities", "about_us", "notes")


def _chain(*selectors: str):
    return Field(default_factory=lambda: list(selectors))


class ExtractionRules(BaseModel):
    """
    Selectors and keywords used to read listing cards and detail pages.

    Every *_selectors field is a prioritized chain: selectors are tried in
    order and the first non-empty match wins, so markup drift on the site
    degrades one field instead of the whole run.
    """

    # === Listing page ===
    card_selector: str = ".job-card, .search-result-card"
    title_link_selectors: List[str] = _chain(
        ".card-header a",
        "[class*='title'] a",
        "h2 a",
        "a",
    )
    date_selectors: List[str] = _chain(".card-body p", "[class*='date']")
    agency_selectors: List[str] = _chain(
        ".job-search-result-right h2",
        "[class*='department']",
        "[class*='agency']",
    )
    location_selectors: List[str] = _chain(
        ".nsw-col p:nth-child(3) span",
        "[class*='location']",
    )
    salary_selectors: List[str] = _chain(
        ".salary",
        "[class*='remuneration']",
        "[class*='salary']",
    )
    reference_selectors: List[str] = _chain(
        ".job-search-result-ref-no",
        "[class*='reference']",
        "[class*='job-id']",
    )
    default_agency: str = "NSW Government"
    default_location: str = "NSW"
    posted_date_prefix: str = r"^(?:Job posting:|Posted:)"
    closing_date_prefix: str = r"^(?:Closing date:|Closes:)"

    result_count_selector: str = ".search-results-count, [class*='result-count'], .total-count"

    # === Listing page controls ===
    page_size_selector: str = "select[name='pageSize']"
    max_page_size: int = Field(default=100, gt=0)
    sort_select_selectors: List[str] = _chain(
        "select[name='sortBy']",
        "select[name='sortby']",
    )
    sort_select_value: str = "DateDesc"
    sort_button_selectors: List[str] = _chain(
        "button[aria-label*='Sort by date']",
        "a[data-sort='date']",
    )
    next_page_selectors: List[str] = _chain(
        "button[aria-label='Pagination - Go to Next']",
        "a[aria-label='Next']",
        "a[aria-label='Next page']",
        "a[rel='next']",
    )

    # === Detail page ===
    summary_row_selector: str = "table.job-summary tr"
    summary_labels: Dict[str, str] = Field(default_factory=lambda: {
        "agency": "organisation",
        "job_type": "work type",
        "location": "job location",
        "job_reference": "reference number",
    })
    description_selectors: List[str] = _chain(
        ".job-detail-des",
        ".wrap-content-jobdetail",
        ".wrap-jobdetail",
        ".job-details",
        "[class*='job-details']",
        "main article",
    )
    # Order matters: the first category whose keyword appears wins
    section_keywords: Dict[str, List[str]] = Field(default_factory=lambda: {
        "requirements": ["key selection criteria", "essential"],
        "responsibilities": ["summary role", "role description", "responsibilities"],
        "about_us": ["about us", "about karitane", "about the organisation"],
        "notes": ["note", "additional information"],
    })
    keep_unclassified_sections: bool = False

    # === Documents ===
    primary_document_keywords: List[str] = Field(default_factory=lambda: [
        "role description",
        "position description",
        "job description",
        "duty statement",
        "statement of duties",
    ])
    secondary_document_keywords: List[str] = Field(default_factory=lambda: [
        "information pack",
        "candidate pack",
        "application pack",
    ])
    role_context_terms: List[str] = Field(default_factory=lambda: [
        "role",
        "position",
        "job",
        "candidate",
        "firefighter",
        "officer",
    ])

    @field_validator("section_keywords")
    @classmethod
    def _known_categories(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        unknown = set(value) - set(SECTION_CATEGORIES)
        if unknown:
            raise ValueError(
                f"Unknown section categories: {', '.join(sorted(unknown))} "
                f"(expected one of {', '.join(SECTION_CATEGORIES)})"
            )
        return value

    @field_validator("summary_labels")
    @classmethod
    def _known_summary_fields(cls, value: Dict[str, str]) -> Dict[str, str]:
        allowed = {"agency", "job_type", "location", "job_reference"}
        unknown = set(value) - allowed
        if unknown:
            raise ValueError(f"Unknown summary fields: {', '.join(sorted(unknown))}")
        return value
