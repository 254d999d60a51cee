"""
Data models for the job spider
Defines structure for listings, details, config and run metrics
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .errors import MissingDetailURLError

DEFAULT_BASE_URL = (
    "https://iworkfor.nsw.gov.au/jobs/all-keywords/all-agencies/"
    "all-organisations-entities/all-categories/all-locations/all-worktypes"
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
NOT_SPECIFIED = "Not specified"

DocumentType = Literal["pdf", "doc", "docx", "unknown"]


class _CamelModel(BaseModel):
    """Snake-case attributes, camelCase JSON (matches captured fixtures)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SpiderConfig(BaseModel):
    """Immutable settings for one crawler instance"""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    # Reserved for callers running several crawlers side by side
    max_concurrency: int = Field(default=2, ge=1)
    retry_attempts: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    user_agent: str = DEFAULT_USER_AGENT
    page_size: Optional[int] = Field(default=None, gt=0)

    # Browser
    headless: bool = True
    use_stealth: bool = False
    viewport_width: int = Field(default=1920, gt=0)
    viewport_height: int = Field(default=1080, gt=0)
    launch_timeout_ms: int = Field(default=60000, gt=0)
    navigation_timeout_ms: int = Field(default=60000, gt=0)
    page_timeout_ms: int = Field(default=30000, gt=0)
    card_wait_timeout_ms: int = Field(default=10000, gt=0)
    control_timeout_ms: int = Field(default=5000, gt=0)

    # Pacing between result pages
    rate_limit_delay: float = Field(default=2.0, ge=0)
    rate_limit_jitter: float = Field(default=1.0, ge=0)
    settle_delay: float = Field(default=2.0, ge=0)
    max_pages: Optional[int] = Field(default=None, gt=0)


class JobListing(_CamelModel):
    """Summary of a posting as shown on a results card"""

    id: str = ""
    title: str = ""
    agency: str = ""
    location: str = ""
    salary: str = NOT_SPECIFIED
    posted_date: str = ""
    closing_date: str = ""
    url: str = ""
    job_reference: str = ""

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_keys(cls, data: Any) -> Any:
        # Older captures used jobId/jobUrl
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, canonical in (("jobId", "id"), ("jobUrl", "url")):
            legacy_value = data.pop(legacy, None)
            if legacy_value and not data.get(canonical):
                data[canonical] = legacy_value
        return data

    @property
    def job_id(self) -> str:
        return self.id

    @property
    def job_url(self) -> str:
        return self.url

    def detail_url(self) -> str:
        """Return the detail page URL or raise if the listing has none."""
        url = (self.url or self.job_url or "").strip()
        if not url:
            raise MissingDetailURLError(
                f"Listing {self.id or '<no id>'} ({self.title or '<no title>'}) has no detail URL"
            )
        return url

    def __str__(self) -> str:
        return f"{self.title} at {self.agency} ({self.location})"


class JobDocument(_CamelModel):
    """A document attached to a posting"""

    url: str
    title: Optional[str] = None
    type: DocumentType = "unknown"


class ContactDetails(_CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class JobDetails(JobListing):
    """Full posting, merged over the listing it came from"""

    job_type: str = ""
    description: str = ""
    responsibilities: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    about_us: str = ""
    contact_details: ContactDetails = Field(default_factory=ContactDetails)
    documents: List[JobDocument] = Field(default_factory=list)


class PageLink(_CamelModel):
    url: str
    text: str = ""


class JobDetailsRaw(JobDetails):
    """Details plus every link on the page, kept for debugging only"""

    links: List[PageLink] = Field(default_factory=list)

    def to_details(self) -> JobDetails:
        return JobDetails.model_validate(self.model_dump(exclude={"links"}))


class ScrapeError(_CamelModel):
    url: str
    error: str
    timestamp: datetime = Field(default_factory=datetime.now)


class SpiderMetrics(_CamelModel):
    """Point-in-time copy of a crawl run's counters"""

    total_jobs: int = 0
    successful_scrapes: int = 0
    failed_scrapes: int = 0
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    errors: List[ScrapeError] = Field(default_factory=list)
