"""NSW Government job listings spider."""

from .browser_session import BrowserSession, PageAcquirer
from .errors import (
    ExtractionFailureError,
    MissingDetailURLError,
    NavigationFailureError,
    NavigationTimeoutError,
    NoResultsFoundError,
    NotInitializedError,
    SpiderError,
)
from .fixtures import FixtureStore
from .metrics import MetricsCollector
from .models import (
    ContactDetails,
    JobDetails,
    JobDetailsRaw,
    JobDocument,
    JobListing,
    PageLink,
    ScrapeError,
    SpiderConfig,
    SpiderMetrics,
)
from .rules import ExtractionRules
from .spider import SpiderService

__version__ = "0.1.0"
