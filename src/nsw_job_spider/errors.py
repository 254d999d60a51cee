"""
Spider errors
Raised by the browser session, listing crawler and detail extractor
"""


class SpiderError(Exception):
    """Base class for crawl failures."""


class NotInitializedError(SpiderError):
    """Raised when a page is requested before the browser has launched."""


class NavigationTimeoutError(SpiderError):
    """Raised when a page load exceeds its timeout."""


class NavigationFailureError(SpiderError):
    """Raised when a page load fails for any reason other than a timeout."""


class NoResultsFoundError(SpiderError):
    """Raised when the listing page shows no result cards."""


class MissingDetailURLError(SpiderError):
    """Raised when a listing carries no detail page URL."""


class ExtractionFailureError(SpiderError):
    """Raised when a loaded detail page cannot be parsed."""
