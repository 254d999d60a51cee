from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from .models import ScrapeError, SpiderMetrics


@dataclass
class MetricsCollector:
    """
    Counters for one crawl run.

    Owned by a single crawler instance; readers get copies via snapshot().
    Exporting a snapshot is left to the caller.
    """

    total_jobs: int = 0
    successful_scrapes: int = 0
    failed_scrapes: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    errors: List[ScrapeError] = field(default_factory=list)

    def mark_started(self) -> None:
        self.start_time = datetime.now()

    def set_total_jobs(self, count: int) -> None:
        self.total_jobs = int(count)

    def record_success(self) -> None:
        self.successful_scrapes += 1

    def record_failure(self, url: str, error: BaseException) -> None:
        self.failed_scrapes += 1
        message = str(error) or error.__class__.__name__
        self.errors.append(ScrapeError(url=url or "", error=message, timestamp=datetime.now()))

    def snapshot(self) -> SpiderMetrics:
        """Copy of the counters with end_time set to now."""
        return SpiderMetrics(
            total_jobs=self.total_jobs,
            successful_scrapes=self.successful_scrapes,
            failed_scrapes=self.failed_scrapes,
            start_time=self.start_time,
            end_time=datetime.now(),
            errors=[error.model_copy() for error in self.errors],
        )
