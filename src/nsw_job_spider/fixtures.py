"""
Fixture Store - Captures and replays listings and detail pages on disk
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from .models import JobDetails, JobDetailsRaw, JobListing

logger = logging.getLogger(__name__)

LISTINGS_FILE = "job_listings.json"
DEFAULT_FIXTURE_DIR = Path("test/data/jobs")


def _safe_name(job_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", (job_id or "").strip()).strip("._")


class FixtureStore:
    """
    Reads and writes captured crawl payloads.

    Layout under root:
      job_listings.json               listings from the last capture
      job_listings_page_<n>.json      per-page snapshots
      <job id>/raw.html               detail page HTML
      <job id>/details.json           extracted details (with all links)
      <job id>/listing.json           listing used to fetch the details
    """

    def __init__(self, root: Union[Path, str] = DEFAULT_FIXTURE_DIR, *,
                 replay: bool = True, save: bool = False) -> None:
        self.root = Path(root)
        self.replay = replay
        self.save = save

    def _job_dir(self, job_id: str) -> Optional[Path]:
        name = _safe_name(job_id)
        if not name:
            return None
        return self.root / name

    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read fixture %s: %s", path, exc)
            return None

    def _write_json(self, path: Path, payload) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def load_listings(self) -> Optional[List[JobListing]]:
        if not self.replay:
            return None
        path = self.root / LISTINGS_FILE
        data = self._read_json(path)
        if data is None:
            return None
        if not isinstance(data, list):
            logger.warning("Ignoring listings fixture %s: expected a list", path)
            return None
        try:
            return [JobListing.model_validate(item) for item in data]
        except ValidationError as exc:
            logger.warning("Ignoring invalid listings fixture %s: %s", path, exc)
            return None

    def save_listings(self, listings: List[JobListing], page: Optional[int] = None) -> None:
        if not self.save:
            return
        filename = LISTINGS_FILE if page is None else f"job_listings_page_{page}.json"
        self._write_json(self.root / filename, [listing.to_json_dict() for listing in listings])

    def load_details(self, job_id: str) -> Optional[JobDetails]:
        if not self.replay:
            return None
        job_dir = self._job_dir(job_id)
        if job_dir is None:
            return None
        path = job_dir / "details.json"
        data = self._read_json(path)
        if data is None:
            return None
        try:
            return JobDetailsRaw.model_validate(data).to_details()
        except ValidationError as exc:
            logger.warning("Ignoring invalid details fixture %s: %s", path, exc)
            return None

    def save_details(self, listing: JobListing, raw_html: str, details: JobDetails) -> None:
        if not self.save:
            return
        job_dir = self._job_dir(listing.id)
        if job_dir is None:
            raise ValueError(f"Cannot save details for listing without id: {listing.title!r}")
        job_dir.mkdir(parents=True, exist_ok=True)
        (job_dir / "raw.html").write_text(raw_html, encoding="utf-8")
        self._write_json(job_dir / "details.json", details.to_json_dict())
        self._write_json(job_dir / "listing.json", listing.to_json_dict())
