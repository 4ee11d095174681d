"""High level orchestration for running the tour scraper pipeline."""
from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import time
from typing import Dict, List, Sequence

import requests

from .config import ScraperConfig
from .discovery import discover_tour_urls
from .extractor import extract_tour
from .models import CleanedTour, ExtractedTour, ScrapeSession
from .processor import clean_tours
from .reporter import build_report

LOGGER = logging.getLogger(__name__)


@dataclass
class ScrapeResult:
    """Result returned by :func:`run_scrape_workflow`."""

    config: ScraperConfig
    candidates: List[str]
    tours: List[ExtractedTour]
    cleaned: List[CleanedTour]
    report: str
    warnings: List[str]

    def to_dict(self) -> Dict[str, object]:
        return {
            "config": self.config.to_dict(),
            "candidates": list(self.candidates),
            "tours": [tour.to_dict() for tour in self.cleaned],
            "report": self.report,
            "warnings": list(self.warnings),
            "raw_tours": [tour.to_dict() for tour in self.tours],
        }


def scrape_tours(session: ScrapeSession, http: requests.Session) -> List[ExtractedTour]:
    """Discover tour pages and extract each one, strictly one at a time."""

    urls = discover_tour_urls(session, http=http)
    for index, url in enumerate(urls):
        if index:
            time.sleep(session.config.request_delay)
        session.tours.append(extract_tour(url, session, http=http))
    return session.tours


def run_scrape_workflow(
    config: ScraperConfig, http: requests.Session | None = None
) -> ScrapeResult:
    """Execute discovery, extraction, cleaning and reporting."""

    session = ScrapeSession(config=config)
    owns_http = http is None
    client = http if http is not None else requests.Session()
    try:
        tours = scrape_tours(session, client)
    finally:
        if owns_http:
            client.close()

    LOGGER.info("Scraped %d tour pages", len(tours))
    cleaned = clean_tours(tours, config)
    warnings = _collect_warnings(session.candidate_urls, tours)
    report = build_report(config, session.candidate_urls, tours, cleaned, warnings=warnings)
    return ScrapeResult(
        config=config,
        candidates=session.candidate_urls,
        tours=list(tours),
        cleaned=cleaned,
        report=report,
        warnings=warnings,
    )


def write_output(cleaned: Sequence[CleanedTour], path: str | Path) -> Path:
    """Write the cleaned tours as a JSON array. Errors here are fatal."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [tour.to_dict() for tour in cleaned]
    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
    LOGGER.info("Tour data saved to %s", output_path)
    return output_path


def _collect_warnings(candidates: Sequence[str], tours: Sequence[ExtractedTour]) -> List[str]:
    warnings: List[str] = []
    if not candidates:
        warnings.append("No tour URLs were discovered; the site structure might have changed.")
    failed = sum(1 for tour in tours if tour.error)
    if failed:
        warnings.append(f"{failed} of {len(tours)} tour pages could not be scraped.")
    return warnings
