"""Shared data structures used across discovery, extraction and cleaning."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from .config import ScraperConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TourCandidateUrl:
    """A URL that looks like an individual tour page, plus how it was found."""

    url: str
    source: str


@dataclass(frozen=True)
class ItineraryDay:
    day: int
    title: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "title": self.title, "description": self.description}


@dataclass(frozen=True)
class ExtractedTour:
    """Structured data scraped from a single tour page.

    Only ``url`` and ``scraped_at`` are guaranteed; every other field is
    best-effort and may hold its empty default.
    """

    url: str
    title: str = ""
    duration_text: str = ""
    duration_days: Optional[int] = None
    price_text: str = ""
    price_amount: Optional[float] = None
    price_currency: Optional[str] = None
    description: str = ""
    excerpt: str = ""
    images: Tuple[str, ...] = ()
    itinerary: Tuple[ItineraryDay, ...] = ()
    destination: str = ""
    difficulty: str = ""
    highlights: Tuple[str, ...] = ()
    slug: str = ""
    scraped_at: datetime = field(default_factory=_utcnow)
    error: bool = False
    error_message: Optional[str] = None
    recovery_attempt: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "slug": self.slug,
            "durationText": self.duration_text,
            "durationDays": self.duration_days,
            "priceText": self.price_text,
            "priceAmount": self.price_amount,
            "priceCurrency": self.price_currency,
            "description": self.description,
            "excerpt": self.excerpt,
            "images": list(self.images),
            "itinerary": [day.to_dict() for day in self.itinerary],
            "destination": self.destination,
            "difficulty": self.difficulty,
            "highlights": list(self.highlights),
            "scrapedAt": self.scraped_at.isoformat(),
            "error": self.error,
            "errorMessage": self.error_message,
            "recoveryAttempt": self.recovery_attempt,
        }


@dataclass(frozen=True)
class CleanedTour:
    """A successfully scraped tour enriched for the CMS import."""

    tour: ExtractedTour
    category: str
    formatted_price: str
    duration_days_or_default: int

    def to_dict(self) -> Dict[str, Any]:
        payload = self.tour.to_dict()
        payload["durationDays"] = self.duration_days_or_default
        payload["category"] = self.category
        payload["formattedPrice"] = self.formatted_price
        return payload


@dataclass
class ScrapeSession:
    """Mutable state shared by one scrape run."""

    config: ScraperConfig
    seen_urls: Set[str] = field(default_factory=set)
    candidates: List[TourCandidateUrl] = field(default_factory=list)
    tours: List[ExtractedTour] = field(default_factory=list)

    def add_candidate(self, url: str, source: str) -> bool:
        """Record ``url`` unless the exact same string was already seen."""

        if url in self.seen_urls:
            return False
        self.seen_urls.add(url)
        self.candidates.append(TourCandidateUrl(url=url, source=source))
        return True

    @property
    def candidate_urls(self) -> List[str]:
        return [candidate.url for candidate in self.candidates]
