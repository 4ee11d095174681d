"""Selector tables describing how tour sites lay out their pages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence


@dataclass(frozen=True)
class DiscoveryRules:
    """Signals that mark a link on a listing page as a tour page."""

    url_patterns: Sequence[str] = (
        "/tour/",
        "/package/",
        "/trip/",
        "/destination/",
        "/holiday/",
        "/trek/",
        "/adventure/",
    )
    text_keywords: Sequence[str] = (
        "day",
        "tour",
        "trek",
        "package",
        "trip",
        "adventure",
        "nepal",
        "everest",
        "annapurna",
    )
    rejected_suffixes: Sequence[str] = (".pdf",)


@dataclass(frozen=True)
class SiteSelectors:
    """Ranked CSS selectors for each field of a tour detail page."""

    title: Sequence[str]
    duration: Sequence[str]
    price: Sequence[str]
    description: Sequence[str]
    itinerary_containers: Sequence[str]
    itinerary_items: Sequence[str]
    itinerary_day_title: Sequence[str]
    itinerary_day_description: Sequence[str]
    gallery_containers: Sequence[str]
    destination: Sequence[str]
    difficulty: Sequence[str]
    highlights: Sequence[str] = ()
    image_attributes: Sequence[str] = ("src", "data-src", "data-original", "data-lazy-src")


@dataclass(frozen=True)
class SiteProfile:
    """Complete description of a site the scraper knows how to read."""

    name: str
    discovery: DiscoveryRules
    selectors: SiteSelectors
    destinations: Sequence[str]
    field_labels: Dict[str, str]


GURU_TRAVELS = SiteProfile(
    name="gurutravelsltd.com",
    discovery=DiscoveryRules(),
    selectors=SiteSelectors(
        title=(
            ".tour-title",
            ".package-title",
            ".trip-title",
            "h1",
            ".entry-title",
            ".page-title",
            ".main-title",
            "article h1",
            "main h1",
            ".content h1",
        ),
        duration=(
            ".tour-duration",
            ".trip-duration",
            ".duration",
            ".tour-length",
            ".package-duration",
            "[class*='duration']",
            ".tour-info .duration",
            "span:-soup-contains('Duration')",
            "li:-soup-contains('Duration')",
        ),
        price=(
            ".tour-price",
            ".package-price",
            ".price",
            ".cost",
            ".rate",
            ".fee",
            "[class*='price']",
            "strong:-soup-contains('$')",
            "strong:-soup-contains('USD')",
            "span:-soup-contains('Price')",
        ),
        description=(
            ".tour-description",
            ".package-description",
            ".description",
            ".overview",
            ".summary",
            ".content p",
            "article p",
            ".tour-detail p",
            "[class*='description']",
        ),
        itinerary_containers=(
            ".itinerary",
            ".day-by-day",
            ".tour-itinerary",
            "#itinerary",
            "[class*='itinerary']",
            ".accordion",
        ),
        itinerary_items=(
            ".day-item",
            ".itinerary-day",
            ".itinerary-item",
            ".accordion-item",
            ".card",
            "li",
            "[class*='day']",
        ),
        itinerary_day_title=(".day-title", "h3", "h4", "strong"),
        itinerary_day_description=(".day-description", "p", ".content"),
        gallery_containers=(
            ".tour-gallery",
            ".package-gallery",
            ".slider",
            ".gallery",
            ".carousel",
            "[class*='gallery']",
        ),
        destination=(
            ".tour-destination",
            ".destination",
            ".location",
            "[class*='destination']",
            "span:-soup-contains('Location:')",
        ),
        difficulty=(
            ".difficulty-level",
            ".tour-difficulty",
            ".grade",
            "[class*='difficulty']",
            "span:-soup-contains('Difficulty:')",
        ),
        highlights=(
            ".highlights li",
            ".tour-highlights li",
            ".trip-highlights li",
            "[class*='highlight'] li",
        ),
    ),
    destinations=(
        "Everest",
        "Annapurna",
        "Langtang",
        "Pokhara",
        "Chitwan",
        "Kathmandu",
        "Lumbini",
        "Nagarkot",
        "Bhaktapur",
        "Patan",
    ),
    field_labels={
        "duration": "Duration:",
        "destination": "Location:",
        "difficulty": "Difficulty:",
    },
)

SITE_PROFILES: Dict[str, SiteProfile] = {}
for domains, profile in {
    ("gurutravelsltd.com", "www.gurutravelsltd.com"): GURU_TRAVELS,
}.items():
    for domain in domains:
        SITE_PROFILES[domain] = profile


def profile_for(host: str) -> SiteProfile:
    """Return the profile registered for ``host`` or the default profile."""

    normalised = host.strip().lower()
    return SITE_PROFILES.get(normalised, GURU_TRAVELS)


__all__ = [
    "DiscoveryRules",
    "GURU_TRAVELS",
    "SITE_PROFILES",
    "SiteProfile",
    "SiteSelectors",
    "profile_for",
]
