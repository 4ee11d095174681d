"""Reporting helpers for a finished scrape run."""
from __future__ import annotations

from typing import Iterable, List, Sequence

from .config import ScraperConfig
from .models import CleanedTour, ExtractedTour
from .processor import summarise_tours

PLACEHOLDER = "–"


def _cell(value: str) -> str:
    return (value or PLACEHOLDER).replace("|", "/")


def generate_tour_table(tours: Iterable[CleanedTour]) -> str:
    """Return a markdown-style table of cleaned tours."""

    headers = ["Title", "Category", "Destination", "Days", "Price"]
    rows: List[str] = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(["---"] * len(headers)) + " |",
    ]

    tour_list = list(tours)
    if not tour_list:
        rows.append("| No tours |" + " |" * (len(headers) - 1))
        return "\n".join(rows)

    for cleaned in tour_list:
        columns = [
            _cell(cleaned.tour.title),
            cleaned.category,
            _cell(cleaned.tour.destination),
            str(cleaned.duration_days_or_default),
            _cell(cleaned.formatted_price),
        ]
        rows.append("| " + " | ".join(columns) + " |")
    return "\n".join(rows)


def build_report(
    config: ScraperConfig,
    candidates: Sequence[str],
    tours: Sequence[ExtractedTour],
    cleaned: List[CleanedTour],
    warnings: Sequence[str] | None = None,
    limit: int = 10,
) -> str:
    """Create a text report summarising a scrape run."""

    failed = [tour for tour in tours if tour.error]
    recovered = [tour for tour in tours if tour.recovery_attempt and not tour.error]
    warning_messages = [message.strip() for message in (warnings or []) if message]

    lines: List[str] = ["Tour Scrape Report", "=================="]
    if warning_messages:
        lines.append("")
        lines.extend(f"WARNING: {message}" for message in warning_messages)

    lines.extend(
        [
            "",
            f"Site: {config.base_url}",
            f"Listing pages: {len(config.listing_paths)}",
            f"Candidate URLs: {len(candidates)}",
            f"Pages scraped: {len(tours)}",
            f"Failed pages: {len(failed)}",
            f"Recovered pages: {len(recovered)}",
            f"Tours exported: {len(cleaned)}",
        ]
    )

    categories = summarise_tours(cleaned)
    if categories:
        lines.append("")
        lines.append("Categories:")
        lines.extend(f"- {category}: {count}" for category, count in categories.items())

    lines.append("")
    lines.append("Tours:")
    lines.append(generate_tour_table(cleaned[:limit]))

    if failed:
        lines.append("")
        lines.append("Failures:")
        for tour in failed:
            lines.append(f"- {tour.url}: {tour.error_message or 'unknown error'}")

    return "\n".join(lines)
