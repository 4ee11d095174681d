"""Cleaning of scraped tours into CMS-ready records."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .config import ScraperConfig
from .models import CleanedTour, ExtractedTour

DEFAULT_CATEGORY = "General"
PRICE_ON_REQUEST = "Price on request"

# Checked in order; the first group with a matching keyword wins.
CATEGORY_KEYWORDS: Sequence[Tuple[str, Sequence[str]]] = (
    ("Trekking", ("trek", "hiking", "climb")),
    ("Cultural", ("cultural", "heritage", "historic")),
    ("Wildlife", ("wildlife", "safari", "jungle")),
    ("Adventure", ("adventure", "rafting", "kayak")),
    ("Pilgrimage", ("pilgrimage", "spiritual", "meditation")),
)


def infer_category(title: str, description: str) -> str:
    """Map a tour onto a CMS category using keyword precedence."""

    text = f"{title} {description}".lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def format_price(
    amount: Optional[float], currency: Optional[str], price_text: str = ""
) -> str:
    """Return a display price such as ``$1,200`` or ``USD 1,200``."""

    if amount is None or math.isnan(amount) or not amount:
        return price_text or PRICE_ON_REQUEST

    if float(amount).is_integer():
        number = f"{int(amount):,}"
    else:
        number = f"{amount:,.2f}"
    symbol = currency or "$"
    separator = " " if symbol.isalpha() else ""
    return f"{symbol}{separator}{number}"


def tours_to_dataframe(tours: Iterable[ExtractedTour]) -> pd.DataFrame:
    """Tabulate the fields the cleaning rules look at.

    ``position`` points back into the input sequence so the original
    records can be recovered after filtering.
    """

    records: List[Dict[str, object]] = []
    for position, tour in enumerate(tours):
        records.append(
            {
                "position": position,
                "url": tour.url,
                "title": tour.title,
                "title_key": tour.title.strip().lower(),
                "description": tour.description,
                "error": bool(tour.error),
            }
        )
    return pd.DataFrame.from_records(
        records, columns=["position", "url", "title", "title_key", "description", "error"]
    )


def drop_failed_tours(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    return df[~df["error"]]


def deduplicate_tours(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the first tour per case-insensitive title; untitled rows all stay."""

    if df.empty:
        return df
    titled = df["title_key"] != ""
    duplicated = df["title_key"].duplicated(keep="first") & titled
    return df[~duplicated]


def clean_tours(tours: Sequence[ExtractedTour], config: ScraperConfig) -> List[CleanedTour]:
    """Full cleaning pipeline returning records ready for export."""

    tour_list = list(tours)
    df = tours_to_dataframe(tour_list)
    df = drop_failed_tours(df)
    df = deduplicate_tours(df)

    cleaned: List[CleanedTour] = []
    if df.empty:
        return cleaned

    df = df.assign(
        category=[
            infer_category(title, description)
            for title, description in zip(df["title"], df["description"])
        ]
    )
    for row in df.to_dict("records"):
        tour = tour_list[int(row["position"])]
        cleaned.append(
            CleanedTour(
                tour=tour,
                category=str(row["category"]),
                formatted_price=format_price(
                    tour.price_amount, tour.price_currency, tour.price_text
                ),
                duration_days_or_default=tour.duration_days or config.default_duration_days,
            )
        )
    return cleaned


def summarise_tours(cleaned: Sequence[CleanedTour]) -> Dict[str, int]:
    """Return the number of kept tours per category."""

    counts: Dict[str, int] = {}
    for tour in cleaned:
        counts[tour.category] = counts.get(tour.category, 0) + 1
    return dict(sorted(counts.items()))
