from typing import Any, Dict, List, Optional
import unittest

import requests

from tour_scraper.config import ScraperConfig
from tour_scraper.extractor import (
    extract_tour,
    make_excerpt,
    parse_duration_days,
    parse_price,
    parse_tour_page,
    slugify,
)
from tour_scraper.models import ItineraryDay, ScrapeSession

BASE = "https://gurutravelsltd.com"
TOUR_URL = f"{BASE}/package/everest-base-camp-trek"

FULL_PAGE = """
<html>
  <head>
    <title>Everest Base Camp Trek | Guru Travels</title>
    <meta property="og:image" content="/img/og.jpg">
  </head>
  <body>
    <h1 class="tour-title">  Everest Base Camp
        Trek! </h1>
    <div class="tour-info"><span class="duration">Duration: 14 Days / 13 Nights</span></div>
    <div class="price">From USD 1,450 per person</div>
    <div class="tour-description">
      <p>Walk in the footsteps of legends to the foot of the highest mountain on earth.</p>
    </div>
    <div class="tour-gallery">
      <img src="/uploads/logo.png" data-src="/uploads/ebc-1.jpg">
      <img src="https://cdn.example.com/ebc-2.jpg">
      <img src="/uploads/ebc-1.jpg">
    </div>
    <div class="itinerary">
      <div class="day-item"><h4>Day 1: Arrival in Kathmandu</h4><p>Transfer to the hotel.</p></div>
      <div class="day-item"><p>Fly to Lukla and walk to Phakding.</p></div>
    </div>
    <span class="difficulty-level">Difficulty: Challenging</span>
    <ul class="highlights">
      <li>Sunrise over Everest from Kala Patthar</li>
      <li>Namche Bazaar</li>
    </ul>
  </body>
</html>
"""


class _StubResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class _StubHttp:
    """Replays a queue of outcomes; exceptions are raised, strings served."""

    def __init__(self, outcomes: List[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, timeout: float | None = None):
        self.calls.append({"url": url, "headers": headers or {}, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, _StubResponse):
            return outcome
        return _StubResponse(outcome)


class DerivedFieldTests(unittest.TestCase):
    def test_slugify_collapses_punctuation(self) -> None:
        self.assertEqual(slugify("Everest Base Camp Trek!"), "everest-base-camp-trek")
        self.assertEqual(slugify("  --Kathmandu & Pokhara (5N/6D)-- "), "kathmandu-pokhara-5n-6d")

    def test_excerpt_truncates_long_descriptions_to_200_chars(self) -> None:
        description = "x" * 250
        excerpt = make_excerpt(description)
        self.assertEqual(len(excerpt), 200)
        self.assertEqual(excerpt, "x" * 197 + "...")
        self.assertEqual(make_excerpt("short"), "short")
        self.assertEqual(make_excerpt("y" * 200), "y" * 200)

    def test_parse_duration_days_requires_day_pattern(self) -> None:
        self.assertEqual(parse_duration_days("14 Days / 13 Nights"), 14)
        self.assertEqual(parse_duration_days("1 day"), 1)
        self.assertIsNone(parse_duration_days("13 nights"))
        self.assertIsNone(parse_duration_days(""))

    def test_parse_price_reads_symbol_and_code(self) -> None:
        self.assertEqual(parse_price("From $1,299.50 pp"), (1299.5, "$"))
        self.assertEqual(parse_price("usd 850"), (850.0, "USD"))
        self.assertEqual(parse_price("₹ 45,000"), (45000.0, "₹"))
        self.assertEqual(parse_price("Contact us"), (None, None))


class ParseTourPageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = ScraperConfig(base_url=BASE)

    def test_full_page_uses_primary_selectors(self) -> None:
        tour = parse_tour_page(TOUR_URL, FULL_PAGE, self.config)

        self.assertEqual(tour.url, TOUR_URL)
        self.assertEqual(tour.title, "Everest Base Camp Trek!")
        self.assertEqual(tour.slug, "everest-base-camp-trek")
        self.assertEqual(tour.duration_text, "14 Days / 13 Nights")
        self.assertEqual(tour.duration_days, 14)
        self.assertEqual(tour.price_text, "From USD 1,450 per person")
        self.assertEqual(tour.price_amount, 1450.0)
        self.assertEqual(tour.price_currency, "USD")
        self.assertTrue(tour.description.startswith("Walk in the footsteps"))
        self.assertEqual(tour.excerpt, tour.description)
        self.assertEqual(
            tour.images,
            (f"{BASE}/uploads/ebc-1.jpg", "https://cdn.example.com/ebc-2.jpg"),
        )
        self.assertEqual(
            tour.itinerary,
            (
                ItineraryDay(1, "Day 1: Arrival in Kathmandu", "Transfer to the hotel."),
                ItineraryDay(2, "Day 2", "Fly to Lukla and walk to Phakding."),
            ),
        )
        self.assertEqual(tour.destination, "Everest")
        self.assertEqual(tour.difficulty, "Challenging")
        self.assertEqual(
            tour.highlights, ("Sunrise over Everest from Kala Patthar", "Namche Bazaar")
        )
        self.assertFalse(tour.error)
        self.assertFalse(tour.recovery_attempt)

    def test_og_title_fallback_strips_site_name(self) -> None:
        html = """
        <html><head>
          <meta property="og:title" content="Annapurna Circuit Trek - Guru Travels">
          <title>Home | Guru Travels</title>
        </head><body><div><p>Short.</p></div></body></html>
        """
        tour = parse_tour_page(f"{BASE}/p/1", html, self.config)

        self.assertEqual(tour.title, "Annapurna Circuit Trek")
        self.assertEqual(tour.destination, "Annapurna")
        self.assertEqual(tour.description, "")
        self.assertEqual(tour.images, ())
        self.assertEqual(tour.itinerary, ())
        self.assertEqual(tour.difficulty, "")

    def test_title_tag_is_last_resort(self) -> None:
        html = "<html><head><title>Lumbini Day Tour | Guru Travels</title></head><body></body></html>"
        tour = parse_tour_page(f"{BASE}/p/2", html, self.config)
        self.assertEqual(tour.title, "Lumbini Day Tour")
        self.assertEqual(tour.destination, "Lumbini")

    def test_duration_days_only_set_for_day_pattern(self) -> None:
        days_page = "<html><body><p>The trip lasts 12 days in total.</p></body></html>"
        nights_page = "<html><body><p>Enjoy 5 nights by the lake.</p></body></html>"

        with_days = parse_tour_page(f"{BASE}/p/3", days_page, self.config)
        with_nights = parse_tour_page(f"{BASE}/p/4", nights_page, self.config)

        self.assertEqual(with_days.duration_text, "12 days")
        self.assertEqual(with_days.duration_days, 12)
        self.assertEqual(with_nights.duration_text, "5 nights")
        self.assertIsNone(with_nights.duration_days)

    def test_price_falls_back_to_page_text(self) -> None:
        html = "<html><body><div class='price'>On request</div><p>Only $ 999 per person</p></body></html>"
        tour = parse_tour_page(f"{BASE}/p/5", html, self.config)
        self.assertEqual(tour.price_text, "$ 999")
        self.assertEqual(tour.price_amount, 999.0)
        self.assertEqual(tour.price_currency, "$")

    def test_missing_price_leaves_amount_unset(self) -> None:
        tour = parse_tour_page(f"{BASE}/p/6", "<html><body><p>Ask us.</p></body></html>", self.config)
        self.assertEqual(tour.price_text, "")
        self.assertIsNone(tour.price_amount)
        self.assertIsNone(tour.price_currency)

    def test_description_from_meta_then_paragraphs(self) -> None:
        meta_page = """
        <html><head><meta property="og:description" content="  Jungle   safari in Chitwan. "></head>
        <body></body></html>
        """
        paragraph_page = """
        <html><body>
          <p>This paragraph is comfortably longer than thirty characters.</p>
          <p>Too short.</p>
          <p>Another paragraph that easily clears the length threshold.</p>
          <p>A fourth paragraph which is long enough but comes too late.</p>
        </body></html>
        """
        self.assertEqual(
            parse_tour_page(f"{BASE}/p/7", meta_page, self.config).description,
            "Jungle safari in Chitwan.",
        )
        self.assertEqual(
            parse_tour_page(f"{BASE}/p/8", paragraph_page, self.config).description,
            "This paragraph is comfortably longer than thirty characters. "
            "Another paragraph that easily clears the length threshold.",
        )

    def test_long_description_gets_truncated_excerpt(self) -> None:
        description = "a" * 250
        html = f"<html><body><div class='overview'>{description}</div></body></html>"
        tour = parse_tour_page(f"{BASE}/p/9", html, self.config)
        self.assertEqual(tour.excerpt, "a" * 197 + "...")

    def test_images_fall_back_to_sized_page_images_then_og_image(self) -> None:
        page_images = """
        <html><body>
          <img src="/img/thumb.jpg" width="50" height="40">
          <img src="/img/wide.jpg" width="640">
          <img src="img/plain.jpg">
        </body></html>
        """
        og_only = """
        <html><head><meta property="og:image" content="/img/featured.jpg"></head>
        <body><img src="/img/tiny.png" width="16" height="16"></body></html>
        """
        self.assertEqual(
            parse_tour_page(f"{BASE}/p/10", page_images, self.config).images,
            (f"{BASE}/img/wide.jpg", f"{BASE}/img/plain.jpg"),
        )
        self.assertEqual(
            parse_tour_page(f"{BASE}/p/11", og_only, self.config).images,
            (f"{BASE}/img/featured.jpg",),
        )

    def test_lazy_gallery_skips_data_uri_placeholders(self) -> None:
        html = """
        <html><body>
          <h1>Everest Base Camp Trek</h1>
          <div class="gallery">
            <img src="data:image/gif;base64,R0lGOD" data-src="/uploads/ebc.jpg">
            <img src="/uploads/site-logo.png" data-original="/uploads/kala-patthar.jpg">
          </div>
        </body></html>
        """
        tour = parse_tour_page(f"{BASE}/p/12", html, self.config)
        self.assertEqual(
            tour.images,
            (f"{BASE}/uploads/ebc.jpg", f"{BASE}/uploads/kala-patthar.jpg"),
        )

    def test_itinerary_day_titles_fall_back_to_day_label(self) -> None:
        html = """
        <html><body><ul id="itinerary">
          <li>Day one drive to Pokhara along the river.</li>
          <li>Boating on Phewa lake.</li>
        </ul></body></html>
        """
        tour = parse_tour_page(f"{BASE}/p/12", html, self.config)
        self.assertEqual(
            tour.itinerary,
            (
                ItineraryDay(1, "Day one", "drive to Pokhara along the river."),
                ItineraryDay(2, "Day 2", "Boating on Phewa lake."),
            ),
        )

    def test_destination_defaults_to_region(self) -> None:
        html = "<html><body><h1>Mountain Flight</h1></body></html>"
        tour = parse_tour_page(f"{BASE}/p/13", html, self.config)
        self.assertEqual(tour.destination, "Nepal")

    def test_highlights_fall_back_to_description_sentences(self) -> None:
        html = """
        <html><body><div class="summary">See the sunrise from Sarangkot. Paraglide over the lake.
        Ok. Visit the World Peace Pagoda</div></body></html>
        """
        tour = parse_tour_page(f"{BASE}/p/14", html, self.config)
        self.assertEqual(
            tour.highlights,
            ("See the sunrise from Sarangkot", "Paraglide over the lake", "Visit the World Peace Pagoda"),
        )


class ExtractTourRetryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = ScrapeSession(config=ScraperConfig(base_url=BASE))

    def test_primary_success_returns_full_record(self) -> None:
        http = _StubHttp([FULL_PAGE])
        tour = extract_tour(TOUR_URL, self.session, http=http)  # type: ignore[arg-type]

        self.assertEqual(tour.url, TOUR_URL)
        self.assertEqual(tour.title, "Everest Base Camp Trek!")
        self.assertEqual(len(http.calls), 1)
        self.assertEqual(http.calls[0]["timeout"], 30.0)

    def test_retry_uses_identity_encoding_and_longer_timeout(self) -> None:
        recovered_html = """
        <html><head><meta name="description" content="Lakeside city tour."></head>
        <body>
          <h1>Pokhara Lakeside Tour</h1>
          <img src="/images/logo.png"><img src="/images/lake.jpg"><img src="https://cdn.example.com/boat.jpg">
        </body></html>
        """
        http = _StubHttp([requests.ConnectionError("Connection reset by peer"), recovered_html])

        tour = extract_tour(f"{BASE}/package/pokhara", self.session, http=http)  # type: ignore[arg-type]

        self.assertEqual(len(http.calls), 2)
        self.assertEqual(http.calls[1]["headers"].get("Accept-Encoding"), "identity")
        self.assertEqual(http.calls[1]["timeout"], 45.0)
        self.assertFalse(tour.error)
        self.assertTrue(tour.recovery_attempt)
        self.assertEqual(tour.title, "Pokhara Lakeside Tour")
        self.assertEqual(tour.slug, "pokhara-lakeside-tour")
        self.assertEqual(tour.description, "Lakeside city tour.")
        self.assertEqual(tour.images, (f"{BASE}/images/lake.jpg", "https://cdn.example.com/boat.jpg"))
        self.assertEqual(tour.destination, "Nepal")

    def test_both_attempts_failing_yields_error_record(self) -> None:
        http = _StubHttp(
            [requests.Timeout("Read timed out"), requests.ConnectionError("Connection refused")]
        )
        url = f"{BASE}/package/broken"

        tour = extract_tour(url, self.session, http=http)  # type: ignore[arg-type]

        self.assertEqual(tour.url, url)
        self.assertTrue(tour.error)
        self.assertEqual(tour.error_message, "Read timed out")
        self.assertTrue(tour.recovery_attempt)
        self.assertIsNotNone(tour.scraped_at)

    def test_sparse_retry_is_still_an_error_but_keeps_partial_fields(self) -> None:
        sparse_html = '<html><head><meta name="description" content="Partial"></head><body></body></html>'
        http = _StubHttp([_StubResponse(status_code=503), sparse_html])

        tour = extract_tour(f"{BASE}/package/sparse", self.session, http=http)  # type: ignore[arg-type]

        self.assertTrue(tour.error)
        self.assertIn("503", tour.error_message or "")
        self.assertEqual(tour.description, "Partial")
        self.assertEqual(tour.title, "")


if __name__ == "__main__":
    unittest.main()
