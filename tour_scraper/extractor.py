"""Field extraction for individual tour pages.

Every field is read through an ordered chain of strategies. Each strategy
receives a :class:`PageContext` and returns a value; the first truthy value
wins. The chains live in :data:`FIELD_CHAINS` so that sites with a
different layout only need a new selector table, not new control flow.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup, Tag

from .config import ScraperConfig
from .discovery import resolve_url
from .models import ExtractedTour, ItineraryDay, ScrapeSession
from .sources.site_profiles import SiteProfile, profile_for

LOGGER = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
MAX_HIGHLIGHTS = 6
RECOVERY_IMAGE_LIMIT = 5

DURATION_PATTERN = re.compile(r"(\d+)\s*(days?|nights)", re.IGNORECASE)
DURATION_DAYS_PATTERN = re.compile(r"(\d+)\s*days?", re.IGNORECASE)
PRICE_HINT_PATTERN = re.compile(r"[$£€₹]|USD|NPR", re.IGNORECASE)
PAGE_PRICE_PATTERN = re.compile(r"([$£€₹]\s*[\d,]+(\.\d+)?)|(\d+\s*(USD|NPR))", re.IGNORECASE)
PRICE_VALUE_PATTERN = re.compile(r"([₹$€£]|USD|NPR)\s*([0-9,]+(\.\d+)?)", re.IGNORECASE)
DAY_LABEL_PATTERN = re.compile(r"day\s*\d+|day\s*[a-z]+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")
_LEADING_NUMBER = re.compile(r"^\s*(\d+)")


@dataclass
class PageContext:
    """Everything a strategy may look at while reading one page."""

    url: str
    soup: BeautifulSoup
    profile: SiteProfile
    config: ScraperConfig
    title: str = ""
    description: str = ""
    _page_text: Optional[str] = None

    @property
    def page_text(self) -> str:
        if self._page_text is None:
            body = self.soup.body or self.soup
            self._page_text = body.get_text(" ")
        return self._page_text


Strategy = Callable[[PageContext], Any]


def normalise_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def slugify(title: str) -> str:
    """Lowercase ``title`` and join its alphanumeric runs with hyphens."""

    return _SLUG_SEPARATORS.sub("-", (title or "").lower()).strip("-")


def make_excerpt(description: str) -> str:
    if len(description) > EXCERPT_LENGTH:
        return description[: EXCERPT_LENGTH - 3] + "..."
    return description


def parse_duration_days(duration_text: str) -> Optional[int]:
    match = DURATION_DAYS_PATTERN.search(duration_text or "")
    if not match:
        return None
    return int(match.group(1))


def parse_price(price_text: str) -> Tuple[Optional[float], Optional[str]]:
    """Return ``(amount, currency)`` parsed from a free-form price string."""

    match = PRICE_VALUE_PATTERN.search(price_text or "")
    if not match:
        return None, None
    currency = match.group(1)
    if currency.isalpha():
        currency = currency.upper()
    try:
        amount = float(match.group(2).replace(",", ""))
    except ValueError:
        return None, None
    return amount, currency


def strip_site_suffix(title: str, suffixes: Sequence[str]) -> str:
    for suffix in suffixes:
        title = title.replace(suffix, "")
    return title.strip()


def _strip_label(text: str, label: Optional[str]) -> str:
    if label:
        text = text.replace(label, "")
    return text.strip()


def _is_decorative(src: str) -> bool:
    lowered = src.lower()
    return "icon" in lowered or "logo" in lowered or lowered.endswith(".svg")


def _dimension(value: Optional[str]) -> int:
    match = _LEADING_NUMBER.match(value or "")
    return int(match.group(1)) if match else 0


def _resolve_images(ctx: PageContext, sources: Sequence[str]) -> List[str]:
    resolved = [resolve_url(src, ctx.config) for src in sources]
    return list(dict.fromkeys(url for url in resolved if url))


def _meta_content(soup: BeautifulSoup, attribute: str, value: str) -> str:
    tag = soup.find("meta", attrs={attribute: value})
    if tag is None:
        return ""
    return str(tag.get("content") or "").strip()


# Strategy factories ---------------------------------------------------------


def from_selectors(field_name: str) -> Strategy:
    """Text of the first element matched by the field's ranked selectors."""

    def strategy(ctx: PageContext) -> str:
        label = ctx.profile.field_labels.get(field_name)
        for selector in getattr(ctx.profile.selectors, field_name):
            element = ctx.soup.select_one(selector)
            if element is None:
                continue
            text = _strip_label(element.get_text(" ", strip=True), label)
            if text:
                return text
        return ""

    return strategy


def from_meta(attribute: str, value: str, strip_suffix: bool = False) -> Strategy:
    def strategy(ctx: PageContext) -> str:
        content = _meta_content(ctx.soup, attribute, value)
        if strip_suffix:
            content = strip_site_suffix(content, ctx.config.site_name_suffixes)
        return content

    return strategy


def title_tag(ctx: PageContext) -> str:
    if ctx.soup.title is None:
        return ""
    return strip_site_suffix(ctx.soup.title.get_text(), ctx.config.site_name_suffixes)


def duration_from_page_text(ctx: PageContext) -> str:
    match = DURATION_PATTERN.search(ctx.page_text)
    if not match:
        return ""
    return f"{match.group(1)} {match.group(2)}"


def price_from_selectors(ctx: PageContext) -> str:
    """Like :func:`from_selectors` but only accepts text that mentions money."""

    for selector in ctx.profile.selectors.price:
        for element in ctx.soup.select(selector):
            text = element.get_text(" ", strip=True)
            if text and PRICE_HINT_PATTERN.search(text):
                return text
    return ""


def price_from_page_text(ctx: PageContext) -> str:
    match = PAGE_PRICE_PATTERN.search(ctx.page_text)
    return match.group(0).strip() if match else ""


def leading_paragraphs(ctx: PageContext) -> str:
    paragraphs = [p.get_text(" ", strip=True) for p in ctx.soup.find_all("p")[:3]]
    return " ".join(text for text in paragraphs if len(text) > 30)


def itinerary_from_containers(ctx: PageContext) -> List[ItineraryDay]:
    selectors = ctx.profile.selectors
    for container in selectors.itinerary_containers:
        if not ctx.soup.select(container):
            continue
        for item_selector in selectors.itinerary_items:
            items = ctx.soup.select(f"{container} {item_selector}")
            if items:
                return [_itinerary_day(ctx, index, item) for index, item in enumerate(items)]
    return []


def _itinerary_day(ctx: PageContext, index: int, item: Tag) -> ItineraryDay:
    selectors = ctx.profile.selectors
    item_text = normalise_whitespace(item.get_text(" "))

    title = ""
    title_element = item.select_one(", ".join(selectors.itinerary_day_title))
    if title_element is not None:
        title = normalise_whitespace(title_element.get_text(" "))
    if not title:
        label = DAY_LABEL_PATTERN.search(item_text)
        title = label.group(0) if label else f"Day {index + 1}"

    parts = [
        element.get_text(" ", strip=True)
        for element in item.select(", ".join(selectors.itinerary_day_description))
    ]
    description = normalise_whitespace(" ".join(parts))
    if not description:
        description = item_text.replace(title, "", 1).strip()

    return ItineraryDay(day=index + 1, title=title, description=description)


def gallery_images(ctx: PageContext) -> List[str]:
    selectors = ctx.profile.selectors
    for container_selector in selectors.gallery_containers:
        containers = ctx.soup.select(container_selector)
        if not containers:
            continue
        images: List[str] = []
        for container in containers:
            for image in container.find_all("img"):
                # lazy galleries keep a data: placeholder in src
                for attribute in selectors.image_attributes:
                    src = image.get(attribute)
                    if not src or _is_decorative(src):
                        continue
                    resolved = resolve_url(src, ctx.config)
                    if resolved:
                        images.append(resolved)
                        break
        if images:
            return list(dict.fromkeys(images))
    return []


def page_images(ctx: PageContext) -> List[str]:
    sources: List[str] = []
    for image in ctx.soup.find_all("img"):
        width = _dimension(image.get("width"))
        height = _dimension(image.get("height"))
        if width > 100 or height > 100 or (not width and not height):
            src = image.get("src")
            if src:
                sources.append(src)
    return _resolve_images(ctx, sources)


def og_image(ctx: PageContext) -> List[str]:
    content = _meta_content(ctx.soup, "property", "og:image")
    return _resolve_images(ctx, [content]) if content else []


def destination_from_title(ctx: PageContext) -> str:
    lowered = ctx.title.lower()
    for destination in ctx.profile.destinations:
        if destination.lower() in lowered:
            return destination
    return ""


def default_destination(ctx: PageContext) -> str:
    return ctx.config.default_destination


def highlights_from_selectors(ctx: PageContext) -> List[str]:
    for selector in ctx.profile.selectors.highlights:
        texts = [normalise_whitespace(el.get_text(" ")) for el in ctx.soup.select(selector)]
        texts = [text for text in texts if text]
        if texts:
            return texts[:MAX_HIGHLIGHTS]
    return []


def highlights_from_description(ctx: PageContext) -> List[str]:
    sentences = [sentence.strip() for sentence in ctx.description.split(". ")]
    return [s for s in sentences[:MAX_HIGHLIGHTS] if 10 < len(s) < 80]


FIELD_CHAINS: Dict[str, Tuple[Strategy, ...]] = {
    "title": (
        from_selectors("title"),
        from_meta("property", "og:title", strip_suffix=True),
        from_meta("name", "title", strip_suffix=True),
        title_tag,
    ),
    "duration": (from_selectors("duration"), duration_from_page_text),
    "price": (price_from_selectors, price_from_page_text),
    "description": (
        from_selectors("description"),
        from_meta("property", "og:description"),
        from_meta("name", "description"),
        leading_paragraphs,
    ),
    "itinerary": (itinerary_from_containers,),
    "images": (gallery_images, page_images, og_image),
    "destination": (from_selectors("destination"), destination_from_title, default_destination),
    "difficulty": (from_selectors("difficulty"),),
    "highlights": (highlights_from_selectors, highlights_from_description),
}


def run_chain(chain: Sequence[Strategy], ctx: PageContext) -> Any:
    """Return the first truthy strategy result, or the last falsy one."""

    result: Any = None
    for strategy in chain:
        result = strategy(ctx)
        if result:
            return result
    return result


def parse_tour_page(
    url: str,
    html: str,
    config: ScraperConfig,
    profile: SiteProfile | None = None,
) -> ExtractedTour:
    """Extract every field of a tour from an already downloaded page."""

    soup = BeautifulSoup(html, "html.parser")
    ctx = PageContext(
        url=url,
        soup=soup,
        profile=profile or profile_for(urlparse(url).netloc),
        config=config,
    )

    ctx.title = normalise_whitespace(run_chain(FIELD_CHAINS["title"], ctx) or "")
    ctx.description = normalise_whitespace(run_chain(FIELD_CHAINS["description"], ctx) or "")
    duration_text = run_chain(FIELD_CHAINS["duration"], ctx) or ""
    price_text = run_chain(FIELD_CHAINS["price"], ctx) or ""
    price_amount, price_currency = parse_price(price_text)

    return ExtractedTour(
        url=url,
        title=ctx.title,
        duration_text=duration_text,
        duration_days=parse_duration_days(duration_text),
        price_text=price_text,
        price_amount=price_amount,
        price_currency=price_currency,
        description=ctx.description,
        excerpt=make_excerpt(ctx.description),
        images=tuple(run_chain(FIELD_CHAINS["images"], ctx) or ()),
        itinerary=tuple(run_chain(FIELD_CHAINS["itinerary"], ctx) or ()),
        destination=run_chain(FIELD_CHAINS["destination"], ctx) or "",
        difficulty=run_chain(FIELD_CHAINS["difficulty"], ctx) or "",
        highlights=tuple(run_chain(FIELD_CHAINS["highlights"], ctx) or ()),
        slug=slugify(ctx.title),
    )


def _fetch_html(
    http: requests.Session, url: str, headers: Dict[str, str], timeout: float
) -> str:
    response = http.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    return response.text


def _describe_error(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _recover_tour(
    url: str, primary_error: BaseException, config: ScraperConfig, http: requests.Session
) -> ExtractedTour:
    """Second, lenient pass after the primary extraction failed."""

    error_message = _describe_error(primary_error)
    LOGGER.info("Trying alternative approach for %s", url)
    try:
        html = _fetch_html(http, url, config.retry_headers(), config.retry_timeout)
    except Exception as exc:
        LOGGER.error("Second attempt also failed for %s: %s", url, exc)
        return ExtractedTour(url=url, error=True, error_message=error_message, recovery_attempt=True)

    soup = BeautifulSoup(html, "html.parser")
    heading = soup.find("h1")
    title = normalise_whitespace(heading.get_text(" ") if heading is not None else "")
    if not title and soup.title is not None:
        title = normalise_whitespace(soup.title.get_text())
    description = normalise_whitespace(_meta_content(soup, "name", "description"))
    sources = [
        str(image.get("src"))
        for image in soup.find_all("img")[:RECOVERY_IMAGE_LIMIT]
        if image.get("src") and not _is_decorative(str(image.get("src")))
    ]
    resolved = (resolve_url(src, config) for src in sources)
    images = tuple(dict.fromkeys(image for image in resolved if image))

    if not title:
        LOGGER.error("Recovered page for %s is too sparse to use", url)
        return ExtractedTour(
            url=url,
            description=description,
            images=images,
            error=True,
            error_message=error_message,
            recovery_attempt=True,
        )

    return ExtractedTour(
        url=url,
        title=title,
        description=description,
        excerpt=make_excerpt(description),
        images=images,
        destination=config.default_destination,
        slug=slugify(title),
        recovery_attempt=True,
    )


def extract_tour(
    url: str, session: ScrapeSession, http: requests.Session | None = None
) -> ExtractedTour:
    """Scrape one tour page. Never raises; failures become error records."""

    config = session.config
    owns_http = http is None
    client = http if http is not None else requests.Session()
    LOGGER.info("Scraping tour details from %s", url)
    try:
        try:
            html = _fetch_html(client, url, config.browser_headers(), config.request_timeout)
            tour = parse_tour_page(url, html, config)
        except Exception as exc:
            LOGGER.warning("Error scraping tour details from %s: %s", url, exc)
            return _recover_tour(url, exc, config, client)
    finally:
        if owns_http:
            client.close()

    LOGGER.info("Extracted tour data: %s", tour.title or url)
    return tour
