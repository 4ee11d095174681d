"""Discovery of tour detail pages from a site's listing pages."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from playwright.async_api import async_playwright

from .config import ScraperConfig
from .models import ScrapeSession
from .sources.playwright_common import (
    BROWSER_LAUNCH_ARGS,
    collect_anchor_metadata,
    open_listing_page,
)
from .sources.site_profiles import DiscoveryRules, SiteProfile, profile_for

LOGGER = logging.getLogger(__name__)

SOURCE_BROWSER = "browser"
SOURCE_HTTP = "http"

_IGNORED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")


def resolve_url(href: str | None, config: ScraperConfig) -> Optional[str]:
    """Turn an ``href`` into an absolute URL on the configured site."""

    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(_IGNORED_SCHEMES):
        return None
    if href.lower().startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        scheme = urlparse(config.origin).scheme or "https"
        return f"{scheme}:{href}"
    if href.startswith("/"):
        return f"{config.origin}{href}"
    return f"{config.origin}/{href}"


def is_valid_tour_url(url: str) -> bool:
    """True for absolute http(s) URLs without a fragment that are not PDFs."""

    if "#" in url or url.lower().endswith(".pdf"):
        return False
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on out-of-range or non-numeric ports
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_tour_link(
    url: str,
    text: str,
    has_image: bool,
    rules: DiscoveryRules,
    image_signal: bool = False,
) -> bool:
    """Classify a link as a probable tour page.

    ``image_signal`` lets an anchor wrapping an image qualify on its own,
    which only the static HTML tier relies on.
    """

    lowered_url = url.lower()
    lowered_text = text.lower()
    if "#" in lowered_url or lowered_url.endswith(tuple(rules.rejected_suffixes)):
        return False
    if any(pattern in lowered_url for pattern in rules.url_patterns):
        return True
    if any(keyword in lowered_text for keyword in rules.text_keywords):
        return True
    return image_signal and has_image


def _classify_links(
    links: Iterable[Dict[str, Any]],
    config: ScraperConfig,
    rules: DiscoveryRules,
    image_signal: bool,
) -> List[str]:
    urls: List[str] = []
    for link in links:
        resolved = resolve_url(link.get("url"), config)
        if resolved is None:
            continue
        if is_tour_link(
            resolved,
            str(link.get("text") or ""),
            bool(link.get("hasImage")),
            rules,
            image_signal=image_signal,
        ):
            urls.append(resolved)
    return urls


async def _discover_with_browser(config: ScraperConfig, profile: SiteProfile) -> List[str]:
    """Collect candidate URLs from the rendered DOM of each listing page."""

    urls: List[str] = []
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless, args=BROWSER_LAUNCH_ARGS)
        try:
            context = await browser.new_context(user_agent=config.user_agent)
            page = await context.new_page()
            for listing_url in config.listing_urls:
                try:
                    LOGGER.info("Rendering listing page %s", listing_url)
                    if not await open_listing_page(page, listing_url, config.navigation_timeout):
                        continue
                    anchors = await collect_anchor_metadata(page)
                except Exception as exc:
                    LOGGER.warning("Browser discovery failed for %s: %s", listing_url, exc)
                    continue
                page_urls = _classify_links(anchors, config, profile.discovery, image_signal=False)
                LOGGER.info("Found %d potential tour URLs on %s", len(page_urls), listing_url)
                urls.extend(page_urls)
        finally:
            await browser.close()
    return urls


def _run_browser_discovery(config: ScraperConfig, profile: SiteProfile) -> List[str]:
    """Run the async browser tier from synchronous code."""

    coroutine = _discover_with_browser(config, profile)
    try:
        return list(asyncio.run(coroutine))
    finally:
        # asyncio.run refuses to start inside a running loop without closing it
        coroutine.close()


def _discover_with_http(
    config: ScraperConfig, profile: SiteProfile, http: requests.Session
) -> List[str]:
    """Collect candidate URLs from the static HTML of each listing page."""

    urls: List[str] = []
    for listing_url in config.listing_urls:
        try:
            LOGGER.info("Fetching listing page %s", listing_url)
            response = http.get(
                listing_url, headers=config.browser_headers(), timeout=config.request_timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("HTTP discovery failed for %s: %s", listing_url, exc)
            continue

        soup = BeautifulSoup(response.text, "html.parser")
        anchors = [
            {
                "url": anchor.get("href"),
                "text": anchor.get_text(strip=True),
                "hasImage": anchor.find("img") is not None,
            }
            for anchor in soup.find_all("a", href=True)
        ]
        page_urls = _classify_links(anchors, config, profile.discovery, image_signal=True)
        LOGGER.info("Found %d links, %d potential tours on %s", len(anchors), len(page_urls), listing_url)
        urls.extend(page_urls)
    return urls


def discover_tour_urls(
    session: ScrapeSession, http: requests.Session | None = None
) -> List[str]:
    """Find tour page URLs using both discovery tiers.

    The rendered-DOM tier and the static HTML tier always both run and their
    results are unioned into the session's candidate list in first-seen
    order. Failures are logged; the worst case is an empty list.
    """

    config = session.config
    profile = profile_for(urlparse(config.origin).netloc)

    try:
        browser_urls = _run_browser_discovery(config, profile)
    except Exception as exc:
        LOGGER.error("Browser discovery unavailable: %s", exc)
        browser_urls = []

    owns_http = http is None
    client = http if http is not None else requests.Session()
    try:
        http_urls = _discover_with_http(config, profile, client)
    finally:
        if owns_http:
            client.close()

    for source, urls in ((SOURCE_BROWSER, browser_urls), (SOURCE_HTTP, http_urls)):
        for url in urls:
            if is_valid_tour_url(url):
                session.add_candidate(url, source)

    LOGGER.info("Discovery finished with %d unique tour URLs", len(session.candidates))
    if not session.candidates:
        LOGGER.warning(
            "No tour URLs found with any method; the site structure might have changed."
        )
    return session.candidate_urls
