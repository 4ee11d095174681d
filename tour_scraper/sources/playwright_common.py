"""Reusable Playwright helpers shared by the browser discovery tier."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from playwright.async_api import Page

LOGGER = logging.getLogger(__name__)

BROWSER_LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

# Runs in the page; ``link.href`` is already resolved by the browser.
_ANCHOR_SCRIPT = """
(links) => links
    .filter((link) => link.href)
    .map((link) => ({
        url: link.href,
        text: (link.textContent || '').trim(),
        hasImage: link.querySelector('img') !== null,
    }))
"""


async def open_listing_page(page: Page, url: str, timeout_seconds: float) -> bool:
    """Navigate to ``url`` and wait for the network to settle.

    Returns ``False`` when the server answered with an error status.
    Navigation errors and timeouts propagate to the caller.
    """

    response = await page.goto(
        url, wait_until="networkidle", timeout=int(timeout_seconds * 1000)
    )
    if response is not None and not response.ok:
        LOGGER.warning("Listing page %s answered with HTTP %s", url, response.status)
        return False
    return True


async def collect_anchor_metadata(page: Page) -> List[Dict[str, Any]]:
    """Return url/text/hasImage records for every anchor on the page."""

    anchors = await page.eval_on_selector_all("a", _ANCHOR_SCRIPT)
    records: List[Dict[str, Any]] = []
    for anchor in anchors or []:
        url = anchor.get("url")
        if not url:
            continue
        records.append(
            {
                "url": str(url),
                "text": str(anchor.get("text") or "").strip(),
                "hasImage": bool(anchor.get("hasImage")),
            }
        )
    return records
