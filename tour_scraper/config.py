"""Configuration helpers for the tour scraper."""
from __future__ import annotations

from dataclasses import dataclass, field
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

DEFAULT_BASE_URL = "https://gurutravelsltd.com"
DEFAULT_LISTING_PATHS = [
    "/package/list",
    "/holiday-packages",
    "/domestic-packages",
    "/tour-destination",
]
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_ENV_KEYS = {
    "TOUR_SCRAPER_BASE_URL": "base_url",
    "TOUR_SCRAPER_LISTING_PATHS": "listing_paths",
    "TOUR_SCRAPER_OUTPUT": "output_path",
    "TOUR_SCRAPER_DELAY": "request_delay",
    "TOUR_SCRAPER_TIMEOUT": "request_timeout",
    "TOUR_SCRAPER_RETRY_TIMEOUT": "retry_timeout",
    "TOUR_SCRAPER_HEADLESS": "headless",
}


@dataclass
class ScraperConfig:
    """Canonical configuration used by the scrape workflow."""

    base_url: str = DEFAULT_BASE_URL
    listing_paths: List[str] = field(default_factory=lambda: list(DEFAULT_LISTING_PATHS))
    output_path: str = os.path.join("output", "guru-tours-data.json")
    request_timeout: float = 30.0
    retry_timeout: float = 45.0
    navigation_timeout: float = 30.0
    request_delay: float = 1.0
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    site_name_suffixes: List[str] = field(
        default_factory=lambda: [" - Guru Travels", " | Guru Travels"]
    )
    default_destination: str = "Nepal"
    default_duration_days: int = 10

    @property
    def origin(self) -> str:
        """Scheme and host of :attr:`base_url` without a trailing slash."""

        parsed = urlparse(self.base_url)
        if parsed.scheme and parsed.netloc:
            return f"{parsed.scheme}://{parsed.netloc}"
        return self.base_url.rstrip("/")

    @property
    def listing_urls(self) -> List[str]:
        urls: List[str] = []
        for path in self.listing_paths:
            if path.startswith(("http://", "https://")):
                urls.append(path)
            else:
                urls.append(f"{self.origin}/{path.lstrip('/')}")
        return urls

    def browser_headers(self) -> Dict[str, str]:
        """Headers that make plain HTTP requests look like a desktop browser."""

        return {
            "User-Agent": self.user_agent,
            "Accept": (
                "text/html,application/xhtml+xml,application/xml;q=0.9,"
                "image/avif,image/webp,image/apng,*/*;q=0.8"
            ),
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

    def retry_headers(self) -> Dict[str, str]:
        headers = self.browser_headers()
        headers["Accept-Encoding"] = "identity"
        return headers

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable version of the configuration."""

        return {
            "base_url": self.base_url,
            "listing_paths": list(self.listing_paths),
            "output_path": self.output_path,
            "request_timeout": self.request_timeout,
            "retry_timeout": self.retry_timeout,
            "navigation_timeout": self.navigation_timeout,
            "request_delay": self.request_delay,
            "headless": self.headless,
            "default_destination": self.default_destination,
            "default_duration_days": self.default_duration_days,
        }


def _parse_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = str(value).strip().lower().rstrip("s").strip()
    cleaned = cleaned.replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        return None


def _parse_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, int):
        return value
    match = re.search(r"-?\d+", str(value))
    if not match:
        return None
    return int(match.group())


def _parse_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _ensure_list(value: str | Iterable[str] | None) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        if not value:
            return []
        return [item.strip() for item in value.split(",") if item.strip()]
    return [item for item in value if item]


def create_config_from_mapping(data: Mapping[str, Any]) -> ScraperConfig:
    """Create a configuration from loosely typed key/value pairs.

    Unknown keys are ignored and unparseable values fall back to the
    defaults of :class:`ScraperConfig`.
    """

    config = ScraperConfig()

    base_url = str(data.get("base_url") or "").strip()
    if base_url:
        config.base_url = base_url

    listing_paths = _ensure_list(data.get("listing_paths"))
    if listing_paths:
        config.listing_paths = listing_paths

    output_path = str(data.get("output_path") or "").strip()
    if output_path:
        config.output_path = output_path

    for name in ("request_timeout", "retry_timeout", "navigation_timeout", "request_delay"):
        parsed = _parse_float(data.get(name))
        if parsed is not None and parsed >= 0:
            setattr(config, name, parsed)

    config.headless = _parse_bool(data.get("headless"), config.headless)

    suffixes = _ensure_list(data.get("site_name_suffixes"))
    if suffixes:
        config.site_name_suffixes = suffixes

    destination = str(data.get("default_destination") or "").strip()
    if destination:
        config.default_destination = destination

    duration_days = _parse_int(data.get("default_duration_days"))
    if duration_days:
        config.default_duration_days = duration_days

    return config


def create_config_from_env(environ: Mapping[str, str] | None = None) -> ScraperConfig:
    """Build a configuration from ``TOUR_SCRAPER_*`` environment variables."""

    source = os.environ if environ is None else environ
    values = {key: source[env] for env, key in _ENV_KEYS.items() if env in source}
    return create_config_from_mapping(values)


def create_config(data: Mapping[str, Any] | None = None) -> ScraperConfig:
    """Unified helper that accepts a mapping or nothing at all."""

    if data is None:
        return ScraperConfig()
    if isinstance(data, Mapping):
        return create_config_from_mapping(data)
    raise TypeError("Unsupported configuration payload type: expected a mapping or None")
