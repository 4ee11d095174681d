"""Tour scraper package exposing the reusable scrape workflow."""
from .config import ScraperConfig, create_config, create_config_from_env, create_config_from_mapping
from .workflow import ScrapeResult, run_scrape_workflow, write_output

__all__ = [
    "ScrapeResult",
    "ScraperConfig",
    "create_config",
    "create_config_from_env",
    "create_config_from_mapping",
    "run_scrape_workflow",
    "write_output",
]
