"""Batch entry point: scrape the configured site and export the tours."""
from __future__ import annotations

import logging
import sys

from tour_scraper import create_config_from_env, run_scrape_workflow, write_output

LOGGER = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    config = create_config_from_env()
    LOGGER.info("Starting tour scraper for %s", config.base_url)

    try:
        result = run_scrape_workflow(config)
    except Exception:
        LOGGER.exception("An error occurred during scraping")
        return 1

    try:
        write_output(result.cleaned, config.output_path)
    except OSError as exc:
        LOGGER.error("Could not write tour data to %s: %s", config.output_path, exc)
        return 1

    LOGGER.info("\n%s", result.report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
