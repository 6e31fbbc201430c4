import json
import logging
import os
import sys
from typing import Any, Dict, Optional, Sequence

from .aggregator import Aggregator
from .config import load_settings
from .errors import ConfigurationError, PortgridError
from .factory import create_aggregator
from .logging_config import configure_logging
from .models import inventory_to_dict
from .sections import SectionConfig, group_by_section

logger = logging.getLogger(__name__)


def get_inventory(aggregator: Aggregator, sections: Optional[Sequence[SectionConfig]] = None) -> Dict[str, Any]:
    """Fetch the current inventory and shape it as the `{"devices": [...]}` response.

    When sections are configured, `sections` maps each section name to the ids
    of the devices auto-assigned to it.
    """
    devices = aggregator.fetch_inventory()
    payload = inventory_to_dict(devices)
    if sections:
        payload["sections"] = group_by_section(devices, sections)
    logger.info("Returning %s devices", len(devices))
    return payload


def main() -> int:
    # Configure logging early so load_settings() warnings/errors are visible.
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        settings = load_settings()
        configure_logging(
            settings.log_level,
            settings.log_dir,
            secrets=(settings.librenms.token, settings.netdisco.token),
        )
        aggregator = create_aggregator(settings)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    logger.info("Fetching inventory, DATA_SOURCE: %s", settings.data_source)

    try:
        if settings.force_refresh:
            aggregator.cache.invalidate(aggregator.cache_key)
        payload = get_inventory(aggregator, settings.sections)
    except PortgridError as exc:
        logger.error("Error fetching port data: %s", exc)
        return 1

    for entry in aggregator.cache.entries():
        logger.debug(
            "Cache entry %s: %s devices, age %ss (fresh=%s)",
            entry["key"],
            entry["devices"],
            entry["age_seconds"],
            entry["fresh"],
        )

    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
