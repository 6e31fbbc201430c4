import logging
from typing import Optional

from .aggregator import UpstreamSource
from .cache_manager import CachedAggregator, InventoryCache
from .config import Settings
from .errors import ConfigurationError
from .librenms_client import LibreNMSSource
from .netdisco_client import NetDiscoSource
from .patterns import DeviceFilter

logger = logging.getLogger(__name__)


def create_source(settings: Settings) -> UpstreamSource:
    """Build the adapter for the configured data source.

    Raises:
        ConfigurationError: unknown source, or its URL/credential is missing.
    """
    device_filter = DeviceFilter(
        include=tuple(settings.include_patterns),
        exclude=tuple(settings.exclude_patterns),
    )

    if settings.data_source == "librenms":
        return LibreNMSSource(
            settings.librenms.url,
            settings.librenms.token,
            device_filter=device_filter,
            timeout=settings.http_timeout,
            verify_ssl=settings.verify_ssl,
        )
    if settings.data_source == "netdisco":
        return NetDiscoSource(
            settings.netdisco.url,
            settings.netdisco.token,
            device_filter=device_filter,
            batch_size=settings.batch_size,
            timeout=settings.http_timeout,
            verify_ssl=settings.verify_ssl,
        )
    raise ConfigurationError(f"Unsupported data source: {settings.data_source!r}")


def create_aggregator(settings: Settings, cache: Optional[InventoryCache] = None) -> CachedAggregator:
    """Build the configured source wrapped in the inventory cache, keyed by source name.

    Pass a shared cache to keep results across aggregators built for the same
    process; without one a fresh cache using settings.cache_ttl_seconds is made.
    """
    source = create_source(settings)
    if cache is None:
        cache = InventoryCache(ttl_seconds=settings.cache_ttl_seconds)

    logger.info("Using data source %s (%s)", source.source_name, source.base_url)
    return CachedAggregator(source, cache, cache_key=source.source_name)
