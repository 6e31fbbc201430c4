import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
import urllib3

from .errors import ConfigurationError, UpstreamError
from .models import Inventory

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class Aggregator(ABC):
    """Fetch-inventory contract shared by every upstream source and the cache wrapper."""

    #: Identifier of the upstream system, used as the cache key.
    source_name: str = ""

    @abstractmethod
    def fetch_inventory(self) -> Inventory:
        """Return devices sorted by hostname, each with ports sorted by ifName."""


class UpstreamSource(Aggregator):
    """Base for adapters talking to an upstream REST API over a requests session.

    Connection settings are validated here, at construction, so a missing URL or
    credential fails before any fetch is attempted.
    """

    def __init__(
        self,
        base_url: Optional[str],
        credential: Optional[str],
        *,
        timeout: int = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
    ):
        if not base_url or not credential:
            raise ConfigurationError(
                f"{self.source_name} configuration missing: base URL and API credential are required"
            )

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify_ssl = verify_ssl

        if not verify_ssl:
            # disable insecure HTTPS warnings (self-signed certs)
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                # Always ask upstream for fresh data; caching is ours to do.
                "Cache-Control": "no-cache",
                "Pragma": "no-cache",
            }
        )
        self.session.headers.update(self._auth_headers(credential))
        self.logger = logging.getLogger(f"{type(self).__module__}.{self.source_name}")

    @abstractmethod
    def _auth_headers(self, credential: str) -> Dict[str, str]:
        """Headers carrying the upstream credential."""

    def _get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """GET an endpoint and return decoded JSON, raising UpstreamError on any failure."""
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.get(
                url,
                params=params,
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(self.source_name, endpoint, detail=str(exc)) from exc

        if not resp.ok:
            raise UpstreamError(
                self.source_name,
                endpoint,
                status=resp.status_code,
                detail=(resp.text or "").strip()[:200],
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(
                self.source_name,
                endpoint,
                status=resp.status_code,
                detail=f"invalid JSON: {exc}",
            ) from exc
