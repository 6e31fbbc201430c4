from typing import Optional


class PortgridError(Exception):
    """Base class for all inventory pipeline errors."""


class ConfigurationError(PortgridError):
    """Required settings are missing or malformed. Not retryable."""


class UpstreamError(PortgridError):
    """A required upstream call failed (transport error or non-success status).

    Carries enough detail to be logged without contacting upstream again.
    """

    def __init__(
        self,
        source: str,
        endpoint: str,
        status: Optional[int] = None,
        detail: str = "",
    ):
        self.source = source
        self.endpoint = endpoint
        self.status = status
        self.detail = detail
        super().__init__(self._render())

    def _render(self) -> str:
        status = self.status if self.status is not None else "no response"
        msg = f"{self.source} {self.endpoint} failed ({status})"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg


class RecordParseError(PortgridError):
    """A single upstream record cannot be turned into a canonical record."""

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"invalid {field}: {value!r}")
