from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tts_gateway.models import UsageSnapshot


class GatewayError(Exception):
    """Base class for all errors raised by the gateway core."""


class ConfigurationError(GatewayError):
    """Startup-time misconfiguration, e.g. an empty credential pool."""


class QuotaExceededError(GatewayError):
    """The request would push a principal past its daily ceiling."""

    reason = "quota_exceeded"

    def __init__(self, message: str, *, usage: Optional["UsageSnapshot"] = None) -> None:
        super().__init__(message)
        self.usage = usage


class UpstreamError(GatewayError):
    """The provider failed for a reason other than rate limiting."""

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.detail = detail


class UpstreamExhaustedError(UpstreamError):
    """Every credential in the pool signalled rate limiting."""

    def __init__(self, attempts: int, *, detail: Optional[str] = None) -> None:
        super().__init__(
            f"All {attempts} upstream credential(s) are rate limited",
            detail=detail,
        )
        self.attempts = attempts


class EncodingError(GatewayError):
    """Upstream audio was absent or could not be wrapped/unwrapped."""


class PersistenceError(GatewayError):
    """A durable store read or write failed."""


class ArtifactNotFoundError(GatewayError):
    """Artifact does not exist or is owned by another principal."""
