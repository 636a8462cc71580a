from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Optional, Sequence

from tts_gateway.errors import ConfigurationError
from tts_gateway.logging_utils import get_logger
from tts_gateway import metrics as app_metrics


logger = get_logger(__name__)


def _mask(credential: str) -> str:
    if len(credential) <= 8:
        return "***"
    return f"{credential[:4]}...{credential[-4:]}"


@dataclass(frozen=True)
class CredentialLease:
    """Snapshot of the cursor handed to a single upstream attempt."""

    index: int
    credential: str
    client: Any


class CredentialRotator:
    """Ordered pool of interchangeable upstream credentials.

    Every caller shares one cursor. `rotate()` is the only mutator; the
    upstream client built for the active credential is discarded as soon
    as the cursor moves off it, so no further request can go out on an
    exhausted key.
    """

    def __init__(
        self,
        credentials: Sequence[str],
        client_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        pool = [c for c in credentials if c]
        if not pool:
            raise ConfigurationError("Credential pool is empty; configure at least one API key")
        self._pool = tuple(pool)
        self._client_factory = client_factory or (lambda credential: credential)
        self._lock = RLock()
        self._active_index = 0
        self._client: Any = None

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    @property
    def active_index(self) -> int:
        with self._lock:
            return self._active_index

    def current(self) -> str:
        """Return the active credential without side effects."""
        with self._lock:
            return self._pool[self._active_index]

    def lease(self) -> CredentialLease:
        """Return the active credential together with a client bound to it."""
        with self._lock:
            if self._client is None:
                self._client = self._client_factory(self._pool[self._active_index])
            return CredentialLease(
                index=self._active_index,
                credential=self._pool[self._active_index],
                client=self._client,
            )

    def rotate(self, *, from_index: Optional[int] = None) -> int:
        """Advance the cursor by one, wrapping past the end.

        When `from_index` is given the cursor only moves if it still points
        there; a concurrent request may already have rotated off that key.
        Returns the resulting active index.
        """
        with self._lock:
            if from_index is not None and from_index != self._active_index:
                return self._active_index

            previous = self._active_index
            self._active_index = (previous + 1) % len(self._pool)
            self._client = None
            logger.warning(
                "Rotating upstream credential %d (%s) -> %d (%s)",
                previous,
                _mask(self._pool[previous]),
                self._active_index,
                _mask(self._pool[self._active_index]),
            )
            app_metrics.record_credential_rotation()
            return self._active_index
