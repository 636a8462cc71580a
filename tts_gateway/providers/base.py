from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Union

from tts_gateway.models import StyleSettings


@dataclass(frozen=True)
class SynthesisSuccess:
    """Raw PCM16LE mono samples returned by the provider."""

    pcm: bytes


@dataclass(frozen=True)
class RateLimited:
    """The credential used for this call is throttled or out of quota."""

    detail: str = ""


@dataclass(frozen=True)
class UpstreamFailure:
    """Any other provider error; never retried on another credential."""

    detail: str = ""


SynthesisOutcome = Union[SynthesisSuccess, RateLimited, UpstreamFailure]


class BaseSpeechProvider(Protocol):
    """Interface for upstream speech providers.

    Providers classify their own errors into a SynthesisOutcome so that
    failover logic never has to inspect provider-specific wording.
    """

    id: str

    def list_voices(self) -> list[str]:
        """Return the voice names accepted by `synthesize`."""

    def build_client(self, credential: str) -> Any:
        """Return an upstream client bound to a single credential."""

    async def synthesize(
        self,
        *,
        client: Any,
        text: str,
        voice: str,
        style: StyleSettings,
    ) -> SynthesisOutcome:
        """Synthesize `text` with the given client."""
