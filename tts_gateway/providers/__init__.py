from .base import (
    BaseSpeechProvider,
    RateLimited,
    SynthesisOutcome,
    SynthesisSuccess,
    UpstreamFailure,
)
from .gemini import GeminiSpeechProvider
from .mock_tone import MockToneProvider
from .registry import ProviderRegistry

__all__ = [
    "BaseSpeechProvider",
    "RateLimited",
    "SynthesisOutcome",
    "SynthesisSuccess",
    "UpstreamFailure",
    "GeminiSpeechProvider",
    "MockToneProvider",
    "ProviderRegistry",
]
