from __future__ import annotations

from typing import Dict, Iterable

from tts_gateway.config import AppConfig, settings
from .base import BaseSpeechProvider
from .gemini import GeminiSpeechProvider
from .mock_tone import MockToneProvider


class ProviderRegistry:
    """Simple in-memory registry for speech providers."""

    def __init__(self, config: AppConfig | None = None) -> None:
        config = config or settings
        providers: Dict[str, BaseSpeechProvider] = {}

        if config.mock_tone_enabled:
            mock = MockToneProvider()
            providers[mock.id] = mock

        if config.gemini_enabled:
            gemini = GeminiSpeechProvider(model_name=config.gemini_model)
            providers[gemini.id] = gemini

        self._providers = providers

    def get(self, provider_id: str) -> BaseSpeechProvider:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ValueError(f"Unknown provider '{provider_id}'")

    def list_providers(self) -> Iterable[BaseSpeechProvider]:
        return self._providers.values()
