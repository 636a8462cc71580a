from __future__ import annotations

from typing import Any, Iterable

from tts_gateway.audio import SAMPLE_RATE_HZ, pcm16le_from_floats, silence, tone
from tts_gateway.models import StyleSettings
from .base import BaseSpeechProvider, RateLimited, SynthesisOutcome, SynthesisSuccess


class MockToneProvider(BaseSpeechProvider):
    """Offline provider that encodes text as a sequence of tones.

    Output matches the real provider's format (PCM16 mono @ 24 kHz) so the
    whole pipeline can run without network access. Credentials listed in
    `rate_limited_credentials` always answer RateLimited, which makes key
    failover observable locally.
    """

    id: str = "mock_tone"

    def __init__(
        self,
        sample_rate_hz: int = SAMPLE_RATE_HZ,
        rate_limited_credentials: Iterable[str] = (),
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._rate_limited = frozenset(rate_limited_credentials)
        self._voices = ["Zephyr", "Kore", "Puck", "Charon", "Fenrir"]

    def list_voices(self) -> list[str]:
        return list(self._voices)

    def build_client(self, credential: str) -> Any:
        # No real client; the credential itself identifies the "connection".
        return credential

    async def synthesize(
        self,
        *,
        client: Any,
        text: str,
        voice: str,
        style: StyleSettings,
    ) -> SynthesisOutcome:
        if client in self._rate_limited:
            return RateLimited(detail=f"mock credential '{client}' is throttled")

        sample_rate = self._sample_rate_hz

        base_freq = 220.0 * style.pitch
        gain = 0.2
        char_ms = 40.0 / max(style.speed, 0.1)  # duration per character in ms
        gap_ms = 10.0   # gap between characters in ms

        samples: list[float] = []
        for ch in text:
            semitone = (ord(ch) % 24) - 12
            freq = base_freq * (2 ** (semitone / 12.0))
            samples.extend(tone(freq, char_ms / 1000.0, sample_rate, gain=gain))
            samples.extend(silence(gap_ms / 1000.0, sample_rate))

        return SynthesisSuccess(pcm=pcm16le_from_floats(samples))
