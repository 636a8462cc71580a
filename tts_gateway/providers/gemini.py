from __future__ import annotations

import base64
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from tts_gateway.logging_utils import get_logger
from tts_gateway.models import StyleSettings
from .base import (
    BaseSpeechProvider,
    RateLimited,
    SynthesisOutcome,
    SynthesisSuccess,
    UpstreamFailure,
)


logger = get_logger(__name__)

GEMINI_VOICES = ["Zephyr", "Kore", "Puck", "Charon", "Fenrir"]

_RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "resource_exhausted",
    "resource exhausted",
    "quota",
    "too many requests",
    "throttl",
)


def build_prompt(text: str, style: StyleSettings) -> str:
    """Prefix the transcript so the model reads it instead of answering it."""
    expression = style.expression
    tone_hint = ""
    if expression and expression != "Natural":
        tone_hint = f" in a {expression.lower()} tone"
    return f"Read the following transcript exactly{tone_hint}: {text}"


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify an upstream exception as throttling / quota exhaustion."""
    if getattr(exc, "code", None) == 429:
        return True
    status = str(getattr(exc, "status", "") or "").upper()
    if status == "RESOURCE_EXHAUSTED":
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def extract_pcm_bytes(response: Any) -> bytes:
    """Return the first inline audio payload of a generate_content response.

    Returns empty bytes when the model answered without audio; the
    encoder reports that as an encoding failure.
    """
    for cand in getattr(response, "candidates", None) or []:
        content = getattr(cand, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None)
            if data is None:
                continue
            if isinstance(data, str):
                return base64.b64decode(data)
            return bytes(data)
    return b""


class GeminiSpeechProvider(BaseSpeechProvider):
    """Google Gemini TTS via the google-genai SDK."""

    id: str = "gemini"

    def __init__(self, model_name: str = "gemini-2.5-flash-preview-tts") -> None:
        self._model_name = model_name

    def list_voices(self) -> list[str]:
        return list(GEMINI_VOICES)

    def build_client(self, credential: str) -> genai.Client:
        return genai.Client(api_key=credential)

    async def synthesize(
        self,
        *,
        client: Any,
        text: str,
        voice: str,
        style: StyleSettings,
    ) -> SynthesisOutcome:
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
                )
            ),
        )
        try:
            response = await client.aio.models.generate_content(
                model=self._model_name,
                contents=build_prompt(text, style),
                config=config,
            )
        except genai_errors.APIError as exc:
            detail = str(exc).strip().replace("\n", " ")
            if is_rate_limit_error(exc):
                return RateLimited(detail=detail)
            logger.error("Gemini TTS API error: %s", detail)
            return UpstreamFailure(detail=detail)
        except Exception as exc:  # noqa: BLE001
            # Transport failures (connect, TLS, timeouts) surface as httpx errors.
            detail = f"{type(exc).__name__}: {exc}"
            logger.error("Gemini TTS transport error: %s", detail)
            return UpstreamFailure(detail=detail)

        return SynthesisSuccess(pcm=extract_pcm_bytes(response))
