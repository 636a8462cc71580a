from __future__ import annotations

import os
import re
from dataclasses import dataclass


def parse_api_keys(raw: str) -> list[str]:
    """Split a comma/whitespace separated key list, dropping blanks and duplicates."""
    keys: list[str] = []
    for token in re.split(r"[\s,;]+", raw or ""):
        token = token.strip()
        if token and token not in keys:
            keys.append(token)
    return keys


@dataclass
class AppConfig:
    """Application configuration loaded from environment.

    Provider selection, the upstream key pool and the quota reset zone
    are all controlled via .env so deployments never need code changes.
    """

    # Which registered provider serves synthesis requests.
    speech_provider: str = os.getenv("SPEECH_PROVIDER", "gemini")

    gemini_enabled: bool = os.getenv("GEMINI_ENABLED", "1") != "0"
    mock_tone_enabled: bool = os.getenv("MOCK_TONE_ENABLED", "1") != "0"

    # Comma separated pool of interchangeable upstream keys. API_KEY is
    # accepted as a single-key fallback.
    gemini_api_keys_raw: str = os.getenv("GEMINI_API_KEYS", "")
    gemini_api_key: str = os.getenv("API_KEY", "")
    gemini_model: str = os.getenv(
        "GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts"
    )

    # The mock provider needs no real credentials, but still goes through
    # the rotator so failover can be exercised locally.
    mock_tone_keys_raw: str = os.getenv("MOCK_TONE_KEYS", "mock-key-1")

    quota_timezone: str = os.getenv("QUOTA_TIMEZONE", "Africa/Lusaka")
    preview_principal_id: str = os.getenv("PREVIEW_PRINCIPAL_ID", "preview_user_id")
    default_subscription_tier: str = os.getenv("DEFAULT_SUBSCRIPTION_TIER", "free")

    cors_allow_origins_raw: str = os.getenv(
        "CORS_ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    )

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3001"))

    @property
    def gemini_api_keys(self) -> list[str]:
        keys = parse_api_keys(self.gemini_api_keys_raw)
        if not keys and self.gemini_api_key:
            keys = parse_api_keys(self.gemini_api_key)
        return keys

    @property
    def mock_tone_keys(self) -> list[str]:
        return parse_api_keys(self.mock_tone_keys_raw)

    @property
    def cors_allow_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins_raw.split(",") if o.strip()]


settings = AppConfig()
