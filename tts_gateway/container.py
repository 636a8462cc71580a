from __future__ import annotations

from functools import lru_cache
from zoneinfo import ZoneInfoNotFoundError

from tts_gateway.config import settings
from tts_gateway.errors import ConfigurationError
from tts_gateway.models import SubscriptionTier
from tts_gateway.providers import BaseSpeechProvider, ProviderRegistry
from tts_gateway.repositories import InMemoryArtifactRepository, InMemoryProfileStore
from tts_gateway.services import CredentialRotator, GenerationOrchestrator, QuotaLedger


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    return ProviderRegistry()


@lru_cache(maxsize=1)
def get_speech_provider() -> BaseSpeechProvider:
    try:
        return get_provider_registry().get(settings.speech_provider)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


@lru_cache(maxsize=1)
def get_profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@lru_cache(maxsize=1)
def get_artifact_repo() -> InMemoryArtifactRepository:
    return InMemoryArtifactRepository()


@lru_cache(maxsize=1)
def get_credential_rotator() -> CredentialRotator:
    """Return the process-wide key pool for the selected provider."""
    provider = get_speech_provider()
    if provider.id == "gemini":
        keys = settings.gemini_api_keys
    else:
        keys = settings.mock_tone_keys
    return CredentialRotator(keys, client_factory=provider.build_client)


@lru_cache(maxsize=1)
def get_quota_ledger() -> QuotaLedger:
    try:
        default_tier = SubscriptionTier(settings.default_subscription_tier)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown DEFAULT_SUBSCRIPTION_TIER '{settings.default_subscription_tier}'"
        ) from exc
    try:
        return QuotaLedger(
            profile_store=get_profile_store(),
            timezone_name=settings.quota_timezone,
            preview_principal_id=settings.preview_principal_id,
            default_tier=default_tier,
        )
    except ZoneInfoNotFoundError as exc:
        raise ConfigurationError(f"Unknown QUOTA_TIMEZONE '{settings.quota_timezone}'") from exc


@lru_cache(maxsize=1)
def get_orchestrator() -> GenerationOrchestrator:
    return GenerationOrchestrator(
        provider=get_speech_provider(),
        rotator=get_credential_rotator(),
        ledger=get_quota_ledger(),
        artifacts=get_artifact_repo(),
    )
