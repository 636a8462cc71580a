from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4

from tts_gateway.audio import encode_wav
from tts_gateway.errors import (
    ArtifactNotFoundError,
    EncodingError,
    QuotaExceededError,
    UpstreamError,
    UpstreamExhaustedError,
)
from tts_gateway.logging_utils import get_logger
from tts_gateway.models import StyleSettings, SynthesisArtifact, UsageSnapshot
from tts_gateway.providers import (
    BaseSpeechProvider,
    RateLimited,
    SynthesisSuccess,
    UpstreamFailure,
)
from tts_gateway.repositories import ArtifactRepository
from tts_gateway import metrics as app_metrics
from .credential_rotator import CredentialRotator
from .quota_ledger import QuotaLedger


logger = get_logger(__name__)


@dataclass
class GenerationRequest:
    text: str
    voice: str
    principal_id: str
    declared_chars: int
    style: StyleSettings = field(default_factory=StyleSettings)


@dataclass
class GenerationResult:
    container: bytes
    usage: UsageSnapshot
    artifact_id: Optional[str] = None

    @property
    def audio_base64(self) -> str:
        return base64.b64encode(self.container).decode("ascii")

    @property
    def audio_url(self) -> str:
        return f"data:audio/wav;base64,{self.audio_base64}"


class GenerationOrchestrator:
    """Runs one metered synthesis: quota check, upstream with failover,
    container encoding, quota commit and artifact persistence.

    Commit is the last fallible step, so a request that fails anywhere
    earlier leaves no usage behind.
    """

    def __init__(
        self,
        *,
        provider: BaseSpeechProvider,
        rotator: CredentialRotator,
        ledger: QuotaLedger,
        artifacts: ArtifactRepository,
    ) -> None:
        self._provider = provider
        self._rotator = rotator
        self._ledger = ledger
        self._artifacts = artifacts

    @property
    def provider(self) -> BaseSpeechProvider:
        return self._provider

    @property
    def ledger(self) -> QuotaLedger:
        return self._ledger

    async def generate(self, req: GenerationRequest) -> GenerationResult:
        decision = await self._ledger.check_and_reserve(req.principal_id, req.declared_chars)
        if not decision.accepted:
            app_metrics.record_generation("quota_exceeded")
            raise QuotaExceededError(
                "Daily character limit reached. Upgrade for unlimited generation.",
                usage=decision.usage,
            )

        try:
            pcm = await self._synthesize_with_failover(req)
            container = encode_wav(pcm)
        except UpstreamExhaustedError:
            app_metrics.record_generation("upstream_exhausted")
            raise
        except UpstreamError:
            app_metrics.record_generation("upstream_failed")
            raise
        except EncodingError:
            app_metrics.record_generation("encoding_failed")
            raise

        try:
            usage = await self._ledger.commit(req.principal_id, req.declared_chars)
        except QuotaExceededError:
            # A concurrent request for the same principal used up the headroom
            # between check and commit.
            app_metrics.record_generation("quota_exceeded")
            raise

        if self._ledger.is_preview(req.principal_id):
            app_metrics.record_generation("preview")
            return GenerationResult(container=container, usage=usage)

        artifact = SynthesisArtifact.new(
            id=f"tts-{uuid4().hex}",
            owner_principal_id=req.principal_id,
            text=req.text,
            voice=req.voice,
            style=req.style,
            char_count=req.declared_chars,
            container=container,
        )
        try:
            self._artifacts.save(artifact)
        except Exception:
            logger.exception(
                "Failed to save artifact for principal=%s; releasing %d chars",
                req.principal_id,
                req.declared_chars,
            )
            await self._ledger.release(req.principal_id, req.declared_chars)
            app_metrics.record_generation("persistence_failed")
            raise

        app_metrics.record_generation("succeeded")
        logger.info(
            "Generated artifact %s for principal=%s (%d chars, %d bytes)",
            artifact.id,
            req.principal_id,
            req.declared_chars,
            len(container),
        )
        return GenerationResult(container=container, usage=usage, artifact_id=artifact.id)

    async def _synthesize_with_failover(self, req: GenerationRequest) -> bytes:
        """Call the provider, rotating credentials on rate limiting.

        Each pool position is tried at most once, so a pool where every key
        is throttled ends after at most `pool_size` attempts.
        """
        provider_id = self._provider.id
        tried: set[int] = set()
        last_detail: Optional[str] = None

        for _ in range(self._rotator.pool_size):
            lease = self._rotator.lease()
            if lease.index in tried:
                # Concurrent rotations brought us back to a key we already used.
                break
            tried.add(lease.index)

            outcome = await self._provider.synthesize(
                client=lease.client,
                text=req.text,
                voice=req.voice,
                style=req.style,
            )

            if isinstance(outcome, SynthesisSuccess):
                app_metrics.record_upstream_attempt(provider_id, "success")
                return outcome.pcm

            if isinstance(outcome, RateLimited):
                app_metrics.record_upstream_attempt(provider_id, "rate_limited")
                logger.warning(
                    "Upstream credential %d rate limited (%s); trying next",
                    lease.index,
                    outcome.detail,
                )
                last_detail = outcome.detail
                self._rotator.rotate(from_index=lease.index)
                continue

            app_metrics.record_upstream_attempt(provider_id, "failed")
            detail = outcome.detail if isinstance(outcome, UpstreamFailure) else repr(outcome)
            raise UpstreamError("Failed to generate speech", detail=detail)

        logger.error(
            "All upstream credentials rate limited after %d attempt(s)",
            len(tried),
        )
        raise UpstreamExhaustedError(len(tried), detail=last_detail)

    async def delete_artifact(self, artifact_id: str, principal_id: str) -> UsageSnapshot:
        """Delete an owned artifact and give its characters back."""
        artifact = self._artifacts.get(artifact_id)
        if artifact is None or artifact.owner_principal_id != principal_id:
            raise ArtifactNotFoundError("Project not found or unauthorized.")

        # Release first so a store failure leaves the artifact in place for a retry.
        usage = await self._ledger.release(principal_id, artifact.char_count)
        self._artifacts.delete(artifact_id)
        logger.info(
            "Deleted artifact %s for principal=%s (released %d chars)",
            artifact_id,
            principal_id,
            artifact.char_count,
        )
        return usage

    def history(self, principal_id: str) -> List[SynthesisArtifact]:
        return self._artifacts.list_for_owner(principal_id)
