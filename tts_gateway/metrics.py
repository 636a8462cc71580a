from __future__ import annotations

from prometheus_client import Counter


TTS_GENERATIONS_TOTAL = Counter(
    "tts_generations_total",
    "Total synthesis requests by final status.",
    ["status"],
)

TTS_UPSTREAM_ATTEMPTS_TOTAL = Counter(
    "tts_upstream_attempts_total",
    "Total upstream provider calls by provider and outcome.",
    ["provider", "outcome"],
)

TTS_CREDENTIAL_ROTATIONS_TOTAL = Counter(
    "tts_credential_rotations_total",
    "Total number of times the upstream credential cursor advanced.",
)

TTS_QUOTA_REJECTIONS_TOTAL = Counter(
    "tts_quota_rejections_total",
    "Total requests rejected because of the daily character ceiling.",
    ["tier"],
)

TTS_CHARS_COMMITTED_TOTAL = Counter(
    "tts_chars_committed_total",
    "Total characters billed against daily quotas.",
    ["tier"],
)

TTS_PERSISTENCE_FAILURES_TOTAL = Counter(
    "tts_persistence_failures_total",
    "Total profile store writes that failed and were tolerated.",
    ["operation"],
)


def record_generation(status: str) -> None:
    TTS_GENERATIONS_TOTAL.labels(status=status).inc()


def record_upstream_attempt(provider_id: str, outcome: str) -> None:
    TTS_UPSTREAM_ATTEMPTS_TOTAL.labels(provider=provider_id, outcome=outcome).inc()


def record_credential_rotation() -> None:
    TTS_CREDENTIAL_ROTATIONS_TOTAL.inc()


def record_quota_rejection(tier: str) -> None:
    TTS_QUOTA_REJECTIONS_TOTAL.labels(tier=tier).inc()


def record_chars_committed(tier: str, num_chars: int) -> None:
    TTS_CHARS_COMMITTED_TOTAL.labels(tier=tier).inc(num_chars)


def record_persistence_failure(operation: str) -> None:
    """Record a tolerated profile store failure (`operation` e.g. "commit")."""
    TTS_PERSISTENCE_FAILURES_TOTAL.labels(operation=operation).inc()
