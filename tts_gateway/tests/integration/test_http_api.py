from __future__ import annotations

import base64
import logging

import pytest
from fastapi.testclient import TestClient

from tts_gateway.audio import decode_wav, encode_wav
from tts_gateway.errors import PersistenceError
from tts_gateway.main import create_app
from tts_gateway.metrics import TTS_GENERATIONS_TOTAL
from tts_gateway.models import StyleSettings, SubscriptionTier, SynthesisArtifact
from tts_gateway.providers import MockToneProvider
from tts_gateway.repositories import InMemoryArtifactRepository, InMemoryProfileStore
from tts_gateway.services import CredentialRotator, GenerationOrchestrator, QuotaLedger


def _build_orchestrator(rate_limited: set[str] | None = None) -> GenerationOrchestrator:
    provider = MockToneProvider(rate_limited_credentials=rate_limited or set())
    return GenerationOrchestrator(
        provider=provider,
        rotator=CredentialRotator(["mock-1", "mock-2"], client_factory=provider.build_client),
        ledger=QuotaLedger(profile_store=InMemoryProfileStore()),
        artifacts=InMemoryArtifactRepository(),
    )


@pytest.fixture
def orchestrator(monkeypatch: pytest.MonkeyPatch) -> GenerationOrchestrator:
    orch = _build_orchestrator()
    # Routes resolve the orchestrator through the name imported into api.
    monkeypatch.setattr("tts_gateway.api.get_orchestrator", lambda: orch)
    return orch


@pytest.fixture
def client(orchestrator: GenerationOrchestrator) -> TestClient:
    return TestClient(create_app())


def _payload(user_id: str = "alice", text: str = "Hello there", text_length: int | None = None) -> dict:
    return {
        "text": text,
        "voice": "Kore",
        "settings": {"expression": "Cheerful", "pitch": 1.0, "speed": 1.2},
        "user_id": user_id,
        "text_length": len(text) if text_length is None else text_length,
    }


def _get_generations_metric_value(status: str) -> float:
    for metric in TTS_GENERATIONS_TOTAL.collect():
        for sample in metric.samples:
            if (
                sample.name == "tts_generations_total"
                and sample.labels.get("status") == status
            ):
                return float(sample.value)
    return 0.0


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_http_logging_middleware_logs_request(caplog, client: TestClient) -> None:
    with caplog.at_level(logging.INFO):
        response = client.get("/healthz")

    assert response.status_code == 200
    messages = [record.getMessage() for record in caplog.records]
    assert any("HTTP GET /healthz" in msg for msg in messages)


def test_generate_returns_playable_wav_and_updated_usage(client: TestClient) -> None:
    before = _get_generations_metric_value("succeeded")

    response = client.post("/generate-tts", json=_payload())

    assert response.status_code == 200
    body = response.json()
    container = base64.b64decode(body["base64_audio"])
    assert container[:4] == b"RIFF"
    assert len(decode_wav(container)) == len(container) - 44
    assert body["audio_url"] == f"data:audio/wav;base64,{body['base64_audio']}"
    assert body["artifact_id"]
    assert body["daily_chars_used"] == len("Hello there")
    assert body["chars_used"] == len("Hello there")
    assert body["current_daily_limit"] == 700
    assert _get_generations_metric_value("succeeded") == before + 1.0


def test_generate_over_quota_is_forbidden(client: TestClient) -> None:
    first = client.post("/generate-tts", json=_payload(text_length=650))
    assert first.status_code == 200

    second = client.post("/generate-tts", json=_payload(text_length=100))

    assert second.status_code == 403
    assert "Daily character limit" in second.json()["detail"]
    profile = client.get("/user-profile", params={"user_id": "alice"}).json()
    assert profile["daily_chars_used"] == 650


def test_generate_rejects_unknown_voice(client: TestClient) -> None:
    payload = _payload()
    payload["voice"] = "Nobody"

    response = client.post("/generate-tts", json=payload)

    assert response.status_code == 400
    assert "unknown voice" in response.json()["detail"]


def test_generate_rejects_blank_text(client: TestClient) -> None:
    response = client.post("/generate-tts", json=_payload(text="   ", text_length=3))
    assert response.status_code == 400


def test_generate_fails_over_rate_limited_key(monkeypatch: pytest.MonkeyPatch) -> None:
    orch = _build_orchestrator(rate_limited={"mock-1"})
    monkeypatch.setattr("tts_gateway.api.get_orchestrator", lambda: orch)
    client = TestClient(create_app())

    response = client.post("/generate-tts", json=_payload())

    assert response.status_code == 200


def test_generate_with_whole_pool_rate_limited_is_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    orch = _build_orchestrator(rate_limited={"mock-1", "mock-2"})
    monkeypatch.setattr("tts_gateway.api.get_orchestrator", lambda: orch)
    client = TestClient(create_app())

    response = client.post("/generate-tts", json=_payload())

    assert response.status_code == 503
    profile = client.get("/user-profile", params={"user_id": "alice"}).json()
    assert profile["daily_chars_used"] == 0


def test_preview_user_is_not_metered(client: TestClient) -> None:
    response = client.post("/generate-tts", json=_payload(user_id="preview_user_id", text_length=5000))

    assert response.status_code == 200
    body = response.json()
    assert body["artifact_id"] is None
    assert body["daily_chars_used"] == 0
    assert body["chars_used"] == 0
    assert body["current_daily_limit"] == 700


def test_history_and_delete_round_trip(client: TestClient) -> None:
    created = client.post("/generate-tts", json=_payload()).json()

    history = client.get("/user-history", params={"user_id": "alice"}).json()
    assert [item["id"] for item in history] == [created["artifact_id"]]
    assert history[0]["voice_name"] == "Kore"
    assert history[0]["settings"]["expression"] == "Cheerful"

    forbidden = client.request(
        "DELETE", f"/delete-tts/{created['artifact_id']}", json={"user_id": "mallory"}
    )
    assert forbidden.status_code == 404

    deleted = client.request(
        "DELETE", f"/delete-tts/{created['artifact_id']}", json={"user_id": "alice"}
    )
    assert deleted.status_code == 200
    assert deleted.json()["daily_chars_used"] == 0
    assert deleted.json()["chars_used"] == 0
    assert client.get("/user-history", params={"user_id": "alice"}).json() == []


def test_admin_plan_update_raises_ceiling(client: TestClient) -> None:
    client.post("/generate-tts", json=_payload(text_length=650))

    response = client.post("/admin-update-user-plan", json={"user_id": "alice", "plan": "starter"})

    assert response.status_code == 200
    body = response.json()
    assert body["subscription"] == "starter"
    assert body["current_daily_limit"] == 50_000
    assert body["daily_chars_used"] == 0

    again = client.post("/generate-tts", json=_payload(text_length=1000))
    assert again.status_code == 200


def test_admin_plan_update_rejects_unknown_plan(client: TestClient) -> None:
    response = client.post("/admin-update-user-plan", json={"user_id": "alice", "plan": "platinum"})
    assert response.status_code == 422


def test_voices_lists_provider_voices(client: TestClient) -> None:
    body = client.get("/voices").json()
    assert body["provider"] == "mock_tone"
    assert "Kore" in body["voices"]


def test_metrics_endpoint_exposes_prometheus_metrics(client: TestClient) -> None:
    response = client.get("/metrics")
    assert response.status_code == 200
    assert response.headers.get("content-type", "").startswith("text/plain")
    assert "tts_generations_total" in response.text


class _UnavailableProfileStore(InMemoryProfileStore):
    async def get_or_create(self, principal_id: str, default_tier: SubscriptionTier):
        raise PersistenceError("profile store unavailable")


def test_delete_with_profile_store_down_is_unavailable_and_keeps_artifact(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    provider = MockToneProvider()
    artifacts = InMemoryArtifactRepository()
    artifacts.save(
        SynthesisArtifact.new(
            id="tts-seeded",
            owner_principal_id="alice",
            text="Hello there",
            voice="Kore",
            style=StyleSettings(),
            char_count=11,
            container=encode_wav(b"\x00\x00"),
        )
    )
    orch = GenerationOrchestrator(
        provider=provider,
        rotator=CredentialRotator(["mock-1"], client_factory=provider.build_client),
        ledger=QuotaLedger(profile_store=_UnavailableProfileStore()),
        artifacts=artifacts,
    )
    monkeypatch.setattr("tts_gateway.api.get_orchestrator", lambda: orch)
    client = TestClient(create_app())

    response = client.request("DELETE", "/delete-tts/tts-seeded", json={"user_id": "alice"})

    assert response.status_code == 503
    assert "profile store unavailable" in response.json()["detail"]
    assert artifacts.get("tts-seeded") is not None
