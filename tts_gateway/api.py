from __future__ import annotations

import base64

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tts_gateway.container import get_orchestrator
from tts_gateway.errors import (
    ArtifactNotFoundError,
    EncodingError,
    PersistenceError,
    QuotaExceededError,
    UpstreamError,
    UpstreamExhaustedError,
)
from tts_gateway.logging_utils import get_logger
from tts_gateway.models import (
    DeleteTTSRequest,
    DeleteTTSResponse,
    GenerateTTSRequest,
    GenerateTTSResponse,
    HealthResponse,
    HistoryItem,
    StyleSettings,
    StyleSettingsModel,
    UpdatePlanRequest,
    UpdatePlanResponse,
    UserProfileResponse,
    VoicesResponse,
)
from tts_gateway.services import GenerationRequest


logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root() -> PlainTextResponse:
    """Simple root endpoint for quick sanity checks."""
    return PlainTextResponse("tts-gateway is running", media_type="text/plain")


@router.get("/healthz", response_model=HealthResponse)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/metrics")
async def metrics() -> PlainTextResponse:
    payload = generate_latest()
    return PlainTextResponse(payload, media_type=CONTENT_TYPE_LATEST)


@router.get("/voices", response_model=VoicesResponse)
async def list_voices() -> VoicesResponse:
    provider = get_orchestrator().provider
    return VoicesResponse(provider=provider.id, voices=provider.list_voices())


@router.get("/user-profile", response_model=UserProfileResponse)
async def user_profile(user_id: str = Query(..., min_length=1)) -> UserProfileResponse:
    try:
        usage = await get_orchestrator().ledger.snapshot(user_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return UserProfileResponse(
        daily_chars_used=usage.daily_chars_used,
        daily_limit_reset_time=usage.daily_reset_at,
        current_daily_limit=usage.ceiling,
        subscription=usage.tier,
        chars_used=usage.lifetime_chars_used,
    )


@router.get("/user-history", response_model=list[HistoryItem])
async def user_history(user_id: str = Query(..., min_length=1)) -> list[HistoryItem]:
    items: list[HistoryItem] = []
    for artifact in get_orchestrator().history(user_id):
        b64 = base64.b64encode(artifact.container).decode("ascii")
        items.append(
            HistoryItem(
                id=artifact.id,
                user_id=artifact.owner_principal_id,
                text=artifact.text,
                voice_name=artifact.voice,
                created_at=artifact.created_at,
                settings=StyleSettingsModel(
                    expression=artifact.style.expression,
                    pitch=artifact.style.pitch,
                    speed=artifact.style.speed,
                ),
                audio_url=f"data:audio/wav;base64,{b64}",
            )
        )
    return items


@router.post("/generate-tts", response_model=GenerateTTSResponse)
async def generate_tts(req: GenerateTTSRequest) -> GenerateTTSResponse:
    orchestrator = get_orchestrator()

    text = req.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="text must not be empty after normalization")
    if req.voice not in orchestrator.provider.list_voices():
        raise HTTPException(
            status_code=400,
            detail=f"unknown voice '{req.voice}' for provider '{orchestrator.provider.id}'",
        )

    gen_req = GenerationRequest(
        text=text,
        voice=req.voice,
        principal_id=req.user_id,
        declared_chars=req.text_length,
        style=StyleSettings(
            expression=req.settings.expression,
            pitch=req.settings.pitch,
            speed=req.settings.speed,
        ),
    )

    try:
        result = await orchestrator.generate(gen_req)
    except QuotaExceededError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except UpstreamExhaustedError as exc:
        logger.error("Upstream pool exhausted for principal=%s: %s", req.user_id, exc.detail)
        raise HTTPException(
            status_code=503,
            detail="Speech provider is rate limited on every key; try again later",
        ) from exc
    except UpstreamError as exc:
        raise HTTPException(
            status_code=502,
            detail=f"Failed to generate speech: {exc.detail or exc}",
        ) from exc
    except EncodingError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to generate speech: {exc}") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    usage = result.usage
    return GenerateTTSResponse(
        audio_url=result.audio_url,
        base64_audio=result.audio_base64,
        artifact_id=result.artifact_id,
        daily_chars_used=usage.daily_chars_used,
        daily_limit_reset_time=usage.daily_reset_at,
        current_daily_limit=usage.ceiling,
        chars_used=usage.lifetime_chars_used,
    )


@router.delete("/delete-tts/{artifact_id}", response_model=DeleteTTSResponse)
async def delete_tts(artifact_id: str, req: DeleteTTSRequest) -> DeleteTTSResponse:
    try:
        usage = await get_orchestrator().delete_artifact(artifact_id, req.user_id)
    except ArtifactNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return DeleteTTSResponse(
        message="Project deleted successfully.",
        daily_chars_used=usage.daily_chars_used,
        chars_used=usage.lifetime_chars_used,
    )


@router.post("/admin-update-user-plan", response_model=UpdatePlanResponse)
async def update_user_plan(req: UpdatePlanRequest) -> UpdatePlanResponse:
    usage = await get_orchestrator().ledger.change_tier(req.user_id, req.plan)
    return UpdatePlanResponse(
        message=f"User {req.user_id} plan updated to {req.plan.value}",
        daily_chars_used=usage.daily_chars_used,
        daily_limit_reset_time=usage.daily_reset_at,
        current_daily_limit=usage.ceiling,
        subscription=usage.tier,
    )
