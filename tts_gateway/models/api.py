from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .domain import SubscriptionTier


Expression = Literal[
    "Natural",
    "Professional",
    "Cheerful",
    "Somber",
    "Whispering",
    "Authoritative",
    "Excited",
]


class StyleSettingsModel(BaseModel):
    expression: Expression = "Natural"
    pitch: float = Field(1.0, ge=0.5, le=1.5, description="Pitch multiplier")
    speed: float = Field(1.0, ge=0.5, le=2.0, description="Speed multiplier")


class GenerateTTSRequest(BaseModel):
    """Request body for a single metered synthesis."""

    text: str = Field(..., min_length=1, description="Input text to synthesize")
    voice: str = Field(..., min_length=1, description="Prebuilt voice name, e.g. 'Kore'")
    settings: StyleSettingsModel
    user_id: str = Field(..., min_length=1, description="Principal to bill")
    text_length: int = Field(..., ge=0, description="Declared billable characters")


class GenerateTTSResponse(BaseModel):
    audio_url: str
    base64_audio: str
    artifact_id: Optional[str] = None
    daily_chars_used: int
    daily_limit_reset_time: datetime
    current_daily_limit: int
    chars_used: int


class UserProfileResponse(BaseModel):
    daily_chars_used: int
    daily_limit_reset_time: datetime
    current_daily_limit: int
    subscription: SubscriptionTier
    chars_used: int


class HistoryItem(BaseModel):
    id: str
    user_id: str
    text: str
    voice_name: str
    created_at: datetime
    settings: StyleSettingsModel
    audio_url: str


class DeleteTTSRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class DeleteTTSResponse(BaseModel):
    message: str
    daily_chars_used: int
    chars_used: int


class UpdatePlanRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    plan: SubscriptionTier


class UpdatePlanResponse(BaseModel):
    message: str
    daily_chars_used: int
    daily_limit_reset_time: datetime
    current_daily_limit: int
    subscription: SubscriptionTier


class VoicesResponse(BaseModel):
    provider: str
    voices: List[str]


class HealthResponse(BaseModel):
    status: Literal["ok"]


class ErrorResponse(BaseModel):
    detail: str
