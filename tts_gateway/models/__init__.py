from .api import (
    DeleteTTSRequest,
    DeleteTTSResponse,
    GenerateTTSRequest,
    GenerateTTSResponse,
    HealthResponse,
    HistoryItem,
    StyleSettingsModel,
    UpdatePlanRequest,
    UpdatePlanResponse,
    UserProfileResponse,
    VoicesResponse,
)
from .domain import (
    TIER_CEILINGS,
    PrincipalUsage,
    QuotaDecision,
    StoredProfile,
    StyleSettings,
    SubscriptionTier,
    SynthesisArtifact,
    UsageSnapshot,
)

__all__ = [
    "DeleteTTSRequest",
    "DeleteTTSResponse",
    "GenerateTTSRequest",
    "GenerateTTSResponse",
    "HealthResponse",
    "HistoryItem",
    "StyleSettingsModel",
    "UpdatePlanRequest",
    "UpdatePlanResponse",
    "UserProfileResponse",
    "VoicesResponse",
    "TIER_CEILINGS",
    "PrincipalUsage",
    "QuotaDecision",
    "StoredProfile",
    "StyleSettings",
    "SubscriptionTier",
    "SynthesisArtifact",
    "UsageSnapshot",
]
