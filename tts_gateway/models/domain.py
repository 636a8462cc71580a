from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class SubscriptionTier(str, Enum):
    FREE = "free"
    STARTER = "starter"
    VIP = "vip"
    VVIP = "vvip"
    EXCLUSIVE = "exclusive"

    @property
    def ceiling(self) -> int:
        return TIER_CEILINGS[self]


# Daily character ceilings, shared by every component.
TIER_CEILINGS: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 700,
    SubscriptionTier.STARTER: 50_000,
    SubscriptionTier.VIP: 200_000,
    SubscriptionTier.VVIP: 1_500_000,
    SubscriptionTier.EXCLUSIVE: 5_000_000,
}


@dataclass
class StyleSettings:
    expression: str = "Natural"
    pitch: float = 1.0
    speed: float = 1.0


@dataclass
class PrincipalUsage:
    """Mutable usage record for a single principal, owned by the QuotaLedger."""

    principal_id: str
    tier: SubscriptionTier
    daily_chars_used: int
    daily_reset_at: datetime
    lifetime_chars_used: int

    @property
    def ceiling(self) -> int:
        return self.tier.ceiling

    def snapshot(self) -> "UsageSnapshot":
        return UsageSnapshot(
            tier=self.tier,
            daily_chars_used=self.daily_chars_used,
            daily_reset_at=self.daily_reset_at,
            ceiling=self.ceiling,
            lifetime_chars_used=self.lifetime_chars_used,
        )


@dataclass(frozen=True)
class UsageSnapshot:
    tier: SubscriptionTier
    daily_chars_used: int
    daily_reset_at: datetime
    ceiling: int
    lifetime_chars_used: int


@dataclass(frozen=True)
class QuotaDecision:
    """Result of QuotaLedger.check_and_reserve.

    `reason` is only set for rejections.
    """

    accepted: bool
    usage: UsageSnapshot
    reason: Optional[str] = None


@dataclass
class StoredProfile:
    """What the durable profile store keeps per principal."""

    principal_id: str
    tier: SubscriptionTier = SubscriptionTier.FREE
    lifetime_chars_used: int = 0


@dataclass
class SynthesisArtifact:
    """Domain model for a persisted, non-preview generation."""

    id: str
    owner_principal_id: str
    text: str
    voice: str
    style: StyleSettings
    char_count: int
    container: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def new(
        cls,
        *,
        id: str,
        owner_principal_id: str,
        text: str,
        voice: str,
        style: StyleSettings,
        char_count: int,
        container: bytes,
    ) -> "SynthesisArtifact":
        return cls(
            id=id,
            owner_principal_id=owner_principal_id,
            text=text,
            voice=voice,
            style=style,
            char_count=char_count,
            container=container,
            created_at=datetime.now(timezone.utc),
        )
