from __future__ import annotations

import asyncio
from typing import Dict, Protocol

from tts_gateway.models import StoredProfile, SubscriptionTier


class ProfileStore(Protocol):
    """Durable per-principal profile storage (tier + lifetime usage).

    Implementations raise PersistenceError on I/O failures.
    """

    async def get_or_create(
        self, principal_id: str, default_tier: SubscriptionTier
    ) -> StoredProfile:
        ...

    async def save_lifetime_usage(self, principal_id: str, lifetime_chars_used: int) -> None:
        ...

    async def save_tier(self, principal_id: str, tier: SubscriptionTier) -> None:
        ...


class InMemoryProfileStore(ProfileStore):
    """Simple in-memory profile store for development and tests."""

    def __init__(self) -> None:
        self._items: Dict[str, StoredProfile] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(
        self, principal_id: str, default_tier: SubscriptionTier
    ) -> StoredProfile:
        async with self._lock:
            profile = self._items.get(principal_id)
            if profile is None:
                profile = StoredProfile(principal_id=principal_id, tier=default_tier)
                self._items[principal_id] = profile
            return StoredProfile(
                principal_id=profile.principal_id,
                tier=profile.tier,
                lifetime_chars_used=profile.lifetime_chars_used,
            )

    async def save_lifetime_usage(self, principal_id: str, lifetime_chars_used: int) -> None:
        async with self._lock:
            profile = self._items.setdefault(principal_id, StoredProfile(principal_id=principal_id))
            profile.lifetime_chars_used = lifetime_chars_used

    async def save_tier(self, principal_id: str, tier: SubscriptionTier) -> None:
        async with self._lock:
            profile = self._items.setdefault(principal_id, StoredProfile(principal_id=principal_id))
            profile.tier = tier
