from __future__ import annotations

import asyncio
from datetime import datetime, time as dt_time, timezone
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from tts_gateway.errors import QuotaExceededError
from tts_gateway.logging_utils import get_logger
from tts_gateway.models import (
    PrincipalUsage,
    QuotaDecision,
    SubscriptionTier,
    UsageSnapshot,
)
from tts_gateway.repositories import ProfileStore
from tts_gateway import metrics as app_metrics


logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def reference_day_start(moment: datetime, tz: ZoneInfo) -> datetime:
    """Return 00:00:00.000 of `moment`'s calendar day in `tz`."""
    local = moment.astimezone(tz)
    return datetime.combine(local.date(), dt_time.min, tzinfo=tz)


def same_reference_day(a: datetime, b: datetime, tz: ZoneInfo) -> bool:
    """Compare calendar dates in `tz`; elapsed time is irrelevant (DST-safe)."""
    return a.astimezone(tz).date() == b.astimezone(tz).date()


class QuotaLedger:
    """Sole authority on daily character quotas.

    Records are loaded lazily from the profile store and cached in memory;
    the in-memory figures stay authoritative when a later store write
    fails. Each principal has its own lock, so load/rollover/mutation for
    one principal is serialized without blocking anyone else.
    """

    def __init__(
        self,
        *,
        profile_store: ProfileStore,
        timezone_name: str = "Africa/Lusaka",
        preview_principal_id: Optional[str] = "preview_user_id",
        default_tier: SubscriptionTier = SubscriptionTier.FREE,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = profile_store
        self._tz = ZoneInfo(timezone_name)
        self._preview_principal_id = preview_principal_id
        self._default_tier = default_tier
        self._clock = clock or utc_now
        self._records: Dict[str, PrincipalUsage] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def is_preview(self, principal_id: str) -> bool:
        return self._preview_principal_id is not None and principal_id == self._preview_principal_id

    async def check_and_reserve(self, principal_id: str, requested_chars: int) -> QuotaDecision:
        """Decide whether `requested_chars` still fit in today's quota.

        Nothing is recorded; the cost is only ticked by `commit`.
        """
        if self.is_preview(principal_id):
            return QuotaDecision(accepted=True, usage=self._preview_snapshot())

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            usage = record.snapshot()
            if record.daily_chars_used + requested_chars > record.ceiling:
                logger.info(
                    "Quota exceeded for principal=%s (used=%d, requested=%d, ceiling=%d)",
                    principal_id,
                    record.daily_chars_used,
                    requested_chars,
                    record.ceiling,
                )
                app_metrics.record_quota_rejection(record.tier.value)
                return QuotaDecision(accepted=False, usage=usage, reason=QuotaExceededError.reason)
            return QuotaDecision(accepted=True, usage=usage)

    async def commit(self, principal_id: str, actual_chars: int) -> UsageSnapshot:
        """Bill `actual_chars` against today's and the lifetime counters."""
        if self.is_preview(principal_id):
            return self._preview_snapshot()

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            if record.daily_chars_used + actual_chars > record.ceiling:
                app_metrics.record_quota_rejection(record.tier.value)
                raise QuotaExceededError(
                    "Daily character limit reached. Upgrade for unlimited generation.",
                    usage=record.snapshot(),
                )
            record.daily_chars_used += actual_chars
            record.lifetime_chars_used += actual_chars
            app_metrics.record_chars_committed(record.tier.value, actual_chars)
            await self._persist_lifetime(record, operation="commit")
            return record.snapshot()

    async def release(self, principal_id: str, chars: int) -> UsageSnapshot:
        """Give back `chars`, never letting either counter drop below zero."""
        if self.is_preview(principal_id):
            return self._preview_snapshot()

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            record.daily_chars_used = max(0, record.daily_chars_used - chars)
            record.lifetime_chars_used = max(0, record.lifetime_chars_used - chars)
            await self._persist_lifetime(record, operation="release")
            return record.snapshot()

    async def snapshot(self, principal_id: str) -> UsageSnapshot:
        if self.is_preview(principal_id):
            return self._preview_snapshot()

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            return record.snapshot()

    async def change_tier(self, principal_id: str, tier: SubscriptionTier) -> UsageSnapshot:
        """Switch a principal's plan; today's usage starts over."""
        if self.is_preview(principal_id):
            return self._preview_snapshot()

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            record.tier = tier
            record.daily_chars_used = 0
            record.daily_reset_at = reference_day_start(self._clock(), self._tz)
            logger.info("Principal %s plan updated to %s. Usage reset.", principal_id, tier.value)
            try:
                await self._store.save_tier(principal_id, tier)
            except Exception:
                logger.exception("Failed to persist tier for principal=%s", principal_id)
                app_metrics.record_persistence_failure("change_tier")
            return record.snapshot()

    def _lock_for(self, principal_id: str) -> asyncio.Lock:
        lock = self._locks.get(principal_id)
        if lock is None:
            lock = self._locks.setdefault(principal_id, asyncio.Lock())
        return lock

    async def _load(self, principal_id: str) -> PrincipalUsage:
        """Return the rolled-over record, creating it on first reference.

        Must be called with the principal's lock held.
        """
        now = self._clock()
        record = self._records.get(principal_id)
        if record is None:
            profile = await self._store.get_or_create(principal_id, self._default_tier)
            record = PrincipalUsage(
                principal_id=principal_id,
                tier=profile.tier,
                daily_chars_used=0,
                daily_reset_at=reference_day_start(now, self._tz),
                lifetime_chars_used=profile.lifetime_chars_used,
            )
            self._records[principal_id] = record
        elif not same_reference_day(now, record.daily_reset_at, self._tz):
            logger.info(
                "Daily quota rollover for principal=%s (previous day used=%d)",
                principal_id,
                record.daily_chars_used,
            )
            record.daily_chars_used = 0
            record.daily_reset_at = reference_day_start(now, self._tz)
        return record

    async def _persist_lifetime(self, record: PrincipalUsage, *, operation: str) -> None:
        # The caller already received (or gave back) the service, so a store
        # failure leaves the in-memory figure standing.
        try:
            await self._store.save_lifetime_usage(record.principal_id, record.lifetime_chars_used)
        except Exception:
            logger.exception(
                "Failed to persist lifetime usage for principal=%s during %s (in-memory value %d kept)",
                record.principal_id,
                operation,
                record.lifetime_chars_used,
            )
            app_metrics.record_persistence_failure(operation)

    def _preview_snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            tier=SubscriptionTier.FREE,
            daily_chars_used=0,
            daily_reset_at=reference_day_start(self._clock(), self._tz),
            ceiling=SubscriptionTier.FREE.ceiling,
            lifetime_chars_used=0,
        )
