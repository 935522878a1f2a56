"""
Usage Accounting Engine

Tracks a student's daily conversation time. Usage is accrued into
local-calendar-day buckets, split at local midnight, and capped per day.

The engine does no I/O. Callers load a UsageLedger, call one or more
operations with an explicit `now`, and persist the ledger afterwards.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT_SECONDS = 30 * 60


@dataclass
class UsageLedger:
    """Per-student usage state."""

    daily_usage_seconds: Dict[str, int] = field(default_factory=dict)
    daily_limit_seconds: int = DEFAULT_DAILY_LIMIT_SECONDS
    active_session_started_at: Optional[datetime] = None


@dataclass(frozen=True)
class UsageStatus:
    """Snapshot of today's usage."""

    used_seconds: int
    remaining_seconds: int
    limit_seconds: int

    def to_dict(self, include_minutes: bool = False) -> dict:
        data = {
            "used_seconds": self.used_seconds,
            "remaining_seconds": self.remaining_seconds,
            "limit_seconds": self.limit_seconds,
        }
        if include_minutes:
            data.update({
                "used_minutes": round(self.used_seconds / 60),
                "remaining_minutes": round(self.remaining_seconds / 60),
                "limit_minutes": round(self.limit_seconds / 60),
            })
        return data


def coerce_seconds(value) -> int:
    """Coerce a stored value to a non-negative int, 0 when unusable (NaN, infinity, junk)."""
    try:
        number = int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


class UsageAccountingEngine:
    """
    Pure state transitions over a UsageLedger.

    Args:
        tz: Zone that defines "local" day boundaries. None means the
            server process's local zone.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    # ==========================================================================
    # Time helpers
    # ==========================================================================

    def _localize(self, naive: datetime) -> datetime:
        if self.tz is None:
            return naive.astimezone()
        return naive.replace(tzinfo=self.tz)

    def _to_utc(self, ts: datetime) -> datetime:
        if ts.tzinfo is None:
            ts = self._localize(ts)
        return ts.astimezone(timezone.utc)

    def _to_local(self, ts: datetime) -> datetime:
        return self._to_utc(ts).astimezone(self.tz)

    def _local_midnight(self, day: date) -> datetime:
        """UTC instant of local midnight at the start of `day`."""
        return self._localize(datetime.combine(day, time.min)).astimezone(timezone.utc)

    def _next_local_midnight(self, ts: datetime) -> datetime:
        local_day = self._to_local(ts).date()
        return self._local_midnight(local_day + timedelta(days=1))

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return now if now is not None else datetime.now(timezone.utc)

    def day_key(self, ts: datetime) -> str:
        """Local calendar date of `ts` as YYYY-MM-DD."""
        return self._to_local(ts).date().isoformat()

    # ==========================================================================
    # Reads
    # ==========================================================================

    def used_seconds(self, ledger: UsageLedger, now: Optional[datetime] = None) -> int:
        key = self.day_key(self._now(now))
        return coerce_seconds(ledger.daily_usage_seconds.get(key))

    def remaining_seconds(self, ledger: UsageLedger, now: Optional[datetime] = None) -> int:
        limit = coerce_seconds(ledger.daily_limit_seconds)
        return max(0, limit - self.used_seconds(ledger, now))

    def usage_status(self, ledger: UsageLedger, now: Optional[datetime] = None) -> UsageStatus:
        now = self._now(now)
        used = self.used_seconds(ledger, now)
        limit = coerce_seconds(ledger.daily_limit_seconds)
        return UsageStatus(
            used_seconds=used,
            remaining_seconds=max(0, limit - used),
            limit_seconds=limit,
        )

    # ==========================================================================
    # Mutations
    # ==========================================================================

    def increment_usage(
        self,
        ledger: UsageLedger,
        seconds,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Add seconds to the bucket for `now`'s day, truncated at the daily cap.

        Returns:
            The new used total for that day.
        """
        now = self._now(now)
        seconds = coerce_seconds(seconds)
        if seconds <= 0:
            return self.used_seconds(ledger, now)

        prior = self.used_seconds(ledger, now)
        limit = coerce_seconds(ledger.daily_limit_seconds)
        allowed = max(0, min(seconds, limit - prior))
        total = prior + allowed

        ledger.daily_usage_seconds[self.day_key(now)] = total
        if allowed < seconds:
            logger.debug(f"Usage capped at {limit}s, discarded {seconds - allowed}s")
        return total

    def start_session_if_needed(self, ledger: UsageLedger, now: Optional[datetime] = None) -> None:
        if ledger.active_session_started_at is None:
            ledger.active_session_started_at = self._to_utc(self._now(now))

    def stop_session_and_accrue(self, ledger: UsageLedger, now: Optional[datetime] = None) -> None:
        """
        Close the open session and accrue its duration.

        The interval is split at every local midnight it crosses and each
        piece is charged against its own day's cap.
        """
        if ledger.active_session_started_at is None:
            return

        start = self._to_utc(ledger.active_session_started_at)
        end = self._to_utc(self._now(now))
        if end <= start:
            logger.warning(f"Dropping session started at {start.isoformat()}: now is {end.isoformat()}")
            ledger.active_session_started_at = None
            return

        cursor = start
        while cursor < end:
            boundary = self._next_local_midnight(cursor)
            if boundary <= cursor:
                boundary = end
            segment_end = min(end, boundary)
            segment_seconds = int((segment_end - cursor).total_seconds())
            self.increment_usage(ledger, segment_seconds, cursor)
            cursor = segment_end

        ledger.active_session_started_at = None

    def reset_today(self, ledger: UsageLedger, now: Optional[datetime] = None) -> None:
        ledger.daily_usage_seconds[self.day_key(self._now(now))] = 0
        ledger.active_session_started_at = None

    def prune_older_than(self, ledger: UsageLedger, cutoff: datetime) -> int:
        """
        Drop day keys whose local midnight is strictly before `cutoff`.

        Returns:
            Number of keys removed.
        """
        cutoff = self._to_utc(cutoff)
        stale = []
        for key in ledger.daily_usage_seconds:
            try:
                day = date.fromisoformat(str(key))
            except ValueError:
                continue
            if self._local_midnight(day) < cutoff:
                stale.append(key)

        for key in stale:
            del ledger.daily_usage_seconds[key]
        return len(stale)
