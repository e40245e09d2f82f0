"""Reward day boundaries.

Daily caps (ads watched, check-ins, token earnings) reset lazily: each wallet
stores the reward day its counter belongs to and the counter is treated as zero
once that day is over. The reward day is the calendar day in REWARDS_TIMEZONE
(UTC unless configured otherwise), computed on the server only.
"""

from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from config import REWARDS_TIMEZONE


def utc_now() -> datetime:
    """Naive UTC now, matching the DateTime columns."""
    return datetime.utcnow()


def _as_utc(now: Optional[datetime]) -> datetime:
    now = now or utc_now()
    if now.tzinfo is None:
        return pytz.utc.localize(now)
    return now.astimezone(pytz.utc)


def reward_day(now: Optional[datetime] = None) -> date:
    """Calendar day (in the rewards timezone) that `now` belongs to."""
    tz = pytz.timezone(REWARDS_TIMEZONE)
    return _as_utc(now).astimezone(tz).date()


def next_reset(now: Optional[datetime] = None) -> datetime:
    """UTC instant at which the current reward day ends."""
    tz = pytz.timezone(REWARDS_TIMEZONE)
    tomorrow = reward_day(now) + timedelta(days=1)
    midnight = tz.localize(datetime.combine(tomorrow, datetime.min.time()))
    return midnight.astimezone(pytz.utc)
