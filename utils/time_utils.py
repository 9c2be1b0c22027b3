"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Plan expiry calculations
- Onboarding session TTL
- Receipt timestamps
"""

import time
from datetime import datetime, timedelta
from typing import Optional

from app.flow.states import PlanType, get_plan_metadata


def add_years(dt: datetime, years: int) -> datetime:
    """
    Same calendar date `years` later. Feb 29 falls back to Feb 28.
    """
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        return dt.replace(year=dt.year + years, day=28)


def compute_plan_expiry(plan_type: PlanType, now: Optional[datetime] = None) -> datetime:
    """
    Calculates when a plan bought at `now` expires.

    MONTHLY runs 30 days; YEARLY and AFTERLIFE run whole calendar years.
    """
    now = now or datetime.utcnow()
    plan = get_plan_metadata(plan_type)
    if plan.term_years:
        return add_years(now, plan.term_years)
    return now + timedelta(days=plan.term_days)


def calculate_session_expiry(created_at: datetime, ttl_minutes: int = 30) -> datetime:
    return created_at + timedelta(minutes=ttl_minutes)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if not expires_at:
        return True
    return (now or datetime.utcnow()) >= expires_at


def current_millis() -> int:
    return int(time.time() * 1000)
