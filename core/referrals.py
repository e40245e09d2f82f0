"""Referral facade (owned by the Rewards domain)."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session


def get_or_create_code(db: Session, *, account_id: int) -> str:
    from routers.rewards import referrals as referral_service

    return referral_service.get_or_create_code(db, account_id=account_id)


def has_redeemed(db: Session, *, account_id: int) -> bool:
    from routers.rewards import referrals as referral_service

    return referral_service.has_redeemed(db, account_id=account_id)


def redeem_in_transaction(db: Session, *, account_id: int, code: str, now: Optional[datetime] = None):
    from routers.rewards import referrals as referral_service

    return referral_service.redeem_in_transaction(db, account_id=account_id, code=code, now=now)
