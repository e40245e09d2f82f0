from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_account

from .schemas import (
    AdEventRequest,
    AdRewardResponse,
    DailyCheckinResponse,
    RewardHistoryResponse,
    SpinResponse,
    TokenEarnRequest,
    TokenEarnResponse,
)
from .service import claim_daily_checkin, earn_ad_reward, earn_tokens, get_reward_history, play_spin

router = APIRouter(tags=["Rewards"])


@router.post("/coins/earn/ad", response_model=AdRewardResponse)
def ad_reward(
    ad_event: AdEventRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """
    Credit the coin reward for a completed rewarded ad.

    Only `completed` events pay out. The daily cap resets at midnight in the
    rewards timezone.
    """
    return earn_ad_reward(db, account.account_id, ad_event)


@router.post("/tokens/earn", response_model=TokenEarnResponse)
def token_earn(
    payload: TokenEarnRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return earn_tokens(db, account.account_id, payload.source, payload.amount)


@router.post("/rewards/daily-checkin", response_model=DailyCheckinResponse)
def daily_checkin(account=Depends(get_current_account), db: Session = Depends(get_db)):
    """Claim today's check-in; grants the day's wheel spins."""
    return claim_daily_checkin(db, account.account_id)


@router.post("/tokens/spin/play", response_model=SpinResponse)
def spin_play(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return play_spin(db, account.account_id)


@router.get("/rewards/history", response_model=RewardHistoryResponse)
def reward_history(
    cursor: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Spins, bonuses and ticket purchases on the token ledger, newest first."""
    return get_reward_history(db, account.account_id, cursor=cursor, limit=limit)
