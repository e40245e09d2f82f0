"""
Reward issuance: ad views, daily check-in, the token wheel and token earning.

Each operation locks the wallet it touches, rolls its daily counter forward
when the reward day has changed, checks the policy and only then asks the
ledger for the credit, all inside one transaction.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from config import (
    AD_REWARD_COINS,
    DAILY_AD_CAP,
    DAILY_BONUS_SPINS,
    DAILY_TOKEN_EARN_CAP,
    TOKEN_EARN_MAX_PER_CALL,
    TOKEN_EARN_SOURCES,
)
from core import ledger
from core.db import atomic
from core.errors import (
    AdNotCompletedError,
    AlreadyClaimedError,
    DailyLimitExceededError,
    InvalidAmountError,
    NoSpinsAvailableError,
    ValidationError,
)
from models import AD_REWARD, COIN, DAILY_BONUS, REFERRAL_BONUS, SPIN, TICKET_PURCHASE, TOKEN
from utils.logging_helpers import log_info
from utils.reward_days import next_reset, reward_day, utc_now
from utils.spin_wheel import SpinWheel, default_wheel

from . import repository as rewards_repository
from .schemas import (
    AdEventRequest,
    AdRewardResponse,
    DailyCheckinResponse,
    RewardHistoryItem,
    RewardHistoryResponse,
    SpinResponse,
    TokenEarnResponse,
)

logger = logging.getLogger(__name__)

REWARD_HISTORY_SOURCES = (SPIN, REFERRAL_BONUS, DAILY_BONUS, TICKET_PURCHASE)


def earn_ad_reward(
    db: Session, account_id: int, ad_event: AdEventRequest, *, now: Optional[datetime] = None
) -> AdRewardResponse:
    if ad_event.event != "completed":
        log_info(logger, "Ad not rewarded", account_id, ad_event=ad_event.event, placement=ad_event.placement_id)
        raise AdNotCompletedError()

    now = now or utc_now()
    today = reward_day(now)
    with atomic(db):
        wallet = ledger.lock_wallet(db, account_id=account_id, currency=COIN)
        if wallet.ads_counted_on != today:
            wallet.ads_counted_on = today
            wallet.ads_watched_today = 0
        if wallet.ads_watched_today >= DAILY_AD_CAP:
            raise DailyLimitExceededError(reset_at=next_reset(now), limit=DAILY_AD_CAP)

        wallet.ads_watched_today += 1
        watched = wallet.ads_watched_today
        balance = ledger.post_credit(
            db,
            account_id=account_id,
            currency=COIN,
            amount=AD_REWARD_COINS,
            source=AD_REWARD,
            placement_id=ad_event.placement_id,
        )

    return AdRewardResponse(
        success=True,
        coins=balance,
        ads_watched_today=watched,
        ads_remaining_today=max(0, DAILY_AD_CAP - watched),
    )


def earn_tokens(
    db: Session, account_id: int, source: str, amount, *, now: Optional[datetime] = None
) -> TokenEarnResponse:
    """Client-reported token earnings, limited to whitelisted sources and a daily cap."""
    if source not in TOKEN_EARN_SOURCES:
        raise ValidationError(f"Tokens cannot be earned from '{source}'.")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError()
    if amount > TOKEN_EARN_MAX_PER_CALL:
        raise InvalidAmountError(f"At most {TOKEN_EARN_MAX_PER_CALL} tokens can be earned at once.")

    now = now or utc_now()
    today = reward_day(now)
    with atomic(db):
        wallet = ledger.lock_wallet(db, account_id=account_id, currency=TOKEN)
        if wallet.earned_counted_on != today:
            wallet.earned_counted_on = today
            wallet.earned_today = 0
        if wallet.earned_today + amount > DAILY_TOKEN_EARN_CAP:
            raise DailyLimitExceededError(reset_at=next_reset(now), limit=DAILY_TOKEN_EARN_CAP)

        wallet.earned_today += amount
        earned_today = wallet.earned_today
        balance = ledger.post_credit(db, account_id=account_id, currency=TOKEN, amount=amount, source=source)

    return TokenEarnResponse(success=True, tokens=balance, earned_today=earned_today)


def claim_daily_checkin(db: Session, account_id: int, *, now: Optional[datetime] = None) -> DailyCheckinResponse:
    now = now or utc_now()
    today = reward_day(now)
    with atomic(db):
        wallet = ledger.lock_wallet(db, account_id=account_id, currency=TOKEN)
        if wallet.last_checkin_on == today:
            raise AlreadyClaimedError(reset_at=next_reset(now))

        # Unused spins from an earlier day lapse
        wallet.spins_remaining = DAILY_BONUS_SPINS
        wallet.last_checkin_on = today
        rewards_repository.add_checkin(db, account_id=account_id, claim_date=today, spins_granted=DAILY_BONUS_SPINS)
        spins_left = wallet.spins_remaining

    log_info(logger, "Daily check-in claimed", account_id, day=today.isoformat(), spins=spins_left)
    return DailyCheckinResponse(success=True, spins_left=spins_left, resets_at=next_reset(now))


def play_spin(
    db: Session,
    account_id: int,
    *,
    now: Optional[datetime] = None,
    wheel: Optional[SpinWheel] = None,
) -> SpinResponse:
    wheel = wheel or default_wheel
    now = now or utc_now()
    today = reward_day(now)
    with atomic(db):
        wallet = ledger.lock_wallet(db, account_id=account_id, currency=TOKEN)
        available = wallet.spins_remaining if wallet.last_checkin_on == today else 0
        if available <= 0:
            raise NoSpinsAvailableError(reset_at=next_reset(now))

        segment = wheel.spin()
        wallet.spins_remaining = available - 1
        spins_left = wallet.spins_remaining
        rewards_repository.add_spin_play(db, account_id=account_id, outcome=segment.reward_id, tokens_won=segment.tokens)
        balance = wallet.balance
        if segment.tokens:
            balance = ledger.post_credit(
                db,
                account_id=account_id,
                currency=TOKEN,
                amount=segment.tokens,
                source=SPIN,
                spin_outcome=segment.reward_id,
            )

    log_info(logger, "Spin played", account_id, outcome=segment.reward_id, tokens=segment.tokens)
    return SpinResponse(
        success=True,
        reward=segment.reward_id,
        win_amount=segment.tokens,
        spins_left=spins_left,
        tokens=balance,
    )


def get_reward_history(
    db: Session, account_id: int, *, cursor: Optional[str] = None, limit: int = 50
) -> RewardHistoryResponse:
    entries, next_cursor = ledger.get_history_page(
        db,
        account_id=account_id,
        currency=TOKEN,
        sources=REWARD_HISTORY_SOURCES,
        cursor=cursor,
        limit=limit,
    )
    return RewardHistoryResponse(
        success=True,
        history=[
            RewardHistoryItem(
                id=e.id,
                source=e.source,
                amount=e.delta,
                status=e.status,
                spin_outcome=e.spin_outcome,
                created_at=e.created_at,
            )
            for e in entries
        ],
        next_cursor=next_cursor,
    )
