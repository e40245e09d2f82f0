"""Referral codes and redemption."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from config import REFERRAL_BONUS_TOKENS
from core import ledger
from core.db import atomic
from core.errors import (
    AccountNotFoundError,
    InvalidReferralCodeError,
    ReferralAlreadyRedeemedError,
    SelfReferralError,
)
from core.users import get_account_by_id_for_update, get_accounts_by_ids, mask_email
from models import REFERRAL_BONUS, STATUS_COMPLETED, STATUS_PENDING, TOKEN
from utils.logging_helpers import log_info
from utils.referrals import get_unique_referral_code
from utils.reward_days import utc_now

from . import repository as rewards_repository
from .schemas import RedeemReferralResponse, ReferralItem, ReferralsResponse

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def get_or_create_code(db: Session, *, account_id: int) -> str:
    """The account's referral code; generated and stored on first use, never changed."""
    existing = rewards_repository.get_referral_code(db, account_id)
    if existing is not None:
        return existing.code

    with atomic(db):
        # Serializes concurrent first requests for the same account
        if get_account_by_id_for_update(db, account_id=account_id) is None:
            raise AccountNotFoundError()
        row = rewards_repository.get_referral_code(db, account_id)
        if row is None:
            code = get_unique_referral_code(db, account_id)
            row = rewards_repository.create_referral_code(db, account_id=account_id, code=code)
            log_info(logger, "Referral code created", account_id, code=code)
        code = row.code
    return code


def has_redeemed(db: Session, *, account_id: int) -> bool:
    return rewards_repository.get_referral_for_referred(db, account_id) is not None


def redeem_in_transaction(
    db: Session, *, account_id: int, code: str, now: Optional[datetime] = None
) -> int:
    """
    Redeem `code` for `account_id` inside the caller's transaction.

    Both token wallets are locked (lowest account id first) before the
    one-redemption-per-account check, so two concurrent redemptions by the same
    account serialize and the second one fails. Returns the redeemer's new token
    balance.
    """
    owner = rewards_repository.get_referral_code_owner(db, normalize_code(code))
    if owner is None:
        raise InvalidReferralCodeError()
    referrer_id = owner.account_id
    if referrer_id == account_id:
        raise SelfReferralError()

    ledger.lock_wallets(db, account_ids=[referrer_id, account_id], currency=TOKEN)
    if rewards_repository.get_referral_for_referred(db, account_id) is not None:
        raise ReferralAlreadyRedeemedError()

    referral = rewards_repository.create_referral(
        db, referrer_id=referrer_id, referred_id=account_id, code=owner.code, status=STATUS_PENDING
    )
    ledger.post_credit(
        db,
        account_id=referrer_id,
        currency=TOKEN,
        amount=REFERRAL_BONUS_TOKENS,
        source=REFERRAL_BONUS,
        counterparty_account_id=account_id,
    )
    balance = ledger.post_credit(
        db,
        account_id=account_id,
        currency=TOKEN,
        amount=REFERRAL_BONUS_TOKENS,
        source=REFERRAL_BONUS,
        counterparty_account_id=referrer_id,
    )
    referral.status = STATUS_COMPLETED
    referral.completed_at = now or utc_now()
    db.flush()

    log_info(logger, "Referral redeemed", account_id, referrer_id=referrer_id, bonus=REFERRAL_BONUS_TOKENS)
    return balance


def redeem(db: Session, account_id: int, code: str, *, now: Optional[datetime] = None) -> RedeemReferralResponse:
    with atomic(db):
        balance = redeem_in_transaction(db, account_id=account_id, code=code, now=now)
    return RedeemReferralResponse(success=True, bonus=REFERRAL_BONUS_TOKENS, tokens=balance)


def list_referrals(db: Session, account_id: int) -> ReferralsResponse:
    code = get_or_create_code(db, account_id=account_id)
    referrals = rewards_repository.list_referrals_by_referrer(db, account_id)
    counts = rewards_repository.count_referrals_by_status(db, account_id)
    emails = {
        a.account_id: a.email
        for a in get_accounts_by_ids(db, account_ids=[r.referred_id for r in referrals])
    }
    completed = counts.get(STATUS_COMPLETED, 0)
    return ReferralsResponse(
        success=True,
        code=code,
        has_redeemed=has_redeemed(db, account_id=account_id),
        total=sum(counts.values()),
        completed=completed,
        pending=counts.get(STATUS_PENDING, 0),
        bonus_earned=completed * REFERRAL_BONUS_TOKENS,
        referrals=[
            ReferralItem(
                email=mask_email(emails.get(r.referred_id, "")),
                status=r.status,
                created_at=r.created_at,
                completed_at=r.completed_at,
            )
            for r in referrals
        ],
    )
