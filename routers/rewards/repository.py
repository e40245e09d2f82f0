"""Rewards domain repository layer."""

from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import DailyCheckin, Referral, ReferralCode, SpinPlay


def get_referral_code(db: Session, account_id: int) -> Optional[ReferralCode]:
    return db.query(ReferralCode).filter(ReferralCode.account_id == account_id).first()


def get_referral_code_owner(db: Session, code: str) -> Optional[ReferralCode]:
    return db.query(ReferralCode).filter(ReferralCode.code == code).first()


def create_referral_code(db: Session, *, account_id: int, code: str) -> ReferralCode:
    row = ReferralCode(account_id=account_id, code=code)
    db.add(row)
    db.flush()
    return row


def get_referral_for_referred(db: Session, referred_id: int) -> Optional[Referral]:
    return db.query(Referral).filter(Referral.referred_id == referred_id).first()


def create_referral(db: Session, *, referrer_id: int, referred_id: int, code: str, status: str) -> Referral:
    referral = Referral(referrer_id=referrer_id, referred_id=referred_id, code=code, status=status)
    db.add(referral)
    db.flush()
    return referral


def list_referrals_by_referrer(db: Session, referrer_id: int, limit: int = 100) -> List[Referral]:
    return (
        db.query(Referral)
        .filter(Referral.referrer_id == referrer_id)
        .order_by(Referral.created_at.desc(), Referral.id.desc())
        .limit(limit)
        .all()
    )


def count_referrals_by_status(db: Session, referrer_id: int) -> dict:
    rows = (
        db.query(Referral.status, func.count(Referral.id))
        .filter(Referral.referrer_id == referrer_id)
        .group_by(Referral.status)
        .all()
    )
    return {status: count for status, count in rows}


def add_checkin(db: Session, *, account_id: int, claim_date: date, spins_granted: int) -> DailyCheckin:
    checkin = DailyCheckin(account_id=account_id, claim_date=claim_date, spins_granted=spins_granted)
    db.add(checkin)
    return checkin


def add_spin_play(db: Session, *, account_id: int, outcome: str, tokens_won: int) -> SpinPlay:
    play = SpinPlay(account_id=account_id, outcome=outcome, tokens_won=tokens_won)
    db.add(play)
    return play
