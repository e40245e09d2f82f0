from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_account

from .referrals import get_or_create_code, list_referrals, redeem
from .schemas import (
    RedeemReferralRequest,
    RedeemReferralResponse,
    ReferralCodeResponse,
    ReferralsResponse,
)

router = APIRouter(tags=["Referrals"])


@router.get("/rewards/referral-code", response_model=ReferralCodeResponse)
def referral_code(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return ReferralCodeResponse(success=True, code=get_or_create_code(db, account_id=account.account_id))


@router.get("/user/referral-code", response_model=ReferralCodeResponse, include_in_schema=False)
def legacy_referral_code(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return referral_code(account=account, db=db)


@router.get("/rewards/referrals", response_model=ReferralsResponse)
def referrals(account=Depends(get_current_account), db: Session = Depends(get_db)):
    """Who signed up with the caller's code, with masked emails."""
    return list_referrals(db, account.account_id)


@router.post("/rewards/referrals/redeem", response_model=RedeemReferralResponse)
def redeem_referral(
    payload: RedeemReferralRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return redeem(db, account.account_id, payload.code)
