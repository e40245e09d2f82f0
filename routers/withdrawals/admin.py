"""Operator endpoints for settling payouts."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import require_admin

from .schemas import MarkPaidResponse, VerifyCodeRequest, VerifyCodeResponse
from .service import mark_paid, verify_secret_code

router = APIRouter(prefix="/admin/withdrawals", tags=["Admin Withdrawals"])


@router.post("/{withdrawal_id}/mark-paid", response_model=MarkPaidResponse)
def mark_withdrawal_paid(
    withdrawal_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Record that the payout went out. Safe to repeat."""
    return mark_paid(db, withdrawal_id)


@router.post("/{withdrawal_id}/verify-code", response_model=VerifyCodeResponse)
def verify_withdrawal_code(
    withdrawal_id: int,
    payload: VerifyCodeRequest,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return VerifyCodeResponse(success=True, valid=verify_secret_code(db, withdrawal_id, payload.code))
