from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_account
from utils.notifier import get_notifier

from .schemas import GiftRequest, GiftResponse, WithdrawalListResponse, WithdrawRequest, WithdrawResponse
from .service import list_withdrawals, process_gift, request_withdrawal

router = APIRouter(tags=["Withdrawals"])


@router.post("/coins/withdraw", response_model=WithdrawResponse)
def withdraw(
    payload: WithdrawRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """
    Request a cash payout.

    The coins are reserved immediately. The returned `secretCode` is shown only
    once; the user quotes it to support when the payout is made.
    """
    return request_withdrawal(
        db,
        account.account_id,
        payload.amount_usd,
        payload.address,
        payload.method,
        notifier,
    )


@router.get("/coins/withdrawals", response_model=WithdrawalListResponse)
def my_withdrawals(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return list_withdrawals(db, account.account_id)


@router.post("/coins/gift", response_model=GiftResponse)
def gift(
    payload: GiftRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Send coins to another account by email."""
    return process_gift(db, account.account_id, payload.recipient_email, payload.amount)
