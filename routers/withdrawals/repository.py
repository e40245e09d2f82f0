"""Withdrawals domain repository layer."""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from models import STATUS_PENDING, WithdrawalRequest


def create_withdrawal(
    db: Session,
    *,
    account_id: int,
    coins_reserved: int,
    usd_amount: Decimal,
    payment_method: str,
    payment_address: str,
    secret_code_hash: str,
    email: Optional[str],
    phone_number: Optional[str],
) -> WithdrawalRequest:
    withdrawal = WithdrawalRequest(
        account_id=account_id,
        coins_reserved=coins_reserved,
        usd_amount=usd_amount,
        payment_method=payment_method,
        payment_address=payment_address,
        status=STATUS_PENDING,
        secret_code_hash=secret_code_hash,
        email=email,
        phone_number=phone_number,
    )
    db.add(withdrawal)
    db.flush()
    return withdrawal


def get_withdrawal(db: Session, withdrawal_id: int) -> Optional[WithdrawalRequest]:
    return db.query(WithdrawalRequest).filter(WithdrawalRequest.id == withdrawal_id).first()


def lock_withdrawal(db: Session, withdrawal_id: int) -> Optional[WithdrawalRequest]:
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.id == withdrawal_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def list_withdrawals_for_account(db: Session, account_id: int, limit: int = 50) -> List[WithdrawalRequest]:
    return (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.account_id == account_id)
        .order_by(WithdrawalRequest.id.desc())
        .limit(limit)
        .all()
    )
