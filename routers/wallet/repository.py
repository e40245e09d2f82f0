"""Wallet domain repository layer."""

from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import LedgerEntry, WITHDRAWAL


def get_wallet(db: Session, model, account_id: int):
    return db.query(model).filter(model.account_id == account_id).first()


def get_wallet_for_update(db: Session, model, account_id: int):
    return (
        db.query(model)
        .filter(model.account_id == account_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def add_entry(
    db: Session,
    *,
    account_id: int,
    currency: str,
    delta: int,
    balance_after: int,
    source: str,
    status: str,
    **refs,
) -> LedgerEntry:
    entry = LedgerEntry(
        account_id=account_id,
        currency=currency,
        delta=delta,
        balance_after=balance_after,
        source=source,
        status=status,
        **refs,
    )
    db.add(entry)
    return entry


def list_entries(
    db: Session,
    *,
    account_id: int,
    currency: Optional[str],
    sources: Optional[Sequence[str]],
    before_id: Optional[int],
    limit: int,
) -> List[LedgerEntry]:
    query = db.query(LedgerEntry).filter(LedgerEntry.account_id == account_id)
    if currency:
        query = query.filter(LedgerEntry.currency == currency)
    if sources:
        query = query.filter(LedgerEntry.source.in_(list(sources)))
    if before_id is not None:
        query = query.filter(LedgerEntry.id < before_id)
    return query.order_by(LedgerEntry.id.desc()).limit(limit).all()


def get_withdrawal_entry_for_update(db: Session, withdrawal_id: int) -> Optional[LedgerEntry]:
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.withdrawal_id == withdrawal_id, LedgerEntry.source == WITHDRAWAL)
        .with_for_update()
        .populate_existing()
        .first()
    )


def sum_deltas(db: Session, *, account_id: int, currency: str) -> int:
    total = (
        db.query(func.sum(LedgerEntry.delta))
        .filter(LedgerEntry.account_id == account_id, LedgerEntry.currency == currency)
        .scalar()
    )
    return int(total or 0)


def sum_credits(db: Session, *, account_id: int, currency: str) -> int:
    total = (
        db.query(func.sum(LedgerEntry.delta))
        .filter(
            LedgerEntry.account_id == account_id,
            LedgerEntry.currency == currency,
            LedgerEntry.delta > 0,
        )
        .scalar()
    )
    return int(total or 0)
