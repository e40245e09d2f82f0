from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from models import COIN, TOKEN
from routers.dependencies import get_current_account, require_admin

from .schemas import (
    CoinWalletResponse,
    HistoryPage,
    TokenWalletResponse,
    WalletAudit,
    WalletResponse,
)
from .service import audit_wallet, get_history_page, get_wallet, to_history_item

router = APIRouter(tags=["Wallet"])


@router.get("/wallet", response_model=WalletResponse)
def wallet(account=Depends(get_current_account), db: Session = Depends(get_db)):
    """Coin and token balances for the signed-in account."""
    snapshot = get_wallet(db, account_id=account.account_id)
    return WalletResponse(**snapshot.model_dump())


@router.get("/coins/wallet", response_model=CoinWalletResponse)
def coin_wallet(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return CoinWalletResponse(coins=get_wallet(db, account_id=account.account_id).coins)


@router.get("/tokens/wallet", response_model=TokenWalletResponse)
def token_wallet(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return TokenWalletResponse(tokens=get_wallet(db, account_id=account.account_id).tokens)


def _history(db: Session, account_id: int, currency: str, source, cursor, limit) -> HistoryPage:
    entries, next_cursor = get_history_page(
        db,
        account_id=account_id,
        currency=currency,
        sources=source,
        cursor=cursor,
        limit=limit,
    )
    return HistoryPage(history=[to_history_item(e) for e in entries], next_cursor=next_cursor)


@router.get("/coins/history", response_model=HistoryPage)
def coin_history(
    source: Optional[List[str]] = Query(None, description="Filter by ledger source; repeatable"),
    cursor: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Coin ledger entries, newest first."""
    return _history(db, account.account_id, COIN, source, cursor, limit)


@router.get("/tokens/history", response_model=HistoryPage)
def token_history(
    source: Optional[List[str]] = Query(None, description="Filter by ledger source; repeatable"),
    cursor: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Token ledger entries, newest first."""
    return _history(db, account.account_id, TOKEN, source, cursor, limit)


@router.get("/admin/wallets/{account_id}/audit", response_model=List[WalletAudit])
def wallet_audit(
    account_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Replay both ledgers for an account and compare with the stored balances."""
    return [
        audit_wallet(db, account_id=account_id, currency=COIN),
        audit_wallet(db, account_id=account_id, currency=TOKEN),
    ]
