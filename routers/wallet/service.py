"""
Account ledger.

Coins and tokens live in separate wallet rows (one of each per account). Every
balance change locks the wallet row (SELECT ... FOR UPDATE), checks and applies
the change, and appends an immutable ledger entry carrying ``balance_after``.
Balances are read from the wallet row; the entries are for history and audit.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from config import DAILY_AD_CAP
from core.db import atomic
from core.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InsufficientTokensError,
    InvalidAmountError,
    ValidationError,
)
from models import (
    COIN,
    LEDGER_SOURCES,
    STATUS_COMPLETED,
    STATUS_PAID,
    STATUS_PENDING,
    TOKEN,
    CoinWallet,
    LedgerEntry,
    TokenWallet,
)
from utils.logging_helpers import log_info
from utils.reward_days import next_reset, reward_day

from . import repository as wallet_repository
from .schemas import (
    HISTORY_VARIANTS,
    CoinBalances,
    TokenBalances,
    WalletAudit,
    WalletSnapshot,
)

logger = logging.getLogger(__name__)

WALLET_MODELS = {COIN: CoinWallet, TOKEN: TokenWallet}

MAX_HISTORY_PAGE = 100


def _wallet_model(currency: str):
    try:
        return WALLET_MODELS[currency]
    except KeyError:
        raise ValidationError(f"Unknown currency: {currency}") from None


def _check_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError()
    return amount


def _check_source(source: str):
    if source not in LEDGER_SOURCES:
        raise ValidationError(f"Unknown ledger source: {source}")


def open_wallets(db: Session, *, account_id: int):
    coins = CoinWallet(account_id=account_id, balance=0, pending=0, lifetime_earned=0, ads_watched_today=0)
    tokens = TokenWallet(account_id=account_id, balance=0, lifetime_earned=0, spins_remaining=0, earned_today=0)
    db.add_all([coins, tokens])
    db.flush()
    return coins, tokens


def lock_wallet(db: Session, *, account_id: int, currency: str):
    # Row is re-read under the lock; push pending edits first so they survive
    db.flush()
    wallet = wallet_repository.get_wallet_for_update(db, _wallet_model(currency), account_id)
    if wallet is None:
        raise AccountNotFoundError()
    return wallet


def lock_wallets(db: Session, *, account_ids: Iterable[int], currency: str) -> Dict[int, object]:
    """Lock several wallets, always in ascending account id order."""
    return {
        account_id: lock_wallet(db, account_id=account_id, currency=currency)
        for account_id in sorted(set(account_ids))
    }


def post_credit(
    db: Session,
    *,
    account_id: int,
    currency: str,
    amount: int,
    source: str,
    status: str = STATUS_COMPLETED,
    **refs,
) -> int:
    """Credit inside the caller's transaction. Returns the new balance."""
    amount = _check_amount(amount)
    _check_source(source)
    wallet = lock_wallet(db, account_id=account_id, currency=currency)

    wallet.balance += amount
    wallet.lifetime_earned += amount
    wallet_repository.add_entry(
        db,
        account_id=account_id,
        currency=currency,
        delta=amount,
        balance_after=wallet.balance,
        source=source,
        status=status,
        **refs,
    )
    db.flush()

    log_info(logger, "Ledger credit", account_id, currency=currency, delta=amount, balance=wallet.balance, source=source)
    return wallet.balance


def post_debit(
    db: Session,
    *,
    account_id: int,
    currency: str,
    amount: int,
    source: str,
    status: str = STATUS_COMPLETED,
    **refs,
) -> int:
    """
    Debit inside the caller's transaction. Returns the new balance.

    A ``pending`` coin debit (withdrawal reservation) also moves the amount into
    the wallet's ``pending`` bucket until the payout is settled.
    """
    amount = _check_amount(amount)
    _check_source(source)
    wallet = lock_wallet(db, account_id=account_id, currency=currency)

    if wallet.balance < amount:
        error_cls = InsufficientTokensError if currency == TOKEN else InsufficientBalanceError
        raise error_cls(balance=wallet.balance, required=amount)

    wallet.balance -= amount
    if status == STATUS_PENDING and currency == COIN:
        wallet.pending += amount
    wallet_repository.add_entry(
        db,
        account_id=account_id,
        currency=currency,
        delta=-amount,
        balance_after=wallet.balance,
        source=source,
        status=status,
        **refs,
    )
    db.flush()

    log_info(logger, "Ledger debit", account_id, currency=currency, delta=-amount, balance=wallet.balance, source=source)
    return wallet.balance


def settle_withdrawal(db: Session, *, account_id: int, withdrawal_id: int) -> int:
    """Flip the withdrawal's ledger entry to paid and release it from ``pending``."""
    wallet = lock_wallet(db, account_id=account_id, currency=COIN)
    entry = wallet_repository.get_withdrawal_entry_for_update(db, withdrawal_id)
    if entry is None or entry.status != STATUS_PENDING:
        return wallet.pending

    entry.status = STATUS_PAID
    wallet.pending = max(0, wallet.pending + entry.delta)
    db.flush()
    log_info(logger, "Withdrawal settled in ledger", account_id, withdrawal_id=withdrawal_id, pending=wallet.pending)
    return wallet.pending


def credit(db: Session, *, account_id: int, currency: str, amount: int, source: str) -> int:
    with atomic(db):
        return post_credit(db, account_id=account_id, currency=currency, amount=amount, source=source)


def debit(db: Session, *, account_id: int, currency: str, amount: int, source: str) -> int:
    with atomic(db):
        return post_debit(db, account_id=account_id, currency=currency, amount=amount, source=source)


def coin_balances(wallet: CoinWallet, now: Optional[datetime] = None) -> CoinBalances:
    ads_today = wallet.ads_watched_today if wallet.ads_counted_on == reward_day(now) else 0
    return CoinBalances(
        balance=wallet.balance,
        pending=wallet.pending,
        lifetime=wallet.lifetime_earned,
        ads_watched_today=ads_today,
        ads_remaining_today=max(0, DAILY_AD_CAP - ads_today),
    )


def token_balances(wallet: TokenWallet, now: Optional[datetime] = None) -> TokenBalances:
    spins = wallet.spins_remaining if wallet.last_checkin_on == reward_day(now) else 0
    return TokenBalances(
        balance=wallet.balance,
        lifetime=wallet.lifetime_earned,
        spins_remaining=spins,
    )


def get_wallet(db: Session, *, account_id: int, now: Optional[datetime] = None) -> WalletSnapshot:
    coins = wallet_repository.get_wallet(db, CoinWallet, account_id)
    tokens = wallet_repository.get_wallet(db, TokenWallet, account_id)
    if coins is None or tokens is None:
        raise AccountNotFoundError()
    return WalletSnapshot(
        coins=coin_balances(coins, now),
        tokens=token_balances(tokens, now),
        resets_at=next_reset(now),
    )


def _parse_cursor(cursor: Optional[str]) -> Optional[int]:
    if cursor in (None, ""):
        return None
    try:
        before_id = int(cursor)
    except (TypeError, ValueError):
        raise ValidationError("Invalid history cursor.") from None
    if before_id <= 0:
        raise ValidationError("Invalid history cursor.")
    return before_id


def get_history_page(
    db: Session,
    *,
    account_id: int,
    currency: Optional[str] = None,
    sources: Optional[Sequence[str]] = None,
    cursor: Optional[str] = None,
    limit: int = 50,
) -> Tuple[List[LedgerEntry], Optional[str]]:
    """Newest-first page of entries plus the cursor for the next (older) page."""
    if currency is not None:
        _wallet_model(currency)
    for source in sources or ():
        _check_source(source)
    limit = max(1, min(int(limit), MAX_HISTORY_PAGE))

    rows = wallet_repository.list_entries(
        db,
        account_id=account_id,
        currency=currency,
        sources=sources,
        before_id=_parse_cursor(cursor),
        limit=limit + 1,
    )
    next_cursor = str(rows[limit - 1].id) if len(rows) > limit else None
    return rows[:limit], next_cursor


def iter_history(
    db: Session,
    *,
    account_id: int,
    currency: Optional[str] = None,
    sources: Optional[Sequence[str]] = None,
    cursor: Optional[str] = None,
    page_size: int = MAX_HISTORY_PAGE,
) -> Iterator[LedgerEntry]:
    """Lazily walk an account's history, newest first, one page query at a time."""
    while True:
        page, cursor = get_history_page(
            db,
            account_id=account_id,
            currency=currency,
            sources=sources,
            cursor=cursor,
            limit=page_size,
        )
        yield from page
        if cursor is None:
            return


def to_history_item(entry: LedgerEntry):
    return HISTORY_VARIANTS[entry.source].model_validate(entry)


def audit_wallet(db: Session, *, account_id: int, currency: str) -> WalletAudit:
    """Replay the ledger and compare with the materialized wallet row."""
    wallet = wallet_repository.get_wallet(db, _wallet_model(currency), account_id)
    if wallet is None:
        raise AccountNotFoundError()
    ledger_sum = wallet_repository.sum_deltas(db, account_id=account_id, currency=currency)
    ledger_credits = wallet_repository.sum_credits(db, account_id=account_id, currency=currency)
    consistent = wallet.balance == ledger_sum and wallet.lifetime_earned == ledger_credits
    if not consistent:
        logger.error(
            f"Wallet drift detected: account={account_id}, currency={currency}, "
            f"balance={wallet.balance}, ledger_sum={ledger_sum}"
        )
    return WalletAudit(
        account_id=account_id,
        currency=currency,
        balance=wallet.balance,
        ledger_sum=ledger_sum,
        lifetime_earned=wallet.lifetime_earned,
        ledger_credits=ledger_credits,
        consistent=consistent,
    )
