"""Ledger facade for other domains.

Every coin/token balance change goes through the Wallet domain. The ``post_*``
helpers join the caller's open transaction (wrap them in ``core.db.atomic``);
``credit``/``debit`` run as their own transaction.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session


def open_wallets(db: Session, *, account_id: int):
    from routers.wallet import service as wallet_service

    return wallet_service.open_wallets(db, account_id=account_id)


def lock_wallet(db: Session, *, account_id: int, currency: str):
    from routers.wallet import service as wallet_service

    return wallet_service.lock_wallet(db, account_id=account_id, currency=currency)


def lock_wallets(db: Session, *, account_ids: Iterable[int], currency: str):
    from routers.wallet import service as wallet_service

    return wallet_service.lock_wallets(db, account_ids=account_ids, currency=currency)


def post_credit(db: Session, *, account_id: int, currency: str, amount: int, source: str, **refs) -> int:
    from routers.wallet import service as wallet_service

    return wallet_service.post_credit(
        db, account_id=account_id, currency=currency, amount=amount, source=source, **refs
    )


def post_debit(db: Session, *, account_id: int, currency: str, amount: int, source: str, **refs) -> int:
    from routers.wallet import service as wallet_service

    return wallet_service.post_debit(
        db, account_id=account_id, currency=currency, amount=amount, source=source, **refs
    )


def settle_withdrawal(db: Session, *, account_id: int, withdrawal_id: int) -> int:
    from routers.wallet import service as wallet_service

    return wallet_service.settle_withdrawal(db, account_id=account_id, withdrawal_id=withdrawal_id)


def credit(db: Session, *, account_id: int, currency: str, amount: int, source: str) -> int:
    from routers.wallet import service as wallet_service

    return wallet_service.credit(db, account_id=account_id, currency=currency, amount=amount, source=source)


def debit(db: Session, *, account_id: int, currency: str, amount: int, source: str) -> int:
    from routers.wallet import service as wallet_service

    return wallet_service.debit(db, account_id=account_id, currency=currency, amount=amount, source=source)


def get_wallet(db: Session, *, account_id: int, now: Optional[datetime] = None) -> dict:
    from routers.wallet import service as wallet_service

    return wallet_service.get_wallet(db, account_id=account_id, now=now).model_dump()


def get_history_page(db: Session, *, account_id: int, currency: Optional[str] = None, **filters):
    from routers.wallet import service as wallet_service

    return wallet_service.get_history_page(db, account_id=account_id, currency=currency, **filters)
