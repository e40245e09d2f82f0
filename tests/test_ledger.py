import pytest

from core.db import atomic
from core.errors import (
    InsufficientBalanceError,
    InsufficientTokensError,
    InvalidAmountError,
    ValidationError,
)
from models import AD_REWARD, COIN, DAILY_BONUS, STATUS_PAID, STATUS_PENDING, TICKET_PURCHASE, TOKEN, WITHDRAWAL, LedgerEntry
from routers.wallet import service as wallet_service


def _entries(db, account_id, currency=COIN):
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.account_id == account_id, LedgerEntry.currency == currency)
        .order_by(LedgerEntry.id.asc())
        .all()
    )


def test_balance_matches_replayed_history(test_db, make_account):
    account_id = make_account()

    wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=10, source=AD_REWARD)
    wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=5, source=AD_REWARD)
    balance = wallet_service.debit(test_db, account_id=account_id, currency=COIN, amount=3, source=WITHDRAWAL)

    assert balance == 12
    entries = _entries(test_db, account_id)
    assert [e.delta for e in entries] == [10, 5, -3]
    assert [e.balance_after for e in entries] == [10, 15, 12]

    audit = wallet_service.audit_wallet(test_db, account_id=account_id, currency=COIN)
    assert audit.consistent
    assert audit.balance == audit.ledger_sum == 12
    assert audit.lifetime_earned == audit.ledger_credits == 15


def test_debit_beyond_balance_fails_without_side_effects(test_db, make_account):
    account_id = make_account()
    wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=5, source=AD_REWARD)

    with pytest.raises(InsufficientBalanceError) as exc:
        wallet_service.debit(test_db, account_id=account_id, currency=COIN, amount=6, source=WITHDRAWAL)

    assert exc.value.details["balance"] == 5
    snapshot = wallet_service.get_wallet(test_db, account_id=account_id)
    assert snapshot.coins.balance == 5
    assert len(_entries(test_db, account_id)) == 1


def test_token_shortfall_uses_token_error(test_db, make_account):
    account_id = make_account()
    with pytest.raises(InsufficientTokensError) as exc:
        wallet_service.debit(test_db, account_id=account_id, currency=TOKEN, amount=1, source=TICKET_PURCHASE)
    assert exc.value.kind == "insufficient_tokens"


@pytest.mark.parametrize("amount", [0, -1, 1.5, True, "10"])
def test_non_positive_or_fractional_amounts_rejected(test_db, make_account, amount):
    account_id = make_account()
    with pytest.raises(InvalidAmountError):
        wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=amount, source=AD_REWARD)


def test_unknown_source_and_currency_rejected(test_db, make_account):
    account_id = make_account()
    with pytest.raises(ValidationError):
        wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=1, source="lottery")
    with pytest.raises(ValidationError):
        wallet_service.credit(test_db, account_id=account_id, currency="gems", amount=1, source=AD_REWARD)


def test_history_pages_newest_first(test_db, make_account):
    account_id = make_account()
    for amount in range(1, 6):
        wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=amount, source=AD_REWARD)

    page, cursor = wallet_service.get_history_page(test_db, account_id=account_id, currency=COIN, limit=2)
    assert [e.delta for e in page] == [5, 4]
    assert cursor is not None

    page, cursor = wallet_service.get_history_page(
        test_db, account_id=account_id, currency=COIN, cursor=cursor, limit=2
    )
    assert [e.delta for e in page] == [3, 2]

    page, cursor = wallet_service.get_history_page(
        test_db, account_id=account_id, currency=COIN, cursor=cursor, limit=2
    )
    assert [e.delta for e in page] == [1]
    assert cursor is None

    walked = list(wallet_service.iter_history(test_db, account_id=account_id, currency=COIN, page_size=2))
    assert [e.delta for e in walked] == [5, 4, 3, 2, 1]


def test_history_filters_by_source_and_rejects_bad_cursor(test_db, make_account):
    account_id = make_account()
    wallet_service.credit(test_db, account_id=account_id, currency=TOKEN, amount=7, source=DAILY_BONUS)
    wallet_service.debit(test_db, account_id=account_id, currency=TOKEN, amount=2, source=TICKET_PURCHASE)

    page, _ = wallet_service.get_history_page(
        test_db, account_id=account_id, currency=TOKEN, sources=[TICKET_PURCHASE]
    )
    assert [e.source for e in page] == [TICKET_PURCHASE]

    with pytest.raises(ValidationError):
        wallet_service.get_history_page(test_db, account_id=account_id, cursor="abc")


def test_pending_debit_is_held_until_settled(test_db, make_account):
    account_id = make_account()
    wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=10, source=AD_REWARD)

    with atomic(test_db):
        wallet_service.post_debit(
            test_db,
            account_id=account_id,
            currency=COIN,
            amount=4,
            source=WITHDRAWAL,
            status=STATUS_PENDING,
            withdrawal_id=42,
        )
    snapshot = wallet_service.get_wallet(test_db, account_id=account_id)
    assert (snapshot.coins.balance, snapshot.coins.pending) == (6, 4)

    with atomic(test_db):
        wallet_service.settle_withdrawal(test_db, account_id=account_id, withdrawal_id=42)
    with atomic(test_db):
        # second settlement is a no-op
        wallet_service.settle_withdrawal(test_db, account_id=account_id, withdrawal_id=42)

    snapshot = wallet_service.get_wallet(test_db, account_id=account_id)
    assert (snapshot.coins.balance, snapshot.coins.pending) == (6, 0)
    assert _entries(test_db, account_id)[-1].status == STATUS_PAID


def test_plain_withdrawal_debit_still_renders_in_history(test_db, make_account):
    account_id = make_account()
    wallet_service.credit(test_db, account_id=account_id, currency=COIN, amount=5, source=AD_REWARD)
    wallet_service.debit(test_db, account_id=account_id, currency=COIN, amount=2, source=WITHDRAWAL)

    page, _ = wallet_service.get_history_page(test_db, account_id=account_id, currency=COIN)
    items = [wallet_service.to_history_item(e) for e in page]

    assert [(i.source, i.amount, i.withdrawal_id) for i in items] == [(WITHDRAWAL, -2, None), (AD_REWARD, 5, None)]
