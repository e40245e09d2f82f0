"""Concurrent requests through separate sessions, as separate request handlers would."""

import threading
from datetime import datetime

from core.errors import AlreadyClaimedError, InsufficientBalanceError, TransientError
from models import COIN, WITHDRAWAL
from routers.rewards.service import claim_daily_checkin
from routers.wallet import service as wallet_service
from routers.withdrawals.service import process_gift


def _run_concurrently(session_factory, fns):
    """Run each fn(db) in its own thread; return the list of results or exceptions."""
    results = []
    lock = threading.Lock()
    start = threading.Barrier(len(fns))

    def worker(fn):
        db = session_factory()
        try:
            start.wait()
            for _ in range(20):
                try:
                    outcome = fn(db)
                except TransientError:
                    continue
                except Exception as exc:  # collected for assertions
                    outcome = exc
                break
            else:
                outcome = TransientError()
            with lock:
                results.append(outcome)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(fn,)) for fn in fns]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_concurrent_debits_never_overdraw(session_factory, make_account, fund, read_wallet):
    account_id = make_account()
    fund(account_id, coins=100)

    def debit(db):
        return wallet_service.debit(db, account_id=account_id, currency=COIN, amount=15, source=WITHDRAWAL)

    results = _run_concurrently(session_factory, [debit] * 10)

    successes = [r for r in results if isinstance(r, int)]
    failures = [r for r in results if isinstance(r, InsufficientBalanceError)]
    assert len(successes) == 6
    assert len(failures) == 4
    assert read_wallet(account_id)["coins"]["balance"] == 10

    db = session_factory()
    try:
        assert wallet_service.audit_wallet(db, account_id=account_id, currency=COIN).consistent
    finally:
        db.close()


def test_opposite_gifts_do_not_deadlock(session_factory, make_account, fund, read_wallet):
    a_id = make_account(email="a@example.com")
    b_id = make_account(email="b@example.com")
    fund(a_id, coins=100)
    fund(b_id, coins=100)

    def a_to_b(db):
        return process_gift(db, a_id, "b@example.com", 5)

    def b_to_a(db):
        return process_gift(db, b_id, "a@example.com", 5)

    results = _run_concurrently(session_factory, [a_to_b, b_to_a] * 3)

    assert all(getattr(r, "success", False) for r in results), results
    assert read_wallet(a_id)["coins"]["balance"] == 100
    assert read_wallet(b_id)["coins"]["balance"] == 100


def test_concurrent_checkins_claim_once(session_factory, make_account, read_wallet):
    account_id = make_account()
    now = datetime(2026, 5, 4, 9, 0, 0)

    def checkin(db):
        return claim_daily_checkin(db, account_id, now=now)

    results = _run_concurrently(session_factory, [checkin] * 5)

    assert sum(1 for r in results if getattr(r, "success", False)) == 1
    assert sum(1 for r in results if isinstance(r, AlreadyClaimedError)) == 4
    assert read_wallet(account_id, now=now)["tokens"]["spins_remaining"] == 1
