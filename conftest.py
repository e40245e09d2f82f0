import os

# Must be set before config is imported anywhere
os.environ["TESTING"] = "true"
os.environ["REDIS_URL"] = ""
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("OTP_HASH_ROUNDS", "4")
os.environ.setdefault("NOTIFIER_BACKEND", "log")

import pytest
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401  registers the tables on Base
from auth import issue_session_token
from core.cache import default_cache
from core.db import Base, create_db_engine, get_db
from core.rate_limit import default_rate_limiter

ADMIN_KEY = os.environ["ADMIN_API_KEY"]


class CapturingNotifier:
    """Records outgoing messages instead of sending them."""

    def __init__(self):
        self.codes = {}
        self.admin_alerts = []

    def send_otp(self, *, email: str, code: str, expiry_minutes: int) -> None:
        self.codes[email] = code

    def notify_admin(self, *, subject: str, body: str) -> None:
        self.admin_alerts.append((subject, body))


@pytest.fixture
def test_engine(tmp_path):
    """File-backed SQLite per test so threads can use separate connections."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'rewards_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def test_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_process_state():
    default_rate_limiter.reset()
    default_cache.clear()
    yield
    default_rate_limiter.reset()
    default_cache.clear()


@pytest.fixture
def make_account(session_factory):
    """Create an account with empty wallets in its own committed session; returns the id."""
    from routers.auth.service import open_account

    counter = {"n": 0}

    def _make(email=None, phone_number="+15550000000", phone_locked=True):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        db = session_factory()
        try:
            account = open_account(db, email=email, phone_number=phone_number, phone_locked=phone_locked)
            account_id = account.account_id
            db.commit()
        finally:
            db.close()
        return account_id

    return _make


@pytest.fixture
def fund(session_factory):
    """Credit an account in its own committed session."""
    from core import ledger
    from models import AD_REWARD, COIN, DAILY_BONUS

    def _fund(account_id, coins=0, tokens=0):
        db = session_factory()
        try:
            if coins:
                ledger.credit(db, account_id=account_id, currency=COIN, amount=coins, source=AD_REWARD)
            if tokens:
                ledger.credit(db, account_id=account_id, currency="token", amount=tokens, source=DAILY_BONUS)
        finally:
            db.close()

    return _fund


@pytest.fixture
def read_wallet(session_factory):
    """Wallet snapshot dict read through a fresh session."""
    from core import ledger

    def _read(account_id, now=None):
        db = session_factory()
        try:
            return ledger.get_wallet(db, account_id=account_id, now=now)
        finally:
            db.close()

    return _read


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def client(session_factory, notifier):
    from fastapi.testclient import TestClient

    from main import app
    from utils.notifier import get_notifier

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(account_id, email="user@example.com"):
        return {"Authorization": f"Bearer {issue_session_token(account_id, email)}"}

    return _headers


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
