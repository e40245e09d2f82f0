from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, BigInteger, Date, Numeric,
    UniqueConstraint, CheckConstraint, Index, Text
)
from datetime import datetime
import random

from core.db import Base


def generate_account_id():
    """Generate a 10-digit random account number."""
    return random.randint(1_000_000_000, 9_999_999_999)


COIN = "coin"
TOKEN = "token"

# Ledger entry sources
AD_REWARD = "ad_reward"
DAILY_BONUS = "daily_bonus"
REFERRAL_BONUS = "referral_bonus"
SPIN = "spin"
WITHDRAWAL = "withdrawal"
GIFT_SENT = "gift_sent"
GIFT_RECEIVED = "gift_received"
TICKET_PURCHASE = "ticket_purchase"

LEDGER_SOURCES = (
    AD_REWARD, DAILY_BONUS, REFERRAL_BONUS, SPIN,
    WITHDRAWAL, GIFT_SENT, GIFT_RECEIVED, TICKET_PURCHASE,
)

# Ledger entry / withdrawal statuses
STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_COMPLETED = "completed"


# =================================
#  Accounts Table
# =================================
class Account(Base):
    __tablename__ = "accounts"

    account_id = Column(BigInteger, primary_key=True, index=True, nullable=False, default=generate_account_id)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, nullable=True)
    phone_locked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)


# =================================
#  OTP Credentials (one live code per email)
# =================================
class OtpCredential(Base):
    __tablename__ = "otp_credentials"

    email = Column(String, primary_key=True)
    otp_hash = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    phone_number = Column(String, nullable=True)
    is_signup = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# =================================
#  Wallets (two independent sub-ledgers per account)
# =================================
class CoinWallet(Base):
    __tablename__ = "coin_wallets"

    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), primary_key=True)
    balance = Column(BigInteger, default=0, nullable=False)
    pending = Column(BigInteger, default=0, nullable=False)  # reserved by unpaid withdrawals
    lifetime_earned = Column(BigInteger, default=0, nullable=False)
    ads_watched_today = Column(Integer, default=0, nullable=False)
    ads_counted_on = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_coin_wallets_balance_nonnegative"),
        CheckConstraint("pending >= 0", name="ck_coin_wallets_pending_nonnegative"),
    )


class TokenWallet(Base):
    __tablename__ = "token_wallets"

    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), primary_key=True)
    balance = Column(BigInteger, default=0, nullable=False)
    lifetime_earned = Column(BigInteger, default=0, nullable=False)
    spins_remaining = Column(Integer, default=0, nullable=False)  # only valid on last_checkin_on
    last_checkin_on = Column(Date, nullable=True)
    earned_today = Column(Integer, default=0, nullable=False)
    earned_counted_on = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_token_wallets_balance_nonnegative"),
        CheckConstraint("spins_remaining >= 0", name="ck_token_wallets_spins_nonnegative"),
    )


# =================================
#  Ledger Entries (append-only history)
# =================================
class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    currency = Column(String(10), nullable=False)  # coin | token
    delta = Column(BigInteger, nullable=False)
    balance_after = Column(BigInteger, nullable=False)
    source = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_COMPLETED)
    # Variant fields, populated per source
    placement_id = Column(String, nullable=True)
    spin_outcome = Column(String(32), nullable=True)
    counterparty_account_id = Column(BigInteger, nullable=True)
    withdrawal_id = Column(Integer, nullable=True, index=True)
    giveaway_id = Column(Integer, nullable=True)
    tickets = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_ledger_entries_delta_nonzero"),
        Index("ix_ledger_entries_account_currency_id", "account_id", "currency", "id"),
    )


# =================================
#  Withdrawal Requests
# =================================
class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    coins_reserved = Column(BigInteger, nullable=False)
    usd_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(16), nullable=False)  # paypal | upi
    payment_address = Column(String, nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_PENDING)  # pending | paid
    secret_code_hash = Column(String, nullable=False)
    # Snapshot at request time for payout review
    email = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paid_at = Column(DateTime, nullable=True)


# =================================
#  Referrals
# =================================
class ReferralCode(Base):
    __tablename__ = "referral_codes"

    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), primary_key=True)
    code = Column(String(32), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    referrer_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    referred_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    code = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_PENDING)  # pending | completed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("referred_id", name="uq_referrals_referred"),
        CheckConstraint("referrer_id <> referred_id", name="ck_referrals_not_self"),
    )


# =================================
#  Daily check-ins and spins
# =================================
class DailyCheckin(Base):
    __tablename__ = "daily_checkins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    claim_date = Column(Date, nullable=False)
    spins_granted = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "claim_date", name="uq_daily_checkins_account_date"),
    )


class SpinPlay(Base):
    __tablename__ = "spin_plays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    outcome = Column(String(32), nullable=False)
    tokens_won = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# =================================
#  Giveaways
# =================================
GIVEAWAY_ACTIVE = "active"
GIVEAWAY_CLOSED = "closed"
GIVEAWAY_DRAWN = "drawn"


class Giveaway(Base):
    __tablename__ = "giveaways"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    prize_image = Column(String, nullable=True)
    ticket_token_cost = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=GIVEAWAY_ACTIVE)  # active | closed | drawn
    ends_at = Column(DateTime, nullable=True)
    winner_account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="SET NULL"), nullable=True)
    drawn_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("ticket_token_cost > 0", name="ck_giveaways_ticket_cost_positive"),
    )


class GiveawayTicket(Base):
    __tablename__ = "giveaway_tickets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    giveaway_id = Column(Integer, ForeignKey("giveaways.id", ondelete="CASCADE"), nullable=False, index=True)
    tickets_purchased = Column(Integer, nullable=False, default=0)
    token_cost_per_ticket = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("account_id", "giveaway_id", name="uq_giveaway_tickets_account_giveaway"),
    )
