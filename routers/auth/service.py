"""Auth domain service layer: one-time codes, accounts, sessions."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import issue_session_token
from config import OTP_EXPIRY_MINUTES, OTP_REQUESTS_PER_WINDOW, OTP_REQUEST_WINDOW_SECONDS
from core import ledger, referrals
from core.db import atomic
from core.errors import (
    AccountNotFoundError,
    CredentialNotFoundError,
    ExpiredError,
    InvalidCredentialError,
    RewardsError,
    TooManyRequestsError,
    ValidationError,
)
from core.ports.notifier import NotifierPort
from core.rate_limit import RateLimiter, default_rate_limiter
from core.security import generate_otp, hash_secret, verify_secret
from models import Account
from utils.logging_helpers import log_info, log_warning
from utils.reward_days import utc_now

from . import repository as auth_repository
from .schemas import AccountResponse, OtpRequest, OtpVerifyRequest, OtpVerifyResponse

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# --- Account lookups (exposed to other domains through core.users) ---


def get_account_by_id(db: Session, *, account_id: int) -> Optional[Account]:
    return auth_repository.get_account_by_id(db, account_id)


def get_account_by_id_for_update(db: Session, *, account_id: int) -> Optional[Account]:
    return auth_repository.get_account_by_id_for_update(db, account_id)


def get_account_by_email(db: Session, *, email: str) -> Optional[Account]:
    return auth_repository.get_account_by_email(db, normalize_email(email))


def get_accounts_by_ids(db: Session, *, account_ids: List[int]) -> List[Account]:
    return auth_repository.get_accounts_by_ids(db, account_ids)


def account_exists(db: Session, email: str) -> bool:
    return auth_repository.get_account_by_email(db, normalize_email(email)) is not None


def open_account(
    db: Session, *, email: str, phone_number: Optional[str] = None, phone_locked: bool = False
) -> Account:
    """Create an account and its empty wallets inside the caller's transaction."""
    account = auth_repository.create_account(
        db,
        email=normalize_email(email),
        phone_number=phone_number,
        phone_locked=phone_locked and bool(phone_number),
    )
    ledger.open_wallets(db, account_id=account.account_id)
    log_info(logger, "Account created", account.account_id, phone_locked=account.phone_locked)
    return account


# --- One-time codes ---


def request_code(
    db: Session,
    payload: OtpRequest,
    notifier: NotifierPort,
    *,
    now: Optional[datetime] = None,
    rate_limiter: RateLimiter = default_rate_limiter,
) -> dict:
    email = normalize_email(payload.email)
    phone_number = (payload.phone_number or "").strip() or None

    if payload.is_signup:
        if not phone_number:
            raise ValidationError("Phone number is required for signup.")
        if account_exists(db, email):
            raise ValidationError("An account with this email already exists. Please log in.")

    limit = rate_limiter.allow(
        key=f"otp:request:{email}",
        limit=OTP_REQUESTS_PER_WINDOW,
        window_seconds=OTP_REQUEST_WINDOW_SECONDS,
    )
    if not limit.allowed:
        raise TooManyRequestsError(retry_after=limit.retry_after_seconds)

    code = generate_otp()
    now = now or utc_now()
    with atomic(db):
        auth_repository.upsert_otp(
            db,
            email=email,
            otp_hash=hash_secret(code),
            expires_at=now + timedelta(minutes=OTP_EXPIRY_MINUTES),
            phone_number=phone_number,
            is_signup=payload.is_signup,
        )

    notifier.send_otp(email=email, code=code, expiry_minutes=OTP_EXPIRY_MINUTES)
    log_info(logger, "OTP issued", email=email, signup=payload.is_signup)
    return {"success": True, "message": "Verification code sent."}


def _check_code(db: Session, email: str, code: str, now: datetime):
    credential = auth_repository.get_otp(db, email)
    if credential is None:
        raise CredentialNotFoundError()

    if credential.expires_at <= now:
        with atomic(db):
            auth_repository.delete_otp(db, email)
        log_info(logger, "OTP expired", email=email)
        raise ExpiredError()

    if not verify_secret((code or "").strip(), credential.otp_hash):
        log_warning(logger, "OTP mismatch", email=email)
        raise InvalidCredentialError()

    return credential


def _redeem_at_signup(db: Session, account: Account, referral_code: str, now: datetime) -> str:
    """Referral failures never block the login itself."""
    if referrals.has_redeemed(db, account_id=account.account_id):
        return "skipped"
    savepoint = db.begin_nested()
    try:
        referrals.redeem_in_transaction(db, account_id=account.account_id, code=referral_code, now=now)
    except RewardsError as exc:
        savepoint.rollback()
        log_warning(logger, "Referral at signup rejected", account.account_id, kind=exc.kind)
        return exc.kind
    savepoint.commit()
    return "redeemed"


def verify_code(
    db: Session, payload: OtpVerifyRequest, *, now: Optional[datetime] = None
) -> OtpVerifyResponse:
    email = normalize_email(payload.email)
    now = now or utc_now()
    credential = _check_code(db, email, payload.otp, now)
    is_signup = credential.is_signup
    phone_number = credential.phone_number

    referral_status = None
    try:
        with atomic(db):
            auth_repository.delete_otp(db, email)
            account = auth_repository.get_account_by_email(db, email)
            if is_signup:
                if account is not None:
                    raise ValidationError("An account with this email already exists. Please log in.")
                account = open_account(db, email=email, phone_number=phone_number, phone_locked=True)
            elif account is None:
                # atomic rolls back the delete, so the code is kept
                raise AccountNotFoundError("No account for this email. Please sign up.")
            account.last_login_at = now

            if payload.referral_code:
                referral_status = _redeem_at_signup(db, account, payload.referral_code, now)
    except IntegrityError as exc:
        # Lost a race with another verification creating the same email
        raise ValidationError("An account with this email already exists. Please log in.") from exc

    token = issue_session_token(account.account_id, account.email, now=now)
    log_info(logger, "OTP verified, session issued", account.account_id, signup=is_signup, referral=referral_status)
    return OtpVerifyResponse(
        success=True,
        token=token,
        user=AccountResponse.model_validate(account),
        wallet=ledger.get_wallet(db, account_id=account.account_id, now=now),
        referral=referral_status,
    )


def get_profile(db: Session, account: Account) -> AccountResponse:
    profile = AccountResponse.model_validate(account)
    profile.referral_code = referrals.get_or_create_code(db, account_id=account.account_id)
    return profile
