"""
Withdrawals domain service: cash payout requests and coin gifts.

A withdrawal reserves its coins at request time: the coins leave the balance as
a ``pending`` ledger debit and sit in the wallet's ``pending`` bucket until an
operator marks the payout paid.
"""

import logging
import re
from datetime import datetime
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session

from config import (
    COINS_PER_USD,
    MIN_GIFT_COINS,
    MIN_WITHDRAWAL_USD,
    WITHDRAWAL_METHODS,
    WITHDRAWAL_REQUIRES_LOCKED_PHONE,
    WITHDRAWAL_SECRET_CODE_LENGTH,
)
from core import ledger
from core.db import atomic
from core.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    MinimumAmountError,
    PhoneNotLockedError,
    RecipientNotFoundError,
    RewardsError,
    ValidationError,
    WithdrawalNotFoundError,
)
from core.ports.notifier import NotifierPort
from core.security import generate_human_code, hash_secret, normalize_human_code, verify_secret
from core.users import get_account_by_email, get_account_by_id, mask_email
from models import COIN, GIFT_RECEIVED, GIFT_SENT, STATUS_PAID, WITHDRAWAL
from utils.logging_helpers import log_error, log_info, log_warning
from utils.reward_days import utc_now

from . import repository as withdrawals_repository
from .schemas import (
    GiftResponse,
    MarkPaidResponse,
    WithdrawalItem,
    WithdrawalListResponse,
    WithdrawResponse,
)

logger = logging.getLogger(__name__)

# local@domain.tld; PayPal addresses and UPI handles both take this shape
PAYMENT_ADDRESS_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+(\.[A-Za-z]{2,})?$")

CENT = Decimal("0.01")


def coins_for_usd(usd_amount: Decimal) -> int:
    """ceil(usd * COINS_PER_USD); a fraction of a coin always rounds up."""
    coins = (usd_amount * COINS_PER_USD).to_integral_value(rounding=ROUND_CEILING)
    return int(coins)


def _parse_usd(usd_amount) -> Decimal:
    try:
        amount = Decimal(str(usd_amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError() from None
    if not amount.is_finite():
        raise InvalidAmountError()
    return amount


def is_valid_payment_address(address: str, method: str) -> bool:
    address = (address or "").strip()
    if method in ("paypal", "upi"):
        return bool(PAYMENT_ADDRESS_RE.match(address))
    return False


def request_withdrawal(
    db: Session,
    account_id: int,
    usd_amount,
    payment_address: str,
    method: str,
    notifier: Optional[NotifierPort] = None,
    *,
    now: Optional[datetime] = None,
) -> WithdrawResponse:
    """
    Reserve coins for a cash payout and return the receipt.

    Checks run in order: payout method, minimum amount, balance, address
    format, phone lock. The secret code is returned here and only its hash is
    stored.
    """
    method = (method or "").strip().lower()
    if method not in WITHDRAWAL_METHODS:
        raise ValidationError(f"Unsupported payout method '{method}'.")
    usd = _parse_usd(usd_amount)
    minimum = Decimal(MIN_WITHDRAWAL_USD)
    if usd < minimum:
        raise MinimumAmountError(f"Minimum withdrawal is ${minimum}.", minimum_usd=str(minimum))
    usd = usd.quantize(CENT, rounding=ROUND_CEILING)
    coins = coins_for_usd(usd)
    address = (payment_address or "").strip()

    secret_code = generate_human_code(WITHDRAWAL_SECRET_CODE_LENGTH)
    with atomic(db):
        wallet = ledger.lock_wallet(db, account_id=account_id, currency=COIN)
        if wallet.balance < coins:
            raise InsufficientBalanceError(balance=wallet.balance, required=coins)
        if not is_valid_payment_address(address, method):
            raise InvalidAddressError()

        account = get_account_by_id(db, account_id=account_id)
        if account is None:
            raise AccountNotFoundError()
        if WITHDRAWAL_REQUIRES_LOCKED_PHONE and not (account.phone_locked and account.phone_number):
            raise PhoneNotLockedError()

        withdrawal = withdrawals_repository.create_withdrawal(
            db,
            account_id=account_id,
            coins_reserved=coins,
            usd_amount=usd,
            payment_method=method,
            payment_address=address,
            secret_code_hash=hash_secret(normalize_human_code(secret_code)),
            email=account.email,
            phone_number=account.phone_number,
        )
        balance = ledger.post_debit(
            db,
            account_id=account_id,
            currency=COIN,
            amount=coins,
            source=WITHDRAWAL,
            status=withdrawal.status,
            withdrawal_id=withdrawal.id,
        )
        withdrawal_id = withdrawal.id
        status = withdrawal.status
        email = account.email
        phone_number = account.phone_number

    log_info(logger, "Withdrawal requested", account_id, withdrawal_id=withdrawal_id, usd=usd, coins=coins)
    if notifier is not None:
        _alert_admin(notifier, withdrawal_id, account_id, email, phone_number, usd, coins, method, address)

    return WithdrawResponse(
        success=True,
        withdrawal_id=withdrawal_id,
        status=status,
        coins_reserved=coins,
        usd_amount=usd,
        secret_code=secret_code,
        coins=balance,
    )


def _alert_admin(notifier: NotifierPort, withdrawal_id, account_id, email, phone_number, usd, coins, method, address):
    # The reservation is committed at this point; a failed alert must not undo it
    body = (
        f"Withdrawal #{withdrawal_id}\n"
        f"Account: {account_id} ({email})\n"
        f"Phone: {phone_number or '-'}\n"
        f"Amount: ${usd} ({coins} coins)\n"
        f"Method: {method} -> {address}\n"
    )
    try:
        notifier.notify_admin(subject=f"New withdrawal request #{withdrawal_id}", body=body)
    except RewardsError as e:
        log_error(logger, "Withdrawal alert failed", account_id, withdrawal_id=withdrawal_id, error=e.public_message())


def mark_paid(db: Session, withdrawal_id: int, *, now: Optional[datetime] = None) -> MarkPaidResponse:
    """pending -> paid. Marking an already paid request again changes nothing."""
    with atomic(db):
        withdrawal = withdrawals_repository.lock_withdrawal(db, withdrawal_id)
        if withdrawal is None:
            raise WithdrawalNotFoundError()
        if withdrawal.status != STATUS_PAID:
            withdrawal.status = STATUS_PAID
            withdrawal.paid_at = now or utc_now()
            ledger.settle_withdrawal(db, account_id=withdrawal.account_id, withdrawal_id=withdrawal.id)
            log_info(logger, "Withdrawal marked paid", withdrawal.account_id, withdrawal_id=withdrawal.id)
        response = MarkPaidResponse(
            success=True,
            withdrawal_id=withdrawal.id,
            status=withdrawal.status,
            paid_at=withdrawal.paid_at,
        )
    return response


def verify_secret_code(db: Session, withdrawal_id: int, code: str) -> bool:
    """Check the code a user reads back against the stored hash."""
    withdrawal = withdrawals_repository.get_withdrawal(db, withdrawal_id)
    if withdrawal is None:
        raise WithdrawalNotFoundError()
    valid = verify_secret(normalize_human_code(code), withdrawal.secret_code_hash)
    if not valid:
        log_warning(logger, "Withdrawal code mismatch", withdrawal.account_id, withdrawal_id=withdrawal_id)
    return valid


def list_withdrawals(db: Session, account_id: int) -> WithdrawalListResponse:
    rows = withdrawals_repository.list_withdrawals_for_account(db, account_id)
    return WithdrawalListResponse(withdrawals=[WithdrawalItem.model_validate(w) for w in rows])


def process_gift(db: Session, sender_id: int, recipient_email: str, amount) -> GiftResponse:
    """Move coins between two accounts; both sides land or neither does."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError()
    if amount < MIN_GIFT_COINS:
        raise MinimumAmountError(f"Minimum gift is {MIN_GIFT_COINS} coins.")

    with atomic(db):
        recipient = get_account_by_email(db, email=recipient_email)
        if recipient is None:
            raise RecipientNotFoundError()
        recipient_id = recipient.account_id
        if recipient_id == sender_id:
            raise ValidationError("You cannot send a gift to yourself.")

        ledger.lock_wallets(db, account_ids=[sender_id, recipient_id], currency=COIN)
        balance = ledger.post_debit(
            db,
            account_id=sender_id,
            currency=COIN,
            amount=amount,
            source=GIFT_SENT,
            counterparty_account_id=recipient_id,
        )
        ledger.post_credit(
            db,
            account_id=recipient_id,
            currency=COIN,
            amount=amount,
            source=GIFT_RECEIVED,
            counterparty_account_id=sender_id,
        )

    log_info(logger, "Gift sent", sender_id, recipient=mask_email(recipient_email), amount=amount)
    return GiftResponse(success=True, coins=balance)
