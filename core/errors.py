"""Typed failures shared by every domain.

Services raise these; the handlers registered in ``main.py`` turn them into the
structured error body ``{"success": false, "error": {"kind": ..., "message": ...}}``.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class RewardsError(Exception):
    kind = "internal_error"
    status_code = 500
    default_message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = {k: v for k, v in details.items() if v is not None}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.public_message()}
        for key, value in self.details.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload

    def public_message(self) -> str:
        return self.message


# --- Validation (user-correctable, surfaced verbatim) ---


class ValidationError(RewardsError):
    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request."


class InvalidAmountError(ValidationError):
    kind = "invalid_amount"
    default_message = "Amount must be a positive whole number."


class MinimumAmountError(ValidationError):
    kind = "minimum_amount"
    default_message = "Amount is below the minimum allowed."


class InvalidAddressError(ValidationError):
    kind = "invalid_address"
    default_message = "Payment address is not valid for the selected method."


class PhoneNotLockedError(ValidationError):
    kind = "phone_not_locked"
    default_message = "Lock your phone first."


class AdNotCompletedError(ValidationError):
    kind = "ad_not_completed"
    default_message = "You must watch the entire video to earn coins."


class InvalidReferralCodeError(ValidationError):
    kind = "invalid_referral_code"
    default_message = "Referral code not found."


class SelfReferralError(ValidationError):
    kind = "self_referral"
    default_message = "You cannot redeem your own referral code."


class ReferralAlreadyRedeemedError(ValidationError):
    kind = "referral_already_redeemed"
    default_message = "You have already redeemed a referral code."


class GiveawayClosedError(ValidationError):
    kind = "giveaway_closed"
    default_message = "This giveaway is no longer accepting tickets."


class NoSpinsAvailableError(ValidationError):
    kind = "no_spins_available"
    default_message = "No spins left. Claim your daily check-in to get a spin."


# --- Balance rules (surfaced with the current balance) ---


class InsufficientBalanceError(RewardsError):
    kind = "insufficient_balance"
    status_code = 400
    default_message = "Insufficient coin balance."

    def __init__(self, message: Optional[str] = None, *, balance: int, **details: Any):
        super().__init__(message, balance=balance, **details)
        self.balance = balance


class InsufficientTokensError(InsufficientBalanceError):
    kind = "insufficient_tokens"
    default_message = "Insufficient token balance."


# --- Rate-limit style (surfaced with the reset time) ---


class DailyLimitExceededError(RewardsError):
    kind = "daily_limit_exceeded"
    status_code = 429
    default_message = "You have reached the daily earning limit. Please come back tomorrow."

    def __init__(self, message: Optional[str] = None, *, reset_at: datetime, **details: Any):
        super().__init__(message, reset_at=reset_at, **details)
        self.reset_at = reset_at


class AlreadyClaimedError(DailyLimitExceededError):
    kind = "already_claimed"
    status_code = 409
    default_message = "Daily check-in already claimed. Come back tomorrow."


class TooManyRequestsError(RewardsError):
    kind = "rate_limited"
    status_code = 429
    default_message = "Too many requests. Please wait before trying again."


# --- Credential flow (generic messages, expiry excepted) ---

CREDENTIAL_FAILURE_MESSAGE = "Invalid or unknown verification code."
CREDENTIAL_FAILURE_STATUS = 400


class NotFoundError(RewardsError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found."


class CredentialNotFoundError(NotFoundError):
    status_code = CREDENTIAL_FAILURE_STATUS

    def public_message(self) -> str:
        return CREDENTIAL_FAILURE_MESSAGE


class InvalidCredentialError(RewardsError):
    kind = "invalid_credential"
    status_code = CREDENTIAL_FAILURE_STATUS
    default_message = CREDENTIAL_FAILURE_MESSAGE

    def public_message(self) -> str:
        return CREDENTIAL_FAILURE_MESSAGE


class ExpiredError(RewardsError):
    kind = "expired"
    status_code = 410
    default_message = "Verification code expired. Please request a new one."


class AccountNotFoundError(NotFoundError):
    default_message = "Account not found."


class RecipientNotFoundError(NotFoundError):
    kind = "recipient_not_found"
    default_message = "No account exists for that email."


class GiveawayNotFoundError(NotFoundError):
    default_message = "Giveaway not found."


class WithdrawalNotFoundError(NotFoundError):
    default_message = "Withdrawal request not found."


# --- Access ---


class UnauthenticatedError(RewardsError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Authorization token missing or invalid."


class ForbiddenError(RewardsError):
    kind = "forbidden"
    status_code = 403
    default_message = "Admin access required for this endpoint."


# --- Infrastructure ---


class TransientError(RewardsError):
    kind = "transient"
    status_code = 503
    default_message = "The service is busy. Please retry shortly."

    def __init__(self, message: Optional[str] = None, *, retry_after: int = 1, **details: Any):
        super().__init__(message, retry_after=retry_after, **details)
        self.retry_after = retry_after


class InternalError(RewardsError):
    pass


class DeliveryError(InternalError):
    kind = "delivery_failed"
    status_code = 502
    default_message = "Could not send the verification email. Please try again."
