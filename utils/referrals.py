import base64
import hashlib
import hmac

from sqlalchemy.orm import Session

from config import REFERRAL_CODE_LENGTH, REFERRAL_CODE_SECRET
from models import ReferralCode


def derive_referral_code(account_id: int, length: int = REFERRAL_CODE_LENGTH) -> str:
    """Stable code for an account: HMAC of the account id, base32, truncated."""
    digest = hmac.new(
        REFERRAL_CODE_SECRET.encode(), str(account_id).encode(), hashlib.sha256
    ).digest()
    return base64.b32encode(digest).decode().rstrip("=")[:length]


def get_unique_referral_code(db: Session, account_id: int) -> str:
    """
    Return the account's derived code, lengthened one character at a time if a
    shorter prefix is already taken by another account.
    """
    full = derive_referral_code(account_id, length=52)
    for length in range(REFERRAL_CODE_LENGTH, len(full) + 1):
        code = full[:length]
        owner = db.query(ReferralCode).filter(ReferralCode.code == code).first()
        if owner is None or owner.account_id == account_id:
            return code

    raise RuntimeError(f"No free referral code for account {account_id}")
