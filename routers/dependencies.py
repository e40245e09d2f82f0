import logging
import secrets

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from auth import validate_session_token
from config import ADMIN_API_KEY
from core.db import get_db
from core.errors import ForbiddenError, UnauthenticatedError
from core.users import get_account_by_id

logger = logging.getLogger(__name__)


def get_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthenticatedError("Authorization token missing.")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise UnauthenticatedError("Authorization token missing.")
    return token


def get_current_account(request: Request, db: Session = Depends(get_db)):
    """
    Validates the bearer session token and returns the account it belongs to.
    """
    claims = validate_session_token(get_bearer_token(request))
    account = get_account_by_id(db, account_id=claims["account_id"])
    if account is None:
        logger.warning(f"Session token for unknown account {claims['account_id']}")
        raise UnauthenticatedError()
    request.state.account_id = account.account_id
    return account


def require_admin(x_admin_key: str = Header(None, alias="X-Admin-Key")):
    """Payout/giveaway operations for the back office, keyed by ADMIN_API_KEY."""
    if not ADMIN_API_KEY or not x_admin_key:
        raise ForbiddenError()
    if not secrets.compare_digest(x_admin_key.encode(), ADMIN_API_KEY.encode()):
        raise ForbiddenError()
    return True
