"""Account lookup facade.

Domains should not query the `Account` model directly. Instead, call these helpers which
delegate to the Auth domain internal service API.
"""

from typing import List

from sqlalchemy.orm import Session


def get_account_by_id(db: Session, *, account_id: int):
    from routers.auth import service as auth_service

    return auth_service.get_account_by_id(db, account_id=account_id)


def get_account_by_id_for_update(db: Session, *, account_id: int):
    from routers.auth import service as auth_service

    return auth_service.get_account_by_id_for_update(db, account_id=account_id)


def get_account_by_email(db: Session, *, email: str):
    from routers.auth import service as auth_service

    return auth_service.get_account_by_email(db, email=email)


def get_accounts_by_ids(db: Session, *, account_ids: List[int]):
    from routers.auth import service as auth_service

    return auth_service.get_accounts_by_ids(db, account_ids=account_ids)


def mask_email(email: str) -> str:
    """j***@example.com"""
    local, _, domain = (email or "").partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"
