"""Auth domain repository layer."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from models import Account, OtpCredential


def get_account_by_id(db: Session, account_id: int) -> Optional[Account]:
    return db.query(Account).filter(Account.account_id == account_id).first()


def get_account_by_id_for_update(db: Session, account_id: int) -> Optional[Account]:
    return (
        db.query(Account)
        .filter(Account.account_id == account_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_account_by_email(db: Session, email: str) -> Optional[Account]:
    return db.query(Account).filter(Account.email == email).first()


def get_accounts_by_ids(db: Session, account_ids: List[int]) -> List[Account]:
    if not account_ids:
        return []
    return db.query(Account).filter(Account.account_id.in_(account_ids)).all()


def create_account(db: Session, *, email: str, phone_number: Optional[str], phone_locked: bool) -> Account:
    account = Account(email=email, phone_number=phone_number, phone_locked=phone_locked)
    db.add(account)
    db.flush()
    return account


def get_otp(db: Session, email: str) -> Optional[OtpCredential]:
    return db.query(OtpCredential).filter(OtpCredential.email == email).first()


def upsert_otp(
    db: Session,
    *,
    email: str,
    otp_hash: str,
    expires_at: datetime,
    phone_number: Optional[str],
    is_signup: bool,
) -> None:
    """Insert or replace the live code for `email` (one statement, ON CONFLICT)."""
    insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    values = {
        "otp_hash": otp_hash,
        "expires_at": expires_at,
        "phone_number": phone_number,
        "is_signup": is_signup,
        "created_at": datetime.utcnow(),
    }
    stmt = insert(OtpCredential).values(email=email, **values)
    stmt = stmt.on_conflict_do_update(index_elements=[OtpCredential.email], set_=values)
    db.execute(stmt)


def delete_otp(db: Session, email: str) -> int:
    return db.query(OtpCredential).filter(OtpCredential.email == email).delete(synchronize_session=False)
