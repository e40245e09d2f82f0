from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_account

from .schemas import AccountResponse
from .service import get_profile

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=AccountResponse)
def me(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return get_profile(db, account)
