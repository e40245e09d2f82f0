from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from utils.notifier import get_notifier

from .schemas import OtpRequest, OtpRequestResponse, OtpVerifyRequest, OtpVerifyResponse
from .service import request_code, verify_code

router = APIRouter(prefix="/auth/otp", tags=["Auth"])


@router.post("/request", response_model=OtpRequestResponse)
def request_otp(
    payload: OtpRequest = Body(...),
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
):
    """Email a 6-digit code. Signup requires a phone number that will be locked to the account."""
    return request_code(db, payload, notifier)


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_otp(payload: OtpVerifyRequest = Body(...), db: Session = Depends(get_db)):
    """Consume the code and return a session token with the wallet snapshot."""
    return verify_code(db, payload)
