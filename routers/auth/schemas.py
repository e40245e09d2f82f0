"""Auth domain schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field


class OtpRequest(BaseModel):
    email: EmailStr
    phone_number: Optional[str] = Field(None, alias="phoneNumber", max_length=20)
    is_signup: bool = Field(False, alias="isSignup")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"email": "jane@example.com", "phoneNumber": "+15551234567", "isSignup": True}
        }


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=12)
    referral_code: Optional[str] = Field(None, alias="referralCode", max_length=32)

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"email": "jane@example.com", "otp": "123456"}}


class OtpRequestResponse(BaseModel):
    success: bool
    message: str


class AccountResponse(BaseModel):
    account_id: int
    email: str
    phone_number: Optional[str] = None
    phone_locked: bool
    referral_code: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OtpVerifyResponse(BaseModel):
    success: bool
    token: str
    user: AccountResponse
    wallet: Dict[str, Any]
    referral: Optional[str] = Field(
        None, description="Outcome of the referral code supplied at verification, if any"
    )
