"""Withdrawals domain schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class WithdrawRequest(BaseModel):
    amount_usd: Decimal = Field(..., alias="amountUSD", decimal_places=2)
    address: str = Field(..., max_length=256)
    method: str = Field("paypal", max_length=16)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"amountUSD": "1.00", "address": "payee@example.com", "method": "paypal"}
        }


class WithdrawResponse(BaseModel):
    success: bool
    withdrawal_id: int = Field(..., alias="withdrawalId")
    status: str
    coins_reserved: int = Field(..., alias="coinsReserved")
    usd_amount: Decimal = Field(..., alias="amountUSD")
    secret_code: str = Field(
        ...,
        alias="secretCode",
        description="Shown once; the payout team asks for it before paying out",
    )
    coins: int = Field(..., description="Coin balance after the reservation")

    class Config:
        populate_by_name = True


class WithdrawalItem(BaseModel):
    id: int
    coins_reserved: int
    usd_amount: Decimal
    payment_method: str
    payment_address: str
    status: str
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WithdrawalListResponse(BaseModel):
    success: bool = True
    withdrawals: List[WithdrawalItem]


class GiftRequest(BaseModel):
    recipient_email: EmailStr = Field(..., alias="recipientEmail")
    amount: int

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"recipientEmail": "friend@example.com", "amount": 100}}


class GiftResponse(BaseModel):
    success: bool
    coins: int = Field(..., description="Sender's coin balance after the gift")


class MarkPaidResponse(BaseModel):
    success: bool
    withdrawal_id: int
    status: str
    paid_at: Optional[datetime] = None


class VerifyCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class VerifyCodeResponse(BaseModel):
    success: bool
    valid: bool
