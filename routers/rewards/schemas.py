"""Rewards domain schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class AdEventRequest(BaseModel):
    """Signal forwarded by the app when the ad SDK finishes a rewarded placement."""

    event: Literal["completed", "skipped", "failed"]
    placement_id: Optional[str] = Field(None, alias="placementId", max_length=128)
    source: Optional[str] = Field(None, max_length=64, description="Free-form tag from the client")

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"event": "completed", "placementId": "Rewarded_Android"}}


class AdRewardResponse(BaseModel):
    success: bool
    coins: int = Field(..., description="Coin balance after the credit")
    ads_watched_today: int
    ads_remaining_today: int


class TokenEarnRequest(BaseModel):
    source: str = Field(..., max_length=32)
    amount: int

    class Config:
        json_schema_extra = {"example": {"source": "daily_bonus", "amount": 10}}


class TokenEarnResponse(BaseModel):
    success: bool
    tokens: int
    earned_today: int


class DailyCheckinResponse(BaseModel):
    success: bool
    spins_left: int = Field(..., alias="spinsLeft")
    resets_at: datetime

    class Config:
        populate_by_name = True


class SpinResponse(BaseModel):
    success: bool
    reward: str = Field(..., description="Wheel segment id, e.g. '250_tokens' or 'try_again'")
    win_amount: int = Field(..., alias="winAmount")
    spins_left: int = Field(..., alias="spinsLeft")
    tokens: int

    class Config:
        populate_by_name = True


class ReferralCodeResponse(BaseModel):
    success: bool
    code: str


class RedeemReferralRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)


class RedeemReferralResponse(BaseModel):
    success: bool
    bonus: int
    tokens: int


class ReferralItem(BaseModel):
    email: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None


class ReferralsResponse(BaseModel):
    success: bool
    code: str
    has_redeemed: bool
    total: int
    completed: int
    pending: int
    bonus_earned: int
    referrals: List[ReferralItem]


class RewardHistoryItem(BaseModel):
    id: int
    source: str
    amount: int
    status: str
    spin_outcome: Optional[str] = None
    created_at: datetime


class RewardHistoryResponse(BaseModel):
    success: bool
    history: List[RewardHistoryItem]
    next_cursor: Optional[str] = None
