"""Giveaways domain schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GiveawayItem(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    prize_image: Optional[str] = None
    ticket_cost: int = Field(..., description="Tokens per ticket")
    ends_at: Optional[datetime] = None
    status: str
    total_tickets: int = 0
    user_tickets: int = 0


class ActiveGiveawaysResponse(BaseModel):
    success: bool = True
    giveaways: List[GiveawayItem]


class BuyTicketRequest(BaseModel):
    giveaway_id: int = Field(..., alias="giveawayId")
    ticket_count: int = Field(1, alias="ticketCount")

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"giveawayId": 1, "ticketCount": 2}}


class BuyTicketResponse(BaseModel):
    success: bool
    giveaway_id: int
    tickets: int = Field(..., description="Tickets the caller now holds for this giveaway")
    tokens_spent: int
    wallet: Dict[str, Any]


class MyTicketItem(BaseModel):
    giveaway_id: int
    title: str
    status: str
    tickets: int
    ends_at: Optional[datetime] = None
    won: bool = False


class MyTicketsResponse(BaseModel):
    success: bool = True
    tickets: List[MyTicketItem]


class WinnerItem(BaseModel):
    giveaway_id: int
    title: str
    prize_image: Optional[str] = None
    winner: str = Field(..., description="Masked email of the winner")
    drawn_at: Optional[datetime] = None


class WinnersResponse(BaseModel):
    success: bool = True
    winners: List[WinnerItem]


class GiveawayCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    prize_image: Optional[str] = Field(None, alias="prizeImage")
    ticket_cost: int = Field(..., alias="ticketCost", gt=0)
    ends_at: Optional[datetime] = Field(None, alias="endsAt")

    class Config:
        populate_by_name = True


class DrawResponse(BaseModel):
    success: bool
    giveaway_id: int
    status: str
    winner_account_id: Optional[int] = None
    total_tickets: int
