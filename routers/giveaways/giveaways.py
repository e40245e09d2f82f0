from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from routers.dependencies import get_current_account, require_admin

from .schemas import (
    ActiveGiveawaysResponse,
    BuyTicketRequest,
    BuyTicketResponse,
    DrawResponse,
    GiveawayCreateRequest,
    GiveawayItem,
    MyTicketsResponse,
    WinnersResponse,
)
from .service import buy_ticket, create_giveaway, draw_winner, list_active, list_winners, my_tickets

router = APIRouter(tags=["Giveaways"])


@router.get("/giveaway/active", response_model=ActiveGiveawaysResponse)
def active_giveaways(account=Depends(get_current_account), db: Session = Depends(get_db)):
    """Open giveaways, with how many tickets the caller holds in each."""
    return list_active(db, account.account_id)


@router.post("/giveaway/buy-ticket", response_model=BuyTicketResponse)
def buy_giveaway_ticket(
    payload: BuyTicketRequest,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return buy_ticket(db, account.account_id, payload.giveaway_id, payload.ticket_count)


@router.get("/giveaway/my-tickets", response_model=MyTicketsResponse)
def giveaway_my_tickets(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return my_tickets(db, account.account_id)


@router.get("/giveaway/winners", response_model=WinnersResponse)
def giveaway_winners(
    limit: int = Query(20, ge=1, le=100),
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return list_winners(db, limit=limit)


@router.post("/admin/giveaways", response_model=GiveawayItem, tags=["Admin Giveaways"])
def admin_create_giveaway(
    payload: GiveawayCreateRequest,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return create_giveaway(db, payload)


@router.post("/admin/giveaways/{giveaway_id}/draw", response_model=DrawResponse, tags=["Admin Giveaways"])
def admin_draw_giveaway(
    giveaway_id: int,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Close the giveaway and pick a winner, one chance per ticket."""
    return draw_winner(db, giveaway_id)
