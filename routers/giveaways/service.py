"""Giveaways domain service: token-funded tickets and winner draws."""

import logging
import secrets
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from config import GIVEAWAY_LIST_CACHE_SECONDS, GIVEAWAY_MAX_TICKETS_PER_PURCHASE
from core import ledger
from core.cache import default_cache
from core.db import atomic
from core.errors import GiveawayClosedError, GiveawayNotFoundError, InvalidAmountError
from core.users import get_accounts_by_ids, mask_email
from models import GIVEAWAY_ACTIVE, GIVEAWAY_CLOSED, GIVEAWAY_DRAWN, TICKET_PURCHASE, TOKEN
from utils.logging_helpers import log_info
from utils.reward_days import utc_now

from . import repository as giveaways_repository
from .schemas import (
    ActiveGiveawaysResponse,
    BuyTicketResponse,
    DrawResponse,
    GiveawayCreateRequest,
    GiveawayItem,
    MyTicketItem,
    MyTicketsResponse,
    WinnerItem,
    WinnersResponse,
)

logger = logging.getLogger(__name__)

ACTIVE_CACHE_KEY = "giveaways:active:v1"

_system_random = secrets.SystemRandom()


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def is_open(giveaway, now: datetime) -> bool:
    if giveaway.status != GIVEAWAY_ACTIVE:
        return False
    return giveaway.ends_at is None or giveaway.ends_at > now


def _active_rows(db: Session, now: datetime):
    def _build():
        return [
            {
                "id": g.id,
                "title": g.title,
                "description": g.description,
                "prize_image": g.prize_image,
                "ticket_cost": g.ticket_token_cost,
                "ends_at": g.ends_at,
                "status": g.status,
            }
            for g in giveaways_repository.list_active_giveaways(db, now)
        ]

    rows = default_cache.get_or_set(ACTIVE_CACHE_KEY, ttl_seconds=GIVEAWAY_LIST_CACHE_SECONDS, factory=_build)
    # A cached row may have ended since it was cached
    return [r for r in rows if r["ends_at"] is None or r["ends_at"] > now]


def list_active(db: Session, account_id: int, *, now: Optional[datetime] = None) -> ActiveGiveawaysResponse:
    now = now or utc_now()
    rows = _active_rows(db, now)
    ids = [r["id"] for r in rows]
    totals = giveaways_repository.ticket_totals(db, ids)
    mine = giveaways_repository.ticket_counts_for_account(db, account_id, ids)
    return ActiveGiveawaysResponse(
        giveaways=[
            GiveawayItem(**r, total_tickets=totals.get(r["id"], 0), user_tickets=mine.get(r["id"], 0))
            for r in rows
        ]
    )


def buy_ticket(
    db: Session, account_id: int, giveaway_id: int, count, *, now: Optional[datetime] = None
) -> BuyTicketResponse:
    """
    Spend tokens on tickets for an open giveaway.

    The debit and the ticket increment commit together. The giveaway row is
    share-locked for the whole purchase, so a draw either sees these tickets or
    closes the giveaway before the status check.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidAmountError("Ticket count must be a positive whole number.")
    if count > GIVEAWAY_MAX_TICKETS_PER_PURCHASE:
        raise InvalidAmountError(f"At most {GIVEAWAY_MAX_TICKETS_PER_PURCHASE} tickets per purchase.")

    now = now or utc_now()
    with atomic(db):
        giveaway = giveaways_repository.share_lock_giveaway(db, giveaway_id)
        if giveaway is None:
            raise GiveawayNotFoundError()
        if not is_open(giveaway, now):
            raise GiveawayClosedError()

        cost = count * giveaway.ticket_token_cost
        ledger.post_debit(
            db,
            account_id=account_id,
            currency=TOKEN,
            amount=cost,
            source=TICKET_PURCHASE,
            giveaway_id=giveaway.id,
            tickets=count,
        )
        ticket = giveaways_repository.get_ticket(db, account_id=account_id, giveaway_id=giveaway.id)
        if ticket is None:
            ticket = giveaways_repository.create_ticket(
                db,
                account_id=account_id,
                giveaway_id=giveaway.id,
                token_cost_per_ticket=giveaway.ticket_token_cost,
            )
        ticket.tickets_purchased += count
        ticket.token_cost_per_ticket = giveaway.ticket_token_cost
        db.flush()
        tickets = ticket.tickets_purchased

    log_info(logger, "Giveaway tickets bought", account_id, giveaway_id=giveaway_id, count=count, cost=cost)
    return BuyTicketResponse(
        success=True,
        giveaway_id=giveaway_id,
        tickets=tickets,
        tokens_spent=cost,
        wallet=ledger.get_wallet(db, account_id=account_id, now=now),
    )


def my_tickets(db: Session, account_id: int) -> MyTicketsResponse:
    return MyTicketsResponse(
        tickets=[
            MyTicketItem(
                giveaway_id=giveaway.id,
                title=giveaway.title,
                status=giveaway.status,
                tickets=ticket.tickets_purchased,
                ends_at=giveaway.ends_at,
                won=giveaway.winner_account_id == account_id,
            )
            for ticket, giveaway in giveaways_repository.tickets_for_account(db, account_id)
        ]
    )


def list_winners(db: Session, limit: int = 20) -> WinnersResponse:
    drawn = giveaways_repository.list_drawn_giveaways(db, limit=limit)
    emails = {
        a.account_id: a.email
        for a in get_accounts_by_ids(db, account_ids=[g.winner_account_id for g in drawn if g.winner_account_id])
    }
    return WinnersResponse(
        winners=[
            WinnerItem(
                giveaway_id=g.id,
                title=g.title,
                prize_image=g.prize_image,
                winner=mask_email(emails.get(g.winner_account_id, "")),
                drawn_at=g.drawn_at,
            )
            for g in drawn
        ]
    )


def create_giveaway(db: Session, payload: GiveawayCreateRequest) -> GiveawayItem:
    with atomic(db):
        giveaway = giveaways_repository.create_giveaway(
            db,
            title=payload.title,
            description=payload.description,
            prize_image=payload.prize_image,
            ticket_token_cost=payload.ticket_cost,
            ends_at=_to_naive_utc(payload.ends_at),
        )
        item = GiveawayItem(
            id=giveaway.id,
            title=giveaway.title,
            description=giveaway.description,
            prize_image=giveaway.prize_image,
            ticket_cost=giveaway.ticket_token_cost,
            ends_at=giveaway.ends_at,
            status=giveaway.status,
        )
    default_cache.delete(ACTIVE_CACHE_KEY)
    log_info(logger, "Giveaway created", giveaway_id=item.id, ticket_cost=item.ticket_cost)
    return item


def pick_weighted(entries, rng=None) -> Optional[int]:
    """Pick an account id from (account_id, tickets) pairs, one chance per ticket."""
    total = sum(tickets for _, tickets in entries)
    if total <= 0:
        return None
    roll = (rng or _system_random).randrange(total)
    for account_id, tickets in entries:
        if roll < tickets:
            return account_id
        roll -= tickets
    return None


def draw_winner(db: Session, giveaway_id: int, *, now: Optional[datetime] = None, rng=None) -> DrawResponse:
    """Close the giveaway and draw its winner. A giveaway without tickets just closes."""
    now = now or utc_now()
    with atomic(db):
        giveaway = giveaways_repository.lock_giveaway(db, giveaway_id)
        if giveaway is None:
            raise GiveawayNotFoundError()
        if giveaway.status != GIVEAWAY_ACTIVE:
            raise GiveawayClosedError(f"Giveaway is already {giveaway.status}.")

        entries = giveaways_repository.entries_for_draw(db, giveaway.id)
        winner_id = pick_weighted(entries, rng)
        giveaway.status = GIVEAWAY_DRAWN if winner_id is not None else GIVEAWAY_CLOSED
        giveaway.winner_account_id = winner_id
        giveaway.drawn_at = now
        response = DrawResponse(
            success=True,
            giveaway_id=giveaway.id,
            status=giveaway.status,
            winner_account_id=winner_id,
            total_tickets=sum(tickets for _, tickets in entries),
        )

    default_cache.delete(ACTIVE_CACHE_KEY)
    log_info(logger, "Giveaway drawn", winner_id, giveaway_id=giveaway_id, status=response.status)
    return response
