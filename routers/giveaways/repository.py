"""Giveaways domain repository layer."""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models import GIVEAWAY_ACTIVE, GIVEAWAY_DRAWN, Giveaway, GiveawayTicket


def lock_giveaway(db: Session, giveaway_id: int) -> Optional[Giveaway]:
    return (
        db.query(Giveaway)
        .filter(Giveaway.id == giveaway_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def share_lock_giveaway(db: Session, giveaway_id: int) -> Optional[Giveaway]:
    """FOR SHARE: purchases run side by side but wait for (and then see) a draw."""
    return (
        db.query(Giveaway)
        .filter(Giveaway.id == giveaway_id)
        .with_for_update(read=True)
        .populate_existing()
        .first()
    )


def list_active_giveaways(db: Session, now: datetime) -> List[Giveaway]:
    return (
        db.query(Giveaway)
        .filter(
            Giveaway.status == GIVEAWAY_ACTIVE,
            or_(Giveaway.ends_at.is_(None), Giveaway.ends_at > now),
        )
        .order_by(Giveaway.ends_at.asc(), Giveaway.id.asc())
        .all()
    )


def list_drawn_giveaways(db: Session, limit: int = 20) -> List[Giveaway]:
    return (
        db.query(Giveaway)
        .filter(Giveaway.status == GIVEAWAY_DRAWN)
        .order_by(Giveaway.drawn_at.desc(), Giveaway.id.desc())
        .limit(limit)
        .all()
    )


def create_giveaway(db: Session, **fields) -> Giveaway:
    giveaway = Giveaway(status=GIVEAWAY_ACTIVE, **fields)
    db.add(giveaway)
    db.flush()
    return giveaway


def get_ticket(db: Session, *, account_id: int, giveaway_id: int) -> Optional[GiveawayTicket]:
    return (
        db.query(GiveawayTicket)
        .filter(GiveawayTicket.account_id == account_id, GiveawayTicket.giveaway_id == giveaway_id)
        .populate_existing()
        .first()
    )


def create_ticket(db: Session, *, account_id: int, giveaway_id: int, token_cost_per_ticket: int) -> GiveawayTicket:
    ticket = GiveawayTicket(
        account_id=account_id,
        giveaway_id=giveaway_id,
        tickets_purchased=0,
        token_cost_per_ticket=token_cost_per_ticket,
    )
    db.add(ticket)
    db.flush()
    return ticket


def tickets_for_account(db: Session, account_id: int) -> List[Tuple[GiveawayTicket, Giveaway]]:
    return (
        db.query(GiveawayTicket, Giveaway)
        .join(Giveaway, Giveaway.id == GiveawayTicket.giveaway_id)
        .filter(GiveawayTicket.account_id == account_id, GiveawayTicket.tickets_purchased > 0)
        .order_by(Giveaway.id.desc())
        .all()
    )


def ticket_counts_for_account(db: Session, account_id: int, giveaway_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(giveaway_ids)
    if not ids:
        return {}
    rows = (
        db.query(GiveawayTicket.giveaway_id, GiveawayTicket.tickets_purchased)
        .filter(GiveawayTicket.account_id == account_id, GiveawayTicket.giveaway_id.in_(ids))
        .all()
    )
    return {giveaway_id: count for giveaway_id, count in rows}


def ticket_totals(db: Session, giveaway_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(giveaway_ids)
    if not ids:
        return {}
    rows = (
        db.query(GiveawayTicket.giveaway_id, func.sum(GiveawayTicket.tickets_purchased))
        .filter(GiveawayTicket.giveaway_id.in_(ids))
        .group_by(GiveawayTicket.giveaway_id)
        .all()
    )
    return {giveaway_id: int(total or 0) for giveaway_id, total in rows}


def entries_for_draw(db: Session, giveaway_id: int) -> List[Tuple[int, int]]:
    """(account_id, tickets) for every holder, in account id order."""
    return (
        db.query(GiveawayTicket.account_id, GiveawayTicket.tickets_purchased)
        .filter(GiveawayTicket.giveaway_id == giveaway_id, GiveawayTicket.tickets_purchased > 0)
        .order_by(GiveawayTicket.account_id.asc())
        .all()
    )
