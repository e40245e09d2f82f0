"""Wallet domain schemas.

History rows are a tagged union on ``source``: each variant carries only the
reference fields that make sense for it.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field


class CoinBalances(BaseModel):
    balance: int
    pending: int
    lifetime: int
    ads_watched_today: int = 0
    ads_remaining_today: int = 0


class TokenBalances(BaseModel):
    balance: int
    lifetime: int
    spins_remaining: int


class WalletSnapshot(BaseModel):
    coins: CoinBalances
    tokens: TokenBalances
    resets_at: datetime = Field(..., description="When today's ad cap and spins reset (UTC)")


class WalletResponse(WalletSnapshot):
    success: bool = True


class CoinWalletResponse(BaseModel):
    success: bool = True
    coins: CoinBalances


class TokenWalletResponse(BaseModel):
    success: bool = True
    tokens: TokenBalances


class _HistoryEntryBase(BaseModel):
    id: int
    currency: Literal["coin", "token"]
    amount: int = Field(..., validation_alias=AliasChoices("delta", "amount"))
    balance_after: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class AdRewardEntry(_HistoryEntryBase):
    source: Literal["ad_reward"]
    placement_id: Optional[str] = None


class DailyBonusEntry(_HistoryEntryBase):
    source: Literal["daily_bonus"]


class ReferralBonusEntry(_HistoryEntryBase):
    source: Literal["referral_bonus"]
    counterparty_account_id: Optional[int] = None


class SpinEntry(_HistoryEntryBase):
    source: Literal["spin"]
    spin_outcome: Optional[str] = None


class WithdrawalEntry(_HistoryEntryBase):
    source: Literal["withdrawal"]
    withdrawal_id: Optional[int] = None


class GiftSentEntry(_HistoryEntryBase):
    source: Literal["gift_sent"]
    counterparty_account_id: Optional[int] = None


class GiftReceivedEntry(_HistoryEntryBase):
    source: Literal["gift_received"]
    counterparty_account_id: Optional[int] = None


class TicketPurchaseEntry(_HistoryEntryBase):
    source: Literal["ticket_purchase"]
    giveaway_id: Optional[int] = None
    tickets: Optional[int] = None


HistoryEntry = Annotated[
    Union[
        AdRewardEntry,
        DailyBonusEntry,
        ReferralBonusEntry,
        SpinEntry,
        WithdrawalEntry,
        GiftSentEntry,
        GiftReceivedEntry,
        TicketPurchaseEntry,
    ],
    Field(discriminator="source"),
]

HISTORY_VARIANTS = {
    "ad_reward": AdRewardEntry,
    "daily_bonus": DailyBonusEntry,
    "referral_bonus": ReferralBonusEntry,
    "spin": SpinEntry,
    "withdrawal": WithdrawalEntry,
    "gift_sent": GiftSentEntry,
    "gift_received": GiftReceivedEntry,
    "ticket_purchase": TicketPurchaseEntry,
}


class HistoryPage(BaseModel):
    success: bool = True
    history: List[HistoryEntry]
    next_cursor: Optional[str] = Field(
        None, description="Pass back as `cursor` to fetch the next (older) page"
    )


class WalletAudit(BaseModel):
    account_id: int
    currency: str
    balance: int
    ledger_sum: int
    lifetime_earned: int
    ledger_credits: int
    consistent: bool
