import random
from datetime import datetime, timedelta

import pytest

from core.errors import (
    AdNotCompletedError,
    AlreadyClaimedError,
    DailyLimitExceededError,
    InvalidAmountError,
    NoSpinsAvailableError,
    ValidationError,
)
from models import AD_REWARD, DAILY_BONUS, SPIN, DailyCheckin, LedgerEntry, SpinPlay
from routers.rewards.schemas import AdEventRequest
from routers.rewards.service import (
    claim_daily_checkin,
    earn_ad_reward,
    earn_tokens,
    get_reward_history,
    play_spin,
)
from routers.wallet.service import get_wallet
from utils.spin_wheel import SpinWheel, WheelSegment, parse_weights

MORNING = datetime(2026, 5, 4, 9, 0, 0)
COMPLETED = AdEventRequest(event="completed", placement_id="Rewarded_Android")


class FixedRandom(random.Random):
    """randrange always lands on the same ticket."""

    def __init__(self, ticket):
        super().__init__(0)
        self.ticket = ticket

    def randrange(self, *args, **kwargs):
        return self.ticket


def test_ad_cap_stops_the_21st_credit(test_db, make_account):
    account_id = make_account()
    for i in range(20):
        result = earn_ad_reward(test_db, account_id, COMPLETED, now=MORNING + timedelta(minutes=i))
    assert result.coins == 20
    assert result.ads_remaining_today == 0

    with pytest.raises(DailyLimitExceededError) as exc:
        earn_ad_reward(test_db, account_id, COMPLETED, now=MORNING + timedelta(hours=1))
    assert exc.value.details["reset_at"] == datetime(2026, 5, 5, 0, 0, tzinfo=exc.value.reset_at.tzinfo)

    snapshot = get_wallet(test_db, account_id=account_id, now=MORNING)
    assert snapshot.coins.balance == 20
    assert test_db.query(LedgerEntry).filter(LedgerEntry.source == AD_REWARD).count() == 20


def test_ad_cap_resets_on_the_next_day(test_db, make_account):
    account_id = make_account()
    for _ in range(20):
        earn_ad_reward(test_db, account_id, COMPLETED, now=MORNING)

    result = earn_ad_reward(test_db, account_id, COMPLETED, now=MORNING + timedelta(days=1))

    assert result.coins == 21
    assert result.ads_watched_today == 1


@pytest.mark.parametrize("event", ["skipped", "failed"])
def test_unfinished_ad_earns_nothing(test_db, make_account, event):
    account_id = make_account()
    with pytest.raises(AdNotCompletedError):
        earn_ad_reward(test_db, account_id, AdEventRequest(event=event), now=MORNING)
    assert get_wallet(test_db, account_id=account_id, now=MORNING).coins.balance == 0


def test_daily_checkin_only_once_per_day(test_db, make_account):
    account_id = make_account()
    first = claim_daily_checkin(test_db, account_id, now=MORNING)
    assert first.spins_left == 1

    with pytest.raises(AlreadyClaimedError):
        claim_daily_checkin(test_db, account_id, now=MORNING + timedelta(hours=3))

    snapshot = get_wallet(test_db, account_id=account_id, now=MORNING)
    assert snapshot.tokens.spins_remaining == 1
    assert test_db.query(DailyCheckin).count() == 1

    assert claim_daily_checkin(test_db, account_id, now=MORNING + timedelta(days=1)).success


def test_spin_credits_the_outcome_and_consumes_the_spin(test_db, make_account):
    account_id = make_account()
    claim_daily_checkin(test_db, account_id, now=MORNING)
    wheel = SpinWheel(
        [WheelSegment("250_tokens", 250, 10), WheelSegment("try_again", 0, 10)],
        rng=FixedRandom(3),
    )

    result = play_spin(test_db, account_id, now=MORNING, wheel=wheel)

    assert (result.reward, result.win_amount, result.spins_left, result.tokens) == ("250_tokens", 250, 0, 250)
    assert result.model_dump(by_alias=True)["winAmount"] == 250
    spin_entry = test_db.query(LedgerEntry).filter(LedgerEntry.source == SPIN).one()
    assert spin_entry.spin_outcome == "250_tokens"

    with pytest.raises(NoSpinsAvailableError):
        play_spin(test_db, account_id, now=MORNING, wheel=wheel)


def test_try_again_is_recorded_without_credit(test_db, make_account):
    account_id = make_account()
    claim_daily_checkin(test_db, account_id, now=MORNING)
    wheel = SpinWheel([WheelSegment("try_again", 0, 1)], rng=FixedRandom(0))

    result = play_spin(test_db, account_id, now=MORNING, wheel=wheel)

    assert (result.reward, result.win_amount, result.tokens) == ("try_again", 0, 0)
    assert test_db.query(SpinPlay).filter(SpinPlay.account_id == account_id).count() == 1
    assert test_db.query(LedgerEntry).filter(LedgerEntry.source == SPIN).count() == 0


def test_unused_spins_lapse_overnight(test_db, make_account):
    account_id = make_account()
    claim_daily_checkin(test_db, account_id, now=MORNING)

    with pytest.raises(NoSpinsAvailableError):
        play_spin(test_db, account_id, now=MORNING + timedelta(days=1))


def test_token_earn_whitelist_and_daily_cap(test_db, make_account):
    account_id = make_account()
    with pytest.raises(ValidationError):
        earn_tokens(test_db, account_id, "referral_bonus", 10, now=MORNING)
    with pytest.raises(InvalidAmountError):
        earn_tokens(test_db, account_id, DAILY_BONUS, 0, now=MORNING)
    with pytest.raises(InvalidAmountError):
        earn_tokens(test_db, account_id, DAILY_BONUS, 101, now=MORNING)

    for _ in range(10):
        result = earn_tokens(test_db, account_id, DAILY_BONUS, 100, now=MORNING)
    assert (result.tokens, result.earned_today) == (1000, 1000)

    with pytest.raises(DailyLimitExceededError):
        earn_tokens(test_db, account_id, DAILY_BONUS, 1, now=MORNING)
    assert earn_tokens(test_db, account_id, DAILY_BONUS, 1, now=MORNING + timedelta(days=1)).tokens == 1001


def test_reward_history_lists_token_rewards(test_db, make_account):
    account_id = make_account()
    claim_daily_checkin(test_db, account_id, now=MORNING)
    wheel = SpinWheel([WheelSegment("50_tokens", 50, 1)], rng=FixedRandom(0))
    play_spin(test_db, account_id, now=MORNING, wheel=wheel)
    earn_tokens(test_db, account_id, DAILY_BONUS, 5, now=MORNING)

    history = get_reward_history(test_db, account_id)

    assert [(h.source, h.amount) for h in history.history] == [(DAILY_BONUS, 5), (SPIN, 50)]
    assert history.history[1].spin_outcome == "50_tokens"


def test_wheel_weights_parse_from_config_string():
    segments = parse_weights("50_tokens:40,100_tokens:25,try_again:35")
    assert [(s.reward_id, s.tokens, s.weight) for s in segments] == [
        ("50_tokens", 50, 40),
        ("100_tokens", 100, 25),
        ("try_again", 0, 35),
    ]
    with pytest.raises(ValueError):
        parse_weights("jackpot:10")
    with pytest.raises(ValueError):
        parse_weights("try_again:0")
