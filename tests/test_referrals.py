import pytest

from core.errors import InvalidReferralCodeError, ReferralAlreadyRedeemedError, SelfReferralError
from models import REFERRAL_BONUS, STATUS_COMPLETED, LedgerEntry, Referral, ReferralCode
from routers.rewards.referrals import get_or_create_code, has_redeemed, list_referrals, redeem
from routers.wallet.service import get_wallet
from utils.referrals import derive_referral_code


def test_code_is_created_once_and_kept(test_db, make_account):
    account_id = make_account()

    code = get_or_create_code(test_db, account_id=account_id)

    assert code == derive_referral_code(account_id)
    assert get_or_create_code(test_db, account_id=account_id) == code
    assert test_db.query(ReferralCode).filter(ReferralCode.account_id == account_id).count() == 1


def test_own_code_cannot_be_redeemed(test_db, make_account):
    account_id = make_account()
    code = get_or_create_code(test_db, account_id=account_id)

    with pytest.raises(SelfReferralError):
        redeem(test_db, account_id, code)
    assert get_wallet(test_db, account_id=account_id).tokens.balance == 0


def test_valid_code_pays_both_sides_exactly_once(test_db, make_account):
    referrer_id = make_account(email="referrer@example.com")
    referred_id = make_account(email="friend@example.com")
    code = get_or_create_code(test_db, account_id=referrer_id)

    result = redeem(test_db, referred_id, f"  {code.lower()} ")

    assert (result.bonus, result.tokens) == (500, 500)
    assert get_wallet(test_db, account_id=referrer_id).tokens.balance == 500
    assert has_redeemed(test_db, account_id=referred_id)
    referral = test_db.query(Referral).one()
    assert (referral.referrer_id, referral.referred_id, referral.status) == (referrer_id, referred_id, STATUS_COMPLETED)
    assert test_db.query(LedgerEntry).filter(LedgerEntry.source == REFERRAL_BONUS).count() == 2

    with pytest.raises(ReferralAlreadyRedeemedError):
        redeem(test_db, referred_id, code)
    assert get_wallet(test_db, account_id=referred_id).tokens.balance == 500
    assert get_wallet(test_db, account_id=referrer_id).tokens.balance == 500


def test_second_code_from_another_referrer_is_rejected(test_db, make_account):
    first_id = make_account()
    second_id = make_account()
    referred_id = make_account()
    redeem(test_db, referred_id, get_or_create_code(test_db, account_id=first_id))

    with pytest.raises(ReferralAlreadyRedeemedError):
        redeem(test_db, referred_id, get_or_create_code(test_db, account_id=second_id))
    assert get_wallet(test_db, account_id=second_id).tokens.balance == 0


def test_unknown_code_rejected(test_db, make_account):
    account_id = make_account()
    with pytest.raises(InvalidReferralCodeError):
        redeem(test_db, account_id, "ZZZZZZZZ")


def test_referral_list_masks_emails(test_db, make_account):
    referrer_id = make_account(email="referrer@example.com")
    referred_id = make_account(email="friend@example.com")
    redeem(test_db, referred_id, get_or_create_code(test_db, account_id=referrer_id))

    result = list_referrals(test_db, referrer_id)

    assert (result.total, result.completed, result.pending, result.bonus_earned) == (1, 1, 0, 500)
    assert result.referrals[0].email == "f***@example.com"
    assert result.has_redeemed is False
