"""HTTP surface: auth, error shape and one happy path per endpoint group."""

import pytest


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "online"
    assert client.get("/health").json() == {"status": "healthy"}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/wallet"),
        ("get", "/coins/history"),
        ("post", "/coins/earn/ad"),
        ("post", "/coins/withdraw"),
        ("post", "/rewards/daily-checkin"),
        ("get", "/giveaway/active"),
    ],
)
def test_missing_token_is_unauthenticated(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "unauthenticated"


def test_garbage_token_is_unauthenticated(client):
    response = client.get("/wallet", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_otp_login_flow(client, notifier):
    response = client.post(
        "/auth/otp/request",
        json={"email": "jane@example.com", "phoneNumber": "+15551234567", "isSignup": True},
    )
    assert response.status_code == 200, response.text

    response = client.post(
        "/auth/otp/verify", json={"email": "jane@example.com", "otp": notifier.codes["jane@example.com"]}
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["user"]["phone_locked"] is True
    headers = {"Authorization": f"Bearer {body['token']}"}

    me = client.get("/auth/me", headers=headers).json()
    assert me["email"] == "jane@example.com"
    assert me["referral_code"]

    wallet = client.get("/wallet", headers=headers).json()
    assert wallet["coins"]["balance"] == 0
    assert wallet["coins"]["ads_remaining_today"] == 20

    again = client.post(
        "/auth/otp/verify", json={"email": "jane@example.com", "otp": notifier.codes["jane@example.com"]}
    )
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Invalid or unknown verification code."


def test_wrong_and_unknown_codes_look_the_same(client, notifier):
    client.post("/auth/otp/request", json={"email": "sam@example.com", "phoneNumber": "+15557654321", "isSignup": True})
    code = notifier.codes["sam@example.com"]
    wrong = "111111" if code != "111111" else "222222"

    mismatch = client.post("/auth/otp/verify", json={"email": "sam@example.com", "otp": wrong})
    unknown = client.post("/auth/otp/verify", json={"email": "nobody@example.com", "otp": code})

    assert mismatch.status_code == unknown.status_code == 400
    assert mismatch.json()["error"]["message"] == unknown.json()["error"]["message"]


def test_bad_request_body_is_422_with_error_shape(client, make_account, auth_headers):
    account_id = make_account()
    response = client.post("/coins/earn/ad", json={"event": "maybe"}, headers=auth_headers(account_id))

    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "validation_error"


def test_ad_reward_and_history(client, make_account, auth_headers):
    account_id = make_account()
    headers = auth_headers(account_id)

    response = client.post("/coins/earn/ad", json={"event": "completed", "placementId": "Rewarded_iOS"}, headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["coins"] == 1

    skipped = client.post("/coins/earn/ad", json={"event": "skipped"}, headers=headers)
    assert skipped.status_code == 400
    assert skipped.json()["error"]["kind"] == "ad_not_completed"

    history = client.get("/coins/history", headers=headers).json()
    assert [(h["source"], h["amount"], h["placement_id"]) for h in history["history"]] == [
        ("ad_reward", 1, "Rewarded_iOS")
    ]
    assert history["next_cursor"] is None


def test_checkin_then_spin(client, make_account, auth_headers):
    account_id = make_account()
    headers = auth_headers(account_id)

    checkin = client.post("/rewards/daily-checkin", headers=headers)
    assert checkin.status_code == 200, checkin.text
    assert checkin.json()["spinsLeft"] == 1

    repeat = client.post("/rewards/daily-checkin", headers=headers)
    assert repeat.status_code == 409
    assert repeat.json()["error"]["kind"] == "already_claimed"
    assert "reset_at" in repeat.json()["error"]

    spin = client.post("/tokens/spin/play", headers=headers)
    assert spin.status_code == 200, spin.text
    body = spin.json()
    assert body["spinsLeft"] == 0
    assert body["reward"] in {"50_tokens", "100_tokens", "250_tokens", "500_tokens", "try_again"}
    assert body["tokens"] == body["winAmount"]


def test_withdraw_and_admin_mark_paid(client, make_account, fund, auth_headers, admin_headers, notifier):
    account_id = make_account()
    fund(account_id, coins=500)
    headers = auth_headers(account_id)

    response = client.post(
        "/coins/withdraw", json={"amountUSD": "1.00", "address": "a@b.com", "method": "paypal"}, headers=headers
    )
    assert response.status_code == 200, response.text
    receipt = response.json()
    assert receipt["secretCode"]
    assert receipt["coinsReserved"] == 500
    assert notifier.admin_alerts

    listed = client.get("/coins/withdrawals", headers=headers).json()["withdrawals"]
    assert [w["status"] for w in listed] == ["pending"]
    assert "secret" not in str(listed).lower()

    withdrawal_id = receipt["withdrawalId"]
    assert client.post(f"/admin/withdrawals/{withdrawal_id}/mark-paid").status_code == 403
    verify = client.post(
        f"/admin/withdrawals/{withdrawal_id}/verify-code", json={"code": receipt["secretCode"]}, headers=admin_headers
    )
    assert verify.json()["valid"] is True
    for _ in range(2):
        paid = client.post(f"/admin/withdrawals/{withdrawal_id}/mark-paid", headers=admin_headers)
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"

    coins = client.get("/coins/wallet", headers=headers).json()["coins"]
    assert (coins["balance"], coins["pending"]) == (0, 0)


def test_withdraw_minimum_error_shape(client, make_account, fund, auth_headers):
    account_id = make_account()
    fund(account_id, coins=500)

    response = client.post(
        "/coins/withdraw", json={"amountUSD": "0.50", "address": "a@b.com"}, headers=auth_headers(account_id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "minimum_amount"


def test_gift_to_unknown_email(client, make_account, fund, auth_headers):
    account_id = make_account()
    fund(account_id, coins=150)

    response = client.post(
        "/coins/gift", json={"recipientEmail": "ghost@example.com", "amount": 100}, headers=auth_headers(account_id)
    )

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "recipient_not_found"
    assert client.get("/coins/wallet", headers=auth_headers(account_id)).json()["coins"]["balance"] == 150


def test_referral_endpoints(client, make_account, auth_headers):
    referrer_id = make_account(email="referrer@example.com")
    friend_id = make_account(email="friend@example.com")

    code = client.get("/rewards/referral-code", headers=auth_headers(referrer_id)).json()["code"]
    assert client.get("/user/referral-code", headers=auth_headers(referrer_id)).json()["code"] == code

    redeemed = client.post("/rewards/referrals/redeem", json={"code": code}, headers=auth_headers(friend_id))
    assert redeemed.status_code == 200, redeemed.text
    assert redeemed.json()["tokens"] == 500

    own = client.post("/rewards/referrals/redeem", json={"code": code}, headers=auth_headers(referrer_id))
    assert own.json()["error"]["kind"] == "self_referral"

    listing = client.get("/rewards/referrals", headers=auth_headers(referrer_id)).json()
    assert listing["completed"] == 1
    assert listing["referrals"][0]["email"] == "f***@example.com"


def test_giveaway_flow(client, make_account, fund, auth_headers, admin_headers):
    account_id = make_account()
    fund(account_id, tokens=100)
    headers = auth_headers(account_id)

    created = client.post("/admin/giveaways", json={"title": "Headphones", "ticketCost": 20}, headers=admin_headers)
    assert created.status_code == 200, created.text
    giveaway_id = created.json()["id"]

    bought = client.post("/giveaway/buy-ticket", json={"giveawayId": giveaway_id, "ticketCount": 2}, headers=headers)
    assert bought.status_code == 200, bought.text
    assert bought.json()["tickets"] == 2
    assert bought.json()["wallet"]["tokens"]["balance"] == 60

    too_many = client.post("/giveaway/buy-ticket", json={"giveawayId": giveaway_id, "ticketCount": 4}, headers=headers)
    assert too_many.status_code == 400
    assert too_many.json()["error"]["kind"] == "insufficient_tokens"
    assert too_many.json()["error"]["balance"] == 60

    active = client.get("/giveaway/active", headers=headers).json()["giveaways"]
    assert [(g["id"], g["user_tickets"]) for g in active] == [(giveaway_id, 2)]

    drawn = client.post(f"/admin/giveaways/{giveaway_id}/draw", headers=admin_headers).json()
    assert drawn["winner_account_id"] == account_id
    assert client.get("/giveaway/my-tickets", headers=headers).json()["tickets"][0]["won"] is True
    assert client.get("/giveaway/active", headers=headers).json()["giveaways"] == []


def test_token_history_endpoint(client, make_account, fund, auth_headers):
    account_id = make_account()
    fund(account_id, tokens=30)

    body = client.get("/tokens/history", headers=auth_headers(account_id)).json()

    assert [(h["source"], h["amount"], h["balance_after"]) for h in body["history"]] == [("daily_bonus", 30, 30)]
    assert client.get("/tokens/wallet", headers=auth_headers(account_id)).json()["tokens"]["balance"] == 30


def test_wallet_audit_requires_admin(client, make_account, fund, admin_headers):
    account_id = make_account()
    fund(account_id, coins=5)

    assert client.get(f"/admin/wallets/{account_id}/audit").status_code == 403
    audits = client.get(f"/admin/wallets/{account_id}/audit", headers=admin_headers).json()
    assert all(a["consistent"] for a in audits)


def test_history_lists_plain_credits_and_debits_of_every_source(client, session_factory, make_account, auth_headers):
    from models import COIN, LEDGER_SOURCES, TOKEN
    from routers.wallet import service as wallet_service

    account_id = make_account()
    db = session_factory()
    try:
        for currency in (COIN, TOKEN):
            for source in LEDGER_SOURCES:
                wallet_service.credit(db, account_id=account_id, currency=currency, amount=2, source=source)
                wallet_service.debit(db, account_id=account_id, currency=currency, amount=1, source=source)
    finally:
        db.close()

    for path in ("/coins/history", "/tokens/history"):
        response = client.get(path, params={"limit": 100}, headers=auth_headers(account_id))
        assert response.status_code == 200, response.text
        history = response.json()["history"]
        assert len(history) == 2 * len(LEDGER_SOURCES)
        assert {h["source"] for h in history} == set(LEDGER_SOURCES)
