from datetime import UTC, datetime, timedelta

import pytest


def create_user(client, user_id="u-1"):
    resp = client.post("/subscription/verify", json={"userId": user_id, "extensionVersion": "1.2.0"})
    assert resp.status_code == 200
    return resp.json()


def link_billing(client, user_id="u-1", tier="mid", subscription_id="sub-1"):
    resp = client.put(
        f"/subscription/update/{user_id}",
        json={"tier": tier, "status": "active", "goDaddySubscriptionId": subscription_id, "goDaddyCustomerId": "cust-1"},
    )
    assert resp.status_code == 200
    return resp.json()


def test_verify_creates_basic_user(client):
    body = create_user(client)
    assert body["valid"] is True
    user = body["user"]
    assert user["tier"] == "basic"
    assert user["isTrialActive"] is False
    assert user["usageQuota"]["promptsPerMonth"] == 75
    assert user["usageQuota"]["promptsRemaining"] == 75


def test_verify_follows_provider_status(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.add("GET", "/v1/subscriptions/sub-1", {"subscriptionId": "sub-1", "status": "CANCELLED"})

    body = create_user(client)
    assert body["valid"] is False
    assert body["user"]["status"] == "inactive"

    billing_provider.add("GET", "/v1/subscriptions/sub-1", {"subscriptionId": "sub-1", "status": "ACTIVE"})
    body = create_user(client)
    assert body["valid"] is True
    assert body["user"]["status"] == "active"


def test_verify_tolerates_provider_outage(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.fail = True

    body = create_user(client)
    assert body["valid"] is True
    assert body["user"]["tier"] == "mid"


def test_verify_tolerates_malformed_provider_reply(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.add("GET", "/v1/subscriptions/sub-1", [1, 2])

    body = create_user(client)
    assert body["valid"] is True
    assert body["user"]["status"] == "active"
    assert body["user"]["tier"] == "mid"


def test_verify_rolls_over_lapsed_quota(client, fake_supabase):
    create_user(client)
    row = fake_supabase.tables["users"][0]
    row["usage_quota"]["prompts_used"] = 75
    row["usage_quota"]["reset_date"] = (datetime.now(UTC) - timedelta(days=1)).isoformat()

    quota = create_user(client)["user"]["usageQuota"]
    assert quota["promptsUsed"] == 0
    assert quota["promptsRemaining"] == 75
    assert datetime.fromisoformat(quota["resetDate"]) > datetime.now(UTC) + timedelta(days=29)


def test_update_applies_tier_policy(client):
    create_user(client)
    user = link_billing(client, tier="top")["user"]
    assert user["tier"] == "top"
    assert "sso" in user["features"]
    assert user["usageQuota"]["promptsPerMonth"] == -1
    assert user["usageQuota"]["promptsRemaining"] == -1


def test_update_unknown_user(client):
    resp = client.put("/subscription/update/ghost", json={"tier": "mid", "status": "active"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "User Not Found"


def test_update_rejects_unknown_tier(client):
    create_user(client)
    resp = client.put("/subscription/update/u-1", json={"tier": "gold", "status": "active"})
    assert resp.status_code == 400


def test_purchase_link(client):
    resp = client.get("/subscription/purchase/mid", params={"userId": "u-1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["paymentUrl"] == "https://pay.test/mid"
    assert body["tier"] == "mid"
    assert len(body["instructions"]) == 4


@pytest.mark.parametrize("path, params", [("/subscription/purchase/gold", {"userId": "u-1"}), ("/subscription/purchase/mid", {})])
def test_purchase_link_validation(client, path, params):
    resp = client.get(path, params=params)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


def test_verify_payment_creates_paid_user(client, fake_supabase):
    resp = client.post(
        "/subscription/verify-payment",
        json={"userId": "u-9", "tier": "mid", "transactionId": "txn-1", "email": "dev@example.com"},
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["tier"] == "mid"
    assert user["status"] == "active"
    assert user["renewalDate"] is not None
    assert user["usageQuota"]["promptsPerMonth"] == -1

    rows = fake_supabase.tables["users"]
    assert len(rows) == 1
    assert rows[0]["email"] == "dev@example.com"
    assert rows[0]["billing_subscription_id"] == "txn-1"


def test_verify_payment_upgrades_existing_user(client):
    create_user(client)
    resp = client.post("/subscription/verify-payment", json={"userId": "u-1", "tier": "top"})
    assert resp.status_code == 200
    assert resp.json()["user"]["tier"] == "top"


def test_verify_payment_rejects_bad_email(client):
    resp = client.post("/subscription/verify-payment", json={"userId": "u-1", "tier": "mid", "email": "nope"})
    assert resp.status_code == 400


def test_get_subscription(client):
    create_user(client)
    assert client.get("/subscription/u-1").json()["user"]["userId"] == "u-1"
    assert client.get("/subscription/ghost").status_code == 404


def test_cancel_requires_billing_subscription(client):
    create_user(client)
    resp = client.post("/subscription/cancel/u-1")
    assert resp.status_code == 400


def test_cancel_through_provider(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.add("POST", "/v1/subscriptions/sub-1/cancel", {})

    resp = client.post("/subscription/cancel/u-1", json={"reason": "too expensive"})
    assert resp.status_code == 200
    assert resp.json()["user"]["status"] == "cancelled"
    assert billing_provider.calls[-1][2] == {"reason": "too expensive"}


def test_cancel_provider_failure_is_fatal(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.fail = True

    resp = client.post("/subscription/cancel/u-1")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Billing Provider Error"
    assert client.get("/subscription/u-1").json()["user"]["status"] == "active"


def test_change_plan(client, billing_provider):
    create_user(client)
    link_billing(client)
    billing_provider.add("PUT", "/v1/subscriptions/sub-1", {})

    resp = client.post("/subscription/change-plan/u-1", json={"tier": "top"})
    assert resp.status_code == 200
    assert resp.json()["user"]["tier"] == "top"
    assert billing_provider.calls[-1][2] == {"planId": "scale-enterprise"}


def test_checkout(client, billing_provider):
    billing_provider.add("POST", "/v1/checkout/sessions", {"checkoutUrl": "https://pay.test/session/9"})
    resp = client.post("/subscription/checkout", json={"userId": "u-1", "tier": "mid", "email": "dev@example.com"})
    assert resp.status_code == 200
    assert resp.json() == {"checkoutUrl": "https://pay.test/session/9", "tier": "mid"}
    assert billing_provider.calls[-1][2]["planId"] == "scale-developer"
