import json

import pytest

from scale_api.security.signature import SIGNATURE_HEADER, compute_signature

WEBHOOK_PATH = "/webhooks/billing/subscription"


@pytest.fixture
def deliver(client, test_settings):
    def _deliver(event, signature=None):
        payload = json.dumps(event).encode("utf-8")
        if signature is None:
            signature = compute_signature(payload, test_settings.BILLING_WEBHOOK_SECRET)
        return client.post(
            WEBHOOK_PATH,
            content=payload,
            headers={SIGNATURE_HEADER: signature, "Content-Type": "application/json"},
        )

    return _deliver


def created_event(user_id="u-1", plan_id="scale-developer", subscription_id="sub-1"):
    return {
        "type": "subscription.created",
        "data": {
            "subscriptionId": subscription_id,
            "customerId": "cust-1",
            "planId": plan_id,
            "customerEmail": "dev@example.com",
            "metadata": {"userId": user_id},
        },
    }


def get_user(client, user_id="u-1"):
    return client.get(f"/subscription/{user_id}").json()["user"]


def test_subscription_created_provisions_user(client, deliver, fake_supabase):
    resp = deliver(created_event())
    assert resp.status_code == 200
    assert resp.json() == {"received": True}

    user = get_user(client)
    assert user["tier"] == "mid"
    assert user["status"] == "active"
    assert user["usageQuota"]["promptsPerMonth"] == -1
    assert "knowledgeBase" in user["features"]
    row = fake_supabase.tables["users"][0]
    assert row["billing_subscription_id"] == "sub-1"
    assert row["email"] == "dev@example.com"


def test_subscription_created_upgrades_existing_user(client, deliver, fake_supabase):
    client.post("/auth/token", json={"userId": "u-1"})
    deliver(created_event(plan_id="scale-enterprise"))
    assert get_user(client)["tier"] == "top"
    assert len(fake_supabase.tables["users"]) == 1


def test_subscription_created_without_user_reference_is_acknowledged(client, deliver, fake_supabase):
    event = created_event()
    event["data"]["metadata"] = {}
    resp = deliver(event)
    assert resp.status_code == 200
    assert fake_supabase.tables["users"] == []


def test_payment_failed_keeps_tier(client, deliver):
    deliver(created_event())
    resp = deliver({"type": "payment.failed", "data": {"subscriptionId": "sub-1", "reason": "card declined"}})
    assert resp.status_code == 200
    user = get_user(client)
    assert user["status"] == "inactive"
    assert user["tier"] == "mid"


def test_payment_succeeded_sets_renewal(client, deliver):
    deliver(created_event())
    deliver({"type": "payment.failed", "data": {"subscriptionId": "sub-1"}})
    deliver({"type": "payment.succeeded", "data": {"subscriptionId": "sub-1", "amount": 19.0, "currency": "USD"}})
    user = get_user(client)
    assert user["status"] == "active"
    assert user["renewalDate"] is not None


def test_expired_downgrades_to_basic(client, deliver):
    deliver(created_event(plan_id="scale-enterprise"))
    deliver({"type": "subscription.expired", "data": {"subscriptionId": "sub-1"}})
    user = get_user(client)
    assert user["tier"] == "basic"
    assert user["status"] == "expired"
    assert user["features"] == ["chat", "agent", "codeCompletion"]
    assert user["usageQuota"]["promptsPerMonth"] == 75


def test_cancelled_and_updated(client, deliver):
    deliver(created_event())
    deliver({"type": "subscription.updated", "data": {"subscriptionId": "sub-1", "planId": "scale-enterprise"}})
    assert get_user(client)["tier"] == "top"

    deliver({"type": "subscription.cancelled", "data": {"subscriptionId": "sub-1"}})
    user = get_user(client)
    assert user["status"] == "cancelled"
    assert user["tier"] == "top"


def test_event_for_unknown_subscription_is_acknowledged(deliver):
    resp = deliver({"type": "payment.failed", "data": {"subscriptionId": "sub-unknown"}})
    assert resp.status_code == 200


def test_unknown_event_type_is_ignored(deliver):
    resp = deliver({"type": "invoice.created", "data": {}})
    assert resp.status_code == 200
    assert resp.json() == {"received": True}


def test_mutated_body_is_rejected(client, test_settings):
    payload = json.dumps(created_event()).encode("utf-8")
    signature = compute_signature(payload, test_settings.BILLING_WEBHOOK_SECRET)
    tampered = payload.replace(b"scale-developer", b"scale-developeR")
    resp = client.post(WEBHOOK_PATH, content=tampered, headers={SIGNATURE_HEADER: signature})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid Signature"
    assert client.get("/subscription/u-1").status_code == 404


def test_missing_signature_is_rejected(client):
    resp = client.post(WEBHOOK_PATH, content=json.dumps(created_event()).encode("utf-8"))
    assert resp.status_code == 401


def test_malformed_payload_is_rejected(deliver):
    resp = deliver({"data": {}})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


def test_missing_webhook_secret_is_a_server_error(client, test_settings):
    test_settings.BILLING_WEBHOOK_SECRET = None
    resp = client.post(WEBHOOK_PATH, content=b"{}", headers={SIGNATURE_HEADER: "abc"})
    assert resp.status_code == 500
