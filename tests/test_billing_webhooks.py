import json
import pytest
import stripe
from samplehub.extensions import db
from samplehub.models import BillingEventLog, Customer, Subscription
from conftest import make_customer, post_event, stripe_subscription

pytestmark = pytest.mark.usefixtures("trusted_webhooks")


def _fake_client(monkeypatch, subscription=None, error=None):
    """Replace StripeClient so subscriptions.retrieve returns a dict (or raises)."""
    seen = []

    class _FakeSubs:
        def retrieve(self, sub_id):
            seen.append(sub_id)
            if error is not None:
                raise error
            return subscription

    class _FakeClient:
        def __init__(self, key): pass
        @property
        def subscriptions(self): return _FakeSubs()

    monkeypatch.setattr("samplehub.billing.gateway.StripeClient", _FakeClient)
    return seen


def _checkout_event(ev_id="evt_checkout"):
    return {
        "id": ev_id,
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_1", "customer": "cus_123", "subscription": "sub_test"}},
    }


def _subscription_event(ev_id, ev_type="customer.subscription.updated", **kw):
    return {"id": ev_id, "type": ev_type, "data": {"object": stripe_subscription(**kw)}}


def test_checkout_completed_creates_subscription(app, client, monkeypatch):
    with app.app_context():
        cid, _ = make_customer()
    seen = _fake_client(monkeypatch, subscription=stripe_subscription())

    resp = post_event(client, _checkout_event())
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "outcome": "applied"}
    assert seen == ["sub_test"]

    with app.app_context():
        sub = Subscription.query.filter_by(stripe_subscription_id="sub_test").one()
        assert sub.customer_id == cid
        assert sub.tier == "pro"
        assert sub.status == "active"
        assert db.session.get(Customer, cid).subscription_tier == "pro"

        log = BillingEventLog.query.filter_by(stripe_event_id="evt_checkout").one()
        assert log.processed_at is not None
        assert log.signature_valid is True
        assert log.notes == "applied"
        assert log.payload["type"] == "checkout.session.completed"


def test_duplicate_event_is_short_circuited(app, client, monkeypatch):
    with app.app_context():
        make_customer()
    seen = _fake_client(monkeypatch, subscription=stripe_subscription())

    assert post_event(client, _checkout_event()).status_code == 200
    resp = post_event(client, _checkout_event())
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "duplicate": True}
    assert seen == ["sub_test"]

    with app.app_context():
        assert Subscription.query.count() == 1
        assert BillingEventLog.query.count() == 1


def test_distinct_deliveries_of_same_state_converge(app, client):
    with app.app_context():
        make_customer()
    post_event(client, _subscription_event("evt_a", "customer.subscription.created"))
    post_event(client, _subscription_event("evt_b"))

    with app.app_context():
        assert Subscription.query.count() == 1


def test_lifecycle_through_webhooks(app, client):
    with app.app_context():
        cid, _ = make_customer()

    post_event(client, _subscription_event("evt_1", "customer.subscription.created"))
    post_event(client, {
        "id": "evt_2", "type": "invoice.payment_failed",
        "data": {"object": {"id": "in_1", "subscription": "sub_test"}},
    })
    with app.app_context():
        assert Subscription.query.one().status == "past_due"

    post_event(client, {
        "id": "evt_3", "type": "invoice.paid",
        "data": {"object": {"id": "in_2", "parent": {"subscription_details": {"subscription": "sub_test"}}}},
    })
    with app.app_context():
        assert Subscription.query.one().status == "active"

    resp = post_event(client, _subscription_event("evt_4", "customer.subscription.deleted", status="canceled"))
    assert resp.get_json()["outcome"] == "applied"
    with app.app_context():
        assert Subscription.query.one().status == "canceled"
        assert db.session.get(Customer, cid).subscription_tier == "free"


def test_unknown_customer_is_acknowledged_as_skipped(app, client):
    resp = post_event(client, _subscription_event("evt_x", customer="cus_ghost"))
    assert resp.status_code == 200
    assert resp.get_json()["outcome"] == "skipped"
    with app.app_context():
        assert Subscription.query.count() == 0


def test_unhandled_event_type(app, client):
    resp = post_event(client, {"id": "evt_u", "type": "charge.refunded", "data": {"object": {}}})
    assert resp.status_code == 200
    assert resp.get_json()["outcome"] == "ignored"


def test_invalid_input_is_acknowledged(app, client):
    event = {
        "id": "evt_bad",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_1", "customer": "cus_123"}},
    }
    resp = post_event(client, event)
    assert resp.status_code == 200
    assert resp.get_json()["outcome"] == "invalid_input"
    with app.app_context():
        log = BillingEventLog.query.filter_by(stripe_event_id="evt_bad").one()
        assert log.processed_at is not None
        assert log.notes.startswith("invalid_input:")


def test_malformed_event_without_type(app, client):
    resp = post_event(client, {"id": "evt_no_type", "data": {}})
    assert resp.status_code == 400


def test_upstream_failure_is_retried(app, client, monkeypatch):
    with app.app_context():
        cid, _ = make_customer()
    _fake_client(monkeypatch, error=stripe.StripeError("stripe is down"))

    resp = post_event(client, _checkout_event())
    assert resp.status_code == 502
    with app.app_context():
        log = BillingEventLog.query.filter_by(stripe_event_id="evt_checkout").one()
        assert log.processed_at is None
        assert log.notes == "upstream_failure"
        assert Subscription.query.count() == 0

    # Stripe redelivers the same event once the API recovers
    _fake_client(monkeypatch, subscription=stripe_subscription())
    resp = post_event(client, _checkout_event())
    assert resp.status_code == 200
    with app.app_context():
        log = BillingEventLog.query.filter_by(stripe_event_id="evt_checkout").one()
        assert log.retries == 1
        assert log.processed_at is not None
        assert db.session.get(Customer, cid).subscription_tier == "pro"
