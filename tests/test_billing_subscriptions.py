import pytest
from datetime import datetime, timedelta, timezone
from samplehub.extensions import db
from samplehub.models import Customer, PlanTier, Subscription
from samplehub.billing.errors import InvalidInput, InvalidState, NotFound, UpstreamFailure
from samplehub.billing.subscriptions import cancel_at_period_end, change_plan, current_subscription
from conftest import login, make_customer

PERIOD_END = datetime(2030, 1, 31, tzinfo=timezone.utc)


class FakeGateway:
    def __init__(self, error=None):
        self.error = error
        self.cancelled = []
        self.changed = []

    def set_cancel_at_period_end(self, subscription_id):
        if self.error:
            raise self.error
        self.cancelled.append(subscription_id)
        return {"id": subscription_id, "cancel_at_period_end": True}

    def change_subscription_price(self, subscription_id, price_id):
        if self.error:
            raise self.error
        self.changed.append((subscription_id, price_id))
        return {"id": subscription_id}


def _subscribe(customer_id, price_id="price_starter_monthly", status="active", sub_id="sub_1", **kw):
    sub = Subscription(
        customer_id=customer_id,
        stripe_subscription_id=sub_id,
        stripe_price_id=price_id,
        tier=kw.pop("tier", "starter"),
        status=status,
        current_period_end=PERIOD_END,
        **kw,
    )
    db.session.add(sub)
    db.session.commit()
    return sub


def _plans():
    db.session.add_all([
        PlanTier(name="starter", display_name="Starter", stripe_price_id="price_starter_monthly", price=9, sort_order=1),
        PlanTier(name="pro", display_name="Pro", stripe_price_id="price_pro_monthly", price=19, sort_order=2),
        PlanTier(name="legacy", display_name="Legacy", stripe_price_id="price_legacy", is_active=False),
    ])
    db.session.commit()


def _customer(cid):
    return db.session.get(Customer, cid)


# ---- current_subscription ----

def test_current_subscription_ignores_inactive_rows(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid, status="canceled", sub_id="sub_old")
        assert current_subscription(_customer(cid)) is None

        now = datetime.now(timezone.utc)
        _subscribe(cid, status="active", sub_id="sub_a", updated_at=now - timedelta(days=1))
        _subscribe(cid, status="trialing", sub_id="sub_b", updated_at=now)
        assert current_subscription(_customer(cid)).stripe_subscription_id == "sub_b"


# ---- cancel_at_period_end ----

def test_cancel_sets_flag_locally_and_upstream(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid)
        gw = FakeGateway()

        result = cancel_at_period_end(_customer(cid), gateway=gw)
        assert result["success"] is True
        assert result["current_period_end"].startswith("2030-01-31")
        assert gw.cancelled == ["sub_1"]
        assert Subscription.query.one().cancel_at_period_end is True


def test_cancel_twice_calls_stripe_once(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid)
        gw = FakeGateway()

        cancel_at_period_end(_customer(cid), gateway=gw)
        again = cancel_at_period_end(_customer(cid), gateway=gw)
        assert again["success"] is True
        assert "already" in again["message"]
        assert gw.cancelled == ["sub_1"]


def test_cancel_without_subscription(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid, status="canceled")
        with pytest.raises(NotFound):
            cancel_at_period_end(_customer(cid), gateway=FakeGateway())


def test_cancel_without_stripe_id(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid, sub_id="")
        gw = FakeGateway()
        with pytest.raises(InvalidState):
            cancel_at_period_end(_customer(cid), gateway=gw)
        assert gw.cancelled == []


def test_cancel_upstream_failure_leaves_row_untouched(app):
    with app.app_context():
        cid, _ = make_customer()
        _subscribe(cid)
        with pytest.raises(UpstreamFailure):
            cancel_at_period_end(_customer(cid), gateway=FakeGateway(error=UpstreamFailure("down")))
        assert Subscription.query.one().cancel_at_period_end is False


# ---- change_plan ----

def test_change_plan_calls_stripe_with_new_price(app):
    with app.app_context():
        _plans()
        cid, _ = make_customer()
        _subscribe(cid)
        gw = FakeGateway()

        result = change_plan(_customer(cid), "price_pro_monthly", gateway=gw)
        assert result["success"] is True
        assert result["plan"] == "Pro"
        assert result["price_id"] == "price_pro_monthly"
        assert gw.changed == [("sub_1", "price_pro_monthly")]
        # The local row follows via webhook
        assert Subscription.query.one().stripe_price_id == "price_starter_monthly"


@pytest.mark.parametrize("price_id", [None, "", "   ", 42])
def test_change_plan_requires_price(app, price_id):
    with app.app_context():
        cid, _ = make_customer()
        with pytest.raises(InvalidInput):
            change_plan(_customer(cid), price_id, gateway=FakeGateway())


@pytest.mark.parametrize("price_id", ["price_unknown", "price_legacy"])
def test_change_plan_rejects_prices_outside_active_catalog(app, price_id):
    with app.app_context():
        _plans()
        cid, _ = make_customer()
        _subscribe(cid)
        gw = FakeGateway()
        with pytest.raises(InvalidState):
            change_plan(_customer(cid), price_id, gateway=gw)
        assert gw.changed == []


def test_change_plan_without_subscription(app):
    with app.app_context():
        _plans()
        cid, _ = make_customer()
        with pytest.raises(NotFound):
            change_plan(_customer(cid), "price_pro_monthly", gateway=FakeGateway())


def test_change_plan_to_current_price(app):
    with app.app_context():
        _plans()
        cid, _ = make_customer()
        _subscribe(cid, price_id="price_pro_monthly")
        gw = FakeGateway()
        with pytest.raises(InvalidState) as exc:
            change_plan(_customer(cid), "price_pro_monthly", gateway=gw)
        assert exc.value.message == "You are already on this plan"
        assert exc.value.to_dict()["plan"] == "Pro"
        assert gw.changed == []


# ---- HTTP ----

def _fake_stripe(monkeypatch):
    updates = []

    class _FakeSubs:
        def retrieve(self, sub_id):
            return {"id": sub_id, "items": {"data": [{"id": "si_1", "price": {"id": "price_starter_monthly"}}]}}

        def update(self, sub_id, params=None):
            updates.append((sub_id, params))
            return {"id": sub_id}

    class _FakeClient:
        def __init__(self, key): pass
        @property
        def subscriptions(self): return _FakeSubs()

    monkeypatch.setattr("samplehub.billing.gateway.StripeClient", _FakeClient)
    return updates


def test_cancel_endpoint(app, client, monkeypatch):
    updates = _fake_stripe(monkeypatch)
    with app.app_context():
        cid, uid = make_customer(with_user=True)
        _subscribe(cid)
    login(client, uid)

    resp = client.post("/billing/cancel.json")
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert updates == [("sub_1", {"cancel_at_period_end": True})]


def test_cancel_endpoint_without_subscription(app, client):
    with app.app_context():
        _, uid = make_customer(with_user=True)
    login(client, uid)

    resp = client.post("/billing/cancel.json")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


def test_change_plan_endpoint(app, client, monkeypatch):
    updates = _fake_stripe(monkeypatch)
    with app.app_context():
        _plans()
        cid, uid = make_customer(with_user=True)
        _subscribe(cid)
    login(client, uid)

    resp = client.post("/billing/change-plan.json", json={"priceId": "price_pro_monthly"})
    assert resp.status_code == 200
    assert resp.get_json()["plan"] == "Pro"
    assert updates == [("sub_1", {
        "items": [{"id": "si_1", "price": "price_pro_monthly"}],
        "proration_behavior": "create_prorations",
    })]


def test_change_plan_endpoint_errors(app, client):
    with app.app_context():
        _plans()
        cid, uid = make_customer(with_user=True)
        _subscribe(cid, price_id="price_pro_monthly")
    login(client, uid)

    assert client.post("/billing/change-plan.json", data="nope", content_type="application/json").status_code == 400
    assert client.post("/billing/change-plan.json", json={}).status_code == 400
    assert client.post("/billing/change-plan.json", json={"priceId": "price_nope"}).status_code == 409
    resp = client.post("/billing/change-plan.json", json={"priceId": "price_pro_monthly"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "You are already on this plan"


def test_billing_endpoints_require_login(client):
    assert client.post("/billing/cancel.json").status_code == 401
    assert client.post("/billing/change-plan.json", json={"priceId": "x"}).status_code == 401


def test_logged_in_user_without_customer(app, client):
    from samplehub.models import User
    with app.app_context():
        u = User(email="nobody@example.com")
        u.set_password("x")
        db.session.add(u)
        db.session.commit()
        uid = u.id
    login(client, uid)
    resp = client.post("/billing/cancel.json")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Customer not found"


def test_plans_and_subscription_json(app, client):
    with app.app_context():
        _plans()
        cid, uid = make_customer(with_user=True)
        _subscribe(cid)
    resp = client.get("/billing/plans.json")
    assert resp.status_code == 200
    assert [p["name"] for p in resp.get_json()["plans"]] == ["starter", "pro"]

    login(client, uid)
    body = client.get("/billing/subscription.json").get_json()
    assert body["subscription"]["stripe_subscription_id"] == "sub_1"
