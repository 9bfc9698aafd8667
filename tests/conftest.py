import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import json
import pytest
from samplehub import create_app
from samplehub.extensions import db
from samplehub.models import Customer, User

@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        APP_BASE_URL="http://example.test",
        WTF_CSRF_ENABLED=False,
        STRIPE_SECRET_KEY="sk_test_x",
        STRIPE_WEBHOOK_SECRET="whsec_test_x",
        STRIPE_PRICE_TIERS="price_legacy_pro=pro",
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()

@pytest.fixture()
def trusted_webhooks(monkeypatch):
    """Skip Stripe signature verification: the posted body is the event."""
    import stripe
    def _fake_construct_event(payload, sig_header, secret):
        return json.loads(payload)
    monkeypatch.setattr(stripe.Webhook, "construct_event", staticmethod(_fake_construct_event))

def post_event(client, event: dict):
    return client.post(
        "/webhooks/stripe",
        data=json.dumps(event),
        headers={"Stripe-Signature": "t=1,v1=fake"},
    )

def make_customer(email="buyer@example.com", stripe_customer_id="cus_123", with_user=False, is_admin=False):
    """Create a Customer (and optionally its login User). Call inside an app context; returns ids."""
    user_id = None
    if with_user:
        u = User(email=email, is_admin=is_admin)
        u.set_password("x")
        db.session.add(u)
        db.session.flush()
        user_id = u.id
    c = Customer(email=email, stripe_customer_id=stripe_customer_id, user_id=user_id)
    db.session.add(c)
    db.session.commit()
    return c.id, user_id

def login(client, user_id: int):
    # Simulate Flask-Login session
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user_id)

def stripe_subscription(
    sub_id="sub_test",
    customer="cus_123",
    price_id="price_pro_monthly",
    status="active",
    period_start=1_760_000_000,
    period_end=1_762_592_000,
    cancel_at_period_end=False,
    trial_start=None,
    trial_end=None,
):
    """Dict shaped like a Stripe Subscription object (only the fields we read)."""
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_start": period_start,
        "current_period_end": period_end,
        "cancel_at_period_end": cancel_at_period_end,
        "trial_start": trial_start,
        "trial_end": trial_end,
        "items": {"data": [{"id": "si_1", "quantity": 1, "price": {"id": price_id, "product": "prod_x"}}]},
    }
