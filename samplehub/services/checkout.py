from typing import Dict, Any, Optional
from urllib.parse import urljoin
from flask import current_app
import hashlib, json

from samplehub.billing.gateway import StripeGateway
from samplehub.billing.errors import InvalidInput, NotFound
from samplehub.billing.subscriptions import current_subscription
from samplehub.extensions import db
from samplehub.models import Customer


def _absolute_url(path: str) -> str:
    base = (current_app.config.get("APP_BASE_URL") or "").rstrip("/") + "/"
    return urljoin(base, path.lstrip("/"))


def make_idempotency_key(*parts: Any) -> str:
    raw = "|".join(str(p) for p in parts)
    return "checkout:" + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]

def _params_hash(d: Dict[str, Any]) -> str:
    # Stable across runs if params identical; changes when you change fields
    return hashlib.sha256(json.dumps(d, sort_keys=True, separators=(",", ":")).encode("utf-8")).hexdigest()[:16]


def ensure_stripe_customer(customer: Customer, gateway: StripeGateway) -> str:
    """Create the Stripe Customer on first checkout and remember its id locally."""
    if customer.stripe_customer_id:
        return customer.stripe_customer_id
    stripe_id = gateway.create_customer(
        email=customer.email,
        name=customer.name,
        metadata={"customer_id": str(customer.id)},
    )
    customer.stripe_customer_id = stripe_id
    db.session.commit()
    return stripe_id


def create_checkout_session(
    *, customer: Customer, price_id: str, is_trial: bool = False, gateway: Optional[StripeGateway] = None
) -> Dict[str, Any]:
    """
    Create a Stripe Checkout Session for a subscription to the given Price.
    Customers who already have an active subscription get a Billing Portal
    session instead, so they cannot buy a second plan.
    Returns: {"type": "checkout"|"portal", "url": ..., "id": <session_id or None>}
    """
    price_id = (price_id or "").strip() if isinstance(price_id, str) else ""
    if not price_id:
        raise InvalidInput("Missing or invalid priceId")

    gw = gateway or StripeGateway()
    stripe_customer_id = ensure_stripe_customer(customer, gw)

    if current_subscription(customer) is not None:
        portal = gw.create_portal_session(customer_id=stripe_customer_id, return_url=_absolute_url("billing"))
        return {
            "type": "portal",
            "url": portal["url"],
            "id": None,
            "message": "Customer already has an active subscription",
        }

    metadata = {"customer_id": str(customer.id), "is_trial": str(bool(is_trial)).lower()}
    subscription_data: Dict[str, Any] = {"metadata": metadata}
    if is_trial:
        # Trial length is fixed server-side
        subscription_data["trial_period_days"] = int(current_app.config.get("TRIAL_PERIOD_DAYS", 3))

    params: Dict[str, Any] = {
        "mode": "subscription",
        "customer": stripe_customer_id,
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": _absolute_url("billing/success?session_id={CHECKOUT_SESSION_ID}"),
        "cancel_url": _absolute_url("billing/cancelled"),
        "metadata": metadata,
        "subscription_data": subscription_data,
    }
    # Param-aware idempotency: new key whenever Checkout params change
    idem = make_idempotency_key("checkout", "v1", customer.id, price_id, _params_hash(params))
    session = gw.create_checkout_session(params, idempotency_key=idem)
    return {"type": "checkout", "url": session.get("url"), "id": session.get("id")}


def create_portal_session(*, customer: Customer, gateway: Optional[StripeGateway] = None) -> Dict[str, Any]:
    """Create a Stripe Customer Portal session for an existing Customer."""
    if not customer.stripe_customer_id:
        raise NotFound("No billing profile for this customer")
    gw = gateway or StripeGateway()
    return gw.create_portal_session(customer_id=customer.stripe_customer_id, return_url=_absolute_url("billing"))
