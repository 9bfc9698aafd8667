from contextlib import contextmanager
from typing import Any, Dict, Optional

import stripe
from flask import current_app
from stripe import StripeClient

from .errors import InvalidState, UpstreamFailure
from .events import as_dict


@contextmanager
def _upstream(operation: str, **context):
    """Stripe SDK errors leave this module as UpstreamFailure."""
    try:
        yield
    except stripe.StripeError as exc:
        current_app.logger.warning("stripe.%s failed: %s", operation, exc)
        message = getattr(exc, "user_message", None) or str(exc) or "Stripe request failed"
        raise UpstreamFailure(message, operation=operation, **context) from exc


class StripeGateway:
    """The subset of the Stripe API the billing code talks to."""

    def __init__(self, api_key: Optional[str] = None):
        key = api_key or current_app.config.get("STRIPE_SECRET_KEY")
        if not key:
            raise RuntimeError("STRIPE_SECRET_KEY is not configured")
        self._client = StripeClient(key)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        with _upstream("subscriptions.retrieve", subscription_id=subscription_id):
            return as_dict(self._client.subscriptions.retrieve(subscription_id))

    def set_cancel_at_period_end(self, subscription_id: str) -> Dict[str, Any]:
        with _upstream("subscriptions.update", subscription_id=subscription_id):
            sub = self._client.subscriptions.update(
                subscription_id, params={"cancel_at_period_end": True}
            )
        return as_dict(sub)

    def change_subscription_price(self, subscription_id: str, price_id: str) -> Dict[str, Any]:
        """Swap the first item's price; Stripe prorates the difference."""
        current = self.retrieve_subscription(subscription_id)
        items = (current.get("items") or {}).get("data") or []
        if not items:
            raise InvalidState("Subscription has no line items; cannot change plan", subscription_id=subscription_id)
        with _upstream("subscriptions.update", subscription_id=subscription_id):
            sub = self._client.subscriptions.update(
                subscription_id,
                params={
                    "items": [{"id": items[0]["id"], "price": price_id}],
                    "proration_behavior": "create_prorations",
                },
            )
        return as_dict(sub)

    def create_customer(self, *, email: str, name: Optional[str], metadata: Dict[str, str]) -> str:
        params: Dict[str, Any] = {"email": email, "metadata": metadata}
        if name:
            params["name"] = name
        with _upstream("customers.create"):
            return self._client.customers.create(params=params).id

    def create_checkout_session(self, params: Dict[str, Any], idempotency_key: str) -> Dict[str, Any]:
        with _upstream("checkout.sessions.create"):
            session = self._client.checkout.sessions.create(
                params=params, options={"idempotency_key": idempotency_key}
            )
        return {"id": session.id, "url": getattr(session, "url", None)}

    def create_portal_session(self, *, customer_id: str, return_url: str) -> Dict[str, Any]:
        with _upstream("billing_portal.sessions.create"):
            session = self._client.billing_portal.sessions.create(
                params={"customer": customer_id, "return_url": return_url}
            )
        return {"url": session.url}
