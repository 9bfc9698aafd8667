from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from samplehub.extensions import db
from samplehub.models import ACTIVE_STATUSES, Customer, PlanTier, Subscription
from samplehub.utils.helpers import utcnow
from .errors import InvalidInput, InvalidState, NotFound
from .gateway import StripeGateway


def current_subscription(customer: Customer) -> Optional[Subscription]:
    """The customer's active/trialing subscription, most recently updated first."""
    return (
        Subscription.query
        .filter(Subscription.customer_id == customer.id, Subscription.status.in_(ACTIVE_STATUSES))
        .order_by(Subscription.updated_at.desc(), Subscription.id.desc())
        .first()
    )


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def cancel_at_period_end(customer: Customer, gateway: Optional[StripeGateway] = None) -> Dict[str, Any]:
    """
    Stop renewal at the end of the current period; access continues until then.
    Re-invoking once the flag is set returns success without calling Stripe.
    """
    sub = current_subscription(customer)
    if sub is None:
        raise NotFound("No active subscription found to cancel")

    if sub.cancel_at_period_end:
        return {
            "success": True,
            "message": "Subscription is already set to cancel at the end of the billing period",
            "current_period_end": _iso(sub.current_period_end),
        }

    if not sub.stripe_subscription_id:
        raise InvalidState("Subscription has no Stripe ID; cannot cancel")

    gw = gateway or StripeGateway()
    gw.set_cancel_at_period_end(sub.stripe_subscription_id)

    # Stripe is already updated; a failed local write is re-converged by the next webhook
    try:
        sub.cancel_at_period_end = True
        sub.updated_at = utcnow()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "billing.cancel.local_update_failed", extra={"subscription_id": sub.stripe_subscription_id}
        )

    return {
        "success": True,
        "message": (
            "Subscription will cancel at the end of the current billing period. "
            "You will not be charged again and will keep access until then."
        ),
        "current_period_end": _iso(sub.current_period_end),
    }


def change_plan(customer: Customer, price_id: Optional[str], gateway: Optional[StripeGateway] = None) -> Dict[str, Any]:
    """
    Move the current subscription to another active plan's price.
    Stripe prorates; the local row follows via the customer.subscription.updated webhook.
    """
    new_price_id = (price_id or "").strip() if isinstance(price_id, str) else ""
    if not new_price_id:
        raise InvalidInput("Missing or invalid priceId")

    plan = PlanTier.query.filter_by(stripe_price_id=new_price_id, is_active=True).first()
    if plan is None:
        raise InvalidState("Invalid plan or price: not found in active plans", price_id=new_price_id)

    sub = current_subscription(customer)
    if sub is None:
        raise NotFound("No active subscription found. Subscribe to a plan first.")

    if not sub.stripe_subscription_id:
        raise InvalidState("Subscription has no Stripe ID; cannot upgrade")

    if sub.stripe_price_id == new_price_id:
        raise InvalidState("You are already on this plan", plan=plan.display_name)

    gw = gateway or StripeGateway()
    gw.change_subscription_price(sub.stripe_subscription_id, new_price_id)

    current_app.logger.info(
        "billing.change_plan subscription_id=%s from=%s to=%s",
        sub.stripe_subscription_id, sub.stripe_price_id, new_price_id,
    )
    return {
        "success": True,
        "message": f"Subscription upgraded to {plan.display_name}. You may see a prorated charge.",
        "plan": plan.display_name,
        "price_id": new_price_id,
    }
