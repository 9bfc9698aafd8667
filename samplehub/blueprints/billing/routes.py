from flask import request, current_app, jsonify, redirect
from flask_login import login_required
from samplehub.extensions import limiter
from samplehub.models import PlanTier
from samplehub.billing import subscriptions as subscription_ops
from samplehub.billing.errors import BillingError
from samplehub.security.policy import require_customer
from samplehub.services import checkout as checkout_service
from . import billing_bp


def _error_response(e: BillingError):
    return jsonify(e.to_dict()), e.http_status


@billing_bp.get("/plans.json")
def plans_json():
    """Active plans for pricing/checkout; no auth required."""
    q = PlanTier.query.filter_by(is_active=True).order_by(PlanTier.sort_order.asc(), PlanTier.id.asc())
    plans = [p.to_dict() for p in q.all()]
    return jsonify({"success": True, "plans": plans, "count": len(plans)})


@billing_bp.get("/stripe-pk")
@login_required
def stripe_publishable_key():
    """
    Return the publishable key for Stripe.js initialization (safe to expose).
    """
    pk = current_app.config.get("STRIPE_PUBLISHABLE_KEY")
    return jsonify({"publishable_key": pk})


@billing_bp.get("/subscription.json")
@login_required
@require_customer
def subscription_json(customer):
    sub = subscription_ops.current_subscription(customer)
    return jsonify({
        "subscription_tier": customer.subscription_tier,
        "subscription": sub.to_dict() if sub else None,
    })


@billing_bp.post("/checkout.json")
@limiter.limit("10/minute")
@login_required
@require_customer
def checkout_json(customer):
    """
    Create a Checkout Session (or a Portal session when already subscribed)
    and return its URL for the frontend redirect.
    """
    data = request.get_json(silent=True) or {}
    try:
        payload = checkout_service.create_checkout_session(
            customer=customer,
            price_id=data.get("priceId") or data.get("price_id"),
            is_trial=bool(data.get("isTrial") or data.get("is_trial")),
        )
    except BillingError as e:
        current_app.logger.warning(
            "billing.checkout_json.session_create_failed",
            extra={"customer_id": customer.id, "code": e.code},
        )
        return _error_response(e)
    return jsonify(payload)


@billing_bp.post("/portal.json")
@limiter.limit("10/minute")
@login_required
@require_customer
def portal_json(customer):
    try:
        payload = checkout_service.create_portal_session(customer=customer)
    except BillingError as e:
        return _error_response(e)
    if not payload.get("url"):
        return jsonify({"error": "Could not create portal session"}), 502
    return jsonify(payload)


@billing_bp.post("/cancel.json")
@limiter.limit("10/minute")
@login_required
@require_customer
def cancel_json(customer):
    try:
        result = subscription_ops.cancel_at_period_end(customer)
    except BillingError as e:
        return _error_response(e)
    return jsonify(result)


@billing_bp.post("/change-plan.json")
@limiter.limit("10/minute")
@login_required
@require_customer
def change_plan_json(customer):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON body", "code": "invalid_input"}), 400
    try:
        result = subscription_ops.change_plan(customer, data.get("priceId") or data.get("price_id"))
    except BillingError as e:
        return _error_response(e)
    return jsonify(result)


@billing_bp.get("/success")
@login_required
def success():
    # Local state is driven by the webhook; this only lands the browser
    return redirect("/")


@billing_bp.get("/cancelled")
@login_required
def cancelled():
    return jsonify({"ok": True, "cancelled": True})
