"""
Converge local Subscription/Customer rows onto Stripe's view of a subscription.

Every handler is safe to replay: subscription writes are a single
INSERT .. ON CONFLICT (stripe_subscription_id) DO UPDATE, and status updates
are absolute assignments. Events whose local customer or subscription cannot
be found are logged and skipped; Stripe stays the source of truth and the next
delivery re-converges.
"""
import enum
from typing import Callable, Dict, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite

from samplehub.extensions import db
from samplehub.observability import log_event
from samplehub.models import Customer, Subscription
from samplehub.utils.helpers import from_epoch, utcnow
from .events import (
    BillingEvent,
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    ProviderSubscription,
    SubscriptionChanged,
    SubscriptionDeleted,
    UnhandledEvent,
)
from .gateway import StripeGateway
from .tiers import TIER_FREE, resolve_tier


class Outcome(str, enum.Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"   # local customer/subscription not found
    IGNORED = "ignored"   # nothing to do for this event


STATUS_CANCELED = "canceled"
STATUS_PAST_DUE = "past_due"
STATUS_ACTIVE = "active"

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def local_status(provider_status: Optional[str]) -> str:
    """active/trialing collapse to "active"; anything else passes through."""
    if provider_status in ("active", "trialing"):
        return STATUS_ACTIVE
    return provider_status or "incomplete"


def _customer_by_stripe_id(stripe_customer_id: Optional[str]) -> Optional[Customer]:
    if not stripe_customer_id:
        return None
    return Customer.query.filter_by(stripe_customer_id=stripe_customer_id).one_or_none()


def _subscription_by_stripe_id(stripe_subscription_id: Optional[str]) -> Optional[Subscription]:
    if not stripe_subscription_id:
        return None
    return Subscription.query.filter_by(stripe_subscription_id=stripe_subscription_id).one_or_none()


def _upsert_insert():
    dialect = db.engine.dialect.name
    try:
        return _DIALECT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"subscription upsert is not supported on {dialect!r}") from None


def upsert_subscription(customer_id: int, sub: ProviderSubscription, tier_table: Optional[Dict[str, str]] = None) -> Subscription:
    """
    Insert-or-update the Subscription keyed by stripe_subscription_id, then
    copy its tier onto the owning Customer. One statement per table, so
    concurrent redeliveries of the same event cannot create two rows.
    The tier is copied for every provider status, incomplete and unpaid
    included: it mirrors the price, Stripe decides access.
    """
    tier = resolve_tier(sub.price_id, tier_table)
    now = utcnow()
    values = {
        "customer_id": customer_id,
        "stripe_subscription_id": sub.id,
        "stripe_price_id": sub.price_id,
        "tier": tier,
        "status": local_status(sub.status),
        "stripe_status": sub.status,
        "current_period_start": from_epoch(sub.current_period_start),
        "current_period_end": from_epoch(sub.current_period_end),
        "cancel_at_period_end": bool(sub.cancel_at_period_end),
        "trial_start": from_epoch(sub.trial_start),
        "trial_end": from_epoch(sub.trial_end),
        "updated_at": now,
    }

    insert = _upsert_insert()
    stmt = insert(Subscription.__table__).values(started_at=now, created_at=now, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["stripe_subscription_id"], set_=values)
    db.session.execute(stmt)

    db.session.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(subscription_tier=tier, updated_at=now)
    )
    db.session.commit()

    log_event("billing.subscription_upserted", subscription_id=sub.id, customer_id=customer_id, tier=tier, status=values["status"])
    return (
        Subscription.query
        .filter_by(stripe_subscription_id=sub.id)
        .populate_existing()
        .one()
    )


def reconcile_by_subscription_id(
    subscription_id: str,
    stripe_customer_id: Optional[str] = None,
    gateway: Optional[StripeGateway] = None,
) -> Outcome:
    """Fetch the subscription from Stripe and upsert it (checkout completion, manual resync)."""
    gw = gateway or StripeGateway()
    sub = ProviderSubscription.from_stripe(gw.retrieve_subscription(subscription_id))
    customer = _customer_by_stripe_id(stripe_customer_id or sub.customer_id)
    if customer is None:
        current_app.logger.warning(
            "billing.customer_not_found stripe_customer_id=%s subscription_id=%s",
            stripe_customer_id or sub.customer_id, subscription_id,
        )
        return Outcome.SKIPPED
    upsert_subscription(customer.id, sub)
    return Outcome.APPLIED


def _handle_checkout_completed(event: CheckoutCompleted, gateway) -> Outcome:
    return reconcile_by_subscription_id(event.subscription_id, event.customer_id, gateway=gateway)


def _handle_subscription_changed(event: SubscriptionChanged, gateway) -> Outcome:
    sub = event.subscription
    customer = _customer_by_stripe_id(sub.customer_id)
    if customer is None:
        current_app.logger.warning(
            "billing.customer_not_found stripe_customer_id=%s subscription_id=%s", sub.customer_id, sub.id
        )
        return Outcome.SKIPPED
    upsert_subscription(customer.id, sub)
    return Outcome.APPLIED


def _handle_subscription_deleted(event: SubscriptionDeleted, gateway) -> Outcome:
    sub = event.subscription
    row = _subscription_by_stripe_id(sub.id)
    if row is None:
        current_app.logger.warning("billing.subscription_not_found subscription_id=%s", sub.id)
        return Outcome.SKIPPED

    now = utcnow()
    row.status = STATUS_CANCELED
    row.stripe_status = sub.status
    row.updated_at = now
    # Rows are never hard-deleted; the customer simply drops back to free
    db.session.execute(
        update(Customer)
        .where(Customer.id == row.customer_id)
        .values(subscription_tier=TIER_FREE, updated_at=now)
    )
    db.session.commit()
    log_event("billing.subscription_canceled", subscription_id=sub.id, customer_id=row.customer_id)
    return Outcome.APPLIED


def _set_status(subscription_id: Optional[str], status: str, propagate_tier: bool) -> Outcome:
    if not subscription_id:
        return Outcome.IGNORED
    row = _subscription_by_stripe_id(subscription_id)
    if row is None:
        current_app.logger.warning("billing.subscription_not_found subscription_id=%s", subscription_id)
        return Outcome.SKIPPED

    if row.status == STATUS_CANCELED:
        # Deletion is terminal; late invoice events must not reopen the row or restore the tier
        current_app.logger.info(
            "billing.late_invoice_ignored subscription_id=%s status=%s", subscription_id, status
        )
        return Outcome.IGNORED

    now = utcnow()
    row.status = status
    row.stripe_status = status
    row.updated_at = now
    if propagate_tier:
        db.session.execute(
            update(Customer)
            .where(Customer.id == row.customer_id)
            .values(subscription_tier=row.tier, updated_at=now)
        )
    db.session.commit()
    log_event("billing.subscription_status", subscription_id=subscription_id, status=status)
    return Outcome.APPLIED


def _handle_invoice_succeeded(event: InvoicePaymentSucceeded, gateway) -> Outcome:
    return _set_status(event.subscription_id, STATUS_ACTIVE, propagate_tier=True)


def _handle_invoice_failed(event: InvoicePaymentFailed, gateway) -> Outcome:
    return _set_status(event.subscription_id, STATUS_PAST_DUE, propagate_tier=False)


def _handle_unhandled(event: UnhandledEvent, gateway) -> Outcome:
    current_app.logger.info("billing.unhandled_event type=%s", event.type)
    return Outcome.IGNORED


_HANDLERS: Dict[type, Callable[..., Outcome]] = {
    CheckoutCompleted: _handle_checkout_completed,
    SubscriptionChanged: _handle_subscription_changed,
    SubscriptionDeleted: _handle_subscription_deleted,
    InvoicePaymentSucceeded: _handle_invoice_succeeded,
    InvoicePaymentFailed: _handle_invoice_failed,
    UnhandledEvent: _handle_unhandled,
}


def reconcile(event: BillingEvent, gateway: Optional[StripeGateway] = None) -> Outcome:
    """Apply one parsed billing event. The gateway is only needed for checkout completion."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"no billing handler for {type(event).__name__}")
    return handler(event, gateway)
