"""
Stripe webhook events as a closed set of variants.

parse_event() turns a verified Stripe event into exactly one of the classes
below; the reconciler keeps one handler per class. Only the fields the
reconciler consumes are carried.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .errors import InvalidInput


def as_dict(obj: Any) -> Dict[str, Any]:
    """Stripe SDK objects → plain dicts; plain dicts pass through."""
    if obj is None:
        return {}
    if type(obj) is dict:
        return obj
    for attr in ("to_dict_recursive", "to_dict"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return dict(obj)


def _ref_id(value: Any) -> Optional[str]:
    # Expandable fields arrive either as an id string or as the expanded object
    if isinstance(value, dict):
        return value.get("id")
    return value or None


@dataclass(frozen=True)
class ProviderSubscription:
    id: str
    customer_id: Optional[str]
    price_id: Optional[str]
    status: str
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    trial_start: Optional[int] = None
    trial_end: Optional[int] = None
    cancel_at_period_end: bool = False

    @classmethod
    def from_stripe(cls, obj: Any) -> "ProviderSubscription":
        data = as_dict(obj)
        sub_id = data.get("id")
        if not sub_id:
            raise InvalidInput("subscription object has no id")

        items = (data.get("items") or {}).get("data") or []
        first = items[0] if items else {}
        price = first.get("price")
        price_id = _ref_id(price)

        # Newer API versions moved the period bounds onto the subscription item
        period_start = data.get("current_period_start") or first.get("current_period_start")
        period_end = data.get("current_period_end") or first.get("current_period_end")

        return cls(
            id=sub_id,
            customer_id=_ref_id(data.get("customer")),
            price_id=price_id,
            status=data.get("status") or "incomplete",
            current_period_start=period_start,
            current_period_end=period_end,
            trial_start=data.get("trial_start"),
            trial_end=data.get("trial_end"),
            cancel_at_period_end=bool(data.get("cancel_at_period_end")),
        )


@dataclass(frozen=True)
class CheckoutCompleted:
    session_id: Optional[str]
    customer_id: str
    subscription_id: str


@dataclass(frozen=True)
class SubscriptionChanged:
    """customer.subscription.created and customer.subscription.updated."""
    subscription: ProviderSubscription


@dataclass(frozen=True)
class SubscriptionDeleted:
    subscription: ProviderSubscription


@dataclass(frozen=True)
class InvoicePaymentSucceeded:
    invoice_id: Optional[str]
    subscription_id: Optional[str]


@dataclass(frozen=True)
class InvoicePaymentFailed:
    invoice_id: Optional[str]
    subscription_id: Optional[str]


@dataclass(frozen=True)
class UnhandledEvent:
    type: str


BillingEvent = Union[
    CheckoutCompleted,
    SubscriptionChanged,
    SubscriptionDeleted,
    InvoicePaymentSucceeded,
    InvoicePaymentFailed,
    UnhandledEvent,
]


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    sub = _ref_id(invoice.get("subscription"))
    if sub:
        return sub
    details = ((invoice.get("parent") or {}).get("subscription_details") or {})
    return _ref_id(details.get("subscription"))


def _parse_checkout(obj: Dict[str, Any]) -> CheckoutCompleted:
    customer_id = _ref_id(obj.get("customer"))
    subscription_id = _ref_id(obj.get("subscription"))
    if not customer_id or not subscription_id:
        raise InvalidInput("checkout session is missing customer or subscription id", session_id=obj.get("id"))
    return CheckoutCompleted(session_id=obj.get("id"), customer_id=customer_id, subscription_id=subscription_id)


def _parse_subscription_changed(obj: Dict[str, Any]) -> SubscriptionChanged:
    sub = ProviderSubscription.from_stripe(obj)
    if not sub.customer_id:
        raise InvalidInput("subscription is missing customer id", subscription_id=sub.id)
    return SubscriptionChanged(subscription=sub)


def _parse_subscription_deleted(obj: Dict[str, Any]) -> SubscriptionDeleted:
    return SubscriptionDeleted(subscription=ProviderSubscription.from_stripe(obj))


def _parse_invoice_succeeded(obj: Dict[str, Any]) -> InvoicePaymentSucceeded:
    return InvoicePaymentSucceeded(invoice_id=obj.get("id"), subscription_id=_invoice_subscription_id(obj))


def _parse_invoice_failed(obj: Dict[str, Any]) -> InvoicePaymentFailed:
    return InvoicePaymentFailed(invoice_id=obj.get("id"), subscription_id=_invoice_subscription_id(obj))


_PARSERS = {
    "checkout.session.completed": _parse_checkout,
    "customer.subscription.created": _parse_subscription_changed,
    "customer.subscription.updated": _parse_subscription_changed,
    "customer.subscription.deleted": _parse_subscription_deleted,
    "invoice.payment_succeeded": _parse_invoice_succeeded,
    "invoice.paid": _parse_invoice_succeeded,
    "invoice.payment_failed": _parse_invoice_failed,
}


def parse_event(event: Any) -> BillingEvent:
    """
    Map a (signature-verified) Stripe event to its variant.
    Raises InvalidInput when a handled event lacks the provider ids it needs.
    """
    data = as_dict(event)
    ev_type = data.get("type")
    if not ev_type:
        raise InvalidInput("event has no type")
    parser = _PARSERS.get(ev_type)
    if parser is None:
        return UnhandledEvent(type=ev_type)
    obj = as_dict((data.get("data") or {}).get("object"))
    return parser(obj)
