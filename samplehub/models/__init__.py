from .user import User
from .customer import Customer, TIER_FREE
from .subscription import Subscription, ACTIVE_STATUSES
from .billing_event import BillingEventLog
from .plan_tier import PlanTier
from .catalog import Pack, Sample
from .credit_rules import CreditRules

__all__ = [
    "User",
    "Customer",
    "TIER_FREE",
    "Subscription",
    "ACTIVE_STATUSES",
    "BillingEventLog",
    "PlanTier",
    "Pack",
    "Sample",
    "CreditRules",
]
