from typing import Dict, Optional
from flask import current_app

TIER_FREE = "free"

# Config key → tier. Values are Stripe Price IDs set per environment.
_PRICE_CONFIG_TIERS = {
    "STRIPE_PRICE_STARTER_MONTHLY": "starter",
    "STRIPE_PRICE_STARTER_ANNUAL": "starter",
    "STRIPE_PRICE_PRO_MONTHLY": "pro",
    "STRIPE_PRICE_PRO_ANNUAL": "pro",
    "STRIPE_PRICE_ENTERPRISE_MONTHLY": "enterprise",
    "STRIPE_PRICE_ENTERPRISE_ANNUAL": "enterprise",
}


def _parse_pairs(raw: str) -> Dict[str, str]:
    pairs = {}
    for chunk in (raw or "").split(","):
        price_id, sep, tier = chunk.partition("=")
        if sep and price_id.strip() and tier.strip():
            pairs[price_id.strip()] = tier.strip().lower()
    return pairs


def price_tier_table(config=None) -> Dict[str, str]:
    """
    Build the static price→tier lookup from config.
    Known Price IDs live in config so we never branch on literal IDs in code.
    """
    cfg = config if config is not None else current_app.config
    table = {}
    for key, tier in _PRICE_CONFIG_TIERS.items():
        price_id = cfg.get(key)
        if price_id:
            table[price_id] = tier
    table.update(_parse_pairs(cfg.get("STRIPE_PRICE_TIERS", "")))
    return table


def resolve_tier(price_id: Optional[str], table: Optional[Dict[str, str]] = None) -> str:
    """Unknown or missing price IDs map to the free tier; never raises."""
    if not price_id:
        return TIER_FREE
    lookup = table if table is not None else price_tier_table()
    return lookup.get(price_id, TIER_FREE)
