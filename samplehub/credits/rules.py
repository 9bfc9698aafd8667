from typing import Any, Dict

from samplehub.billing.errors import InvalidInput
from samplehub.extensions import db
from samplehub.models import CreditRules
from samplehub.utils.helpers import safe_int
from .pricing import DEFAULT_PRICE_TABLE, PriceTable, SampleType, compute_sample_cost, compute_total_cost

_SINGLETON_ID = 1

# field → minimum allowed value
_FIELDS = {
    "one_shot_standard": 1,
    "loop_standard": 1,
    "one_shot_premium": 1,
    "loop_premium": 1,
    "stems_bundle": 0,
    "full_pack_download": 0,
}


def _row() -> CreditRules | None:
    return db.session.get(CreditRules, _SINGLETON_ID)


def table_from_rules(row: CreditRules) -> PriceTable:
    return PriceTable(
        standard={SampleType.ONE_SHOT: row.one_shot_standard, SampleType.LOOP: row.loop_standard},
        premium={SampleType.ONE_SHOT: row.one_shot_premium, SampleType.LOOP: row.loop_premium},
        stems_bundle_cost=row.stems_bundle,
        full_pack_download_cost=row.full_pack_download,
    )


def load_price_table() -> PriceTable:
    """Admin-edited table if one was saved, otherwise the built-in defaults."""
    row = _row()
    return table_from_rules(row) if row else DEFAULT_PRICE_TABLE


def overrides_allowed() -> bool:
    row = _row()
    return True if row is None else bool(row.allow_pack_overrides)


def _defaults() -> Dict[str, Any]:
    t = DEFAULT_PRICE_TABLE
    return dict(
        one_shot_standard=t.standard[SampleType.ONE_SHOT],
        loop_standard=t.standard[SampleType.LOOP],
        one_shot_premium=t.premium[SampleType.ONE_SHOT],
        loop_premium=t.premium[SampleType.LOOP],
        stems_bundle=t.stems_bundle_cost,
        full_pack_download=t.full_pack_download_cost,
        allow_pack_overrides=True,
    )


def get_rules() -> Dict[str, Any]:
    row = _row()
    if row is None:
        return {**_defaults(), "updated_at": None}
    return row.to_dict()


def save_rules(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Partial update: missing keys keep their current value.
    Sample costs must be >= 1; stems and full-pack costs >= 0.
    """
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid payload")

    current = get_rules()
    coerced: Dict[str, Any] = {}
    for name, minimum in _FIELDS.items():
        raw = payload.get(name, current[name])
        # 2.0 is fine, 2.9 is not silently truncated
        fractional = isinstance(raw, float) and not raw.is_integer()
        value = None if fractional else safe_int(raw)
        if value is None or value < minimum:
            raise InvalidInput(f"{name} must be an integer >= {minimum}", field=name)
        coerced[name] = value
    coerced["allow_pack_overrides"] = bool(payload.get("allow_pack_overrides", current["allow_pack_overrides"]))

    row = _row()
    if row is None:
        row = CreditRules(id=_SINGLETON_ID, **coerced)
        db.session.add(row)
    else:
        for key, value in coerced.items():
            setattr(row, key, value)
    db.session.commit()
    return row.to_dict()


def reset_rules() -> Dict[str, Any]:
    return save_rules(_defaults())


def quote_sample(sample, table: PriceTable | None = None) -> Dict[str, Any]:
    """Cost breakdown for one Sample row under the active rules."""
    table = table or load_price_table()
    override = sample.credit_cost_override if overrides_allowed() else None
    is_premium = bool(sample.pack and sample.pack.is_premium)
    sample_cost = compute_sample_cost(sample.sample_type, is_premium, override, table=table)
    total = compute_total_cost(sample.sample_type, is_premium, sample.has_stems, override, table=table)
    return {
        "sample_id": sample.id,
        "sample_type": sample.sample_type,
        "is_premium": is_premium,
        "sample_cost": sample_cost,
        "stems_cost": total - sample_cost,
        "total_cost": total,
        "override_applied": bool(override and override > 0),
    }
