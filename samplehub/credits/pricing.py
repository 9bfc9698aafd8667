"""
Credit pricing for samples.

Stems are NOT a sample type: they are bundles attached to a parent sample and
priced as a flat surcharge on top of the parent's cost.

The price table is a value passed into every function (defaulting to
DEFAULT_PRICE_TABLE) so callers can price against admin-edited rules or test
tables without touching module state.
"""
import enum
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

log = logging.getLogger(__name__)


class SampleType(str, enum.Enum):
    ONE_SHOT = "One-shot"
    LOOP = "Loop"

    @classmethod
    def parse(cls, value) -> Optional["SampleType"]:
        """Return the enum member for value, or None if it is not a known type."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


TIER_STANDARD = "standard"
TIER_PREMIUM = "premium"


@dataclass(frozen=True)
class PriceTable:
    standard: Mapping[SampleType, int]
    premium: Mapping[SampleType, int]
    stems_bundle_cost: int = 5
    full_pack_download_cost: int = field(default=8, compare=False)

    def __post_init__(self):
        for tier, costs in ((TIER_STANDARD, self.standard), (TIER_PREMIUM, self.premium)):
            for sample_type in SampleType:
                cost = costs.get(sample_type)
                if not isinstance(cost, int) or isinstance(cost, bool) or cost <= 0:
                    raise ValueError(f"{tier} cost for {sample_type.value} must be a positive integer")
            object.__setattr__(self, tier, MappingProxyType(dict(costs)))
        stems = self.stems_bundle_cost
        if not isinstance(stems, int) or isinstance(stems, bool) or stems < 0:
            raise ValueError("stems bundle cost must be a non-negative integer")

    def costs_for(self, is_premium: bool) -> Mapping[SampleType, int]:
        return self.premium if is_premium else self.standard


DEFAULT_FULL_PACK_DOWNLOAD_COST = 8

DEFAULT_PRICE_TABLE = PriceTable(
    standard={SampleType.ONE_SHOT: 2, SampleType.LOOP: 3},
    premium={SampleType.ONE_SHOT: 8, SampleType.LOOP: 10},
    stems_bundle_cost=5,
    full_pack_download_cost=DEFAULT_FULL_PACK_DOWNLOAD_COST,
)


def _effective_override(manual_override) -> Optional[int]:
    # bool is an int subclass; True must not read as a 1-credit override
    if isinstance(manual_override, bool) or not isinstance(manual_override, int):
        return None
    return manual_override if manual_override > 0 else None


def compute_sample_cost(
    sample_type: Union[SampleType, str],
    is_premium: bool,
    manual_override: Optional[int] = None,
    table: PriceTable = DEFAULT_PRICE_TABLE,
) -> int:
    """
    Credit cost of the parent sample only (stems excluded).

    A positive manual override wins unchanged. 0, negatives and None mean
    "no override" and the table decides by tier and type. Unknown types are
    priced as a standard One-shot.
    """
    override = _effective_override(manual_override)
    if override is not None:
        return override

    parsed = SampleType.parse(sample_type)
    if parsed is None:
        log.warning("credits.unknown_sample_type type=%r; pricing as standard One-shot", sample_type)
        return table.standard[SampleType.ONE_SHOT]
    return table.costs_for(bool(is_premium))[parsed]


def compute_total_cost(
    sample_type: Union[SampleType, str],
    is_premium: bool,
    has_stems: bool,
    manual_override: Optional[int] = None,
    table: PriceTable = DEFAULT_PRICE_TABLE,
) -> int:
    """Sample cost plus the stems bundle surcharge. The override never replaces the stems addend."""
    sample_cost = compute_sample_cost(sample_type, is_premium, manual_override, table=table)
    stems_cost = table.stems_bundle_cost if has_stems else 0
    return sample_cost + stems_cost


def stems_bundle_cost(table: PriceTable = DEFAULT_PRICE_TABLE) -> int:
    return table.stems_bundle_cost


def default_cost(sample_type: Union[SampleType, str], table: PriceTable = DEFAULT_PRICE_TABLE) -> int:
    parsed = SampleType.parse(sample_type) or SampleType.ONE_SHOT
    return table.standard[parsed]


def premium_cost(sample_type: Union[SampleType, str], table: PriceTable = DEFAULT_PRICE_TABLE) -> int:
    parsed = SampleType.parse(sample_type) or SampleType.ONE_SHOT
    return table.premium[parsed]


def cost_range(is_premium: bool, table: PriceTable = DEFAULT_PRICE_TABLE) -> Tuple[int, int]:
    """(min, max) across sample types for one tier; display only."""
    values = list(table.costs_for(bool(is_premium)).values())
    return min(values), max(values)
