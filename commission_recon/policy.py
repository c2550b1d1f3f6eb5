"""
Commission Policy

Purpose: Immutable tiered rate/bonus table
- Tiers partition [0, inf) with no gaps or overlaps; validated on load
- A tier applies from its min up to (not including) the next tier's min,
  so cent-granular bounds like 9,999.99 / 10,000 leave no hole
- The policy is a plain value passed into each call; nothing is shared mutably
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from loguru import logger

from .config import get_default_config
from .errors import PolicyConfigError
from .models import CommissionTier, ProductClass
from .parsing import ZERO

# largest allowed distance between one tier's max and the next tier's min
CENT = Decimal("0.01")


@dataclass(frozen=True)
class CommissionPolicy:
    tiers: Tuple[CommissionTier, ...]
    incentive_rate: Decimal = Decimal("0.03")

    def __post_init__(self):
        validate_tiers(self.tiers)

    @classmethod
    def from_config(cls, cfg: Optional[Dict] = None) -> "CommissionPolicy":
        """Build and validate the policy from the 'policy' section of a config dict"""
        cfg = cfg if cfg is not None else get_default_config()
        section = cfg.get("policy") or {}
        try:
            incentive = Decimal(str(section.get("incentive_rate", "0.03")))
            tiers = tuple(
                CommissionTier.from_dict(t, incentive) for t in (section.get("tiers") or [])
            )
        except (AttributeError, KeyError, TypeError, ArithmeticError) as e:
            raise PolicyConfigError(f"Malformed tier definition: {e}") from e
        policy = cls(tiers=tiers, incentive_rate=incentive)
        logger.debug(f"Loaded commission policy with {len(tiers)} tiers")
        return policy

    @classmethod
    def default(cls) -> "CommissionPolicy":
        return cls.from_config(get_default_config())

    def tier_for(self, total_sales: Decimal) -> CommissionTier:
        """Tier for a region's total sales. Total: every amount maps to one tier."""
        for current, following in zip(self.tiers, self.tiers[1:]):
            if total_sales < following.min_sales:
                return current
        return self.tiers[-1]

    def rate_for(
        self,
        tier: CommissionTier,
        product_class: ProductClass,
        incentive_override: Optional[Decimal] = None,
    ) -> Decimal:
        if product_class is ProductClass.INCENTIVE and incentive_override is not None:
            return incentive_override
        return tier.rate_for(product_class)

    def describe(self):
        return [tier.describe() for tier in self.tiers]


def validate_tiers(tiers: Sequence[CommissionTier]) -> None:
    """Reject tables that would leave some sales total without exactly one tier"""
    if not tiers:
        raise PolicyConfigError("Commission policy has no tiers")

    if tiers[0].min_sales != ZERO:
        raise PolicyConfigError(
            f"First tier '{tiers[0].name}' starts at {tiers[0].min_sales}; it must start at 0"
        )

    for tier in tiers:
        rates = (tier.repeat_rate, tier.new_rate, tier.incentive_rate)
        if any(rate < 0 for rate in rates) or tier.bonus < 0:
            raise PolicyConfigError(f"Tier '{tier.name}' has a negative rate or bonus")
        if tier.max_sales is not None and tier.max_sales < tier.min_sales:
            raise PolicyConfigError(f"Tier '{tier.name}' max is below its min")

    for current, following in zip(tiers, tiers[1:]):
        if current.max_sales is None:
            raise PolicyConfigError(
                f"Tier '{current.name}' is unbounded but is followed by '{following.name}'"
            )
        if following.min_sales <= current.max_sales:
            raise PolicyConfigError(
                f"Tiers '{current.name}' and '{following.name}' overlap "
                f"({current.max_sales} >= {following.min_sales})"
            )
        if following.min_sales - current.max_sales > CENT:
            raise PolicyConfigError(
                f"Gap between tiers '{current.name}' and '{following.name}' "
                f"({current.max_sales} .. {following.min_sales})"
            )

    if tiers[-1].max_sales is not None:
        raise PolicyConfigError(
            f"Last tier '{tiers[-1].name}' must be unbounded (max: null), found {tiers[-1].max_sales}"
        )
