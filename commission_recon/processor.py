"""
Transaction Processor

Purpose: Recompute one line's commission under a given tier.
Pure function; the tier must be the region-wide tier, never a per-line one.
"""

from .models import CommissionTier, ProcessedLine, Transaction
from .policy import CommissionPolicy


def process_line(transaction: Transaction, tier: CommissionTier, policy: CommissionPolicy) -> ProcessedLine:
    rate = policy.rate_for(tier, transaction.product_class, transaction.incentive_rate_override)
    return ProcessedLine(
        transaction=transaction,
        applied_rate=rate,
        recomputed_commission=transaction.sales_amount * rate,
    )
