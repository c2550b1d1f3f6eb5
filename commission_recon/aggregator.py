"""
State Aggregator

Purpose: Group transactions by region and apply the region's tier
- Pass 1 sums sales per region (insertion order = first appearance)
- Pass 2 picks each region's tier from its final total, then recomputes lines
- The tier bonus is added once per region
"""

from decimal import Decimal
from typing import Dict, Iterable, List

from loguru import logger

from .models import RegionAggregate, Transaction
from .parsing import ZERO
from .policy import CommissionPolicy
from .processor import process_line


def aggregate_by_region(transactions: Iterable[Transaction], policy: CommissionPolicy) -> List[RegionAggregate]:
    grouped: Dict[str, List[Transaction]] = {}
    totals: Dict[str, Decimal] = {}

    for txn in transactions:
        grouped.setdefault(txn.region, []).append(txn)
        totals[txn.region] = totals.get(txn.region, ZERO) + txn.sales_amount

    aggregates: List[RegionAggregate] = []
    for region, lines in grouped.items():
        total_sales = totals[region]
        tier = policy.tier_for(total_sales)
        processed = tuple(process_line(txn, tier, policy) for txn in lines)
        commission = sum((p.recomputed_commission for p in processed), ZERO)

        logger.debug(
            f"Region {region}: ${total_sales:,.2f} sales over {len(lines)} lines -> {tier.name} "
            f"(commission ${commission:,.2f} + bonus ${tier.bonus:,.2f})"
        )
        aggregates.append(
            RegionAggregate(
                region=region,
                total_sales=total_sales,
                tier=tier,
                lines=processed,
                recomputed_commission=commission,
                bonus=tier.bonus,
            )
        )

    logger.info(f"Aggregated {len(aggregates)} regions")
    return aggregates
