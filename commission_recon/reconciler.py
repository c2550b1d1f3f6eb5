"""
Reconciler

Purpose: Compare recomputed region totals against what the payer reported
- delta = recomputed total (commission + bonus) - reported figure
- A region with no reported figure is treated as paid nothing
- |delta| > $0.01 is a discrepancy; the tolerance is fixed
- A workbook-level comparison against the official summary total is always
  produced, and per-line reported commission is checked as well
"""

from decimal import Decimal
from typing import Dict, Mapping, Optional, Sequence, Union

from loguru import logger

from .models import (
    Classification,
    DiscrepancyEntry,
    GrandTotals,
    LineDiscrepancy,
    ReconciliationResult,
    RegionAggregate,
    ReportedField,
    ReportedTotals,
)
from .parsing import ZERO

TOLERANCE = Decimal("0.01")

PerRegionReported = Mapping[str, Union[ReportedField, Decimal]]


def classify(delta: Decimal) -> Classification:
    if delta > TOLERANCE:
        return Classification.UNDERPAID
    if delta < -TOLERANCE:
        return Classification.OVERPAID
    return Classification.ALIGNED


def compare(region: str, recomputed: Decimal, reported: Optional[ReportedField]) -> DiscrepancyEntry:
    if reported is None or not reported.available:
        return DiscrepancyEntry(
            region=region,
            recomputed_total=recomputed,
            reported_total=None,
            delta=recomputed,
            classification=classify(recomputed),
        )
    delta = recomputed - reported.value
    return DiscrepancyEntry(
        region=region,
        recomputed_total=recomputed,
        reported_total=reported.value,
        delta=delta,
        classification=classify(delta),
        reported_cell=reported.cell_reference,
        heuristic=reported.heuristic,
    )


def _region_figures(aggregates: Sequence[RegionAggregate], reported) -> Dict[str, ReportedField]:
    """Reported figure per region, from a per-region table or the single official total"""
    if isinstance(reported, ReportedTotals):
        figures = dict(reported.regions)
        if not figures and len(aggregates) == 1:
            official = reported.official_commission()
            if official.available:
                figures[aggregates[0].region] = official
        return figures

    figures = {}
    for region, value in (reported or {}).items():
        if isinstance(value, ReportedField):
            figures[region] = value
        elif value is not None:
            figures[region] = ReportedField(value=Decimal(str(value)), found=True)
    return figures


def _line_discrepancies(aggregates: Sequence[RegionAggregate]):
    out = []
    for agg in aggregates:
        for line in agg.lines:
            txn = line.transaction
            if txn.reported_commission == ZERO:
                continue
            delta = line.delta
            classification = classify(delta)
            if classification is Classification.ALIGNED:
                continue
            out.append(
                LineDiscrepancy(
                    region=agg.region,
                    row_number=txn.row_number,
                    invoice_id=txn.invoice_id,
                    item_code=txn.item_code,
                    product_class=txn.product_class,
                    sales_amount=txn.sales_amount,
                    applied_rate=line.applied_rate,
                    recomputed_commission=line.recomputed_commission,
                    reported_commission=txn.reported_commission,
                    delta=delta,
                    classification=classification,
                )
            )
    return tuple(out)


def reconcile(
    aggregates: Sequence[RegionAggregate],
    reported: Union[ReportedTotals, PerRegionReported, None],
    rows_read: int = 0,
    rows_dropped: int = 0,
    source: str = "",
) -> ReconciliationResult:
    figures = _region_figures(aggregates, reported)
    totals = reported if isinstance(reported, ReportedTotals) else ReportedTotals(regions=figures)

    entries = tuple(compare(agg.region, agg.total_with_bonus, figures.get(agg.region)) for agg in aggregates)

    total_sales = sum((a.total_sales for a in aggregates), ZERO)
    commission = sum((a.recomputed_commission for a in aggregates), ZERO)
    bonus = sum((a.bonus for a in aggregates), ZERO)
    reported_sum = sum((e.reported_total for e in entries if e.reported_total is not None), ZERO)

    grand = GrandTotals(
        total_sales=total_sales,
        recomputed_commission=commission,
        bonus=bonus,
        total_with_bonus=commission + bonus,
        reported_commission=reported_sum,
        reported_line_commission=sum((a.reported_line_commission for a in aggregates), ZERO),
        amount_owed=commission + bonus - reported_sum,
        impacted_regions=sum(1 for e in entries if e.is_discrepancy),
        region_count=len(aggregates),
        transaction_count=sum(len(a.lines) for a in aggregates),
    )

    summary_comparison = compare("ALL", grand.total_with_bonus, totals.official_commission())

    logger.info(
        f"Reconciled {grand.region_count} regions: recomputed ${grand.total_with_bonus:,.2f}, "
        f"reported ${grand.reported_commission:,.2f}, owed ${grand.amount_owed:,.2f}, "
        f"{grand.impacted_regions} impacted"
    )
    if summary_comparison.heuristic:
        logger.warning("⚠️ Summary comparison uses a heuristic reported total")

    return ReconciliationResult(
        regions=tuple(aggregates),
        grand=grand,
        discrepancies=entries,
        reported_totals=totals,
        summary_comparison=summary_comparison,
        line_discrepancies=_line_discrepancies(aggregates),
        rows_read=rows_read,
        rows_dropped=rows_dropped,
        source=source,
    )
