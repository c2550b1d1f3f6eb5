"""
Result tables

Purpose: Flatten a ReconciliationResult into pandas DataFrames for export.
This is the only place monetary values are rounded (2 decimals, half-up).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Sequence

import pandas as pd

from .models import ReconciliationResult
from .pipeline import RegionRollup

CENTS = Decimal("0.01")


def money(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def region_coverage_note(result: ReconciliationResult) -> str:
    reported = sum(1 for d in result.discrepancies if d.reported_total is not None)
    if not result.discrepancies or reported == len(result.discrepancies):
        return ""
    if reported == 0:
        return (
            "No region-level figures were reported; each region delta is its full recomputed "
            "amount. Compare the ALL row against the official summary total instead."
        )
    return f"{len(result.discrepancies) - reported} region(s) have no reported figure; their delta is the full recomputed amount."


def executive_summary(result: ReconciliationResult) -> pd.DataFrame:
    grand = result.grand
    official = result.summary_comparison
    reported_regions = sum(1 for d in result.discrepancies if d.reported_total is not None)
    return pd.DataFrame(
        {
            "Metric": [
                "Source",
                "Detail Rows Read",
                "Rows Dropped",
                "Transactions",
                "Regions",
                "Total Sales ($)",
                "Recomputed Commission ($)",
                "Region Bonuses ($)",
                "Recomputed Total With Bonus ($)",
                "Regions With Reported Figures",
                "Reported Commission, Region Level ($)",
                "Amount Owed ($)",
                "Impacted Regions",
                "Official Summary Total ($)",
                "Official Summary Cell",
                "Official Summary Is Heuristic",
                "Summary Delta ($)",
                "Summary Classification",
                "Note",
            ],
            "Value": [
                result.source,
                result.rows_read,
                result.rows_dropped,
                grand.transaction_count,
                grand.region_count,
                money(grand.total_sales),
                money(grand.recomputed_commission),
                money(grand.bonus),
                money(grand.total_with_bonus),
                reported_regions,
                money(grand.reported_commission),
                money(grand.amount_owed),
                grand.impacted_regions,
                money(official.reported_total),
                official.reported_cell,
                "Y" if official.heuristic else "N",
                money(official.delta),
                official.classification.value,
                region_coverage_note(result),
            ],
        }
    )


def region_totals(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for agg in result.regions:
        rows.append(
            {
                "region": agg.region,
                "tier": agg.tier.name,
                "transactions": len(agg.lines),
                "total_sales": money(agg.total_sales),
                "commission": money(agg.recomputed_commission),
                "bonus": money(agg.bonus),
                "total_with_bonus": money(agg.total_with_bonus),
                "reported_line_commission": money(agg.reported_line_commission),
                "line_delta": money(agg.line_delta),
            }
        )
    return pd.DataFrame(rows)


def line_detail(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for agg in result.regions:
        for line in agg.lines:
            txn = line.transaction
            rows.append(
                {
                    "row": txn.row_number,
                    "region": txn.region,
                    "invoice": txn.invoice_id,
                    "item": txn.item_code,
                    "customer": txn.customer_id,
                    "product_class": txn.product_class.label,
                    "sales_amount": money(txn.sales_amount),
                    "applied_rate": float(line.applied_rate),
                    "recomputed_commission": money(line.recomputed_commission),
                    "reported_commission": money(txn.reported_commission),
                    "delta": money(line.delta),
                }
            )
    return pd.DataFrame(rows)


def discrepancies(result: ReconciliationResult) -> pd.DataFrame:
    rows = []
    for entry in list(result.discrepancies) + [result.summary_comparison]:
        rows.append(
            {
                "region": entry.region,
                "recomputed_total": money(entry.recomputed_total),
                "reported_total": money(entry.reported_total),
                "delta": money(entry.delta),
                "classification": entry.classification.value,
                "flagged": "Y" if entry.is_discrepancy else "N",
                "reported_cell": entry.reported_cell,
                "heuristic": "Y" if entry.heuristic else "N",
            }
        )
    return pd.DataFrame(rows)


def line_discrepancies(result: ReconciliationResult) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "row": ld.row_number,
                "region": ld.region,
                "invoice": ld.invoice_id,
                "item": ld.item_code,
                "product_class": ld.product_class.label,
                "sales_amount": money(ld.sales_amount),
                "applied_rate": float(ld.applied_rate),
                "recomputed": money(ld.recomputed_commission),
                "reported": money(ld.reported_commission),
                "delta": money(ld.delta),
                "classification": ld.classification.value,
            }
            for ld in result.line_discrepancies
        ]
    )


def reported_totals(result: ReconciliationResult) -> pd.DataFrame:
    reported = result.reported_totals
    fields = dict(reported.fields())
    fields["heuristic_commission"] = reported.heuristic_commission
    rows = [
        {
            "field": name,
            "value": money(f.value),
            "found": "Y" if f.found else "N",
            "heuristic": "Y" if f.heuristic else "N",
            "cell": f.cell_reference,
            "label": f.label,
        }
        for name, f in fields.items()
    ]
    rows += [
        {
            "field": f"region:{region}",
            "value": money(f.value),
            "found": "Y" if f.found else "N",
            "heuristic": "N",
            "cell": f.cell_reference,
            "label": f.label,
        }
        for region, f in reported.regions.items()
    ]
    return pd.DataFrame(rows)


def commission_breakdown(result: ReconciliationResult) -> pd.DataFrame:
    recomputed = result.commission_breakdown()
    reported = result.reported_breakdown()
    return pd.DataFrame(
        [
            {
                "component": key,
                "recomputed": money(recomputed[key]),
                "reported": money(reported.get(key)),
            }
            for key in recomputed
        ]
    )


def result_to_frames(result: ReconciliationResult) -> Dict[str, pd.DataFrame]:
    return {
        "executive_summary": executive_summary(result),
        "region_totals": region_totals(result),
        "commission_breakdown": commission_breakdown(result),
        "discrepancies": discrepancies(result),
        "line_discrepancies": line_discrepancies(result),
        "line_detail": line_detail(result),
        "reported_totals": reported_totals(result),
    }


def combined_region_frame(rollups: Sequence[RegionRollup]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "region": r.region,
                "files": r.files,
                "total_sales": money(r.total_sales),
                "commission": money(r.recomputed_commission),
                "bonus": money(r.bonus),
                "total_with_bonus": money(r.total_with_bonus),
            }
            for r in rollups
        ]
    )
