"""
Domain models for the commission reconciliation engine.

Every stage produces new frozen values and never mutates an earlier stage's
output. All monetary values are Decimal and are accumulated unrounded.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .parsing import ZERO


# =============================================================================
# RANKED ENUMERATIONS
# =============================================================================


class ProductClass(Enum):
    """Product class of a transaction; the value is its precedence (1 wins)"""

    INCENTIVE = 1
    NEW = 2
    REPEAT = 3

    @property
    def precedence(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()


class TotalSignal(Enum):
    """Competing "total commission" figures on a summary sheet, highest priority first.

    "Amount due" bundles the region bonuses into the payout, so it ranks below
    the explicit commission figures.
    """

    FINAL_COMMISSION = (1, "final_commission")
    SUM_OF_COMMISSION = (2, "sum_of_commission")
    AMOUNT_DUE_TO_PAYEE = (3, "amount_due_to_payee")

    @property
    def precedence(self) -> int:
        return self.value[0]

    @property
    def field_name(self) -> str:
        return self.value[1]


class Classification(Enum):
    UNDERPAID = "underpaid"
    OVERPAID = "overpaid"
    ALIGNED = "aligned"


# =============================================================================
# INPUT SIDE
# =============================================================================


@dataclass(frozen=True)
class Transaction:
    """One usable detail-sheet row"""

    region: str
    sales_amount: Decimal
    product_class: ProductClass = ProductClass.REPEAT
    reported_commission: Decimal = ZERO
    invoice_id: str = ""
    item_code: str = ""
    customer_id: str = ""
    incentive_rate_override: Optional[Decimal] = None
    row_number: Optional[int] = None


@dataclass(frozen=True)
class CommissionTier:
    """A sales-volume bracket. max_sales None means unbounded."""

    name: str
    min_sales: Decimal
    max_sales: Optional[Decimal]
    repeat_rate: Decimal
    new_rate: Decimal
    incentive_rate: Decimal
    bonus: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict, default_incentive_rate: Decimal) -> "CommissionTier":
        incentive = data.get("incentive_rate")
        return cls(
            name=str(data.get("name") or ""),
            min_sales=Decimal(str(data.get("min", 0))),
            max_sales=Decimal(str(data["max"])) if data.get("max") is not None else None,
            repeat_rate=Decimal(str(data["repeat_rate"])),
            new_rate=Decimal(str(data["new_rate"])),
            incentive_rate=Decimal(str(incentive)) if incentive is not None else default_incentive_rate,
            bonus=Decimal(str(data.get("bonus") or 0)),
        )

    def rate_for(self, product_class: ProductClass) -> Decimal:
        if product_class is ProductClass.INCENTIVE:
            return self.incentive_rate
        if product_class is ProductClass.NEW:
            return self.new_rate
        return self.repeat_rate

    def describe(self) -> str:
        upper = f"${self.max_sales:,.2f}" if self.max_sales is not None else "and up"
        return (
            f"{self.name} (${self.min_sales:,.2f} - {upper}): "
            f"Repeat {_percent(self.repeat_rate)}%, New {_percent(self.new_rate)}%, "
            f"Incentive {_percent(self.incentive_rate)}%, Bonus ${self.bonus:,.2f}"
        )


def _percent(rate: Decimal) -> str:
    return format((rate * 100).normalize(), "f")


# =============================================================================
# COMPUTED SIDE
# =============================================================================


@dataclass(frozen=True)
class ProcessedLine:
    transaction: Transaction
    applied_rate: Decimal
    recomputed_commission: Decimal

    @property
    def reported_commission(self) -> Decimal:
        return self.transaction.reported_commission

    @property
    def delta(self) -> Decimal:
        return self.recomputed_commission - self.transaction.reported_commission


@dataclass(frozen=True)
class RegionAggregate:
    """Per-region totals. The tier bonus is applied once per region."""

    region: str
    total_sales: Decimal
    tier: CommissionTier
    lines: Tuple[ProcessedLine, ...]
    recomputed_commission: Decimal
    bonus: Decimal

    @property
    def total_with_bonus(self) -> Decimal:
        return self.recomputed_commission + self.bonus

    @property
    def transactions(self) -> List[Transaction]:
        return [line.transaction for line in self.lines]

    @property
    def reported_line_commission(self) -> Decimal:
        return sum((line.reported_commission for line in self.lines), ZERO)

    @property
    def line_delta(self) -> Decimal:
        return self.recomputed_commission - self.reported_line_commission

    def commission_by_class(self) -> Dict[ProductClass, Decimal]:
        totals = {pc: ZERO for pc in ProductClass}
        for line in self.lines:
            totals[line.transaction.product_class] += line.recomputed_commission
        return totals


@dataclass(frozen=True)
class ReportedField:
    """A figure read from the summary sheet, with where it came from.

    found is True only for label-confirmed values; heuristic marks guesses.
    """

    value: Optional[Decimal] = None
    found: bool = False
    cell_reference: str = ""
    label: str = ""
    heuristic: bool = False

    @classmethod
    def missing(cls) -> "ReportedField":
        return cls()

    @property
    def available(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ReportedTotals:
    """Payer's self-reported figures; absence of a field is normal"""

    amount_due_to_payee: ReportedField = field(default_factory=ReportedField)
    final_commission: ReportedField = field(default_factory=ReportedField)
    repeat_commission: ReportedField = field(default_factory=ReportedField)
    new_commission: ReportedField = field(default_factory=ReportedField)
    incentive_commission: ReportedField = field(default_factory=ReportedField)
    sum_of_commission: ReportedField = field(default_factory=ReportedField)
    state_bonus: ReportedField = field(default_factory=ReportedField)
    total_revenue: ReportedField = field(default_factory=ReportedField)
    heuristic_commission: ReportedField = field(default_factory=ReportedField)
    regions: Dict[str, ReportedField] = field(default_factory=dict)

    FIELD_NAMES = (
        "amount_due_to_payee",
        "final_commission",
        "repeat_commission",
        "new_commission",
        "incentive_commission",
        "sum_of_commission",
        "state_bonus",
        "total_revenue",
    )

    def fields(self) -> Dict[str, ReportedField]:
        return {name: getattr(self, name) for name in self.FIELD_NAMES}

    @property
    def any_found(self) -> bool:
        return any(f.found for f in self.fields().values())

    def official_commission(self) -> ReportedField:
        """Best available total: ranked label signals, then the heuristic guess"""
        for signal in sorted(TotalSignal, key=lambda s: s.precedence):
            candidate = getattr(self, signal.field_name)
            if candidate.found:
                return candidate
        if self.heuristic_commission.available:
            return self.heuristic_commission
        return ReportedField.missing()


@dataclass(frozen=True)
class DiscrepancyEntry:
    region: str
    recomputed_total: Decimal
    reported_total: Optional[Decimal]
    delta: Decimal
    classification: Classification
    reported_cell: str = ""
    heuristic: bool = False

    @property
    def is_discrepancy(self) -> bool:
        return self.classification is not Classification.ALIGNED


@dataclass(frozen=True)
class LineDiscrepancy:
    """Detail row whose own reported commission disagrees with the recomputation"""

    region: str
    row_number: Optional[int]
    invoice_id: str
    item_code: str
    product_class: ProductClass
    sales_amount: Decimal
    applied_rate: Decimal
    recomputed_commission: Decimal
    reported_commission: Decimal
    delta: Decimal
    classification: Classification


@dataclass(frozen=True)
class GrandTotals:
    total_sales: Decimal = ZERO
    recomputed_commission: Decimal = ZERO
    bonus: Decimal = ZERO
    total_with_bonus: Decimal = ZERO
    reported_commission: Decimal = ZERO
    reported_line_commission: Decimal = ZERO
    amount_owed: Decimal = ZERO
    impacted_regions: int = 0
    region_count: int = 0
    transaction_count: int = 0


@dataclass(frozen=True)
class ReconciliationResult:
    """Terminal artifact of one reconciliation run"""

    regions: Tuple[RegionAggregate, ...]
    grand: GrandTotals
    discrepancies: Tuple[DiscrepancyEntry, ...]
    reported_totals: ReportedTotals
    summary_comparison: DiscrepancyEntry
    line_discrepancies: Tuple[LineDiscrepancy, ...] = ()
    rows_read: int = 0
    rows_dropped: int = 0
    source: str = ""

    @property
    def flagged(self) -> List[DiscrepancyEntry]:
        return [d for d in self.discrepancies if d.is_discrepancy]

    def commission_breakdown(self) -> Dict[str, Decimal]:
        """Recomputed commission by product class plus bonuses"""
        totals = {pc.label: ZERO for pc in ProductClass}
        for region in self.regions:
            for pc, amount in region.commission_by_class().items():
                totals[pc.label] += amount
        totals["bonus"] = self.grand.bonus
        return totals

    def reported_breakdown(self) -> Dict[str, Optional[Decimal]]:
        reported = self.reported_totals
        return {
            ProductClass.REPEAT.label: reported.repeat_commission.value,
            ProductClass.NEW.label: reported.new_commission.value,
            ProductClass.INCENTIVE.label: reported.incentive_commission.value,
            "bonus": reported.state_bonus.value,
        }

    def to_dict(self) -> Dict:
        """JSON-friendly view; Decimals become strings so nothing is rounded"""

        def money(value):
            return None if value is None else str(value)

        def reported_field(f: ReportedField) -> Dict:
            return {
                "value": money(f.value),
                "found": f.found,
                "heuristic": f.heuristic,
                "cell": f.cell_reference,
                "label": f.label,
            }

        def entry(d: DiscrepancyEntry) -> Dict:
            return {
                "region": d.region,
                "recomputed_total": money(d.recomputed_total),
                "reported_total": money(d.reported_total),
                "delta": money(d.delta),
                "classification": d.classification.value,
                "reported_cell": d.reported_cell,
                "heuristic": d.heuristic,
            }

        return {
            "source": self.source,
            "rows_read": self.rows_read,
            "rows_dropped": self.rows_dropped,
            "regions": [
                {
                    "region": r.region,
                    "tier": r.tier.name,
                    "total_sales": money(r.total_sales),
                    "recomputed_commission": money(r.recomputed_commission),
                    "bonus": money(r.bonus),
                    "total_with_bonus": money(r.total_with_bonus),
                    "reported_line_commission": money(r.reported_line_commission),
                    "transactions": len(r.lines),
                }
                for r in self.regions
            ],
            "grand": {k: (money(v) if isinstance(v, Decimal) else v) for k, v in vars(self.grand).items()},
            "discrepancies": [entry(d) for d in self.discrepancies],
            "summary_comparison": entry(self.summary_comparison),
            "line_discrepancies": [
                {
                    "region": ld.region,
                    "row": ld.row_number,
                    "invoice": ld.invoice_id,
                    "item": ld.item_code,
                    "product_class": ld.product_class.label,
                    "recomputed": money(ld.recomputed_commission),
                    "reported": money(ld.reported_commission),
                    "delta": money(ld.delta),
                    "classification": ld.classification.value,
                }
                for ld in self.line_discrepancies
            ],
            "reported_totals": {
                **{name: reported_field(f) for name, f in self.reported_totals.fields().items()},
                "heuristic_commission": reported_field(self.reported_totals.heuristic_commission),
                "regions": {k: reported_field(v) for k, v in self.reported_totals.regions.items()},
            },
            "commission_breakdown": {k: money(v) for k, v in self.commission_breakdown().items()},
        }
