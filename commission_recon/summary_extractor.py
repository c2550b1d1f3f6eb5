"""
Summary Extractor

Purpose: Read the payer's reported totals from an unstructured summary sheet
- A rule table maps label patterns to fields; one generic evaluator applies it
- A label's value is the first positive number among its adjacent cells,
  searched in the rule's offset order
- Labels match by substring over normalized text
- When no labelled total exists, a magnitude-window scan supplies a guess that
  is flagged heuristic and never marked found
- An optional per-region table (region column + total column) is read too
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from loguru import logger

from .models import ReportedField, ReportedTotals, TotalSignal
from .parsing import cell_reference, cell_text, is_blank, normalize_label, parse_number

Grid = Sequence[Sequence[Any]]
Cell = Tuple[int, int]

# right, two right, down, diagonal down-right, left
ADJACENT_OFFSETS: Tuple[Cell, ...] = ((0, 1), (0, 2), (1, 0), (1, 1), (0, -1))


@dataclass(frozen=True)
class SummaryRule:
    field: str
    patterns: Tuple[str, ...]
    offsets: Tuple[Cell, ...] = ADJACENT_OFFSETS

    def matches(self, normalized_text: str) -> bool:
        return any(normalize_label(p) in normalized_text for p in self.patterns)


# Evaluated top to bottom; the first rule that matches a cell claims it
SUMMARY_RULES: Tuple[SummaryRule, ...] = (
    SummaryRule("final_commission", ("final commission", "total commission amount", "commission total")),
    SummaryRule("sum_of_commission", ("sum of total commission", "sum of commission", "total commission")),
    SummaryRule("amount_due_to_payee", ("amount due salesperson", "amount due to salesperson",
                                        "salesperson amount due", "amount due")),
    SummaryRule("repeat_commission", ("repeat product commission", "repeat commission")),
    SummaryRule("new_commission", ("new product commission", "new commission")),
    SummaryRule("incentive_commission", ("incentive product commission", "incentive commission")),
    SummaryRule("state_bonus", ("additional state commission", "state bonus")),
    SummaryRule("total_revenue", ("total revenue", "gross revenue")),
)

COMMISSION_CONTEXT_WORDS = ("commission", "due", "amount", "total", "pay", "owed")

REGION_HEADERS = ("state", "region", "st", "shiptostate", "billtostate")
REGION_TOTAL_HEADERS = ("totalwithbonus", "total", "commissiontotal", "paid", "amount")


def _cell(grid: Grid, r: int, c: int) -> Any:
    if r < 0 or c < 0 or r >= len(grid):
        return None
    row = grid[r]
    if row is None or c >= len(row):
        return None
    return row[c]


class SummaryExtractor:
    """Stateless; build once with the rule table and heuristic window"""

    def __init__(
        self,
        rules: Sequence[SummaryRule] = SUMMARY_RULES,
        heuristic_min: Decimal = Decimal("100"),
        heuristic_max: Decimal = Decimal("10000"),
    ):
        self.rules = tuple(rules)
        self.heuristic_min = Decimal(str(heuristic_min))
        self.heuristic_max = Decimal(str(heuristic_max))

    @classmethod
    def from_config(cls, cfg: Dict) -> "SummaryExtractor":
        section = cfg.get("summary") or {}
        return cls(
            heuristic_min=Decimal(str(section.get("heuristic_min", 100))),
            heuristic_max=Decimal(str(section.get("heuristic_max", 10000))),
        )

    # ------------------------------------------------------------------
    def extract(self, grid: Grid) -> ReportedTotals:
        table_rows, regions = self.extract_regions(grid)
        found: Dict[str, ReportedField] = {}
        used: Set[Cell] = set()
        region_header_row = table_rows.start if table_rows else None

        for r, row in enumerate(grid):
            if not row or r == region_header_row:
                continue
            for c, value in enumerate(row):
                if is_blank(value) or parse_number(value) is not None:
                    continue
                text = normalize_label(value)
                rule = next((rule for rule in self.rules if rule.matches(text)), None)
                if rule is None or rule.field in found:
                    continue
                hit = self._adjacent_value(grid, r, c, rule.offsets)
                if hit is None:
                    logger.debug(f"Label '{cell_text(value)}' at {cell_reference(r, c)} has no adjacent value")
                    continue
                amount, (vr, vc) = hit
                used.add((vr, vc))
                found[rule.field] = ReportedField(
                    value=amount,
                    found=True,
                    cell_reference=cell_reference(vr, vc),
                    label=cell_text(value),
                )
                logger.debug(f"{rule.field}: {amount} ({cell_reference(vr, vc)})")

        totals = ReportedTotals(**found, regions=regions)

        if not any(getattr(totals, s.field_name).found for s in TotalSignal):
            guess = self._heuristic_commission(grid, used, table_rows)
            if guess.available:
                logger.warning(
                    f"⚠️ No labelled commission total; heuristic guess {guess.value} at {guess.cell_reference}"
                )
                totals = replace(totals, heuristic_commission=guess)
            else:
                logger.warning("⚠️ No commission total found on summary sheet")

        labelled = [f"{name}={f.value} ({f.cell_reference})" for name, f in totals.fields().items() if f.found]
        logger.info(f"Summary values found: {labelled or 'none'}")
        return totals

    # ------------------------------------------------------------------
    def _adjacent_value(self, grid: Grid, r: int, c: int, offsets) -> Optional[Tuple[Decimal, Cell]]:
        for dr, dc in offsets:
            number = parse_number(_cell(grid, r + dr, c + dc))
            if number is not None and number > 0:
                return number, (r + dr, c + dc)
        return None

    def _heuristic_commission(self, grid: Grid, used: Set[Cell], skip_rows: Optional[range] = None) -> ReportedField:
        """Largest in-window number, preferring rows that talk about commission"""
        with_context: List[Tuple[Decimal, Cell]] = []
        anywhere: List[Tuple[Decimal, Cell]] = []

        for r, row in enumerate(grid):
            if not row or (skip_rows is not None and r in skip_rows):
                continue
            for c, value in enumerate(row):
                if (r, c) in used:
                    continue
                number = parse_number(value)
                if number is None or not (self.heuristic_min <= number <= self.heuristic_max):
                    continue
                anywhere.append((number, (r, c)))
                context = " ".join(
                    cell_text(row[i]).lower() for i in range(max(0, c - 2), min(len(row), c + 3)) if i != c
                )
                if any(word in context for word in COMMISSION_CONTEXT_WORDS):
                    with_context.append((number, (r, c)))

        candidates = with_context or anywhere
        if not candidates:
            return ReportedField.missing()
        # max() keeps the first of equal values, i.e. scan order
        number, (r, c) = max(candidates, key=lambda item: item[0])
        return ReportedField(
            value=number,
            found=False,
            cell_reference=cell_reference(r, c),
            label="heuristic" if not with_context else "heuristic (commission context)",
            heuristic=True,
        )

    # ------------------------------------------------------------------
    def extract_regions(self, grid: Grid) -> Tuple[Optional[range], Dict[str, ReportedField]]:
        """Per-region totals from a 'State | Total' style table, if the sheet has one.

        Returns the rows the table spans (header included) and the region figures.
        """
        for r, row in enumerate(grid):
            if not row:
                continue
            headers = [normalize_label(v) for v in row]
            region_col = next((i for i, h in enumerate(headers) if h in REGION_HEADERS), None)
            if region_col is None:
                continue
            total_col = None
            for wanted in REGION_TOTAL_HEADERS:
                total_col = next((i for i, h in enumerate(headers) if h == wanted and i != region_col), None)
                if total_col is not None:
                    break
            if total_col is None:
                continue

            regions: Dict[str, ReportedField] = {}
            end = r + 1
            for rr in range(r + 1, len(grid)):
                region = cell_text(_cell(grid, rr, region_col))
                if not region:
                    break
                end = rr + 1
                if "total" in region.lower():
                    continue
                amount = parse_number(_cell(grid, rr, total_col))
                if amount is None or region in regions:
                    continue
                regions[region] = ReportedField(
                    value=amount,
                    found=True,
                    cell_reference=cell_reference(rr, total_col),
                    label=cell_text(row[total_col]),
                )
            logger.info(f"Per-region summary table at row {r + 1}: {len(regions)} regions")
            return range(r, end), regions
        return None, {}


def extract_reported_totals(grid: Grid, heuristic_min=Decimal("100"), heuristic_max=Decimal("10000")) -> ReportedTotals:
    return SummaryExtractor(heuristic_min=heuristic_min, heuristic_max=heuristic_max).extract(grid)
