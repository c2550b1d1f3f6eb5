"""
Field Extractor

Purpose: Turn detail-sheet rows into Transactions
- Column names vary between payers, so each semantic field is resolved from an
  ordered list of header aliases (first alias that matches wins)
- Headers are compared after normalization (lower-case, alphanumerics only);
  a fuzzywuzzy ratio is the fallback when no alias matches exactly
- Numeric cells are parsed tolerantly; bad cells count as 0
- Rows without a region or with non-positive sales are dropped, not raised
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from fuzzywuzzy import fuzz
from loguru import logger

from .models import ProductClass, Transaction
from .parsing import (
    ZERO,
    cell_text,
    is_blank,
    normalize_label,
    parse_flag,
    parse_money,
    parse_rate,
)

# Ordered: more specific aliases first
FIELD_ALIASES: Dict[str, List[str]] = {
    "region": ["ship to state", "shiptostate", "ship_to_state", "bill to state", "billing state",
               "ship state", "state", "st", "region"],
    "invoice_id": ["invoice no", "invoice number", "invoice #", "invoice"],
    "item_code": ["item code", "item number", "item", "sku", "part"],
    "customer_id": ["customer no", "customer number", "customer id", "customer"],
    "sales_amount": ["total discounted revenue", "total revenue", "line subtotal", "subtotal",
                     "net amount", "line total", "extended price", "revenue", "amount", "total"],
    "quantity": ["quantity shipped", "quantity", "qty"],
    "unit_price": ["unit price", "price"],
    "line_discount": ["line discount amt", "line discount", "discount"],
    "repeat_commission": ["repeat product commission", "repeat commission"],
    "new_commission": ["new product commission", "new commission"],
    "new_product_sales": ["customer current period new product sales", "current period new product sales",
                          "new product sales"],
    "incentive_commission": ["incentive product commission", "incentive commission"],
    "incentive_flag": ["is incentivized", "incentivized", "on incentive list", "is incentive", "incentive"],
    "incentive_rate_override": ["incentive rate override", "incent rate", "incentive rate"],
    "purchase_type": ["purchase type", "new repeat", "new/repeat", "is new"],
    "reported_commission": ["total commission", "commission"],
}

NEW_PURCHASE_TYPES = {"new", "true", "yes", "1"}
REPEAT_PURCHASE_TYPES = {"repeat", "existing"}


def normalize_header(header: Any) -> str:
    return normalize_label(header)


def build_header_map(header_row: Sequence[Any]) -> Dict[str, int]:
    """Literal header text -> column index. Blank headers are skipped; first duplicate wins."""
    header_map: Dict[str, int] = {}
    for idx, header in enumerate(header_row):
        if is_blank(header):
            continue
        key = str(header).strip()
        header_map.setdefault(key, idx)
    return header_map


class FieldExtractor:
    """Resolve semantic fields from one sheet's header map"""

    def __init__(
        self,
        header_map: Mapping[str, int],
        fuzzy_threshold: int = 92,
        aliases: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.header_map = dict(header_map)
        self.fuzzy_threshold = fuzzy_threshold
        self.aliases = dict(aliases or FIELD_ALIASES)
        self._normalized: List[Tuple[str, int]] = [
            (normalize_header(h), idx) for h, idx in self.header_map.items()
        ]
        self.columns: Dict[str, List[int]] = {
            name: self._resolve_columns(candidates) for name, candidates in self.aliases.items()
        }
        unresolved = [name for name, cols in self.columns.items() if not cols]
        logger.debug(f"Resolved columns: { {k: v for k, v in self.columns.items() if v} }")
        if unresolved:
            logger.debug(f"No column for: {unresolved}")

    def _resolve_columns(self, candidates: Sequence[str]) -> List[int]:
        """Column indexes for a field, in alias priority order"""
        columns: List[int] = []
        for candidate in candidates:
            target = normalize_header(candidate)
            for norm, idx in self._normalized:
                if norm == target and idx not in columns:
                    columns.append(idx)
        if columns or not self.fuzzy_threshold:
            return columns

        for candidate in candidates:
            target = normalize_header(candidate)
            best_idx, best_score = None, 0
            for norm, idx in self._normalized:
                score = fuzz.ratio(target, norm)
                if score >= self.fuzzy_threshold and score > best_score:
                    best_idx, best_score = idx, score
            if best_idx is not None:
                logger.debug(f"Fuzzy header match: '{candidate}' -> column {best_idx} ({best_score})")
                return [best_idx]
        return columns

    def has_field(self, name: str) -> bool:
        return bool(self.columns.get(name))

    def get(self, row: Sequence[Any], name: str) -> Any:
        """First non-blank cell among the field's columns, or None"""
        for idx in self.columns.get(name, []):
            if idx < len(row) and not is_blank(row[idx]):
                return row[idx]
        return None

    def _sales_amount(self, row: Sequence[Any]):
        raw = self.get(row, "sales_amount")
        if raw is not None:
            return parse_money(raw)
        # no revenue column on this row: quantity * unit price - discount
        quantity = parse_money(self.get(row, "quantity"))
        unit_price = parse_money(self.get(row, "unit_price"))
        discount = parse_money(self.get(row, "line_discount"))
        return quantity * unit_price - discount

    def classify(self, row: Sequence[Any]) -> ProductClass:
        """Collect every product-class signal on the row and keep the highest ranked"""
        signals = set()

        if parse_flag(self.get(row, "incentive_flag")) or parse_money(self.get(row, "incentive_commission")) > 0:
            signals.add(ProductClass.INCENTIVE)

        purchase_type = cell_text(self.get(row, "purchase_type")).lower()
        if (
            parse_money(self.get(row, "new_commission")) > 0
            or parse_flag(self.get(row, "new_product_sales"))
            or purchase_type in NEW_PURCHASE_TYPES
        ):
            signals.add(ProductClass.NEW)

        if parse_money(self.get(row, "repeat_commission")) > 0 or purchase_type in REPEAT_PURCHASE_TYPES:
            signals.add(ProductClass.REPEAT)

        if not signals:
            return ProductClass.REPEAT
        return min(signals, key=lambda pc: pc.precedence)

    def extract(self, row: Sequence[Any], row_number: Optional[int] = None) -> Optional[Transaction]:
        """Build a Transaction from a row, or None when the row is unusable"""
        region = cell_text(self.get(row, "region"))
        if not region:
            return None

        sales = self._sales_amount(row)
        if sales <= ZERO:
            return None

        return Transaction(
            region=region,
            sales_amount=sales,
            product_class=self.classify(row),
            reported_commission=parse_money(self.get(row, "reported_commission")),
            invoice_id=cell_text(self.get(row, "invoice_id")),
            item_code=cell_text(self.get(row, "item_code")),
            customer_id=cell_text(self.get(row, "customer_id")),
            incentive_rate_override=parse_rate(self.get(row, "incentive_rate_override")),
            row_number=row_number,
        )

    def extract_all(self, rows: Sequence[Sequence[Any]], first_row_number: int = 2) -> Tuple[List[Transaction], int]:
        """Extract every row; returns (transactions, dropped_count)"""
        transactions: List[Transaction] = []
        dropped = 0
        for offset, row in enumerate(rows):
            txn = self.extract(row, row_number=first_row_number + offset)
            if txn is None:
                dropped += 1
                logger.debug(f"Dropped detail row {first_row_number + offset}: no region or no sales")
                continue
            transactions.append(txn)
        logger.info(f"✅ Extracted {len(transactions):,} transactions ({dropped:,} rows dropped)")
        return transactions, dropped


def extract_transaction(
    row: Sequence[Any], header_map: Mapping[str, int], fuzzy_threshold: int = 92
) -> Optional[Transaction]:
    """One-off extraction; build a FieldExtractor once per sheet for bulk work"""
    return FieldExtractor(header_map, fuzzy_threshold=fuzzy_threshold).extract(row)
