"""
Reconciliation Pipeline

Purpose: Wire the stages together for one workbook
  detail grid -> FieldExtractor -> aggregate_by_region -> reconcile <- SummaryExtractor <- summary grid

Every call builds its own extractors; only the policy (immutable) is shared.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .aggregator import aggregate_by_region
from .config import get_default_config
from .errors import InputTooLargeError
from .field_extractor import FieldExtractor, build_header_map
from .models import ReconciliationResult
from .parsing import ZERO
from .policy import CommissionPolicy
from .reconciler import reconcile
from .summary_extractor import SummaryExtractor
from .workbook import read_workbook


def run_reconciliation(
    detail_header: Sequence[Any],
    detail_rows: Sequence[Sequence[Any]],
    summary_grid: Sequence[Sequence[Any]],
    policy: Optional[CommissionPolicy] = None,
    cfg: Optional[Dict] = None,
    source: str = "",
    first_data_row: int = 2,
) -> ReconciliationResult:
    """Reconcile already-decoded grids; no I/O"""
    cfg = cfg if cfg is not None else get_default_config()
    policy = policy or CommissionPolicy.from_config(cfg)

    max_rows = int((cfg.get("limits") or {}).get("max_rows", 50000))
    if len(detail_rows) > max_rows:
        raise InputTooLargeError(f"{len(detail_rows):,} detail rows exceed maximum of {max_rows:,}")

    threshold = int((cfg.get("extraction") or {}).get("header_fuzzy_threshold", 92) or 0)
    extractor = FieldExtractor(build_header_map(detail_header), fuzzy_threshold=threshold)
    if not extractor.has_field("region"):
        logger.warning("⚠️ No region column found on the detail sheet; every row will be dropped")

    transactions, dropped = extractor.extract_all(detail_rows, first_row_number=first_data_row)
    aggregates = aggregate_by_region(transactions, policy)
    reported = SummaryExtractor.from_config(cfg).extract(summary_grid)

    return reconcile(
        aggregates,
        reported,
        rows_read=len(detail_rows),
        rows_dropped=dropped,
        source=source,
    )


def reconcile_workbook(path: str, cfg: Optional[Dict] = None, policy: Optional[CommissionPolicy] = None) -> ReconciliationResult:
    cfg = cfg if cfg is not None else get_default_config()
    grids = read_workbook(path, cfg)
    return run_reconciliation(
        grids.detail_header,
        grids.detail_rows,
        grids.summary_grid,
        policy=policy,
        cfg=cfg,
        source=path,
        first_data_row=grids.first_data_row,
    )


@dataclass(frozen=True)
class RegionRollup:
    region: str
    total_sales: Decimal
    recomputed_commission: Decimal
    bonus: Decimal
    files: int

    @property
    def total_with_bonus(self) -> Decimal:
        return self.recomputed_commission + self.bonus


def combine_region_totals(results: Sequence[ReconciliationResult]) -> List[RegionRollup]:
    """Sum per-region figures across several workbooks (bonus counted once per file)"""
    combined: Dict[str, Dict[str, Any]] = {}
    for result in results:
        for agg in result.regions:
            entry = combined.setdefault(
                agg.region, {"total_sales": ZERO, "recomputed_commission": ZERO, "bonus": ZERO, "files": 0}
            )
            entry["total_sales"] += agg.total_sales
            entry["recomputed_commission"] += agg.recomputed_commission
            entry["bonus"] += agg.bonus
            entry["files"] += 1
    return [RegionRollup(region=region, **values) for region, values in sorted(combined.items())]
