"""
Commission reconciliation engine.

Recomputes tiered sales commission from a payer's detail sheet, aggregates it
by region, and compares it against the payer's own summary figures.
"""

from .aggregator import aggregate_by_region
from .config import get_default_config, load_config
from .errors import (
    CommissionReconError,
    InputTooLargeError,
    PolicyConfigError,
    WorkbookReadError,
    WorkbookStructureError,
)
from .field_extractor import FieldExtractor, build_header_map, extract_transaction
from .models import (
    Classification,
    CommissionTier,
    DiscrepancyEntry,
    GrandTotals,
    LineDiscrepancy,
    ProcessedLine,
    ProductClass,
    ReconciliationResult,
    RegionAggregate,
    ReportedField,
    ReportedTotals,
    TotalSignal,
    Transaction,
)
from .pipeline import combine_region_totals, reconcile_workbook, run_reconciliation
from .policy import CommissionPolicy
from .processor import process_line
from .reconciler import TOLERANCE, classify, reconcile
from .summary_extractor import SUMMARY_RULES, SummaryExtractor, SummaryRule

__version__ = "1.0.0"
