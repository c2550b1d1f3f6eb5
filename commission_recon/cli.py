"""
Command-line entry point.

Usage:
  commission-recon WORKBOOK [WORKBOOK ...] [-c config.yaml] [-o report.xlsx]

Each workbook needs a sheet whose name contains "detail" (transactions) and
one containing "summary" (the payer's totals). Output is a multi-sheet Excel
report; a failed workbook is logged and the run exits non-zero.
"""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Font, PatternFill

from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import CommissionReconError
from .models import ReconciliationResult
from .pipeline import combine_region_totals, reconcile_workbook
from .policy import CommissionPolicy
from .tables import combined_region_frame, region_coverage_note, result_to_frames

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def setup_logger(log_file: Optional[str] = None, level: str = "INFO") -> Optional[Path]:
    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    if log_file:
        path = Path(log_file)
        logger.add(path, format=LOG_FORMAT, level=level)
        return path
    return None


def export_to_excel(tables: Dict[str, pd.DataFrame], out_path: str) -> None:
    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        for name, df in tables.items():
            if isinstance(df, pd.DataFrame) and not df.empty:
                df.to_excel(writer, sheet_name=name[:31], index=False)
    format_excel(out_path)
    logger.info(f"Exported workbook: {out_path}")


def format_excel(path: str) -> None:
    """Column widths, styled header row, frozen header"""
    workbook = load_workbook(path)
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")

    for worksheet in workbook.worksheets:
        for column in worksheet.columns:
            width = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            worksheet.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

        for cell in worksheet[1]:
            if cell.value:
                cell.fill = header_fill
                cell.font = header_font
                cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        worksheet.freeze_panes = "A2"

    workbook.save(path)


def build_report_tables(results: List[ReconciliationResult]) -> Dict[str, pd.DataFrame]:
    """One set of sheets per workbook (prefixed when several), plus a combined region table"""
    tables: Dict[str, pd.DataFrame] = {}
    multi = len(results) > 1
    for idx, result in enumerate(results, start=1):
        for name, df in result_to_frames(result).items():
            tables[f"{idx}_{name}" if multi else name] = df
    if multi:
        tables["combined_regions"] = combined_region_frame(combine_region_totals(results))
    return tables


def log_result(result: ReconciliationResult) -> None:
    grand = result.grand
    official = result.summary_comparison
    logger.info(f"📊 {os.path.basename(result.source) or 'workbook'}")
    logger.info(f"   Transactions: {grand.transaction_count:,} across {grand.region_count} regions")
    logger.info(f"   Recomputed: ${grand.total_with_bonus:,.2f} "
                f"(commission ${grand.recomputed_commission:,.2f} + bonus ${grand.bonus:,.2f})")
    if official.reported_total is not None:
        tag = " [heuristic]" if official.heuristic else ""
        logger.info(f"   Reported total: ${official.reported_total:,.2f} at {official.reported_cell}{tag}")
    else:
        logger.info("   Reported total: not found")
    logger.info(f"   Difference: ${official.delta:,.2f} ({official.classification.value})")
    for entry in result.flagged:
        logger.info(f"   ⚠️ {entry.region}: delta ${entry.delta:,.2f} ({entry.classification.value})")
    note = region_coverage_note(result)
    if note:
        logger.warning(f"   ⚠️ {note}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Reconcile commission payouts against the tiered commission policy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  commission-recon ADAM_OCT2024.xlsx
  commission-recon jan.xlsx feb.xlsx -c config/commission_policy.yaml -o q1.xlsx
        """,
    )
    parser.add_argument("workbooks", nargs="+", help="Commission workbook(s) with detail and summary sheets")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH, help="YAML config path")
    parser.add_argument("-o", "--output", default=None, help="Output .xlsx path")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logger(args.log_file, level="DEBUG" if args.verbose else "INFO")

    logger.info("=" * 70)
    logger.info(f"🚀 COMMISSION RECONCILIATION - {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 70)

    try:
        cfg = load_config(args.config)
        policy = CommissionPolicy.from_config(cfg)
    except (CommissionReconError, ValueError) as e:
        logger.error(f"❌ Invalid configuration: {e}")
        return 2
    for line in policy.describe():
        logger.info(f"   {line}")

    results: List[ReconciliationResult] = []
    failures = 0
    for path in args.workbooks:
        try:
            result = reconcile_workbook(path, cfg, policy)
        except (CommissionReconError, FileNotFoundError) as e:
            logger.error(f"❌ {path}: {e}")
            failures += 1
            continue
        log_result(result)
        results.append(result)

    if results:
        output = args.output or f"Commission_Reconciliation_{datetime.now().strftime('%m.%d.%Y_%H%M%S')}.xlsx"
        export_to_excel(build_report_tables(results), output)

    logger.info("=" * 70)
    logger.info(f"✅ RECONCILIATION COMPLETE: {len(results)} ok, {failures} failed")
    logger.info("=" * 70)
    return 1 if failures else 0
