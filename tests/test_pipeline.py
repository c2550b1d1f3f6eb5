from decimal import Decimal

import pandas as pd
import pytest

from commission_recon.errors import InputTooLargeError, WorkbookReadError, WorkbookStructureError
from commission_recon.models import Classification
from commission_recon.pipeline import combine_region_totals, reconcile_workbook, run_reconciliation
from commission_recon.workbook import find_sheet, read_workbook, split_header

DETAIL_HEADER = ["Invoice No", "ShipToState", "Total Revenue", "Repeat Product Commission", "Total Commission"]
DETAIL_ROWS = [
    ["INV-1", "TX", 5000, 50, 50],
    ["INV-2", "TX", "3,000.00", 30, 30],
    ["INV-3", "TX", 2000, 20, 20],
]
SUMMARY_GRID = [
    ["COMMISSION SUMMARY", None],
    ["Final Commission", 150],
]


def write_workbook(path, detail_rows=DETAIL_ROWS, summary_grid=SUMMARY_GRID, detail_sheet="COMMISSION DETAIL",
                   summary_sheet="COMMISSION SUMMARY"):
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(detail_rows, columns=DETAIL_HEADER).to_excel(writer, sheet_name=detail_sheet, index=False)
        if summary_sheet:
            pd.DataFrame(summary_grid).to_excel(writer, sheet_name=summary_sheet, index=False, header=False)
    return str(path)


def test_run_reconciliation_end_to_end(cfg):
    result = run_reconciliation(DETAIL_HEADER, DETAIL_ROWS, SUMMARY_GRID, cfg=cfg, source="adam.xlsx")
    [tx] = result.regions
    assert tx.total_sales == Decimal("10000")
    assert tx.total_with_bonus == Decimal("200")
    assert result.summary_comparison.delta == Decimal("50")
    assert result.summary_comparison.classification is Classification.UNDERPAID
    assert result.rows_read == 3
    assert result.rows_dropped == 0
    assert result.source == "adam.xlsx"
    # lines were reported at 1%: no line-level disagreement
    assert result.line_discrepancies == ()


def test_run_reconciliation_is_deterministic(cfg):
    first = run_reconciliation(DETAIL_HEADER, DETAIL_ROWS, SUMMARY_GRID, cfg=cfg)
    second = run_reconciliation(DETAIL_HEADER, DETAIL_ROWS, SUMMARY_GRID, cfg=cfg)
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_dropped_rows_are_counted(cfg):
    rows = DETAIL_ROWS + [["INV-4", None, 100, 1, 1], ["INV-5", "TX", "n/a", 0, 0]]
    result = run_reconciliation(DETAIL_HEADER, rows, SUMMARY_GRID, cfg=cfg)
    assert result.rows_read == 5
    assert result.rows_dropped == 2
    assert result.grand.transaction_count == 3


def test_row_limit(cfg):
    cfg["limits"]["max_rows"] = 2
    with pytest.raises(InputTooLargeError):
        run_reconciliation(DETAIL_HEADER, DETAIL_ROWS, SUMMARY_GRID, cfg=cfg)


def test_workbook_roundtrip(tmp_path, cfg):
    path = write_workbook(tmp_path / "ADAM_OCT2024.xlsx")
    result = reconcile_workbook(path, cfg)
    assert result.grand.total_sales == Decimal("10000")
    assert result.grand.total_with_bonus == Decimal("200")
    assert result.reported_totals.final_commission.value == Decimal("150")
    assert result.summary_comparison.delta == Decimal("50")
    assert result.source == path


def test_read_workbook_finds_sheets(tmp_path, cfg):
    grids = read_workbook(write_workbook(tmp_path / "book.xlsx"), cfg)
    assert grids.detail_sheet == "COMMISSION DETAIL"
    assert grids.summary_sheet == "COMMISSION SUMMARY"
    assert grids.detail_header == DETAIL_HEADER
    assert len(grids.detail_rows) == 3


def test_missing_summary_sheet(tmp_path, cfg):
    path = write_workbook(tmp_path / "book.xlsx", detail_sheet="Detail", summary_sheet=None)
    with pytest.raises(WorkbookStructureError) as excinfo:
        read_workbook(path, cfg)
    assert excinfo.value.missing == ["summary"]
    assert excinfo.value.sheet_names == ["Detail"]
    assert "Found: Detail" in str(excinfo.value)


def test_missing_file(tmp_path, cfg):
    with pytest.raises(FileNotFoundError):
        read_workbook(str(tmp_path / "missing.xlsx"), cfg)


def test_file_size_limit(tmp_path, cfg):
    cfg["limits"]["max_file_size_mb"] = 0.000001
    with pytest.raises(InputTooLargeError):
        read_workbook(write_workbook(tmp_path / "book.xlsx"), cfg)


def test_workbook_row_limit(tmp_path, cfg):
    path = write_workbook(tmp_path / "book.xlsx")
    cfg["limits"]["max_rows"] = 1
    with pytest.raises(InputTooLargeError):
        read_workbook(path, cfg)


def test_find_sheet_prefers_exact_name():
    names = ["Detail Notes", "detail", "Summary 2024"]
    assert find_sheet(names, ["detail"]) == "detail"
    assert find_sheet(names, ["summary"]) == "Summary 2024"
    assert find_sheet(names, ["totals"]) is None


def test_split_header_skips_leading_blank_rows():
    idx, header, rows = split_header([[None, None], ["State", "Revenue"], ["TX", 5]])
    assert idx == 1
    assert header == ["State", "Revenue"]
    assert rows == [["TX", 5]]


def test_combine_region_totals(cfg):
    first = run_reconciliation(DETAIL_HEADER, DETAIL_ROWS, SUMMARY_GRID, cfg=cfg)
    second = run_reconciliation(DETAIL_HEADER, [["INV-9", "CA", 500, 10, 10], ["INV-10", "TX", 100, 2, 2]],
                                SUMMARY_GRID, cfg=cfg)
    rollups = combine_region_totals([first, second])
    assert [r.region for r in rollups] == ["CA", "TX"]
    tx = rollups[1]
    assert tx.files == 2
    assert tx.total_sales == Decimal("10100")
    assert tx.bonus == Decimal("100")
    assert tx.total_with_bonus == Decimal("202")


def test_unreadable_workbook(tmp_path, cfg):
    path = tmp_path / "corrupt.xlsx"
    path.write_text("this is not a spreadsheet")
    with pytest.raises(WorkbookReadError) as excinfo:
        read_workbook(str(path), cfg)
    assert "corrupt.xlsx" in str(excinfo.value)
