"""
Workbook Adapter

Purpose: Decode a commission workbook into plain in-memory grids
- Finds the detail and summary sheets by name
- Enforces file-size and row-count admission limits before any processing
- Cells come back as raw values (None for empty); nothing is interpreted here
"""

import math
import os
import zipfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from loguru import logger
from openpyxl.utils.exceptions import InvalidFileException

from .errors import InputTooLargeError, WorkbookReadError, WorkbookStructureError
from .parsing import is_blank

Grid = List[List[Any]]


@dataclass(frozen=True)
class WorkbookGrids:
    path: str
    sheet_names: List[str]
    detail_sheet: str
    summary_sheet: str
    detail_header: List[Any]
    detail_rows: Grid
    summary_grid: Grid
    first_data_row: int = 2


def find_sheet(sheet_names: Sequence[str], tokens: Sequence[str]) -> Optional[str]:
    """Exact (case-insensitive) name first, then containment, token by token"""
    for token in tokens:
        token = token.lower().strip()
        for name in sheet_names:
            if name.lower().strip() == token:
                return name
        for name in sheet_names:
            if token in name.lower():
                return name
    return None


def frame_to_grid(df: pd.DataFrame) -> Grid:
    grid = []
    for row in df.itertuples(index=False, name=None):
        grid.append([None if (isinstance(v, float) and math.isnan(v)) else v for v in row])
    return grid


def check_file_size(path: str, max_file_size_mb: float) -> None:
    size = os.path.getsize(path)
    limit = int(max_file_size_mb * 1024 * 1024)
    if size > limit:
        raise InputTooLargeError(
            f"File size ({size:,} bytes) exceeds maximum allowed size ({limit:,} bytes): {path}"
        )


def split_header(grid: Grid):
    """First non-empty row is the header; returns (header_index, header, data_rows)"""
    for idx, row in enumerate(grid):
        if any(not is_blank(v) for v in row):
            return idx, list(row), [list(r) for r in grid[idx + 1:]]
    return 0, [], []


def read_workbook(path: str, cfg: Dict) -> WorkbookGrids:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    limits = cfg.get("limits") or {}
    sheets_cfg = cfg.get("sheets") or {}
    check_file_size(path, float(limits.get("max_file_size_mb", 50)))

    try:
        frames: Dict[str, pd.DataFrame] = pd.read_excel(path, sheet_name=None, header=None, dtype=object)
    except (ValueError, OSError, zipfile.BadZipFile, InvalidFileException) as e:
        raise WorkbookReadError(path, e) from e
    sheet_names = list(frames.keys())
    logger.info(f"Reading {os.path.basename(path)}: sheets {sheet_names}")

    detail_name = find_sheet(sheet_names, sheets_cfg.get("detail_names") or ["detail"])
    summary_name = find_sheet(sheet_names, sheets_cfg.get("summary_names") or ["summary"])
    missing = []
    if detail_name is None:
        missing.append("detail")
    if summary_name is None:
        missing.append("summary")
    if missing:
        raise WorkbookStructureError(missing, sheet_names)

    header_idx, header, rows = split_header(frame_to_grid(frames[detail_name]))
    max_rows = int(limits.get("max_rows", 50000))
    if len(rows) > max_rows:
        raise InputTooLargeError(
            f"Sheet {detail_name} contains {len(rows):,} rows, exceeding maximum of {max_rows:,}"
        )

    logger.info(f"Using detail sheet '{detail_name}' ({len(rows):,} rows), summary sheet '{summary_name}'")
    return WorkbookGrids(
        path=path,
        sheet_names=sheet_names,
        detail_sheet=detail_name,
        summary_sheet=summary_name,
        detail_header=header,
        detail_rows=rows,
        summary_grid=frame_to_grid(frames[summary_name]),
        first_data_row=header_idx + 2,
    )
