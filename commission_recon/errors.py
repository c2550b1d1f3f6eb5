"""
Errors raised by the commission reconciliation engine.

Row-level defects (blank region, non-positive sales, unreadable numbers) are
never raised; they are skipped or zeroed while the run continues.
"""


class CommissionReconError(Exception):
    """Base class for all reconciliation errors"""


class WorkbookStructureError(CommissionReconError):
    """A required sheet is missing from the workbook"""

    def __init__(self, missing, sheet_names):
        self.missing = list(missing)
        self.sheet_names = list(sheet_names)
        found = ", ".join(self.sheet_names) if self.sheet_names else "(no sheets)"
        super().__init__(
            f"Required sheets not found: {', '.join(self.missing)}. Found: {found}"
        )


class PolicyConfigError(CommissionReconError):
    """Commission tier table leaves a gap, overlaps, or carries bad values"""


class InputTooLargeError(CommissionReconError):
    """Input exceeds the configured admission limits"""


class WorkbookReadError(CommissionReconError):
    """The file could not be decoded as an Excel workbook"""

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Could not read workbook {path}: {reason}")
