"""Domain errors raised by the budget services and translated by the API layer."""
from typing import List, Optional


class AdjustmentError(Exception):
    """A bulk adjustment could not be applied (e.g. the current budget is zero)."""


class ExportValidationError(Exception):
    """Export rejected before layout: no line items or an invalid workbook config."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class ExportInProgressError(Exception):
    """Another export is already being generated; requests are not queued."""


class WorkbookGenerationError(Exception):
    """The workbook could not be serialized. Carries the underlying cause message."""


class ImportValidationError(Exception):
    """Imported rows failed shape validation at the collaborator boundary."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])
