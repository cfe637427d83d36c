"""
Worksheet Processing Module.

Provides parsing and validation of authored worksheets and answer sets.
"""

from worksheet_grader.worksheet.parser import WorksheetParseError, WorksheetParser
from worksheet_grader.worksheet.validator import WorksheetValidationError, WorksheetValidator

__all__ = [
    "WorksheetParseError",
    "WorksheetParser",
    "WorksheetValidationError",
    "WorksheetValidator",
]
