"""
Output Module.

Report generation and audit trail persistence.
"""

from worksheet_grader.output.audit import AuditTrail
from worksheet_grader.output.report import ReportFormat, ReportGenerator

__all__ = [
    "AuditTrail",
    "ReportFormat",
    "ReportGenerator",
]
