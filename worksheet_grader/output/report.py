"""
Report generation for grading results.

Renders a GradingResult (and optionally its audit record) as JSON, CSV
or Markdown.
"""

import csv
import io
import json
from enum import Enum
from pathlib import Path

from worksheet_grader.models import AuditRecord, GradingResult


class ReportFormat(str, Enum):
    """Supported report formats."""

    JSON = "json"
    CSV = "csv"
    MARKDOWN = "markdown"


_SUFFIX_FORMATS: dict[str, ReportFormat] = {
    ".json": ReportFormat.JSON,
    ".csv": ReportFormat.CSV,
    ".md": ReportFormat.MARKDOWN,
    ".markdown": ReportFormat.MARKDOWN,
}


def _mark(value: bool | None) -> str:
    if value is None:
        return "-"
    return "yes" if value else "no"


class ReportGenerator:
    """Generates and saves grading reports."""

    def generate(
        self,
        result: GradingResult,
        audit: AuditRecord | None = None,
        format: ReportFormat = ReportFormat.JSON,
    ) -> str:
        """
        Render a report.

        Args:
            result: The grading result.
            audit: Optional audit record to include.
            format: Output format.

        Returns:
            The report text.
        """
        if format == ReportFormat.CSV:
            return self._to_csv(result)
        if format == ReportFormat.MARKDOWN:
            return self._to_markdown(result, audit)
        return self._to_json(result, audit)

    def save(
        self,
        result: GradingResult,
        output_path: Path,
        audit: AuditRecord | None = None,
        format: ReportFormat | None = None,
    ) -> Path:
        """
        Write a report to disk.

        The format is taken from the file suffix when not given explicitly,
        falling back to JSON.

        Returns:
            The path written.
        """
        if format is None:
            format = _SUFFIX_FORMATS.get(output_path.suffix.lower(), ReportFormat.JSON)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate(result, audit, format), encoding="utf-8")
        return output_path

    def _to_json(self, result: GradingResult, audit: AuditRecord | None) -> str:
        payload = {
            "grading_result": result.model_dump(mode="json", by_alias=True),
            "audit": audit.model_dump(mode="json") if audit else None,
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def _to_csv(self, result: GradingResult) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(
            ["Question", "Type", "Correct", "Points Earned", "Max Points", "Manual Review", "Feedback"]
        )
        for entry in result.feedback:
            writer.writerow(
                [
                    entry.question_id,
                    entry.question_type,
                    _mark(entry.correct),
                    entry.points_earned,
                    entry.max_points,
                    _mark(entry.requires_manual_review),
                    entry.feedback,
                ]
            )
        writer.writerow(
            ["TOTAL", "", "", result.score, result.max_score, _mark(result.requires_manual_review), f"{result.percentage}%"]
        )
        return buffer.getvalue()

    def _to_markdown(self, result: GradingResult, audit: AuditRecord | None) -> str:
        lines = [
            "# Grading Report",
            "",
            "## Summary",
            "",
            f"- **Score:** {result.score} / {result.max_score} ({result.percentage}%)",
            f"- **Pass score:** {result.pass_score}%",
            f"- **Result:** {'PASSED' if result.passed else 'NOT PASSED'}",
        ]
        if result.requires_manual_review:
            lines.append("- **Manual review required**")

        lines += [
            "",
            "## Questions",
            "",
            "| Question | Type | Correct | Points | Review | Feedback |",
            "|---|---|---|---|---|---|",
        ]
        for entry in result.feedback:
            text = entry.feedback.replace("|", "\\|")
            lines.append(
                f"| {entry.question_id} | {entry.question_type} | {_mark(entry.correct)} "
                f"| {entry.points_earned}/{entry.max_points} "
                f"| {_mark(entry.requires_manual_review)} | {text} |"
            )

        if audit:
            lines += [
                "",
                "## Audit",
                "",
                f"- Audit id: `{audit.audit_id}`",
                f"- Worksheet hash: `{audit.worksheet_hash}`",
                f"- Answers hash: `{audit.answers_hash}`",
                f"- Result hash: `{audit.result_hash}`",
            ]

        return "\n".join(lines) + "\n"
