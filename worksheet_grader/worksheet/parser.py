"""
Worksheet parser module.

Parses raw JSON content into Worksheet models and answer sets. Accepts a
bare worksheet object, one wrapped as ``{"worksheet": ...}``, or the API
envelope ``{"success": true, "data": {"worksheet": ...}}``.
"""

import json
from typing import Any

from pydantic import ValidationError

from worksheet_grader.models import Worksheet


class WorksheetParseError(Exception):
    """Raised when worksheet or answer parsing fails."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number:
            message = f"Line {line_number}: {message}"
        super().__init__(message)


class WorksheetParser:
    """
    Parses worksheet and answer-set documents.

    Answer sets may be either a mapping of question id to answer, or a list
    of ``{"questionId": ..., "answer": ...}`` entries.
    """

    def parse(self, content: str, title: str | None = None) -> Worksheet:
        """
        Parse worksheet content into a Worksheet model.

        Args:
            content: Raw JSON text of the worksheet.
            title: Title to use when the document has none.

        Returns:
            Structured Worksheet object.

        Raises:
            WorksheetParseError: If parsing fails.
        """
        data = self._unwrap(self._load_json(content, "Worksheet"), "worksheet")

        if not isinstance(data, dict):
            raise WorksheetParseError("Worksheet must be a JSON object")

        if not isinstance(data.get("questions"), list):
            raise WorksheetParseError("Worksheet has no 'questions' list")

        if title and not data.get("title"):
            data = {**data, "title": title}

        try:
            return Worksheet.model_validate(data)
        except ValidationError as e:
            raise WorksheetParseError(f"Invalid worksheet: {e}") from e

    def parse_answers(self, content: str) -> dict[str, Any]:
        """
        Parse an answer-set document.

        Args:
            content: Raw JSON text of the answers.

        Returns:
            Mapping of question id to the submitted value.

        Raises:
            WorksheetParseError: If parsing fails.
        """
        data = self._unwrap(self._load_json(content, "Answer set"), "answers")

        if isinstance(data, list):
            return self._answers_from_entries(data)

        if not isinstance(data, dict):
            raise WorksheetParseError("Answer set must be a JSON object or list")

        return {str(question_id): answer for question_id, answer in data.items()}

    def _answers_from_entries(self, entries: list[Any]) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or "questionId" not in entry:
                raise WorksheetParseError(f"answers[{i}] must be an object with a 'questionId'")
            answers[str(entry["questionId"])] = entry.get("answer")
        return answers

    def _load_json(self, content: str, label: str) -> Any:
        if not content or not content.strip():
            raise WorksheetParseError(f"{label} content is empty")

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise WorksheetParseError(f"Invalid JSON: {e.msg}", line_number=e.lineno) from e

    def _unwrap(self, data: Any, key: str) -> Any:
        """Strip the ``data`` envelope and a named wrapper, if present."""
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        # Submission bodies look like {"worksheetId": ..., "answers": ...}
        if isinstance(data, dict) and key in data and "questions" not in data:
            data = data[key]
        return data
