"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from worksheet_grader.config import Settings, get_settings
from worksheet_grader.models import Worksheet


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Keep the cached global settings away from the real environment."""
    for name in ("DEFAULT_PASS_SCORE", "SIMILARITY_THRESHOLD", "LOG_LEVEL"):
        monkeypatch.delenv(f"WORKSHEET_GRADER_{name}", raising=False)
    monkeypatch.setenv("WORKSHEET_GRADER_OUTPUT_DIRECTORY", str(tmp_path / "output"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with explicit values."""
    return Settings(
        default_pass_score=70,
        similarity_threshold=0.8,
        log_level="INFO",
        output_directory=temp_dir / "output",
    )


# ==============================================================================
# Sample Worksheet Fixtures
# ==============================================================================


@pytest.fixture
def sample_worksheet_data() -> dict[str, Any]:
    """A worksheet in its wire (camelCase) form, one question of each type."""
    return {
        "id": "ws-geo-1",
        "title": "European Capitals",
        "passScore": 70,
        "questions": [
            {
                "id": "q1",
                "type": "multiple-choice",
                "text": "What is the capital of France?",
                "options": ["London", "Paris", "Rome"],
                "correctAnswer": 1,
                "points": 10,
            },
            {
                "id": "q2",
                "type": "checkbox",
                "text": "Which cities are capitals?",
                "options": ["Madrid", "Milan", "Berlin", "Munich"],
                "correctAnswers": [0, 2],
                "points": 10,
            },
            {
                "id": "q3",
                "type": "short-answer",
                "text": "Name the capital of France.",
                "correctAnswer": "Paris",
                "points": 10,
            },
            {
                "id": "q4",
                "type": "matching",
                "text": "Match each country to its capital.",
                "pairs": [
                    {"left": "France", "right": "Paris"},
                    {"left": "Italy", "right": "Rome"},
                    {"left": "Spain", "right": "Madrid"},
                ],
                "points": 9,
            },
            {
                "id": "q5",
                "type": "ordering",
                "text": "Order these steps.",
                "correctOrder": [1, 2, 3],
                "points": 10,
            },
        ],
    }


@pytest.fixture
def sample_worksheet(sample_worksheet_data: dict[str, Any]) -> Worksheet:
    """The sample worksheet as a model."""
    return Worksheet.model_validate(sample_worksheet_data)


@pytest.fixture
def perfect_answers() -> dict[str, Any]:
    """Answers that are fully correct for the sample worksheet."""
    return {
        "q1": 1,
        "q2": [2, 0],
        "q3": "paris",
        "q4": {"France": "Paris", "Italy": "Rome", "Spain": "Madrid"},
        "q5": [1, 2, 3],
    }


@pytest.fixture
def partial_answers() -> dict[str, Any]:
    """
    Answers with a mix of outcomes.

    q1 wrong (0), q2 incomplete (0), q3 near match (8, review),
    q4 two of three pairs (6), q5 one of two adjacent pairs (5): 19/49.
    """
    return {
        "q1": 0,
        "q2": [0],
        "q3": "Pariss",
        "q4": {"France": "Paris", "Italy": "Rome", "Spain": "Lisbon"},
        "q5": [1, 3, 2],
    }


# ==============================================================================
# File Fixtures
# ==============================================================================


@pytest.fixture
def worksheet_file(temp_dir: Path, sample_worksheet_data: dict[str, Any]) -> Path:
    """Write the sample worksheet to a JSON file."""
    file_path = temp_dir / "worksheet.json"
    file_path.write_text(json.dumps(sample_worksheet_data), encoding="utf-8")
    return file_path


@pytest.fixture
def answers_file(temp_dir: Path, partial_answers: dict[str, Any]) -> Path:
    """Write the partial answer set to a JSON file."""
    file_path = temp_dir / "answers.json"
    file_path.write_text(json.dumps(partial_answers), encoding="utf-8")
    return file_path


@pytest.fixture
def empty_file(temp_dir: Path) -> Path:
    """Create an empty file."""
    file_path = temp_dir / "empty.json"
    file_path.write_text("", encoding="utf-8")
    return file_path
