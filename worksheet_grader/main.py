"""
Worksheet Grader CLI Application.

Provides a command-line interface for autograding student answer sets
against worksheet answer keys.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from worksheet_grader.config import get_settings
from worksheet_grader.grading import (
    GradingEngine,
    InvalidInputError,
    get_questions_for_manual_review,
)
from worksheet_grader.loaders import LoadError, load_document
from worksheet_grader.logging_config import configure_logging
from worksheet_grader.models import GradingResult, Worksheet, to_decimal
from worksheet_grader.output import AuditTrail, ReportFormat, ReportGenerator
from worksheet_grader.worksheet import WorksheetParseError, WorksheetParser, WorksheetValidator

# Create Typer app
app = typer.Typer(
    name="worksheet-grader",
    help="Autograde worksheet submissions against their answer keys",
    add_completion=False,
)

console = Console()


@app.callback()
def main() -> None:
    """Autograde worksheet submissions against their answer keys."""
    configure_logging(get_settings().log_level, console=Console(stderr=True))


def _load_submission(worksheet_file: Path, answers_file: Path) -> tuple[Worksheet, dict]:
    parser = WorksheetParser()
    worksheet = parser.parse(load_document(worksheet_file), title=worksheet_file.stem)
    answers = parser.parse_answers(load_document(answers_file))
    return worksheet, answers


@app.command()
def grade(
    worksheet_file: Annotated[Path, typer.Argument(help="Path to the worksheet JSON file")],
    answers_file: Annotated[Path, typer.Argument(help="Path to the student's answers JSON file")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path for the report"),
    ] = None,
    format: Annotated[
        ReportFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = ReportFormat.JSON,
    pass_score: Annotated[
        Optional[float],
        typer.Option("--pass-score", min=0, max=100, help="Override the worksheet's pass score"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show detailed output"),
    ] = False,
) -> None:
    """
    Grade a student's answers against a worksheet.

    Prints the score summary and writes (or prints) a report in the
    requested format.
    """
    try:
        settings = get_settings()
        worksheet, answers = _load_submission(worksheet_file, answers_file)

        if pass_score is not None:
            worksheet = worksheet.model_copy(update={"pass_score": to_decimal(pass_score)})

        engine = GradingEngine(settings)
        result = engine.grade(worksheet, answers)
        audit = engine.create_audit(worksheet, answers, result)

        _display_results(result, verbose)

        generator = ReportGenerator()
        if output:
            saved_path = generator.save(result, output, audit, format)
            console.print(f"\n[green]Report saved to:[/green] {saved_path}")

            audit_path = AuditTrail(settings.output_directory / "audits").save(audit)
            if verbose:
                console.print(f"[dim]Audit saved to: {audit_path}[/dim]")
        else:
            console.print(
                "\n" + generator.generate(result, audit, format),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )

    except LoadError as e:
        console.print(f"[red]Load Error:[/red] {e}")
        raise typer.Exit(1)
    except WorksheetParseError as e:
        console.print(f"[red]Worksheet Parse Error:[/red] {e}")
        raise typer.Exit(1)
    except InvalidInputError as e:
        console.print(f"[red]Invalid Input:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def validate_worksheet(
    worksheet_file: Annotated[Path, typer.Argument(help="Path to the worksheet JSON file")],
) -> None:
    """
    Validate a worksheet's answer key without grading anything.

    Exits with code 1 when authoring issues are found.
    """
    try:
        worksheet = WorksheetParser().parse(load_document(worksheet_file))
    except LoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except WorksheetParseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    is_valid, issues = WorksheetValidator().validate(worksheet)

    console.print(Panel(f"[bold]{worksheet.title or worksheet_file.stem}[/bold]", title="Worksheet"))

    table = Table(title="Questions")
    table.add_column("Id", style="cyan")
    table.add_column("Type")
    table.add_column("Points", justify="right")

    for question in worksheet.questions:
        table.add_row(question.id, question.type, str(question.points))

    console.print(table)
    console.print(f"\n[bold]Total Points:[/bold] {worksheet.total_points}")

    if is_valid:
        console.print("\n[green]✓ Worksheet is valid[/green]")
    else:
        console.print("\n[yellow]⚠ Validation issues found:[/yellow]")
        for issue in issues:
            console.print(f"  • {issue}", markup=False)
        raise typer.Exit(1)


@app.command()
def review(
    worksheet_file: Annotated[Path, typer.Argument(help="Path to the worksheet JSON file")],
    answers_file: Annotated[Path, typer.Argument(help="Path to the student's answers JSON file")],
) -> None:
    """
    List the questions in a submission that need a human grader.
    """
    try:
        worksheet, answers = _load_submission(worksheet_file, answers_file)
        result = GradingEngine(get_settings()).grade(worksheet, answers)
    except (LoadError, WorksheetParseError, InvalidInputError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    pending = get_questions_for_manual_review(result.feedback)
    if not pending:
        console.print("[green]✓ No questions need manual review[/green]")
        return

    table = Table(title="Manual Review")
    table.add_column("Question", style="cyan")
    table.add_column("Auto Score", justify="right")
    table.add_column("Feedback")

    for entry in pending:
        table.add_row(entry.question_id, f"{entry.points_earned}/{entry.max_points}", entry.feedback)

    console.print(table)
    console.print(f"\n[yellow]{len(pending)} question(s) need manual review[/yellow]")


def _display_results(result: GradingResult, verbose: bool = False) -> None:
    """Display grading results in a formatted table."""

    # Score summary
    score_color = "green" if result.passed else "red"
    status = "PASSED" if result.passed else "NOT PASSED"
    console.print(
        Panel(
            f"[{score_color}][bold]{result.score} / {result.max_score}[/bold] "
            f"({result.percentage}%) {status}[/{score_color}]",
            title="Final Score",
        )
    )

    if result.requires_manual_review:
        console.print("[yellow]⚠ Some answers have been flagged for manual review[/yellow]")

    if verbose:
        table = Table(title="Question Breakdown")
        table.add_column("Question", style="cyan")
        table.add_column("Type")
        table.add_column("Score", justify="right")
        table.add_column("Status")

        for entry in result.feedback:
            if entry.requires_manual_review:
                mark = "🔍"
            elif entry.correct:
                mark = "✅"
            else:
                mark = "❌"
            table.add_row(
                entry.question_id,
                entry.question_type,
                f"{entry.points_earned}/{entry.max_points}",
                mark,
            )

        console.print(table)


if __name__ == "__main__":
    app()
