"""
Command-line interface for the Invoice Readiness Analyzer.

Provides the main commands:
- analyze: Score a CSV/JSON invoice export and write a readiness report
- detect: Show how the export's columns map onto the GETS schema
- rules: List the rule checks
- schema: List the GETS fields
"""

import json
from pathlib import Path
from typing import Optional

import typer

from .analyzer import analyze_dataset
from .config import DEFAULT_COUNTRY, DEFAULT_ERP, logger
from .detector import detect_fields
from .exceptions import DataParseError, InputError
from .gets import GETS_SCHEMA
from .loader import load_file
from .rules import VALIDATION_RULES
from .schemas import Questionnaire
from .scoring import calculate_coverage_score
from .validator import format_report_text


# Create Typer app
app = typer.Typer(
    name="invoice-readiness",
    help="E-Invoicing Readiness Analyzer CLI",
    add_completion=False,
)


def _input_option() -> Path:
    return typer.Option(
        ...,
        "--input",
        "-i",
        help="CSV or JSON file with invoice rows",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    )


@app.command()
def analyze(
    input_file: Path = _input_option(),
    country: str = typer.Option(DEFAULT_COUNTRY, "--country", "-c", help="Country of issue"),
    erp: str = typer.Option(DEFAULT_ERP, "--erp", "-e", help="Source ERP system"),
    webhooks: bool = typer.Option(False, "--webhooks", help="The ERP supports webhooks"),
    sandbox: bool = typer.Option(False, "--sandbox", help="A sandbox environment is available"),
    retries: bool = typer.Option(False, "--retries", help="Failed submissions are retried"),
    report: Optional[Path] = typer.Option(
        None,
        "--report",
        "-r",
        help="Write the JSON report to this file",
    ),
    fail_below: Optional[int] = typer.Option(
        None,
        "--fail-below",
        min=0,
        max=100,
        help="Exit with non-zero status if the overall score is below this value",
    ),
) -> None:
    """
    Analyze an invoice export and print its readiness report.

    Parses the file, matches its columns against the GETS schema, runs the
    rule checks, and combines everything with the questionnaire answers into
    an overall readiness score.
    """
    typer.echo(f"Analyzing invoices from: {input_file}")

    try:
        dataset = load_file(input_file)
        readiness = analyze_dataset(
            dataset.rows,
            questionnaire=Questionnaire(webhooks=webhooks, sandbox_env=sandbox, retries=retries),
            data_score=dataset.data_score,
            rows_parsed=dataset.parsed_length,
            country=country,
            erp=erp,
        )
    except (DataParseError, InputError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error during analysis: {e}", err=True)
        logger.exception("Analysis failed")
        raise typer.Exit(code=1)

    typer.echo("\n" + format_report_text(readiness))

    if report:
        with open(report, "w", encoding="utf-8") as f:
            json.dump(readiness.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        typer.echo(f"\n[OK] Report saved to: {report}")

    failed = [finding for finding in readiness.rule_findings if not finding.ok]
    if failed:
        typer.echo("\nFailing Findings:")
        for finding in failed[:10]:  # Show first 10
            where = f" (row {finding.example_line})" if finding.example_line else ""
            typer.echo(f"  {finding.rule.value}{where}: {finding.message}")
        if len(failed) > 10:
            typer.echo(f"  ... and {len(failed) - 10} more")

    if fail_below is not None and readiness.scores.overall < fail_below:
        raise typer.Exit(code=1)


@app.command()
def detect(input_file: Path = _input_option()) -> None:
    """
    Show how the columns of an invoice export map onto the GETS schema.
    """
    try:
        dataset = load_file(input_file)
    except DataParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    coverage = detect_fields(dataset.rows)

    typer.echo(f"Coverage score: {calculate_coverage_score(coverage)}")
    typer.echo(f"\nMatched ({len(coverage.matched)}):")
    for path in coverage.matched:
        typer.echo(f"  + {path}")
    typer.echo(f"\nClose ({len(coverage.close)}):")
    for item in coverage.close:
        typer.echo(f"  ~ {item.target} <- {item.candidate} ({item.confidence:.2f})")
    typer.echo(f"\nMissing ({len(coverage.missing)}):")
    for path in coverage.missing:
        typer.echo(f"  - {path}")


@app.command("rules")
def list_rules() -> None:
    """List the rule checks in execution order."""
    for rule in VALIDATION_RULES:
        typer.echo(f"{rule.code.value:<18} {rule.description}")


@app.command("schema")
def list_schema() -> None:
    """List the GETS canonical fields."""
    typer.echo(f"GETS v{GETS_SCHEMA.version} ({len(GETS_SCHEMA)} fields, total weight {GETS_SCHEMA.total_weight})")
    for field in GETS_SCHEMA:
        flag = "required" if field.required else "optional"
        typer.echo(f"  {field.path:<24} {field.type:<7} {flag:<8} weight {field.weight}")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    typer.echo(f"Invoice Readiness Analyzer v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
