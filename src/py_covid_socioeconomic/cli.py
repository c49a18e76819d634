# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Command-line interface for the py-covid-socioeconomic application.

This module uses Typer to create a CLI for running the analysis pipeline.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import AppSettings, OutputFormat
from .fetcher import Fetcher
from .pipeline import run_pipeline

# Create a Typer application
app = typer.Typer(
    name="py-covid-socioeconomic",
    help=(
        "Join COVID-19 case/death counts with World Bank indicators and test "
        "case-fatality rates across income groups."
    ),
    add_completion=False,
)


def _configure_logging(settings: AppSettings) -> None:
    log_format = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    logging.basicConfig(level=settings.log.level.upper(), format=log_format)


@app.command()
def run(
    cases_file: Optional[Path] = typer.Option(
        None,
        "--cases-file",
        "-c",
        help="WHO daily cumulative cases/deaths CSV. Overrides env var.",
    ),
    indicators_file: Optional[Path] = typer.Option(
        None,
        "--indicators-file",
        "-i",
        help="Per-country, per-year indicators CSV. Overrides env var.",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory the report is written to. Overrides env var.",
    ),
    output_formats: Optional[List[OutputFormat]] = typer.Option(
        None,
        "--format",
        "-f",
        help="Report format; repeat the option for several formats.",
    ),
    fetch: bool = typer.Option(
        False,
        "--fetch/--no-fetch",
        help="Download any input file that was not given.",
    ),
) -> None:
    """
    Run the full analysis and write the report.
    """
    # Instantiate settings here to ensure env vars are loaded correctly
    settings = AppSettings()
    _configure_logging(settings)

    # CLI options take precedence over the environment variables.
    if cases_file is not None:
        settings.inputs.cases_path = cases_file
    if indicators_file is not None:
        settings.inputs.indicators_path = indicators_file
    if output_dir is not None:
        settings.output.directory = output_dir
    if output_formats:
        settings.output.formats = output_formats

    typer.echo("Starting analysis pipeline")
    typer.echo(f"  - Cases file: {settings.inputs.cases_path or 'fetch'}")
    typer.echo(f"  - Indicators file: {settings.inputs.indicators_path or 'fetch'}")
    typer.echo(f"  - Output directory: {settings.output.directory}")
    typer.echo(
        "  - Formats: " + ", ".join(fmt.value for fmt in settings.output.formats)
    )

    try:
        report = run_pipeline(settings, fetch=fetch)
    except Exception as e:
        # The pipeline function will handle its own detailed error logging.
        # This is a final catch-all for the CLI.
        logging.error(f"A critical error occurred: {e}", exc_info=True)
        typer.secho("Analysis pipeline failed.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    anova = report.anova
    if anova.applicable:
        verdict = "significant" if anova.significant else "not significant"
        typer.echo(f"ANOVA of CFR by income group: p={anova.p_value:.4g} ({verdict})")
    else:
        typer.secho(f"ANOVA: {anova.reason}", fg=typer.colors.YELLOW)
    typer.secho("Analysis pipeline completed successfully.", fg=typer.colors.GREEN)


@app.command()
def fetch() -> None:
    """
    Download both input datasets into the cache and print their paths.
    """
    settings = AppSettings()
    _configure_logging(settings)

    try:
        fetcher = Fetcher(settings)
        cases_path = fetcher.get_cases_csv()
        indicators_path = fetcher.get_indicators_csv()
    except Exception as e:
        logging.error(f"A critical error occurred while fetching: {e}", exc_info=True)
        typer.secho("Fetching input data failed.", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"Cases: {cases_path}")
    typer.echo(f"Indicators: {indicators_path}")
    typer.secho("Input data fetched.", fg=typer.colors.GREEN)


@app.command()
def countries() -> None:
    """
    Show the configured country selection and analysis thresholds.
    """
    analysis = AppSettings().analysis
    typer.echo(f"Countries ({len(analysis.countries)}):")
    for name in analysis.countries:
        typer.echo(f"  - {name}")
    typer.echo(f"Cutoff date: {analysis.cutoff_date.isoformat()}")
    typer.echo(f"Year window: {analysis.start_year}-{analysis.end_year}")
    typer.echo(
        "Income thresholds (inclusive upper bounds): "
        + ", ".join(f"{t:g}" for t in analysis.income_thresholds)
    )
    typer.echo(
        "Density thresholds (inclusive lower bounds): "
        + ", ".join(f"{t:g}" for t in analysis.density_thresholds)
    )
    typer.echo(f"Significance level: {analysis.alpha}")


if __name__ == "__main__":
    app()
