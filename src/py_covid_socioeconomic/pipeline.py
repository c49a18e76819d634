"""
The main pipeline orchestration module.

This module brings together all the components (fetcher, parser,
transformer, enrichment, stats, writers) to execute the end-to-end analysis
in strict dependency order.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from .config import AnalysisSettings, AppSettings
from .enrichment import build_analysis_table
from .fetcher import Fetcher
from .models import (
    AnalysisReport,
    AnalysisRow,
    CountryRanking,
    CountrySnapshot,
    EpidemiologicalRates,
    IncomeGroup,
    IndicatorRecord,
    RunStatus,
    RunSummary,
)
from .parser import CasesParser, IndicatorParser
from .stats import correlation_matrix, run_anova, run_tukey_hsd
from .transformer import (
    aggregate_cases,
    join_rates,
    rank_countries,
    summarize_indicators,
    summarize_population,
)
from .writer.factory import get_writers

logger = logging.getLogger(__name__)

RANKED_COLUMNS = ["total_cases", "total_deaths"]


def resolve_inputs(settings: AppSettings, fetch: bool = False) -> Tuple[Path, Path]:
    """
    Determines the two input files, downloading them when allowed.

    Args:
        settings: The application settings object.
        fetch: Download any input whose path is not configured.

    Returns:
        The paths of the cases file and the indicators file.
    """
    cases_path = settings.inputs.cases_path
    indicators_path = settings.inputs.indicators_path

    if cases_path is None or indicators_path is None:
        if not fetch:
            raise ValueError(
                "Both input files must be configured, or fetching must be enabled."
            )
        fetcher = Fetcher(settings)
        if cases_path is None:
            logger.info("Fetching WHO case/death counts...")
            cases_path = fetcher.get_cases_csv()
        if indicators_path is None:
            logger.info("Fetching World Bank indicators...")
            indicators_path = fetcher.get_indicators_csv()

    return cases_path, indicators_path


def _rankings(rates: pd.DataFrame, size: int) -> List[CountryRanking]:
    rankings = []
    for column in RANKED_COLUMNS:
        for order, ascending in (("top", False), ("bottom", True)):
            ranked = rank_countries(rates, column, size, ascending=ascending)
            names = ranked["country_name"].fillna(ranked["country_code"])
            rankings.append(
                CountryRanking(
                    column=column,
                    order=order,
                    countries=names.tolist(),
                    values=ranked[column].astype(float).tolist(),
                )
            )
    return rankings


def analyze(
    observations: pd.DataFrame,
    indicators: pd.DataFrame,
    analysis: AnalysisSettings,
    run: Optional[RunSummary] = None,
) -> AnalysisReport:
    """
    Runs the in-memory analysis on parsed inputs.

    Args:
        observations: Parsed case/death observations.
        indicators: Parsed per-country, per-year indicators.
        analysis: The analysis configuration.
        run: The run record to attach to the report.

    Returns:
        The complete AnalysisReport.
    """
    run = run or RunSummary(status=RunStatus.RUNNING)

    # 1. Case/Death Aggregator
    snapshot = aggregate_cases(observations, analysis.cutoff_date)
    snapshots = [CountrySnapshot(**rec) for rec in snapshot.to_dict("records")]

    # 2. Population Normalizer and indicator averages
    population = summarize_population(
        indicators, analysis.start_year, analysis.end_year
    )
    indicator_summary = summarize_indicators(
        indicators, analysis.start_year, analysis.end_year
    )
    indicator_records = [
        IndicatorRecord(**rec) for rec in indicator_summary.to_dict("records")
    ]

    # 3. Rate Joiner
    rates = join_rates(population, snapshot)
    run.countries_with_rates = int(rates["cases_per_100K"].notna().sum())

    # 4. Enrichment and statistics on the selected countries
    table = build_analysis_table(rates, indicator_summary, analysis)
    run.countries_analysed = len(table)

    groups = [group.value for group in IncomeGroup]
    anova = run_anova(table, "cfr", "income_group", groups, alpha=analysis.alpha)
    tukey = []
    tukey_performed = anova.applicable and anova.significant
    if tukey_performed:
        tukey = run_tukey_hsd(table, "cfr", "income_group", alpha=analysis.alpha)
    elif not anova.applicable:
        logger.info(f"Skipping Tukey HSD: {anova.reason}")
    else:
        logger.info("Skipping Tukey HSD: the omnibus test is not significant.")

    correlations = correlation_matrix(table)

    return AnalysisReport(
        snapshots=snapshots,
        indicators=indicator_records,
        rates=[EpidemiologicalRates(**rec) for rec in rates.to_dict("records")],
        analysis_rows=[AnalysisRow(**rec) for rec in table.to_dict("records")],
        anova=anova,
        tukey=tukey,
        tukey_performed=tukey_performed,
        correlations=correlations,
        rankings=_rankings(rates, analysis.ranking_size),
        run=run,
    )


def run_pipeline(settings: AppSettings, fetch: bool = False) -> AnalysisReport:
    """
    Orchestrates the end-to-end analysis and writes the report.

    Args:
        settings: The application settings object.
        fetch: Download inputs that are not configured.

    Returns:
        The AnalysisReport that was written.
    """
    run = RunSummary(status=RunStatus.RUNNING)

    try:
        # 1. Locate and parse inputs; malformed input stops the run here
        cases_path, indicators_path = resolve_inputs(settings, fetch=fetch)
        observations = CasesParser(cases_path).parse()
        indicators = IndicatorParser(indicators_path).parse()
        run.observations_read = len(observations)
        run.indicator_rows_read = len(indicators)

        # 2. Analysis
        report = analyze(observations, indicators, settings.analysis, run=run)

        # 3. Record success before writing so the written summary is final
        run.status = RunStatus.SUCCESS
        run.end_time = datetime.now(timezone.utc)

        # 4. Write outputs
        for writer in get_writers(settings):
            writer.write(report)

        logger.info(
            f"Pipeline completed successfully. Report written to "
            f"{settings.output.directory}."
        )
        return report

    except Exception as e:
        logger.critical(f"Pipeline failed: {e}", exc_info=True)
        run.status = RunStatus.FAILED
        run.end_time = datetime.now(timezone.utc)
        run.error_details = str(e)
        raise
