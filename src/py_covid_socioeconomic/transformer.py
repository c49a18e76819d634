# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Transformer module for reducing and joining the parsed input tables.

This module takes the validated DataFrames from the `parser` module and
produces the per-country tables the analysis is built on: terminal case and
death counts, window-averaged population and indicators, and per-100K rates.
Every function is pure and returns a new DataFrame.
"""

import logging
from datetime import date
from typing import List

import pandas as pd

logger = logging.getLogger(__name__)

PER_100K = 100_000

INDICATOR_COLUMNS = ["gni", "uhc_index", "pop_density"]


def aggregate_cases(observations: pd.DataFrame, cutoff_date: date) -> pd.DataFrame:
    """
    Reduces the cumulative time series to one snapshot per country.

    Cumulative counters never decrease, so the maximum within the retained
    date range is the most recent value. Countries without any observation
    on or before the cutoff are absent from the result.

    Args:
        observations: Parsed CountryObservation rows.
        cutoff_date: Last report date (inclusive) of the study period.

    Returns:
        A DataFrame with columns country_code, total_cases, total_deaths.
    """
    cutoff = pd.Timestamp(cutoff_date)
    retained = observations[observations["date_reported"] <= cutoff]
    logger.info(
        f"Retained {len(retained)} of {len(observations)} observations "
        f"reported on or before {cutoff_date}."
    )
    snapshot = retained.groupby("country_code", as_index=False).agg(
        total_cases=("cumulative_cases", "max"),
        total_deaths=("cumulative_deaths", "max"),
    )
    logger.info(f"Built case/death snapshots for {len(snapshot)} countries.")
    return snapshot


def _restrict_window(
    indicators: pd.DataFrame, start_year: int, end_year: int
) -> pd.DataFrame:
    return indicators[indicators["year"].between(start_year, end_year)]


def summarize_population(
    indicators: pd.DataFrame, start_year: int, end_year: int
) -> pd.DataFrame:
    """
    Computes the mean population of each country over the year window.

    Missing yearly values are skipped; a country whose values are all
    missing gets a NaN population. The display name is the
    lexicographically smallest non-missing name recorded for the code.

    Returns:
        A DataFrame with columns country_code, country_name, population.
    """
    window = _restrict_window(indicators, start_year, end_year)
    grouped = window.groupby("country_code")

    population = grouped["population"].mean()
    names = (
        window.dropna(subset=["country_name"])
        .groupby("country_code")["country_name"]
        .min()
    )
    summary = (
        population.to_frame()
        .join(names, how="left")
        .reset_index()[["country_code", "country_name", "population"]]
    )

    undefined = summary["population"].isna().sum()
    if undefined:
        logger.warning(
            f"{undefined} countries have no population value in "
            f"{start_year}-{end_year}; their rates will be missing."
        )
    logger.info(f"Summarized population for {len(summary)} countries.")
    return summary


def summarize_indicators(
    indicators: pd.DataFrame,
    start_year: int,
    end_year: int,
    columns: List[str] = INDICATOR_COLUMNS,
) -> pd.DataFrame:
    """
    Averages each socioeconomic indicator over the year window.

    Each column is averaged independently, skipping its own missing values.

    Returns:
        A DataFrame with country_code and one column per indicator.
    """
    window = _restrict_window(indicators, start_year, end_year)
    summary = window.groupby("country_code")[columns].mean().reset_index()
    logger.info(f"Summarized {len(columns)} indicators for {len(summary)} countries.")
    return summary


def join_rates(population: pd.DataFrame, snapshot: pd.DataFrame) -> pd.DataFrame:
    """
    Left-joins the case/death snapshot onto the population summary and
    computes per-100K rates.

    Every population row is kept. Countries without a snapshot get missing
    totals, and a missing or zero population gives missing rates.

    Returns:
        A DataFrame with the population columns, total_cases, total_deaths,
        cases_per_100K and deaths_per_100K.
    """
    rates = population.merge(
        snapshot, on="country_code", how="left", validate="one_to_one"
    )
    misses = rates["total_cases"].isna().sum()
    if misses:
        logger.info(f"{misses} countries have no case/death snapshot.")

    denominator = rates["population"].where(rates["population"] > 0)
    rates["total_cases"] = rates["total_cases"].astype("float64")
    rates["total_deaths"] = rates["total_deaths"].astype("float64")
    rates["cases_per_100K"] = rates["total_cases"] * PER_100K / denominator
    rates["deaths_per_100K"] = rates["total_deaths"] * PER_100K / denominator
    return rates


def rank_countries(
    rates: pd.DataFrame, column: str, n: int, ascending: bool = False
) -> pd.DataFrame:
    """
    Returns the `n` countries with the highest (or lowest) value of `column`.

    Rows where the column is missing are not ranked. Ties are broken by
    country name so the ranking is deterministic.
    """
    ranked = rates.dropna(subset=[column]).sort_values(
        [column, "country_name"], ascending=[ascending, True], kind="mergesort"
    )
    return ranked.head(n)[["country_code", "country_name", column]].reset_index(
        drop=True
    )
