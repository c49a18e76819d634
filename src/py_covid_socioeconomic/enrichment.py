# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Builds the ten-country analysis table.

Restricts the rates table to the configured countries, derives the
case-fatality rate, attaches the window-averaged socioeconomic indicators
and bins income and population density into categories.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from .config import AnalysisSettings
from .models import DensityCategory, IncomeCategory, IncomeGroup

logger = logging.getLogger(__name__)

CFR_SCALE = 1000

DEFAULT_INCOME_THRESHOLDS = (1145.0, 4515.0, 14005.0)
DEFAULT_DENSITY_THRESHOLDS = (50.0, 150.0, 300.0)


def categorize_income(
    gni: Optional[float], thresholds: Sequence[float] = DEFAULT_INCOME_THRESHOLDS
) -> Optional[IncomeCategory]:
    """
    Maps GNI per capita to a four-level income category.

    The thresholds are inclusive upper bounds: with the defaults, 1145 is
    Low Income and 1146 is Lower Middle Income.
    """
    if gni is None or pd.isna(gni):
        return None
    low, lower_middle, upper_middle = thresholds
    if gni <= low:
        return IncomeCategory.LOW
    if gni <= lower_middle:
        return IncomeCategory.LOWER_MIDDLE
    if gni <= upper_middle:
        return IncomeCategory.UPPER_MIDDLE
    return IncomeCategory.HIGH


def collapse_income(category: Optional[IncomeCategory]) -> Optional[IncomeGroup]:
    """Merges the two middle income categories into Middle Income."""
    if category is None:
        return None
    if category in (IncomeCategory.LOWER_MIDDLE, IncomeCategory.UPPER_MIDDLE):
        return IncomeGroup.MIDDLE
    return IncomeGroup(category.value)


def categorize_density(
    density: Optional[float],
    thresholds: Sequence[float] = DEFAULT_DENSITY_THRESHOLDS,
) -> Optional[DensityCategory]:
    """
    Maps population density to a four-level category.

    The thresholds are inclusive lower bounds: with the defaults, 50 is
    Moderate Density and 300 is Very High Density.
    """
    if density is None or pd.isna(density):
        return None
    moderate, high, very_high = thresholds
    if density < moderate:
        return DensityCategory.LOW
    if density < high:
        return DensityCategory.MODERATE
    if density < very_high:
        return DensityCategory.HIGH
    return DensityCategory.VERY_HIGH


def _enum_value(member):
    return member.value if member is not None else None


def select_countries(rates: pd.DataFrame, countries: List[str]) -> pd.DataFrame:
    """
    Keeps the rows whose display name exactly matches one of `countries`.

    Rows come back in the order of `countries`. Names without a match are
    logged and skipped; no rows are invented for them.
    """
    selected = rates[rates["country_name"].isin(countries)].copy()
    found = set(selected["country_name"])
    unmatched = [name for name in countries if name not in found]
    if unmatched:
        logger.warning(f"No population summary found for countries: {unmatched}")

    position = {name: i for i, name in enumerate(countries)}
    selected = selected.sort_values(
        "country_name", key=lambda names: names.map(position), kind="mergesort"
    )
    logger.info(f"Selected {len(selected)} of {len(countries)} configured countries.")
    return selected.reset_index(drop=True)


def add_case_fatality_rate(df: pd.DataFrame) -> pd.DataFrame:
    """
    Adds `cfr`, deaths per 1000 cases. Missing when there are no cases.
    """
    result = df.copy()
    cases = result["total_cases"].where(result["total_cases"] > 0)
    result["cfr"] = CFR_SCALE * result["total_deaths"] / cases
    return result


def attach_indicators(df: pd.DataFrame, indicators: pd.DataFrame) -> pd.DataFrame:
    """Left-joins the averaged indicators by country code."""
    result = df.merge(indicators, on="country_code", how="left", validate="one_to_one")
    for col in indicators.columns.drop("country_code"):
        misses = result[col].isna().sum()
        if misses:
            logger.info(
                f"Indicator '{col}' is missing for {misses} selected countries."
            )
    return result


def add_categories(
    df: pd.DataFrame,
    income_thresholds: Sequence[float] = DEFAULT_INCOME_THRESHOLDS,
    density_thresholds: Sequence[float] = DEFAULT_DENSITY_THRESHOLDS,
) -> pd.DataFrame:
    """
    Adds density_category, income_category and the collapsed income_group.
    """
    result = df.copy()
    income = [categorize_income(v, income_thresholds) for v in result["gni"]]
    density = [categorize_density(v, density_thresholds) for v in result["pop_density"]]
    result["density_category"] = [_enum_value(c) for c in density]
    result["income_category"] = [_enum_value(c) for c in income]
    result["income_group"] = [_enum_value(collapse_income(c)) for c in income]
    return result


def build_analysis_table(
    rates: pd.DataFrame, indicators: pd.DataFrame, analysis: AnalysisSettings
) -> pd.DataFrame:
    """
    Runs the enrichment steps in order and returns the AnalysisRow table.

    Args:
        rates: Output of `transformer.join_rates`.
        indicators: Output of `transformer.summarize_indicators`.
        analysis: The analysis configuration.
    """
    table = select_countries(rates, analysis.countries)
    table = add_case_fatality_rate(table)
    table = attach_indicators(table, indicators)
    table = add_categories(
        table,
        income_thresholds=analysis.income_thresholds,
        density_thresholds=analysis.density_thresholds,
    )
    return table
