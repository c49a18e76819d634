# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Core data models for the py-covid-socioeconomic package.

Tables travel between pipeline stages as pandas DataFrames; this module
defines the Pydantic models used at the result boundary, i.e. the rows and
statistical results handed to the report writers. Undefined numeric values
are represented as ``None``.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# === Category Enums ===


class IncomeCategory(str, Enum):
    """Four-level income category derived from GNI per capita."""

    LOW = "Low Income"
    LOWER_MIDDLE = "Lower Middle Income"
    UPPER_MIDDLE = "Upper Middle Income"
    HIGH = "High Income"


class IncomeGroup(str, Enum):
    """Three-level income grouping used by the statistical tests."""

    LOW = "Low Income"
    MIDDLE = "Middle Income"
    HIGH = "High Income"


class DensityCategory(str, Enum):
    """Four-level population-density category."""

    LOW = "Low Density"
    MODERATE = "Moderate Density"
    HIGH = "High Density"
    VERY_HIGH = "Very High Density"


def _nan_to_none(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class _TableRow(BaseModel):
    """Base for rows built from DataFrame records, mapping NaN to None."""

    @field_validator("*", mode="before")
    @classmethod
    def _missing_as_none(cls, value: Any) -> Any:
        return _nan_to_none(value)


# === Per-country Tables ===


class CountrySnapshot(_TableRow):
    """Terminal cumulative counts for one country."""

    country_code: str = Field(description="ISO 3166-1 alpha-2 country code.")
    total_cases: int = Field(ge=0, description="Maximum cumulative case count.")
    total_deaths: int = Field(ge=0, description="Maximum cumulative death count.")


class PopulationSummary(_TableRow):
    """Mean population over the study window for one country."""

    country_code: str
    country_name: Optional[str] = Field(
        default=None, description="Display name of the country."
    )
    population: Optional[float] = Field(
        default=None, ge=0, description="Mean population; None if no valid year."
    )


class EpidemiologicalRates(PopulationSummary):
    """Population summary joined with the snapshot and normalized rates."""

    total_cases: Optional[float] = None
    total_deaths: Optional[float] = None
    cases_per_100K: Optional[float] = Field(
        default=None, description="Cases per 100,000 inhabitants."
    )
    deaths_per_100K: Optional[float] = Field(
        default=None, description="Deaths per 100,000 inhabitants."
    )


class IndicatorRecord(_TableRow):
    """Window means of the three socioeconomic indicators for one country."""

    country_code: str
    gni: Optional[float] = Field(default=None, description="GNI per capita (USD).")
    uhc_index: Optional[float] = Field(
        default=None, description="UHC service coverage index."
    )
    pop_density: Optional[float] = Field(
        default=None, description="People per square kilometre."
    )


class AnalysisRow(EpidemiologicalRates):
    """One row of the ten-country analysis table."""

    gni: Optional[float] = None
    uhc_index: Optional[float] = None
    pop_density: Optional[float] = None
    cfr: Optional[float] = Field(
        default=None, description="Case-fatality rate per 1000 cases."
    )
    density_category: Optional[DensityCategory] = None
    income_category: Optional[IncomeCategory] = None
    income_group: Optional[IncomeGroup] = None


class CountryRanking(BaseModel):
    """An ordered list of countries ranked by one column."""

    column: str
    order: str = Field(description="'top' or 'bottom'.")
    countries: List[str]
    values: List[float]


# === Statistical Results ===

# Non-finite statistics (F = inf for constant groups) are written to JSON
# as the strings "Infinity" and "NaN".
_RESULT_CONFIG = ConfigDict(ser_json_inf_nan="strings")


class AnovaResult(BaseModel):
    """
    Outcome of a one-way analysis of variance.

    When a precondition fails (a group with fewer than two observations),
    `applicable` is False and `reason` explains why; the statistic fields
    are then None.
    """

    model_config = _RESULT_CONFIG

    value_column: str
    group_column: str
    applicable: bool
    reason: Optional[str] = None
    group_sizes: Dict[str, int] = Field(default_factory=dict)
    group_means: Dict[str, Optional[float]] = Field(default_factory=dict)
    f_statistic: Optional[float] = None
    p_value: Optional[float] = None
    alpha: float
    significant: bool = False

    @field_validator("f_statistic", "p_value", mode="before")
    @classmethod
    def _missing_as_none(cls, value: Any) -> Any:
        return _nan_to_none(value)


class TukeyComparison(BaseModel):
    """One pairwise comparison of a Tukey HSD post-hoc test."""

    model_config = _RESULT_CONFIG

    group1: str
    group2: str
    mean_diff: float = Field(description="mean(group2) - mean(group1).")
    lower: float
    upper: float
    p_adj: float
    significant: bool


class CorrelationResult(BaseModel):
    """Pearson correlation between one indicator and one measure."""

    model_config = _RESULT_CONFIG

    indicator: str
    measure: str
    n: int = Field(description="Number of pairwise complete observations.")
    r: Optional[float] = None
    p_value: Optional[float] = None

    @field_validator("r", "p_value", mode="before")
    @classmethod
    def _missing_as_none(cls, value: Any) -> Any:
        return _nan_to_none(value)


# === Run History Models ===


class RunStatus(str, Enum):
    """Enum for the status of a pipeline run."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class RunSummary(BaseModel):
    """Bookkeeping for one pipeline run."""

    status: RunStatus = Field(default=RunStatus.PENDING)
    start_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="The start time of the run.",
    )
    end_time: Optional[datetime] = None
    observations_read: Optional[int] = None
    indicator_rows_read: Optional[int] = None
    countries_with_rates: Optional[int] = None
    countries_analysed: Optional[int] = None
    error_details: Optional[str] = None


class AnalysisReport(BaseModel):
    """Everything the report writers consume."""

    model_config = _RESULT_CONFIG

    snapshots: List[CountrySnapshot] = Field(default_factory=list)
    indicators: List[IndicatorRecord] = Field(default_factory=list)
    rates: List[EpidemiologicalRates]
    analysis_rows: List[AnalysisRow]
    anova: AnovaResult
    tukey: List[TukeyComparison] = Field(default_factory=list)
    tukey_performed: bool = False
    correlations: List[CorrelationResult] = Field(default_factory=list)
    rankings: List[CountryRanking] = Field(default_factory=list)
    run: RunSummary = Field(default_factory=RunSummary)
