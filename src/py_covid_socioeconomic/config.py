"""
Configuration module for the py-covid-socioeconomic package.

This module uses pydantic-settings to manage application configuration,
allowing settings to be loaded from environment variables or a .env file.
The analysis constants (country selection, study window and thresholds)
live in `AnalysisSettings` so they can be inspected and tested on their own.
"""

from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutputFormat(str, Enum):
    """Enumeration for the supported report output formats."""

    CSV = "csv"
    MARKDOWN = "markdown"


DEFAULT_COUNTRIES = [
    "United States",
    "India",
    "France",
    "Germany",
    "Brazil",
    "Japan",
    "Tuvalu",
    "Niger",
    "Chad",
    "Burundi",
]


class InputSettings(BaseModel):
    """Locations of the two materialized input tables."""

    cases_path: Optional[Path] = Field(
        default=None,
        description="Path to the WHO daily cumulative cases/deaths CSV file.",
    )
    indicators_path: Optional[Path] = Field(
        default=None,
        description="Path to the per-country, per-year indicators CSV file.",
    )


class OutputSettings(BaseModel):
    """Defines where and how the report tables are written."""

    directory: Path = Field(
        default=Path("report"), description="Directory for the generated report."
    )
    formats: List[OutputFormat] = Field(
        default_factory=lambda: [OutputFormat.CSV, OutputFormat.MARKDOWN],
        description="The report formats to produce.",
    )
    missing_label: str = Field(
        default="missing",
        description="Text written in place of undefined values.",
    )


class CacheSettings(BaseModel):
    """Defines the configuration for the download caching mechanism."""

    path: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "py-covid-socioeconomic",
        description="The filesystem path for storing cached downloads.",
    )
    enabled: bool = Field(
        default=True, description="A flag to enable or disable caching."
    )


class LoggingSettings(BaseModel):
    """Defines the logging configuration."""

    level: str = Field(
        default="INFO",
        description="The logging level, e.g., DEBUG, INFO, WARNING, ERROR.",
    )


class SourceSettings(BaseModel):
    """
    Defines settings related to the two public data providers.
    """

    who_cases_url: HttpUrl = Field(
        default=HttpUrl(
            "https://srhdpeuwpubsa.blob.core.windows.net/whdh/COVID/"
            "WHO-COVID-19-global-daily-data.csv"
        ),
        description="Download URL of the WHO global daily COVID-19 CSV.",
    )
    worldbank_base_url: HttpUrl = Field(
        default=HttpUrl("https://api.worldbank.org/v2"),
        description="The base URL for the World Bank Indicators API.",
    )
    population_indicator: str = Field(default="SP.POP.TOTL")
    gni_indicator: str = Field(
        default="NY.GNP.PCAP.CD", description="GNI per capita, Atlas method."
    )
    uhc_indicator: str = Field(
        default="SH.UHC.SRVS.CV.XD", description="UHC service coverage index."
    )
    density_indicator: str = Field(default="EN.POP.DNST")
    per_page: int = Field(
        default=20000, description="Page size requested from the World Bank API."
    )


class AnalysisSettings(BaseModel):
    """
    The named configuration structure holding every domain constant of the
    analysis: the frozen ten-country selection, the study period and the
    categorisation and significance thresholds.
    """

    countries: List[str] = Field(
        default_factory=lambda: list(DEFAULT_COUNTRIES),
        description=(
            "Display names of the analysed countries. Matched exactly and "
            "case-sensitively against the indicator source's country names."
        ),
    )
    cutoff_date: date = Field(
        default=date(2022, 12, 31),
        description="Observations reported after this date are ignored.",
    )
    start_year: int = Field(default=2020, description="First year of the window.")
    end_year: int = Field(default=2022, description="Last year of the window.")
    alpha: float = Field(default=0.05, description="Significance threshold.")
    income_thresholds: Tuple[float, float, float] = Field(
        default=(1145.0, 4515.0, 14005.0),
        description="Inclusive upper bounds of the low, lower-middle and "
        "upper-middle income categories (GNI per capita, USD).",
    )
    density_thresholds: Tuple[float, float, float] = Field(
        default=(50.0, 150.0, 300.0),
        description="Inclusive lower bounds of the moderate, high and very "
        "high density categories (people per sq. km).",
    )
    ranking_size: int = Field(
        default=10, description="Number of countries in each descriptive ranking."
    )

    @field_validator("countries")
    @classmethod
    def _unique_countries(cls, value: List[str]) -> List[str]:
        if len(set(value)) != len(value):
            raise ValueError("Country names in the selection must be unique.")
        return value

    @field_validator("income_thresholds", "density_thresholds")
    @classmethod
    def _ascending(
        cls, value: Tuple[float, float, float]
    ) -> Tuple[float, float, float]:
        if not (value[0] < value[1] < value[2]):
            raise ValueError(f"Thresholds must be strictly ascending: {value}")
        return value

    @field_validator("alpha")
    @classmethod
    def _alpha_in_range(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("alpha must lie strictly between 0 and 1.")
        return value

    @model_validator(mode="after")
    def _window_is_ordered(self) -> "AnalysisSettings":
        if self.start_year > self.end_year:
            raise ValueError("start_year must not be after end_year.")
        return self


class AppSettings(BaseSettings):
    """
    The main application settings model.
    """

    model_config = SettingsConfigDict(
        env_prefix="PY_COVID_SOCIOECONOMIC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
    )
    analysis_config_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file overriding the analysis settings.",
    )
    inputs: InputSettings = Field(default_factory=InputSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    log: LoggingSettings = Field(default_factory=LoggingSettings)
    sources: SourceSettings = Field(default_factory=SourceSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)

    @model_validator(mode="after")
    def _apply_analysis_file(self) -> "AppSettings":
        if self.analysis_config_path is not None:
            self.analysis = load_analysis_settings(
                self.analysis_config_path, base=self.analysis
            )
        return self


def load_analysis_settings(
    config_path: Path, base: Optional[AnalysisSettings] = None
) -> AnalysisSettings:
    """
    Loads analysis overrides from a YAML file.

    The file is expected to hold an ``analysis`` mapping; keys it does not
    mention keep the values of ``base`` (or the defaults).

    Args:
        config_path: Path to the YAML file.
        base: Settings the overrides are applied on top of.

    Returns:
        A validated AnalysisSettings object.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"No such file: '{config_path}'")

    with open(config_path, "r") as f:
        content = yaml.safe_load(f) or {}

    overrides = content.get("analysis", {}) or {}
    merged = (base or AnalysisSettings()).model_dump()
    merged.update(overrides)
    return AnalysisSettings(**merged)
