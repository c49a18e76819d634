"""
Parsers for the two materialized input tables.

This module contains:
- CasesParser: For the WHO daily cumulative case/death counts (Input A).
- IndicatorParser: For the per-country, per-year indicator table (Input B).

Both parsers validate their input up front. Any malformed value (an
unparseable date, a non-numeric count, a missing required column) raises
`InputValidationError` before the pipeline computes anything.
"""

import logging
from pathlib import Path
from typing import Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

# Only empty cells are missing. "NA" is Namibia's country code.
NA_VALUES = [""]


class InputValidationError(ValueError):
    """Raised when an input table is malformed."""


def _require_columns(df: pd.DataFrame, required: List[str], source: Path) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise InputValidationError(
            f"Input file {source} is missing required columns: {missing}"
        )


def _to_numeric(series: pd.Series, source: Path) -> pd.Series:
    """Converts a column to numbers, rejecting values that are present but invalid."""
    converted = pd.to_numeric(series, errors="coerce")
    invalid = series.notna() & converted.isna()
    if invalid.any():
        examples = series[invalid].astype(str).unique()[:5].tolist()
        raise InputValidationError(
            f"Column '{series.name}' in {source} contains non-numeric values: "
            f"{examples}"
        )
    return converted


class CasesParser:
    """
    Parses the WHO global daily CSV into CountryObservation rows.
    """

    COLUMN_MAP: Dict[str, str] = {
        "Date_reported": "date_reported",
        "Country_code": "country_code",
        "Country": "country",
        "Cumulative_cases": "cumulative_cases",
        "Cumulative_deaths": "cumulative_deaths",
    }

    def __init__(self, csv_path: Path):
        self.csv_path = csv_path

    def parse(self) -> pd.DataFrame:
        """
        Reads and validates the cases file.

        Returns:
            A DataFrame with columns country_code, country, date_reported
            (datetime64), cumulative_cases and cumulative_deaths (int64).
        """
        if not Path(self.csv_path).exists():
            logger.error(f"Cases file not found at {self.csv_path}")
            raise FileNotFoundError(f"No such file: '{self.csv_path}'")

        logger.info(f"Parsing case/death counts from {self.csv_path}")
        df = pd.read_csv(
            self.csv_path,
            dtype=str,
            keep_default_na=False,
            na_values=NA_VALUES,
        )
        df.columns = [col.strip() for col in df.columns]
        _require_columns(df, list(self.COLUMN_MAP), self.csv_path)
        df = df[list(self.COLUMN_MAP)].rename(columns=self.COLUMN_MAP)

        if df["country_code"].isna().any():
            raise InputValidationError(
                f"Input file {self.csv_path} has rows without a country code."
            )
        df["country_code"] = df["country_code"].str.strip()

        try:
            df["date_reported"] = pd.to_datetime(
                df["date_reported"], format="%Y-%m-%d", errors="raise"
            )
        except (ValueError, TypeError) as e:
            raise InputValidationError(
                f"Unparseable report date in {self.csv_path}: {e}"
            ) from e
        if df["date_reported"].isna().any():
            raise InputValidationError(
                f"Input file {self.csv_path} has rows without a report date."
            )

        for col in ("cumulative_cases", "cumulative_deaths"):
            values = _to_numeric(df[col], self.csv_path)
            if values.isna().any():
                raise InputValidationError(
                    f"Column '{col}' in {self.csv_path} has empty values."
                )
            if (values < 0).any() or (values % 1 != 0).any():
                raise InputValidationError(
                    f"Column '{col}' in {self.csv_path} must hold non-negative "
                    "integer counts."
                )
            df[col] = values.astype("int64")

        logger.info(
            f"Parsed {len(df)} observations for "
            f"{df['country_code'].nunique()} countries."
        )
        return df


class IndicatorParser:
    """
    Parses the per-country, per-year indicator table.
    """

    KEY_COLUMNS = ["country_code", "country_name", "year"]
    VALUE_COLUMNS = ["population", "gni", "uhc_index", "pop_density"]

    def __init__(self, csv_path: Path):
        self.csv_path = csv_path

    def parse(self) -> pd.DataFrame:
        """
        Reads and validates the indicator file.

        Indicator values may be missing; they are kept as NaN.

        Returns:
            A DataFrame with the key columns, an int64 `year` and float
            indicator columns.
        """
        if not Path(self.csv_path).exists():
            logger.error(f"Indicators file not found at {self.csv_path}")
            raise FileNotFoundError(f"No such file: '{self.csv_path}'")

        logger.info(f"Parsing socioeconomic indicators from {self.csv_path}")
        df = pd.read_csv(
            self.csv_path,
            dtype=str,
            keep_default_na=False,
            na_values=NA_VALUES,
        )
        df.columns = [col.strip() for col in df.columns]
        _require_columns(df, self.KEY_COLUMNS + self.VALUE_COLUMNS, self.csv_path)
        df = df[self.KEY_COLUMNS + self.VALUE_COLUMNS].copy()

        if df["country_code"].isna().any():
            raise InputValidationError(
                f"Input file {self.csv_path} has rows without a country code."
            )
        df["country_code"] = df["country_code"].str.strip()

        years = _to_numeric(df["year"], self.csv_path)
        if years.isna().any() or (years % 1 != 0).any():
            raise InputValidationError(
                f"Column 'year' in {self.csv_path} must hold integer years."
            )
        df["year"] = years.astype("int64")

        for col in self.VALUE_COLUMNS:
            df[col] = _to_numeric(df[col], self.csv_path).astype("float64")

        if (df["population"] < 0).any():
            raise InputValidationError(
                f"Column 'population' in {self.csv_path} has negative values."
            )

        logger.info(
            f"Parsed {len(df)} indicator rows for "
            f"{df['country_code'].nunique()} countries."
        )
        return df
