# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def make_observations():
    """Builds a parsed observations frame from (code, date, cases, deaths) tuples."""

    def _make(rows):
        df = pd.DataFrame(
            rows,
            columns=[
                "country_code",
                "date_reported",
                "cumulative_cases",
                "cumulative_deaths",
            ],
        )
        df["country"] = df["country_code"]
        df["date_reported"] = pd.to_datetime(df["date_reported"])
        df["cumulative_cases"] = df["cumulative_cases"].astype("int64")
        df["cumulative_deaths"] = df["cumulative_deaths"].astype("int64")
        return df

    return _make


@pytest.fixture
def make_indicators():
    """Builds a parsed indicators frame; absent indicator columns become NaN."""

    def _make(rows):
        df = pd.DataFrame(rows)
        for col in ["country_name", "population", "gni", "uhc_index", "pop_density"]:
            if col not in df.columns:
                df[col] = np.nan
        df["year"] = df["year"].astype("int64")
        for col in ["population", "gni", "uhc_index", "pop_density"]:
            df[col] = df[col].astype("float64")
        return df

    return _make


@pytest.fixture
def analysis_table():
    """A ten-country analysis table with well separated CFR per income group."""
    return pd.DataFrame(
        {
            "country_code": list("ABCDEFGHIJ"),
            "country_name": [f"Country {c}" for c in "ABCDEFGHIJ"],
            "cfr": [1.0, 1.0, 1.0, 10.0, 10.0, 10.0, 100.0, 100.0, 100.0, 100.0],
            "income_group": ["Low Income"] * 3
            + ["Middle Income"] * 3
            + ["High Income"] * 4,
        }
    )
