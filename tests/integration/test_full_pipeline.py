"""
End-to-end tests for the entire pipeline, using the fixture tables and a
real HTTP server to simulate the WHO download and the World Bank API.
"""

import json
import logging
import math
from pathlib import Path

import pandas as pd
import pytest
from pytest_httpserver import HTTPServer
from typer.testing import CliRunner

from py_covid_socioeconomic import pipeline
from py_covid_socioeconomic.cli import app
from py_covid_socioeconomic.config import AppSettings
from py_covid_socioeconomic.models import RunStatus

# Set a logger for debugging the test
logger = logging.getLogger(__name__)

# Path to the test fixtures directory
FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

INDICATOR_CODES = {
    "SP.POP.TOTL": "population",
    "NY.GNP.PCAP.CD": "gni",
    "SH.UHC.SRVS.CV.XD": "uhc_index",
    "EN.POP.DNST": "pop_density",
}


def _worldbank_payload(column: str) -> list:
    """Serves one column of the indicators fixture the way the API does."""
    df = pd.read_csv(
        FIXTURES_DIR / "indicators.csv", keep_default_na=False, na_values=[""]
    )
    rows = []
    for record in df.to_dict("records"):
        value = record[column]
        rows.append(
            {
                "indicator": {"id": column, "value": column},
                "country": {
                    "id": record["country_code"],
                    "value": record["country_name"],
                },
                "countryiso3code": "",
                "date": str(record["year"]),
                "value": None if math.isnan(value) else value,
            }
        )
    meta = {"page": 1, "pages": 1, "per_page": 20000, "total": len(rows)}
    return [meta, rows]


@pytest.fixture
def fixture_settings(tmp_path) -> AppSettings:
    settings = AppSettings()
    settings.inputs.cases_path = FIXTURES_DIR / "cases.csv"
    settings.inputs.indicators_path = FIXTURES_DIR / "indicators.csv"
    settings.output.directory = tmp_path / "report"
    return settings


@pytest.mark.integration
def test_full_pipeline_writes_report(fixture_settings):
    """
    Tests the entire pipeline end-to-end on the fixture files.
    """
    report = pipeline.run_pipeline(fixture_settings)

    out = fixture_settings.output.directory
    for name in [
        "rates.csv",
        "analysis_rows.csv",
        "tukey.csv",
        "correlations.csv",
        "rankings.csv",
        "statistics.json",
        "report.md",
    ]:
        assert (out / name).exists(), name

    assert report.run.status == RunStatus.SUCCESS
    assert report.run.observations_read == 18
    assert report.run.indicator_rows_read == 19

    rates = pd.read_csv(out / "rates.csv", keep_default_na=False, dtype=str)
    assert len(rates) == 13
    korea = rates[rates["country_code"] == "KP"].iloc[0]
    assert korea["total_cases"] == "missing"
    assert korea["cases_per_100K"] == "missing"

    analysis = pd.read_csv(out / "analysis_rows.csv", keep_default_na=False)
    assert len(analysis) == 10
    us = analysis[analysis["country_name"] == "United States"].iloc[0]
    assert float(us["cfr"]) == pytest.approx(11.0)
    assert us["income_group"] == "High Income"

    with open(out / "statistics.json", encoding="utf-8") as f:
        statistics = json.load(f)
    assert statistics["run"]["status"] == "SUCCESS"
    assert statistics["anova"]["group_sizes"] == {
        "Low Income": 3,
        "Middle Income": 3,
        "High Income": 4,
    }
    assert statistics["tukey_performed"] == statistics["anova"]["significant"]

    text = (out / "report.md").read_text(encoding="utf-8")
    assert "## Case-fatality rate by income group" in text
    assert "United States" in text


@pytest.mark.integration
def test_full_pipeline_via_cli_with_yaml_override(tmp_path, monkeypatch):
    monkeypatch.setenv(
        "PY_COVID_SOCIOECONOMIC_ANALYSIS_CONFIG_PATH",
        str(FIXTURES_DIR / "analysis.yml"),
    )
    out = tmp_path / "out"

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run",
            "-c",
            str(FIXTURES_DIR / "cases.csv"),
            "-i",
            str(FIXTURES_DIR / "indicators.csv"),
            "-o",
            str(out),
            "-f",
            "markdown",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Test not applicable" in result.output
    assert not (out / "rates.csv").exists()

    # France has no observation on or before the earlier cutoff.
    text = (out / "report.md").read_text(encoding="utf-8")
    assert "| France | missing | missing |" in text
    assert "Not performed" in text


@pytest.mark.integration
def test_full_pipeline_with_fetched_inputs(
    httpserver: HTTPServer, tmp_path, monkeypatch
):
    """
    Tests that fetched inputs produce the same analysis as the local files.
    """
    httpserver.expect_request("/who/daily.csv").respond_with_data(
        (FIXTURES_DIR / "cases.csv").read_bytes(), content_type="text/csv"
    )
    for code, column in INDICATOR_CODES.items():
        httpserver.expect_request(
            f"/v2/country/all/indicator/{code}"
        ).respond_with_json(_worldbank_payload(column))

    monkeypatch.setenv(
        "PY_COVID_SOCIOECONOMIC_SOURCES__WHO_CASES_URL",
        httpserver.url_for("/who/daily.csv"),
    )
    monkeypatch.setenv(
        "PY_COVID_SOCIOECONOMIC_SOURCES__WORLDBANK_BASE_URL", httpserver.url_for("/v2")
    )
    settings = AppSettings()
    settings.output.directory = tmp_path / "fetched"

    fetched = pipeline.run_pipeline(settings, fetch=True)

    cache = tmp_path / "cache"
    assert (cache / "who_covid_daily.csv").exists()
    assert (cache / "worldbank_indicators_2020_2022.csv").exists()

    local_settings = AppSettings()
    local_settings.inputs.cases_path = FIXTURES_DIR / "cases.csv"
    local_settings.inputs.indicators_path = FIXTURES_DIR / "indicators.csv"
    local_settings.output.directory = tmp_path / "local"
    local = pipeline.run_pipeline(local_settings)

    assert fetched.analysis_rows == local.analysis_rows
    assert fetched.anova == local.anova
    assert len(fetched.rates) == len(local.rates)
