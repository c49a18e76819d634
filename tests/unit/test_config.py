from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from py_covid_socioeconomic.config import (
    DEFAULT_COUNTRIES,
    AnalysisSettings,
    AppSettings,
    OutputFormat,
    load_analysis_settings,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def test_default_analysis_settings():
    """The analysis constants have their documented defaults."""
    analysis = AppSettings().analysis

    assert analysis.countries == DEFAULT_COUNTRIES
    assert len(analysis.countries) == 10
    assert analysis.cutoff_date == date(2022, 12, 31)
    assert (analysis.start_year, analysis.end_year) == (2020, 2022)
    assert analysis.alpha == 0.05
    assert analysis.income_thresholds == (1145.0, 4515.0, 14005.0)
    assert analysis.density_thresholds == (50.0, 150.0, 300.0)


def test_settings_load_from_env_file(tmp_path: Path):
    """
    Verify that settings are correctly loaded from a .env file.
    """
    env_content = (
        'PY_COVID_SOCIOECONOMIC_OUTPUT__DIRECTORY="out_from_env"\n'
        'PY_COVID_SOCIOECONOMIC_LOG__LEVEL="DEBUG"\n'
        'PY_COVID_SOCIOECONOMIC_ANALYSIS__ALPHA="0.1"\n'
    )
    env_file = tmp_path / ".env"
    env_file.write_text(env_content)

    settings = AppSettings(_env_file=env_file)

    assert settings.output.directory == Path("out_from_env")
    assert settings.log.level == "DEBUG"
    assert settings.analysis.alpha == 0.1


def test_settings_env_vars_override_env_file(tmp_path: Path, monkeypatch):
    """
    Verify that environment variables take precedence over .env file settings.
    """
    env_file = tmp_path / ".env"
    env_file.write_text('PY_COVID_SOCIOECONOMIC_OUTPUT__DIRECTORY="from_file"\n')
    monkeypatch.setenv("PY_COVID_SOCIOECONOMIC_OUTPUT__DIRECTORY", "from_env_var")

    settings = AppSettings(_env_file=env_file)

    assert settings.output.directory == Path("from_env_var")


def test_output_formats_from_env(monkeypatch):
    monkeypatch.setenv("PY_COVID_SOCIOECONOMIC_OUTPUT__FORMATS", '["csv"]')
    assert AppSettings().output.formats == [OutputFormat.CSV]


def test_analysis_yaml_overrides(monkeypatch):
    """Keys in the YAML file replace the defaults; the rest are kept."""
    monkeypatch.setenv(
        "PY_COVID_SOCIOECONOMIC_ANALYSIS_CONFIG_PATH",
        str(FIXTURES_DIR / "analysis.yml"),
    )
    analysis = AppSettings().analysis

    assert analysis.cutoff_date == date(2022, 6, 30)
    assert analysis.alpha == 0.01
    assert analysis.countries == ["United States", "France"]
    assert analysis.start_year == 2020


def test_load_analysis_settings_keeps_base_values():
    base = AnalysisSettings(ranking_size=3)
    analysis = load_analysis_settings(FIXTURES_DIR / "analysis.yml", base=base)

    assert analysis.ranking_size == 3
    assert analysis.alpha == 0.01


def test_load_analysis_settings_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_analysis_settings(tmp_path / "missing.yml")


def test_load_analysis_settings_empty_file(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_analysis_settings(path) == AnalysisSettings()


@pytest.mark.parametrize(
    "overrides",
    [
        {"countries": ["France", "France"]},
        {"income_thresholds": (4515.0, 1145.0, 14005.0)},
        {"density_thresholds": (50.0, 50.0, 300.0)},
        {"alpha": 0.0},
        {"alpha": 1.5},
        {"start_year": 2023, "end_year": 2020},
    ],
)
def test_analysis_settings_validation(overrides):
    with pytest.raises(ValidationError):
        AnalysisSettings(**overrides)
