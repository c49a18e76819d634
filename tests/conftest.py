"""
Pytest configuration and shared fixtures.
"""

import os
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """
    An autouse fixture that keeps tests independent of the developer's
    environment: application env vars are removed, the working directory
    (and so any .env file) is a temporary one, and the download cache points
    into the temporary directory.
    """
    for key in list(os.environ):
        if key.startswith("PY_COVID_SOCIOECONOMIC_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PY_COVID_SOCIOECONOMIC_CACHE__PATH", str(tmp_path / "cache"))
    yield


@pytest.fixture
def cases_csv() -> Path:
    return FIXTURES_DIR / "cases.csv"


@pytest.fixture
def indicators_csv() -> Path:
    return FIXTURES_DIR / "indicators.csv"
