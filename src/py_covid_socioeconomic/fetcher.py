"""
Fetcher module for downloading the two public input datasets.

This module provides a Fetcher class that handles:
- Downloading the WHO daily COVID-19 CSV.
- Querying the World Bank Indicators API and flattening the four indicator
  series into the per-country, per-year table the parser expects.
- Caching downloaded files to the filesystem to avoid redundant requests.
- Resiliently retrying failed requests with exponential backoff.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, cast

import httpx
import pandas as pd
from tenacity import before_sleep_log, retry, stop_after_attempt, wait_exponential

from .config import AppSettings

# Configure a logger for this module
logger = logging.getLogger(__name__)

CASES_CACHE_FILENAME = "who_covid_daily.csv"


class Fetcher:
    """
    Handles the acquisition of the WHO and World Bank input tables.
    """

    def __init__(self, settings: AppSettings):
        """
        Initializes the Fetcher with application settings.

        Args:
            settings: An instance of AppSettings containing configuration.
        """
        self.settings = settings
        self.client = httpx.Client(
            headers={"User-Agent": "py-covid-socioeconomic/1.0"},
            follow_redirects=True,
            timeout=60.0,
        )
        self._prepare_cache_dir()

    def _prepare_cache_dir(self) -> None:
        """Ensures the cache directory exists."""
        self.settings.cache.path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cache directory prepared at: {self.settings.cache.path}")

    def _get_cache_filepath(self, filename: str) -> Path:
        """
        Constructs the full path for a given cache filename.
        """
        return cast(Path, self.settings.cache.path / filename)

    @property
    def indicator_columns(self) -> Dict[str, str]:
        """Maps World Bank indicator codes to the parser's column names."""
        sources = self.settings.sources
        return {
            sources.population_indicator: "population",
            sources.gni_indicator: "gni",
            sources.uhc_indicator: "uhc_index",
            sources.density_indicator: "pop_density",
        }

    @property
    def indicators_cache_filename(self) -> str:
        analysis = self.settings.analysis
        return f"worldbank_indicators_{analysis.start_year}_{analysis.end_year}.csv"

    @retry(
        wait=wait_exponential(multiplier=1, min=4, max=60),
        stop=stop_after_attempt(5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _download_to_cache(self, url: str, cache_filename: str) -> Path:
        """
        Downloads a file from a URL and saves it to the cache, with retries.
        """
        cache_filepath = self._get_cache_filepath(cache_filename)
        logger.info(f"Downloading from {url} to {cache_filepath}")
        try:
            with self.client.stream("GET", url) as response:
                response.raise_for_status()
                with open(cache_filepath, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
            logger.info(f"Successfully downloaded and cached file: {cache_filename}")
            return cache_filepath
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error while downloading {url}: {e}")
            raise
        except Exception as e:
            logger.error(f"An unexpected error occurred while downloading {url}: {e}")
            if cache_filepath.exists():
                cache_filepath.unlink()
            raise

    def _fetch(self, url: str, cache_filename: str) -> Path:
        """
        Generic fetch method with caching logic.
        """
        cache_filepath = self._get_cache_filepath(cache_filename)

        if self.settings.cache.enabled and cache_filepath.exists():
            logger.info(f"Found in cache: {cache_filename}. Skipping download.")
            return cache_filepath

        return self._download_to_cache(url, cache_filename)

    @retry(
        wait=wait_exponential(multiplier=1, min=4, max=60),
        stop=stop_after_attempt(5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        """Performs a GET request and decodes the JSON body, with retries."""
        try:
            response = self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error while requesting {url}: {e}")
            raise

    def get_cases_csv(self) -> Path:
        """
        Fetches the WHO global daily cumulative case/death CSV.
        """
        url = str(self.settings.sources.who_cases_url)
        return self._fetch(url, CASES_CACHE_FILENAME)

    def get_indicator_rows(self, indicator_code: str) -> List[Dict[str, Any]]:
        """
        Fetches every row of one World Bank indicator for the analysis window.

        The API answers with a two-element array: paging metadata and the rows
        of the requested page. All pages are collected.
        """
        base_url = str(self.settings.sources.worldbank_base_url).rstrip("/")
        url = f"{base_url}/country/all/indicator/{indicator_code}"
        analysis = self.settings.analysis
        params: Dict[str, Any] = {
            "format": "json",
            "date": f"{analysis.start_year}:{analysis.end_year}",
            "per_page": self.settings.sources.per_page,
            "page": 1,
        }

        rows: List[Dict[str, Any]] = []
        while True:
            payload = self._get_json(url, params)
            if not isinstance(payload, list) or len(payload) < 2:
                raise ValueError(
                    f"Unexpected World Bank API response for '{indicator_code}': "
                    f"{payload}"
                )
            meta, page_rows = payload[0], payload[1] or []
            rows.extend(page_rows)
            if params["page"] >= int(meta.get("pages", 1)):
                break
            params["page"] += 1

        logger.info(f"Fetched {len(rows)} rows for indicator '{indicator_code}'.")
        return rows

    def get_indicators_csv(self) -> Path:
        """
        Fetches the four indicator series and writes them as one wide table
        keyed by two-letter country code and year.
        """
        cache_filename = self.indicators_cache_filename
        cache_filepath = self._get_cache_filepath(cache_filename)
        if self.settings.cache.enabled and cache_filepath.exists():
            logger.info(f"Found in cache: {cache_filename}. Skipping download.")
            return cache_filepath

        records = []
        for code, column in self.indicator_columns.items():
            for row in self.get_indicator_rows(code):
                records.append(
                    {
                        "country_code": row["country"]["id"],
                        "country_name": row["country"]["value"],
                        "year": int(row["date"]),
                        "indicator": column,
                        "value": row["value"],
                    }
                )

        long_df = pd.DataFrame.from_records(
            records,
            columns=["country_code", "country_name", "year", "indicator", "value"],
        )
        long_df["value"] = pd.to_numeric(long_df["value"], errors="coerce")
        wide_df = long_df.set_index(
            ["country_code", "country_name", "year", "indicator"]
        )["value"].unstack("indicator")
        wide_df = wide_df.reindex(columns=list(self.indicator_columns.values()))
        wide_df = wide_df.reset_index()
        wide_df.columns.name = None
        wide_df.to_csv(cache_filepath, index=False)
        logger.info(
            f"Wrote {len(wide_df)} indicator rows to cache file: {cache_filename}"
        )
        return cache_filepath
