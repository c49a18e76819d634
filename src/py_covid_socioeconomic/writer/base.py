"""
Base interface for all report writers.

This module defines the Abstract Base Class (ABC) for writers, establishing
a contract that every output format adheres to, plus helpers that turn an
AnalysisReport into the pandas tables the writers render.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import pandas as pd

from ..models import AnalysisReport


class WriterInterface(ABC):
    """
    Abstract interface for a report writer.
    """

    def __init__(self, output_dir: Path, missing_label: str = "missing"):
        self.output_dir = output_dir
        self.missing_label = missing_label

    def _prepare_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    def write(self, report: AnalysisReport) -> List[Path]:
        """
        Renders the report into the output directory.

        Undefined values must be rendered as `missing_label`, never as zero.

        Args:
            report: The complete analysis report.

        Returns:
            The paths of the files written.
        """
        pass


def rates_frame(report: AnalysisReport) -> pd.DataFrame:
    """The per-country rates table."""
    return pd.DataFrame([row.model_dump(mode="json") for row in report.rates])


def analysis_frame(report: AnalysisReport) -> pd.DataFrame:
    """The ten-country analysis table."""
    return pd.DataFrame([row.model_dump(mode="json") for row in report.analysis_rows])


def tukey_frame(report: AnalysisReport) -> pd.DataFrame:
    """One row per pairwise Tukey HSD comparison."""
    return pd.DataFrame(
        [row.model_dump() for row in report.tukey],
        columns=[
            "group1",
            "group2",
            "mean_diff",
            "lower",
            "upper",
            "p_adj",
            "significant",
        ],
    )


def correlation_frame(report: AnalysisReport) -> pd.DataFrame:
    """The correlation coefficients as an indicator-by-measure matrix."""
    records = pd.DataFrame(
        [row.model_dump() for row in report.correlations],
        columns=["indicator", "measure", "n", "r", "p_value"],
    )
    if records.empty:
        return pd.DataFrame()
    matrix = records.pivot(index="indicator", columns="measure", values="r")
    matrix = matrix.reindex(
        index=list(dict.fromkeys(records["indicator"])),
        columns=list(dict.fromkeys(records["measure"])),
    )
    matrix.columns.name = None
    return matrix


def rankings_frame(report: AnalysisReport) -> pd.DataFrame:
    """All descriptive rankings in long format."""
    rows = []
    for ranking in report.rankings:
        for rank, (country, value) in enumerate(
            zip(ranking.countries, ranking.values), start=1
        ):
            rows.append(
                {
                    "column": ranking.column,
                    "order": ranking.order,
                    "rank": rank,
                    "country_name": country,
                    "value": value,
                }
            )
    return pd.DataFrame(
        rows, columns=["column", "order", "rank", "country_name", "value"]
    )
