"""
CSV/JSON report writer.

Writes every table as a CSV file and the statistical results as one JSON
document, for consumption by downstream charting or dashboard tools.
"""

import logging
from pathlib import Path
from typing import List

import pandas as pd

from ..models import AnalysisReport
from .base import (
    WriterInterface,
    analysis_frame,
    correlation_frame,
    rankings_frame,
    rates_frame,
    tukey_frame,
)

logger = logging.getLogger(__name__)


class CsvReportWriter(WriterInterface):
    """
    Writes rates.csv, analysis_rows.csv, tukey.csv, correlations.csv,
    rankings.csv and statistics.json.
    """

    def _write_table(
        self, df: pd.DataFrame, filename: str, index: bool = False
    ) -> Path:
        path = self.output_dir / filename
        df.to_csv(path, index=index, na_rep=self.missing_label)
        logger.info(f"Wrote {len(df)} rows to {path}")
        return path

    def write(self, report: AnalysisReport) -> List[Path]:
        self._prepare_output_dir()
        written = [
            self._write_table(rates_frame(report), "rates.csv"),
            self._write_table(analysis_frame(report), "analysis_rows.csv"),
            self._write_table(tukey_frame(report), "tukey.csv"),
            self._write_table(
                correlation_frame(report).rename_axis("indicator"),
                "correlations.csv",
                index=True,
            ),
            self._write_table(rankings_frame(report), "rankings.csv"),
        ]

        statistics = report.model_dump_json(
            include={"anova", "tukey_performed", "tukey", "correlations", "run"},
            indent=2,
        )
        stats_path = self.output_dir / "statistics.json"
        stats_path.write_text(statistics, encoding="utf-8")
        logger.info(f"Wrote statistical results to {stats_path}")
        written.append(stats_path)
        return written
