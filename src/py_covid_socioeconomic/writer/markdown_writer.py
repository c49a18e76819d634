"""
Markdown report writer.

Renders a single human-readable report.md: the analysis table, the ANOVA
decision, the Tukey HSD comparisons, the correlation matrix and the
descriptive rankings.
"""

import logging
import math
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..models import AnalysisReport, AnovaResult
from .base import (
    WriterInterface,
    analysis_frame,
    correlation_frame,
    rankings_frame,
    tukey_frame,
)

logger = logging.getLogger(__name__)

ANALYSIS_COLUMNS = [
    "country_name",
    "total_cases",
    "total_deaths",
    "cases_per_100K",
    "deaths_per_100K",
    "cfr",
    "gni",
    "income_category",
    "uhc_index",
    "pop_density",
    "density_category",
]


class MarkdownReportWriter(WriterInterface):
    """Writes report.md."""

    def _cell(self, value: Any) -> str:
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return self.missing_label
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, float):
            if math.isinf(value):
                return str(value)
            if value.is_integer():
                return f"{value:,.0f}"
            return f"{value:,.2f}" if abs(value) >= 1 else f"{value:.4f}"
        return str(value)

    def _table(self, df: pd.DataFrame, index: bool = False) -> str:
        if df.empty:
            return f"_{self.missing_label}_\n"
        if index:
            df = df.reset_index()
        header = "| " + " | ".join(str(col) for col in df.columns) + " |"
        divider = "|" + "|".join(" --- " for _ in df.columns) + "|"
        body = [
            "| " + " | ".join(self._cell(v) for v in row) + " |"
            for row in df.astype(object).itertuples(index=False, name=None)
        ]
        return "\n".join([header, divider, *body]) + "\n"

    def _anova_section(self, anova: AnovaResult) -> List[str]:
        lines = [
            f"One-way ANOVA of `{anova.value_column}` by `{anova.group_column}` "
            f"(alpha = {anova.alpha}).",
            "",
        ]
        sizes = pd.DataFrame(
            {
                "group": list(anova.group_sizes),
                "n": list(anova.group_sizes.values()),
                "mean": [anova.group_means.get(g) for g in anova.group_sizes],
            }
        )
        lines.append(self._table(sizes))
        if not anova.applicable:
            lines.append(f"**{anova.reason}**")
        else:
            decision = (
                "reject the null hypothesis of equal means"
                if anova.significant
                else "fail to reject the null hypothesis of equal means"
            )
            lines.append(
                f"F = {self._cell(anova.f_statistic)}, "
                f"p = {anova.p_value:.4g}: {decision}."
            )
        lines.append("")
        return lines

    def write(self, report: AnalysisReport) -> List[Path]:
        self._prepare_output_dir()
        analysis = analysis_frame(report)
        if not analysis.empty:
            analysis = analysis.reindex(columns=ANALYSIS_COLUMNS)

        lines = ["# COVID-19 outcomes and socioeconomic indicators", ""]
        lines += ["## Analysed countries", "", self._table(analysis)]
        lines += ["## Case-fatality rate by income group", ""]
        lines += self._anova_section(report.anova)

        lines += ["## Tukey HSD post-hoc comparisons", ""]
        if report.tukey_performed:
            lines.append(self._table(tukey_frame(report)))
        else:
            lines.append(
                "Not performed: the omnibus test was not significant "
                "or not applicable.\n"
            )

        lines += ["## Pearson correlations", ""]
        lines.append(self._table(correlation_frame(report), index=True))

        rankings = rankings_frame(report)
        grouped = rankings.groupby(["column", "order"], sort=False)
        for (column, order), group in grouped:
            lines += [f"## {order.title()} countries by `{column}`", ""]
            lines.append(self._table(group[["rank", "country_name", "value"]]))

        path = self.output_dir / "report.md"
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info(f"Wrote Markdown report to {path}")
        return [path]
