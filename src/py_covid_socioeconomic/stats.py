# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Inferential statistics on the analysis table.

- run_anova: one-way ANOVA of a measure across income groups (scipy).
- run_tukey_hsd: Tukey HSD pairwise comparisons (statsmodels).
- correlation_matrix: Pearson correlations on pairwise complete rows (scipy).
"""

import logging
import math
import warnings
from itertools import combinations
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multicomp import pairwise_tukeyhsd

from .models import AnovaResult, CorrelationResult, IncomeGroup, TukeyComparison

logger = logging.getLogger(__name__)

DEFAULT_GROUPS = [group.value for group in IncomeGroup]
DEFAULT_INDICATORS = ["gni", "uhc_index", "pop_density"]
DEFAULT_MEASURES = ["cases_per_100K", "deaths_per_100K", "cfr"]
MIN_GROUP_SIZE = 2


def _group_samples(
    df: pd.DataFrame, value_column: str, group_column: str, groups: Sequence[str]
) -> Dict[str, np.ndarray]:
    data = df[[value_column, group_column]].dropna()
    dropped = len(df) - len(data)
    if dropped:
        logger.info(
            f"Excluded {dropped} rows with a missing '{value_column}' or "
            f"'{group_column}' from the test."
        )
    return {
        group: data.loc[data[group_column] == group, value_column].to_numpy(
            dtype=float
        )
        for group in groups
    }


def run_anova(
    df: pd.DataFrame,
    value_column: str = "cfr",
    group_column: str = "income_group",
    groups: Sequence[str] = DEFAULT_GROUPS,
    alpha: float = 0.05,
) -> AnovaResult:
    """
    Runs a one-way analysis of variance of `value_column` across `groups`.

    The null hypothesis is that all group means are equal. If any group has
    fewer than two observations the test is not applicable; the returned
    result says so instead of raising.

    Args:
        df: The analysis table.
        value_column: The measure being compared.
        group_column: The column holding each row's group label.
        groups: The group labels that make up the test.
        alpha: Significance threshold for the decision.

    Returns:
        An AnovaResult.
    """
    samples = _group_samples(df, value_column, group_column, groups)
    sizes = {group: len(values) for group, values in samples.items()}
    means: Dict[str, Optional[float]] = {
        group: float(values.mean()) if len(values) else None
        for group, values in samples.items()
    }
    result = AnovaResult(
        value_column=value_column,
        group_column=group_column,
        applicable=False,
        group_sizes=sizes,
        group_means=means,
        alpha=alpha,
    )

    too_small = [group for group, size in sizes.items() if size < MIN_GROUP_SIZE]
    if too_small:
        result.reason = (
            f"Test not applicable: groups with fewer than {MIN_GROUP_SIZE} "
            f"observations: {too_small}"
        )
        logger.warning(result.reason)
        return result

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        f_statistic, p_value = stats.f_oneway(*samples.values())
    for warning in caught:
        logger.warning(f"ANOVA: {warning.message}")

    f_statistic, p_value = float(f_statistic), float(p_value)
    if math.isnan(f_statistic):
        result.reason = (
            "Test not applicable: every observation has the same value, so "
            "the F statistic is undefined."
        )
        logger.warning(result.reason)
        return result

    result.applicable = True
    result.f_statistic = f_statistic
    result.p_value = p_value
    result.significant = p_value < alpha
    decision = "significant" if result.significant else "not significant"
    logger.info(
        f"ANOVA of '{value_column}' by '{group_column}': F={f_statistic:.4f}, "
        f"p={p_value:.4e} ({decision} at alpha={alpha})."
    )
    return result


def run_tukey_hsd(
    df: pd.DataFrame,
    value_column: str = "cfr",
    group_column: str = "income_group",
    alpha: float = 0.05,
) -> List[TukeyComparison]:
    """
    Runs Tukey's honestly significant difference test for all group pairs.

    Returns:
        One TukeyComparison per pair, in the order of the sorted group labels.
        `mean_diff` is mean(group2) - mean(group1).
    """
    data = df[[value_column, group_column]].dropna()
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        tukey = pairwise_tukeyhsd(
            endog=data[value_column].astype(float).to_numpy(),
            groups=data[group_column].astype(str).to_numpy(),
            alpha=alpha,
        )
    for warning in caught:
        logger.debug(f"Tukey HSD: {warning.message}")

    comparisons = []
    pairs = combinations(tukey.groupsunique, 2)
    for (group1, group2), diff, (lower, upper), p_adj, reject in zip(
        pairs, tukey.meandiffs, tukey.confint, tukey.pvalues, tukey.reject
    ):
        comparisons.append(
            TukeyComparison(
                group1=str(group1),
                group2=str(group2),
                mean_diff=float(diff),
                lower=float(lower),
                upper=float(upper),
                p_adj=float(p_adj),
                significant=bool(reject),
            )
        )
        logger.info(
            f"Tukey HSD {group1} vs {group2}: diff={diff:.4f}, "
            f"p-adj={p_adj:.4f}, reject={bool(reject)}"
        )
    return comparisons


def pearson(x: pd.Series, y: pd.Series) -> CorrelationResult:
    """
    Pearson correlation of two columns on their pairwise complete rows.

    Fewer than two complete pairs, or a constant column, leave the
    coefficient undefined.
    """
    mask = x.notna() & y.notna()
    xs = x[mask].astype(float).to_numpy()
    ys = y[mask].astype(float).to_numpy()
    result = CorrelationResult(indicator=str(x.name), measure=str(y.name), n=len(xs))

    if len(xs) < 2 or np.ptp(xs) == 0 or np.ptp(ys) == 0:
        logger.debug(
            f"Correlation between '{x.name}' and '{y.name}' is undefined "
            f"({len(xs)} complete pairs)."
        )
        return result

    # pearsonr can land a few ULPs short of +-1 for identical columns.
    if np.array_equal(xs, ys):
        result.r, result.p_value = 1.0, 0.0
        return result
    if np.array_equal(xs, -ys):
        result.r, result.p_value = -1.0, 0.0
        return result

    r, p_value = stats.pearsonr(xs, ys)
    result.r = float(r)
    result.p_value = float(p_value)
    return result


def correlation_matrix(
    df: pd.DataFrame,
    indicators: Sequence[str] = DEFAULT_INDICATORS,
    measures: Sequence[str] = DEFAULT_MEASURES,
) -> List[CorrelationResult]:
    """
    Computes the Pearson correlation of every indicator with every measure.

    Rows missing either variable are excluded from that pair only.
    """
    results = [
        pearson(df[indicator], df[measure])
        for indicator in indicators
        for measure in measures
    ]
    defined = sum(1 for res in results if res.r is not None)
    logger.info(f"Computed {defined} of {len(results)} correlations.")
    return results
