"""
Descriptive summaries of the analysis dataset.

Pure functions, no I/O. All sorts are stable (mergesort) so ties keep
their input order and repeated runs produce identical tables.
"""

import numpy as np
import pandas as pd

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def correlation_matrix(df, columns=None):
    """Pairwise Pearson correlation of the regression variables.

    Args:
        df: Dataset containing *columns*.
        columns: Variables to correlate. Default: config.CORRELATION_VARIABLES.

    Returns:
        Symmetric N×N DataFrame indexed and labelled by variable name,
        diagonal exactly 1.0.
    """
    if columns is None:
        columns = config.CORRELATION_VARIABLES

    data = df[columns].astype(float).dropna()
    corr = data.corr(method="pearson")
    values = corr.to_numpy(copy=True)
    # Average with the transpose so the matrix is exactly symmetric.
    values = (values + values.T) / 2
    np.fill_diagonal(values, 1.0)
    return pd.DataFrame(values, index=columns, columns=columns)


def regional_summary(df):
    """Country count and mean indicators per region, fastest growth first.

    Args:
        df: Cross-sectional dataset with a ``region`` column.

    Returns:
        DataFrame with columns region, countries, avg_gdp_growth,
        avg_gni_per_capita, avg_exports, avg_investment, avg_unemployment.
        Sorted by avg_gdp_growth descending; ties keep alphabetical region
        order.
    """
    grouped = df.groupby("region", sort=True)
    summary = grouped.size().rename("countries").to_frame()
    for out_col, src_col in config.REGIONAL_SUMMARY_FIELDS.items():
        summary[out_col] = grouped[src_col].mean()

    summary = summary.reset_index()
    return summary.sort_values(
        "avg_gdp_growth", ascending=False, kind="mergesort"
    ).reset_index(drop=True)


def time_trends(df):
    """Mean growth, investment and trade openness per year.

    Args:
        df: Panel dataset with a ``year`` column.

    Returns:
        DataFrame with columns year, avg_gdp_growth, avg_investment,
        avg_trade_openness, countries; ascending by year.
    """
    grouped = df.groupby("year", sort=True)
    trends = pd.DataFrame(index=grouped.size().index)
    for out_col, src_col in config.TIME_TREND_FIELDS.items():
        trends[out_col] = grouped[src_col].mean()
    trends["countries"] = grouped.size()
    return trends.reset_index()


def _performers(df, n, ascending):
    if n is None:
        n = config.TOP_N
    ranked = df.sort_values(config.DEPENDENT_VARIABLE, ascending=ascending, kind="mergesort")
    return ranked.head(n)[config.PERFORMER_COLUMNS].reset_index(drop=True)


def top_performers(df, n=None):
    """The n countries with the highest GDP growth, highest first."""
    return _performers(df, n, ascending=False)


def bottom_performers(df, n=None):
    """The n countries with the lowest GDP growth, lowest first."""
    return _performers(df, n, ascending=True)


def summarize(model_data, clean_panel_data, top_n=None):
    """Compute every descriptive summary for the result bundle.

    The correlation matrix, regional summary and leaderboards use the
    cross-sectional dataset; time trends use the cleaned panel.

    Returns
    -------
    dict
        Keys: correlation_matrix, regional_summary, time_trends,
        top_performers, bottom_performers.
    """
    summaries = {
        "correlation_matrix": correlation_matrix(model_data),
        "regional_summary": regional_summary(model_data),
        "time_trends": time_trends(clean_panel_data),
        "top_performers": top_performers(model_data, top_n),
        "bottom_performers": bottom_performers(model_data, top_n),
    }
    log.info(
        "Summaries: %d regions, %d years, %d/%d performers",
        len(summaries["regional_summary"]),
        len(summaries["time_trends"]),
        len(summaries["top_performers"]),
        len(summaries["bottom_performers"]),
    )
    return summaries
