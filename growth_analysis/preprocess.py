"""
Cleaning of the raw WDI panel into the analysis dataset.

Steps are order-sensitive:
  1. project to the six indicators plus identifiers, rename to field names
  2. drop rows without a region or income classification
  3. derive log_gni_per_capita = ln(gni_per_capita + 1)
  4. derive inflation_rate = (cpi_t / cpi_{t-1} - 1) * 100
  5. drop rows with any missing or non-finite indicator or derived field

Dropped rows are policy, not failure: counts are logged per stage and
returned in a DropReport.
"""

import numpy as np
import pandas as pd

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger, log_drop_report
from growth_analysis.pipeline_types import DropReport

log = get_pipeline_logger(__name__)


def select_and_rename(raw, indicators=None):
    """Keep identifiers and indicator columns, renamed to field names.

    Parameters
    ----------
    raw : pd.DataFrame
        Raw panel with one column per indicator code.
    indicators : dict, optional
        Indicator code -> field name. Default: config.INDICATORS.

    Raises
    ------
    KeyError
        If any identifier or indicator column is absent.
    """
    if indicators is None:
        indicators = config.INDICATORS

    required = config.ID_FIELDS + list(indicators)
    missing = [c for c in required if c not in raw.columns]
    if missing:
        raise KeyError(f"Raw panel is missing columns: {missing}")

    df = raw[required].rename(columns=indicators)
    return df.reset_index(drop=True)


def drop_unclassified(df):
    """Drop rows with no region or income group (aggregates included)."""
    unclassified = (
        df["region"].isna()
        | df["income"].isna()
        | (df["region"] == config.AGGREGATE_REGION_LABEL)
    )
    return df[~unclassified].reset_index(drop=True)


def add_log_income(df):
    """Add log_gni_per_capita = ln(gni_per_capita + 1).

    Values <= -1 produce NaN or -inf, which drop_incomplete() removes.
    """
    df = df.copy()
    with np.errstate(invalid="ignore", divide="ignore"):
        df["log_gni_per_capita"] = np.log1p(df["gni_per_capita"].astype(float))
    return df


def add_inflation_rate(df, lag_mode=None):
    """Add inflation_rate as the percent change of CPI over the prior year.

    Parameters
    ----------
    df : pd.DataFrame
        Must have a unique index and country, year, cpi columns.
    lag_mode : str, optional
        ``"country"`` lags within each country ordered by year (the first
        observed year of every country has no inflation). ``"row_order"``
        lags over all rows ordered by year without grouping, so a row's
        "prior" CPI usually belongs to another country. Default:
        config.INFLATION_LAG_MODE.

    Returns
    -------
    pd.DataFrame
        Copy of df, same row order, with ``inflation_rate``.
    """
    if lag_mode is None:
        lag_mode = config.INFLATION_LAG_MODE
    if lag_mode not in config.INFLATION_LAG_MODES:
        raise ValueError(
            f"Unknown inflation lag mode '{lag_mode}'; "
            f"expected one of {config.INFLATION_LAG_MODES}"
        )

    df = df.copy()
    cpi = df["cpi"].astype(float)

    if lag_mode == "country":
        ordered = df.sort_values(["country", "year"], kind="mergesort")
        prev_cpi = ordered.groupby("country", sort=False)["cpi"].shift(1)
    else:
        ordered = df.sort_values("year", kind="mergesort")
        prev_cpi = ordered["cpi"].shift(1)

    with np.errstate(invalid="ignore", divide="ignore"):
        df["inflation_rate"] = (cpi / prev_cpi.astype(float) - 1) * 100
    return df


def incomplete_mask(df, fields=None):
    """Boolean Series: True where any of *fields* is missing or non-finite."""
    if fields is None:
        fields = config.BASE_FIELDS + config.DERIVED_FIELDS
    values = df[fields].to_numpy(dtype=float)
    return pd.Series(~np.isfinite(values).all(axis=1), index=df.index)


def incomplete_counts(df, fields=None):
    """Number of missing or non-finite values per field (non-zero only)."""
    if fields is None:
        fields = config.BASE_FIELDS + config.DERIVED_FIELDS
    bad = ~np.isfinite(df[fields].to_numpy(dtype=float))
    return {f: int(n) for f, n in zip(fields, bad.sum(axis=0)) if n > 0}


def drop_incomplete(df, fields=None):
    """Drop rows with a missing or non-finite value in any analysis field."""
    return df[~incomplete_mask(df, fields)].reset_index(drop=True)


def clean_panel(raw, lag_mode=None, indicators=None):
    """Run the full cleaning sequence on the raw panel.

    Parameters
    ----------
    raw : pd.DataFrame
        Output of wdi_client.load_or_fetch_panel().
    lag_mode : str, optional
        Passed to add_inflation_rate().
    indicators : dict, optional
        Passed to select_and_rename().

    Returns
    -------
    tuple[pd.DataFrame, DropReport]
        Derived observations sorted by country and year, and the per-stage
        drop counts.
    """
    report = DropReport(rows_in=len(raw))

    df = select_and_rename(raw, indicators)
    before = len(df)
    df = drop_unclassified(df)
    report.unclassified = before - len(df)

    df = add_log_income(df)
    df = add_inflation_rate(df, lag_mode=lag_mode)

    report.incomplete_by_field = incomplete_counts(df)
    before = len(df)
    df = drop_incomplete(df)
    report.incomplete = before - len(df)

    df = df.sort_values(["country", "year"], kind="mergesort").reset_index(drop=True)
    df["year"] = df["year"].astype(int)
    report.rows_out = len(df)

    log_drop_report(log, report)
    if report.incomplete_by_field:
        log.debug("Missing/non-finite values by field: %s", report.incomplete_by_field)
    if df.empty:
        raise ValueError("No complete observations remain after cleaning")
    return df, report


def latest_year(clean):
    """Most recent year present in the cleaned panel."""
    return int(clean["year"].max())


def cross_section(clean, year=None):
    """Derived observations of a single year, one row per country.

    Parameters
    ----------
    clean : pd.DataFrame
        Output of clean_panel().
    year : int, optional
        Default: the latest year present.

    Raises
    ------
    ValueError
        If no rows exist for the year or a country appears twice.
    """
    if year is None:
        year = latest_year(clean)

    sub = clean[clean["year"] == year].reset_index(drop=True)
    if sub.empty:
        raise ValueError(f"No complete observations for cross-section year {year}")
    dupes = sub["country"][sub["country"].duplicated()].unique().tolist()
    if dupes:
        raise ValueError(f"Duplicate countries in {year} cross-section: {dupes}")

    log.info("Cross-section %d: %d countries", year, len(sub))
    return sub


def panel_model_data(clean, start_year=None, end_year=None):
    """Derived observations within the year window, unique per (country, year)."""
    if start_year is None:
        start_year = config.START_YEAR
    if end_year is None:
        end_year = config.END_YEAR

    panel = clean[clean["year"].between(start_year, end_year)].reset_index(drop=True)
    dupes = panel.duplicated(subset=["country", "year"], keep=False)
    if dupes.any():
        examples = panel.loc[dupes, ["country", "year"]].head(5).to_dict("records")
        raise ValueError(
            f"Panel index (country, year) is not unique: {int(dupes.sum())} "
            f"duplicated rows, e.g. {examples}"
        )

    log.info(
        "Panel %d-%d: %d observations, %d countries, %d years",
        start_year, end_year, len(panel),
        panel["country"].nunique(), panel["year"].nunique(),
    )
    return panel
