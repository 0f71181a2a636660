"""
Shared fixtures for growth analysis tests.

Provides synthetic WDI panels (raw layout, as written to the cache file),
small fixed-effects panels with known coefficients, and temporary
directories so each test module can focus on verifying pipeline logic
against known inputs.
"""

import os
import tempfile

import numpy as np
import pandas as pd
import pytest

from growth_analysis import config
from growth_analysis.logging_config import reset_logging


# ---------------------------------------------------------------------------
# Synthetic WDI layout
# ---------------------------------------------------------------------------
REGIONS = [
    "East Asia & Pacific",
    "Europe & Central Asia",
    "Latin America & Caribbean",
    "Sub-Saharan Africa",
]
INCOMES = [
    "High income",
    "Upper middle income",
    "Lower middle income",
    "Low income",
]
CODE_FOR = {field: code for code, field in config.INDICATORS.items()}
RAW_COLUMNS = (
    ["country", "iso2c", "iso3c", "year"]
    + list(config.INDICATORS)
    + ["region", "capital", "longitude", "latitude", "income", "lending"]
)


def _raw_row(name, iso2, iso3, year, values, region, income):
    row = {
        "country": name,
        "iso2c": iso2,
        "iso3c": iso3,
        "year": year,
        "region": region,
        "capital": f"{name} City",
        "longitude": 0.0,
        "latitude": 0.0,
        "income": income,
        "lending": "IBRD",
    }
    for field, value in values.items():
        row[CODE_FOR[field]] = value
    return row


def make_raw_panel(n_countries=24, start_year=2000, end_year=2023, seed=42):
    """Raw country-year panel in the layout of the WDI cache file.

    Besides n_countries classified countries, contains one aggregate
    ("World", region "Aggregates"), one economy without region or income,
    and a three-year gap in unemployment for "Country 03".
    """
    rng = np.random.default_rng(seed)
    rows = []

    for i in range(n_countries):
        name = f"Country {i:02d}"
        iso2 = chr(65 + i // 26) + chr(65 + i % 26)
        region = REGIONS[i % len(REGIONS)]
        income = INCOMES[(i // len(REGIONS)) % len(INCOMES)]
        country_effect = rng.normal(0.0, 1.5)
        gni0 = rng.uniform(500.0, 50000.0)
        cpi = 100.0

        for year in range(start_year, end_year + 1):
            gni = gni0 * 1.02 ** (year - start_year) * rng.uniform(0.95, 1.05)
            exports = rng.uniform(10.0, 80.0)
            investment = rng.uniform(10.0, 40.0)
            unemployment = rng.uniform(2.0, 20.0)
            inflation = rng.uniform(0.0, 12.0)
            cpi = cpi * (1 + inflation / 100)
            growth = (
                country_effect
                + 0.5 * np.sin(year)
                - 0.4 * np.log1p(gni)
                + 0.02 * exports
                + 0.1 * investment
                - 0.05 * unemployment
                - 0.03 * inflation
                + rng.normal(0.0, 1.0)
            )
            if name == "Country 03" and 2010 <= year <= 2012:
                unemployment = np.nan
            rows.append(_raw_row(
                name, iso2, f"C{i:02d}", year,
                {
                    "gdp_growth": growth,
                    "gni_per_capita": gni,
                    "exports_gdp": exports,
                    "capital_formation": investment,
                    "cpi": cpi,
                    "unemployment": unemployment,
                },
                region, income,
            ))

    for year in range(start_year, end_year + 1):
        complete = {
            "gdp_growth": 3.0, "gni_per_capita": 10000.0, "exports_gdp": 30.0,
            "capital_formation": 25.0, "cpi": 100.0 + year - start_year,
            "unemployment": 6.0,
        }
        rows.append(_raw_row("World", "1W", "WLD", year, complete,
                             config.AGGREGATE_REGION_LABEL, "Aggregates"))
        rows.append(_raw_row("Unclassified Land", "XX", "XXX", year, complete,
                             np.nan, np.nan))

    return pd.DataFrame(rows, columns=RAW_COLUMNS)


def make_fe_panel(n_entities, n_periods, beta, noise=0.0, seed=0, drop=None):
    """Panel y = a_i + g_t + x'beta + e with regressors x0..x{k-1}.

    Parameters
    ----------
    drop : list[tuple[int, int]], optional
        (entity, period) positions to leave out, making the panel unbalanced.
    """
    rng = np.random.default_rng(seed)
    beta = np.asarray(beta, dtype=float)
    alpha = rng.normal(0.0, 5.0, n_entities)
    gamma = rng.normal(0.0, 2.0, n_periods)
    drop = set(drop or [])

    rows = []
    for i in range(n_entities):
        for t in range(n_periods):
            x = rng.normal(0.0, 1.0, len(beta)) + 0.3 * alpha[i]
            if (i, t) in drop:
                continue
            row = {"country": f"E{i}", "year": 2000 + t}
            row.update({f"x{j}": x[j] for j in range(len(beta))})
            row["y"] = alpha[i] + gamma[t] + x @ beta + noise * rng.normal()
            rows.append(row)
    return pd.DataFrame(rows)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Detach any handlers a test attached to the root logger."""
    yield
    reset_logging()


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory(prefix="growth_test_") as d:
        yield d


@pytest.fixture
def raw_panel():
    return make_raw_panel()


@pytest.fixture
def clean_data(raw_panel):
    """(clean panel, DropReport) of the synthetic raw panel."""
    from growth_analysis.preprocess import clean_panel

    return clean_panel(raw_panel)


@pytest.fixture
def cross_section_data(clean_data):
    from growth_analysis.preprocess import cross_section

    return cross_section(clean_data[0])


@pytest.fixture
def cached_data_dir(tmp_dir, raw_panel):
    """Data directory with the raw panel already cached for 2000-2023."""
    data_dir = os.path.join(tmp_dir, "data")
    os.makedirs(data_dir)
    path = config.get_cache_paths(data_dir, 2000, 2023)["panel"]
    raw_panel.to_csv(path, index=False)
    return data_dir


@pytest.fixture
def sample_bundle(clean_data, cross_section_data):
    """A complete result bundle assembled from the synthetic panel."""
    from growth_analysis.model_diagnostics import compute_ols_diagnostics, diagnostics_table
    from growth_analysis.models import (
        fit_cross_section_ols, fit_panel_fixed_effects, glance_ols, glance_panel,
        model_comparison, tidy_ols, tidy_panel,
    )
    from growth_analysis.preprocess import panel_model_data
    from growth_analysis.summaries import summarize

    clean, report = clean_data
    panel = panel_model_data(clean)
    ols = fit_cross_section_ols(cross_section_data)
    fe = fit_panel_fixed_effects(panel)
    tidy_cross, tidy_fe = tidy_ols(ols), tidy_panel(fe)

    return {
        "tidy_model": tidy_cross,
        "tidy_fe": tidy_fe,
        "cross_summary": glance_ols(ols),
        "fe_summary": glance_panel(fe),
        **summarize(cross_section_data, clean),
        "model_data": cross_section_data,
        "clean_panel_data": clean,
        "panel_model_data": panel,
        "model_diagnostics": diagnostics_table(compute_ols_diagnostics(ols)),
        "model_comparison": model_comparison(tidy_cross, tidy_fe),
        "raw_cross_section": cross_section_data,
        "drop_report": report.to_dict(),
    }


@pytest.fixture
def fe_panel():
    """Factory fixture: ``fe_panel(n_entities, n_periods, beta, ...)``."""
    return make_fe_panel
