"""
Centralized configuration for the global economic growth analysis.

All analysis parameters, indicator definitions, regression specification,
and paths are defined here with a short note on where each choice comes
from.
"""

import os

# ─── INDICATORS ──────────────────────────────────────────────────────────
# World Development Indicators (WDI) series used by the analysis, mapped
# to the stable field names used everywhere downstream.
# Source: World Bank, World Development Indicators database.
INDICATORS = {
    "NY.GDP.MKTP.KD.ZG": "gdp_growth",         # GDP growth (annual %)
    "NY.GNP.PCAP.CD": "gni_per_capita",        # GNI per capita (current US$)
    "NE.EXP.GNFS.ZS": "exports_gdp",           # Exports of goods and services (% of GDP)
    "NE.GDI.TOTL.ZS": "capital_formation",     # Gross capital formation (% of GDP)
    "FP.CPI.TOTL": "cpi",                      # Consumer price index (2010 = 100)
    "SL.UEM.TOTL.ZS": "unemployment",          # Unemployment (% of labor force)
}

BASE_FIELDS = list(INDICATORS.values())
DERIVED_FIELDS = ["log_gni_per_capita", "inflation_rate"]
ID_FIELDS = ["country", "iso3c", "year", "region", "income"]

# ─── TEMPORAL PARAMETERS ─────────────────────────────────────────────────
START_YEAR = 2000
END_YEAR = 2023

# Year used for the cross-sectional model. None selects the latest year
# present in the cleaned panel.
CROSS_SECTION_YEAR = None

# ─── CLEANING PARAMETERS ─────────────────────────────────────────────────
# Inflation is the year-over-year percent change of the CPI.
#   "country":   lag within each country ordered by year.
#   "row_order": lag by plain row order after sorting by year, matching
#                the ungrouped lag of the first version of this analysis.
INFLATION_LAG_MODE = "country"
INFLATION_LAG_MODES = ("country", "row_order")

# WDI region value used for regional and income aggregates (e.g. "World",
# "Sub-Saharan Africa"). These are not countries and are treated as
# unclassified.
AGGREGATE_REGION_LABEL = "Aggregates"

# ─── REGRESSION SPECIFICATION ────────────────────────────────────────────
# gdp_growth ~ log_gni_per_capita + exports_gdp + capital_formation
#              + unemployment + inflation_rate
# The negative coefficient expected on log income is the conditional
# convergence effect (Barro, 1991, QJE 106(2), 407-443).
DEPENDENT_VARIABLE = "gdp_growth"
REGRESSORS = [
    "log_gni_per_capita",
    "exports_gdp",
    "capital_formation",
    "unemployment",
    "inflation_rate",
]
CORRELATION_VARIABLES = [DEPENDENT_VARIABLE] + REGRESSORS

INTERCEPT_TERM = "(Intercept)"

# Human-readable term labels for the reporting layer.
TERM_LABELS = {
    INTERCEPT_TERM: "Intercept",
    "log_gni_per_capita": "Log GNI per capita",
    "exports_gdp": "Trade openness (% GDP)",
    "capital_formation": "Investment (% GDP)",
    "unemployment": "Unemployment rate (%)",
    "inflation_rate": "Inflation rate (%)",
}

# Conventional significance markers, checked in order (first match wins).
SIGNIFICANCE_LEVELS = [
    (0.001, "***"),
    (0.01, "**"),
    (0.05, "*"),
    (0.1, "."),
]

# Two-way within transform: alternating projections stop once every
# country and year mean of the transformed data is below this tolerance.
# Balanced panels converge after a single sweep.
WITHIN_TOL = 1e-10
WITHIN_MAX_ITER = 1000

# ─── SUMMARY PARAMETERS ──────────────────────────────────────────────────
TOP_N = 10

REGIONAL_SUMMARY_FIELDS = {
    "avg_gdp_growth": "gdp_growth",
    "avg_gni_per_capita": "gni_per_capita",
    "avg_exports": "exports_gdp",
    "avg_investment": "capital_formation",
    "avg_unemployment": "unemployment",
}

TIME_TREND_FIELDS = {
    "avg_gdp_growth": "gdp_growth",
    "avg_investment": "capital_formation",
    "avg_trade_openness": "exports_gdp",
}

PERFORMER_COLUMNS = [
    "country", "region", "gdp_growth", "capital_formation", "exports_gdp",
]

# ─── WDI API ─────────────────────────────────────────────────────────────
WDI_API_URL = "https://api.worldbank.org/v2"
WDI_PER_PAGE = 20000
# Socket timeout for a single request. Failed requests are not retried.
HTTP_TIMEOUT_SECONDS = 60
USER_AGENT = "growth-analysis/1.0"

# ─── VISUALIZATION PARAMETERS ────────────────────────────────────────────
FIGURE_DPI = 150

# ─── PATHS ───────────────────────────────────────────────────────────────
DEFAULT_DATA_DIR = "data"
DEFAULT_OUTPUT_DIR = "outputs"

PANEL_CACHE_TEMPLATE = "wdi_data_panel_{start}_{end}_raw.csv"
CROSS_SECTION_CACHE_TEMPLATE = "wdi_data_{year}_raw.csv"
PANEL_CACHE_FILENAME = PANEL_CACHE_TEMPLATE.format(start=START_YEAR, end=END_YEAR)
CROSS_SECTION_CACHE_FILENAME = CROSS_SECTION_CACHE_TEMPLATE.format(year=END_YEAR)
BUNDLE_FILENAME = "analysis_results.pkl"
PIPELINE_RUN_FILENAME = "pipeline_run.json"

OUTPUT_DIRS = {
    "csv": "csv",
    "figures": "figures",
}


def get_output_dirs(output_dir):
    """Map each output kind to its subdirectory under output_dir."""
    return {key: os.path.join(output_dir, sub) for key, sub in OUTPUT_DIRS.items()}


def get_cache_paths(data_dir, start_year=START_YEAR, end_year=END_YEAR):
    """Panel and raw cross-section cache file paths for a year window."""
    return {
        "panel": os.path.join(
            data_dir, PANEL_CACHE_TEMPLATE.format(start=start_year, end=end_year)
        ),
        "cross_section": os.path.join(
            data_dir, CROSS_SECTION_CACHE_TEMPLATE.format(year=end_year)
        ),
    }
