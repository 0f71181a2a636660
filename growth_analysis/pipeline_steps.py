"""
Growth analysis pipeline step functions.

Each function is a discrete, testable pipeline step with explicit
inputs/outputs and StepResult tracking.  Boilerplate (timing, error
handling, logging) is handled by ``run_step()``.
"""

import os

import pandas as pd

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger
from growth_analysis.step_runner import run_step

log = get_pipeline_logger(__name__)


def step_load_data(
    data_dir: str,
    start_year: int,
    end_year: int,
    fetcher=None,
) -> tuple:
    """Load the raw WDI panel and raw end-year cross-section from cache or API."""
    from growth_analysis.wdi_client import load_or_fetch_panel, load_or_write_cross_section

    paths = config.get_cache_paths(data_dir, start_year, end_year)

    def _work():
        panel = load_or_fetch_panel(
            paths["panel"], list(config.INDICATORS), start_year, end_year,
            fetcher=fetcher,
        )
        raw_cross = load_or_write_cross_section(panel, paths["cross_section"], end_year)
        return {"panel": panel, "raw_cross_section": raw_cross}

    return run_step(
        "load_data", _work,
        input_summary={
            "panel_cache": paths["panel"],
            "cache_hit": os.path.exists(paths["panel"]),
            "years": [start_year, end_year],
        },
        output_summary_fn=lambda d: {
            "rows": len(d["panel"]),
            "economies": d["panel"]["country"].nunique(),
            "cross_section_rows": len(d["raw_cross_section"]),
        },
    )


def step_clean_data(
    raw: pd.DataFrame,
    lag_mode: str,
    start_year: int,
    end_year: int,
    cross_section_year=None,
) -> tuple:
    """Clean the raw panel and derive the cross-sectional and panel datasets."""
    from growth_analysis.preprocess import clean_panel, cross_section, panel_model_data

    def _work():
        clean, report = clean_panel(raw, lag_mode=lag_mode)
        return {
            "clean_panel_data": clean,
            "drop_report": report,
            "model_data": cross_section(clean, cross_section_year),
            "panel_model_data": panel_model_data(clean, start_year, end_year),
        }

    return run_step(
        "clean_data", _work,
        input_summary={"rows": len(raw), "lag_mode": lag_mode},
        output_summary_fn=lambda d: {
            "clean_rows": len(d["clean_panel_data"]),
            "rows_dropped": d["drop_report"].to_dict(),
            "cross_section_year": int(d["model_data"]["year"].iloc[0]),
            "cross_section_countries": len(d["model_data"]),
            "panel_rows": len(d["panel_model_data"]),
        },
    )


def step_fit_cross_section(model_data: pd.DataFrame) -> tuple:
    """Fit the cross-sectional OLS on the latest-year dataset."""
    from growth_analysis.models import fit_cross_section_ols, glance_ols, tidy_ols

    def _work():
        result = fit_cross_section_ols(model_data)
        return {"result": result, "tidy": tidy_ols(result), "glance": glance_ols(result)}

    return run_step(
        "fit_cross_section", _work,
        input_summary={"countries": len(model_data)},
        output_summary_fn=lambda d: {
            "nobs": int(d["result"].nobs),
            "r_squared": round(float(d["result"].rsquared), 4),
        },
    )


def step_fit_fixed_effects(panel_data: pd.DataFrame) -> tuple:
    """Fit the two-way (country and year) fixed-effects panel regression."""
    from growth_analysis.models import fit_panel_fixed_effects, glance_panel, tidy_panel

    def _work():
        result = fit_panel_fixed_effects(panel_data)
        return {"result": result, "tidy": tidy_panel(result), "glance": glance_panel(result)}

    return run_step(
        "fit_fixed_effects", _work,
        input_summary={
            "rows": len(panel_data),
            "countries": panel_data["country"].nunique(),
            "years": panel_data["year"].nunique(),
        },
        output_summary_fn=lambda d: {
            "nobs": d["result"].nobs,
            "df_resid": d["result"].df_resid,
            "within_r_squared": round(float(d["result"].rsquared), 4),
        },
    )


def step_diagnostics(cross_result, tidy_cross: pd.DataFrame, tidy_fe: pd.DataFrame) -> tuple:
    """OLS diagnostics and the side-by-side model comparison table."""
    from growth_analysis.model_diagnostics import compute_ols_diagnostics, diagnostics_table
    from growth_analysis.models import model_comparison

    def _work():
        diag = compute_ols_diagnostics(cross_result)
        return {
            "diagnostics": diag,
            "table": diagnostics_table(diag),
            "comparison": model_comparison(tidy_cross, tidy_fe),
        }

    return run_step(
        "diagnostics", _work,
        input_summary={"terms": len(tidy_cross)},
        output_summary_fn=lambda d: {"flagged_checks": int(d["table"]["flagged"].sum())},
        warnings_fn=lambda d: d["diagnostics"]["model_warnings"],
    )


def step_summaries(model_data: pd.DataFrame, clean_panel_data: pd.DataFrame) -> tuple:
    """Correlation matrix, regional and yearly aggregates, leaderboards."""
    from growth_analysis.summaries import summarize

    def _work():
        return summarize(model_data, clean_panel_data)

    return run_step(
        "summaries", _work,
        input_summary={
            "countries": len(model_data),
            "panel_rows": len(clean_panel_data),
        },
        output_summary_fn=lambda s: {
            "regions": len(s["regional_summary"]),
            "years": len(s["time_trends"]),
        },
    )


def step_save_bundle(bundle: dict, output_dir: str, export_csv: bool = False) -> tuple:
    """Persist the result bundle, optionally exporting each table as CSV."""
    from growth_analysis.bundle import export_bundle_csvs, save_bundle

    bundle_path = os.path.join(output_dir, config.BUNDLE_FILENAME)

    def _work():
        paths = [save_bundle(bundle, bundle_path)]
        if export_csv:
            paths += export_bundle_csvs(bundle, config.get_output_dirs(output_dir)["csv"])
        return paths

    return run_step(
        "save_bundle", _work,
        input_summary={"entries": len(bundle), "export_csv": export_csv},
        output_summary_fn=lambda paths: {"bundle_path": paths[0], "files": len(paths)},
    )


def step_figures(summaries: dict, output_dir: str) -> tuple:
    """Write the quick-look PNG figures."""
    from growth_analysis.visualizations import generate_figures

    figures_dir = config.get_output_dirs(output_dir)["figures"]

    def _work():
        return generate_figures(summaries, figures_dir)

    return run_step(
        "figures", _work,
        input_summary={"figures_dir": figures_dir},
        output_summary_fn=lambda paths: {"figures": len(paths)},
    )
