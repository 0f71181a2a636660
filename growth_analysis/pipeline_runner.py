#!/usr/bin/env python3
"""
Pipeline runner with validation gates.

Orchestrates the full growth analysis with:
- Pandera schema validation between steps (structure + data quality)
- NaN propagation tracking between steps
- ``--strict-validation`` flag to abort on schema violations
- All-or-nothing output: the result bundle is written only when every
  analysis step succeeded
- Full PipelineRunResult provenance saved as JSON

Usage:
    # Run full pipeline (downloads the WDI panel on first run)
    python3 -m growth_analysis.pipeline_runner

    # Different window, reproduce the ungrouped inflation lag
    python3 -m growth_analysis.pipeline_runner --start-year 2005 --end-year 2020 \\
        --inflation-lag row_order

    # Abort on schema violations, export every table as CSV
    python3 -m growth_analysis.pipeline_runner --strict-validation --export-csv
"""

import argparse
import json
import os
import sys
import time

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger, setup_logging
from growth_analysis.pipeline_types import PipelineRunResult, StepResult, StepStatus
from growth_analysis.schemas import (
    AnalysisPanelSchema,
    CoefficientTableSchema,
    RawPanelSchema,
    RegionalSummarySchema,
    validate_schema,
)

log = get_pipeline_logger(__name__)

PIPELINE_STEPS = [
    "load_data",
    "clean_data",
    "fit_cross_section",
    "fit_fixed_effects",
    "diagnostics",
    "summaries",
    "save_bundle",
    "figures",
]

# A failure in any other step aborts the run before the bundle is written.
NON_CRITICAL_STEPS = {"figures"}


# ── NaN tracking helper ──────────────────────────────────────────────────


def track_nan_counts(df, step_name, prev_nan_counts=None):
    """Track NaN counts per column and warn on propagation.

    Parameters
    ----------
    df : pd.DataFrame or None
        DataFrame to inspect.
    step_name : str
        Pipeline step name for logging.
    prev_nan_counts : dict or None
        NaN counts from the previous step for delta comparison.

    Returns
    -------
    dict
        Column → NaN count mapping for this step.
    """
    if df is None:
        return {}

    nan_counts = df.isna().sum().to_dict()
    nan_counts = {k: int(v) for k, v in nan_counts.items() if v > 0}

    if nan_counts:
        log.debug(
            "[%s] NaN counts: %s",
            step_name,
            nan_counts,
            extra={"pipeline_record": {"step_name": step_name, "nan_summary": nan_counts}},
        )

    if prev_nan_counts:
        for col, count in nan_counts.items():
            prev = prev_nan_counts.get(col, 0)
            if count > prev:
                log.warning(
                    "[%s] NaN count increased for '%s': %d → %d (+%d)",
                    step_name, col, prev, count, count - prev,
                )

    return nan_counts


# ── Validation gate ──────────────────────────────────────────────────────


def _validation_gate(pipeline_result, df, schema, step_name, strict):
    """Run a schema check; return False if the run must stop.

    Lenient violations are logged and recorded on the step just run.
    """
    try:
        found = validate_schema(df, schema, step_name, strict=strict)
        for w in found:
            log.warning(w)
        checked = [s for s in pipeline_result.step_results if s.step_name == step_name]
        if checked:
            checked[-1].warnings.extend(found)
    except ValueError as exc:
        log.error("Validation failed after %s: %s", step_name, exc)
        pipeline_result.step_results.append(StepResult(
            step_name=f"validate_{step_name}",
            status=StepStatus.ERROR.value,
            error=str(exc),
        ))
        return False
    return True


def _abort(pipeline_result, start_time, step_name, error):
    log.error("Pipeline aborted at %s: %s", step_name, error)
    pipeline_result.total_time_seconds = time.time() - start_time
    return pipeline_result


# ── Pipeline ─────────────────────────────────────────────────────────────


def run_pipeline(args, fetcher=None, run_id=None):
    """Run the growth analysis pipeline with validation gates.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments (see parse_args()).
    fetcher : callable, optional
        Replaces wdi_client.fetch_wdi_panel when the panel cache is absent.
    run_id : str, optional
        Id returned by setup_logging(); stored in the run record.

    Returns
    -------
    PipelineRunResult
        ``bundle_path`` is set only if the bundle was written.
    """
    from growth_analysis.pipeline_steps import (
        step_load_data,
        step_clean_data,
        step_fit_cross_section,
        step_fit_fixed_effects,
        step_diagnostics,
        step_summaries,
        step_save_bundle,
        step_figures,
    )

    strict = getattr(args, "strict_validation", False)
    start_year = getattr(args, "start_year", None) or config.START_YEAR
    end_year = getattr(args, "end_year", None) or config.END_YEAR
    lag_mode = getattr(args, "inflation_lag", None) or config.INFLATION_LAG_MODE
    cross_year = getattr(args, "cross_section_year", None) or config.CROSS_SECTION_YEAR

    if start_year > end_year:
        raise ValueError(f"start year {start_year} is after end year {end_year}")

    pipeline_result = PipelineRunResult(
        output_dir=args.output_dir,
        run_id=run_id,
        years=[start_year, end_year],
        inflation_lag=lag_mode,
    )
    start_time = time.time()
    os.makedirs(args.output_dir, exist_ok=True)

    # Step 1: Load data (cache or WDI API)
    result, loaded = step_load_data(args.data_dir, start_year, end_year, fetcher=fetcher)
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "load_data", result.error)

    if not _validation_gate(pipeline_result, loaded["panel"], RawPanelSchema,
                            "load_data", strict):
        return _abort(pipeline_result, start_time, "load_data", "raw panel validation")
    prev_nan_counts = track_nan_counts(loaded["panel"], "load_data")

    # Step 2: Clean
    result, data = step_clean_data(
        loaded["panel"], lag_mode, start_year, end_year, cross_section_year=cross_year,
    )
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "clean_data", result.error)
    pipeline_result.drop_report = data["drop_report"].to_dict()
    pipeline_result.cross_section_year = int(data["model_data"]["year"].iloc[0])

    if not _validation_gate(pipeline_result, data["clean_panel_data"], AnalysisPanelSchema,
                            "clean_data", strict):
        return _abort(pipeline_result, start_time, "clean_data", "analysis panel validation")
    track_nan_counts(data["clean_panel_data"], "clean_data", prev_nan_counts)

    # Step 3: Cross-sectional OLS
    result, cross = step_fit_cross_section(data["model_data"])
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "fit_cross_section", result.error)

    # Step 4: Two-way fixed effects
    result, fe = step_fit_fixed_effects(data["panel_model_data"])
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "fit_fixed_effects", result.error)

    for name, table in (("fit_cross_section", cross["tidy"]), ("fit_fixed_effects", fe["tidy"])):
        if not _validation_gate(pipeline_result, table, CoefficientTableSchema, name, strict):
            return _abort(pipeline_result, start_time, name, "coefficient table validation")

    # Step 5: Diagnostics and model comparison
    result, diag = step_diagnostics(cross["result"], cross["tidy"], fe["tidy"])
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "diagnostics", result.error)

    # Step 6: Summaries
    result, summaries = step_summaries(data["model_data"], data["clean_panel_data"])
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "summaries", result.error)

    if not _validation_gate(pipeline_result, summaries["regional_summary"],
                            RegionalSummarySchema, "summaries", strict):
        return _abort(pipeline_result, start_time, "summaries", "regional summary validation")

    # Step 7: Result bundle
    bundle = {
        "tidy_model": cross["tidy"],
        "tidy_fe": fe["tidy"],
        "cross_summary": cross["glance"],
        "fe_summary": fe["glance"],
        **summaries,
        "model_data": data["model_data"],
        "clean_panel_data": data["clean_panel_data"],
        "panel_model_data": data["panel_model_data"],
        "model_diagnostics": diag["table"],
        "model_comparison": diag["comparison"],
        "raw_cross_section": loaded["raw_cross_section"],
        "drop_report": pipeline_result.drop_report,
    }
    result, paths = step_save_bundle(bundle, args.output_dir,
                                     export_csv=getattr(args, "export_csv", False))
    pipeline_result.step_results.append(result)
    if not result.ok:
        return _abort(pipeline_result, start_time, "save_bundle", result.error)
    pipeline_result.bundle_path = paths[0]
    pipeline_result.output_files.extend(paths)

    # ── Non-critical steps (log warning, continue on failure) ────────

    # Step 8: Figures
    if not getattr(args, "no_figures", False):
        result, figure_paths = step_figures(summaries, args.output_dir)
        pipeline_result.step_results.append(result)
        if result.ok:
            pipeline_result.output_files.extend(figure_paths)
        else:
            log.warning("Figures failed: %s", result.error)

    pipeline_result.total_time_seconds = time.time() - start_time
    return pipeline_result


# ── Main entry point ─────────────────────────────────────────────────────


def save_pipeline_result(pipeline_result, output_dir):
    """Save PipelineRunResult as JSON for provenance."""
    os.makedirs(output_dir, exist_ok=True)
    result_path = os.path.join(output_dir, config.PIPELINE_RUN_FILENAME)
    with open(result_path, "w") as f:
        json.dump(pipeline_result.to_dict(), f, indent=2, default=str)
    log.info("Pipeline result saved: %s", result_path)
    return result_path


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Growth determinants analysis of World Bank WDI data"
    )
    parser.add_argument(
        "--data-dir",
        default=config.DEFAULT_DATA_DIR,
        help="Directory holding the raw WDI cache files",
    )
    parser.add_argument(
        "--output-dir",
        default=config.DEFAULT_OUTPUT_DIR,
        help="Output directory for the bundle, figures and run record",
    )
    parser.add_argument(
        "--start-year",
        type=int,
        default=config.START_YEAR,
        help="First year of the panel (inclusive)",
    )
    parser.add_argument(
        "--end-year",
        type=int,
        default=config.END_YEAR,
        help="Last year of the panel (inclusive)",
    )
    parser.add_argument(
        "--cross-section-year",
        type=int,
        default=config.CROSS_SECTION_YEAR,
        help="Year of the cross-sectional model (default: latest complete year)",
    )
    parser.add_argument(
        "--inflation-lag",
        choices=config.INFLATION_LAG_MODES,
        default=config.INFLATION_LAG_MODE,
        help="Prior-year CPI: within country, or previous row after sorting by year",
    )
    parser.add_argument(
        "--strict-validation",
        action="store_true",
        default=False,
        dest="strict_validation",
        help="Abort pipeline on schema validation failures (default: warn only)",
    )
    parser.add_argument(
        "--no-figures",
        action="store_true",
        default=False,
        dest="no_figures",
        help="Skip the PNG figures",
    )
    parser.add_argument(
        "--export-csv",
        action="store_true",
        default=False,
        dest="export_csv",
        help="Also write every bundle table as CSV",
    )
    args = parser.parse_args(argv)

    if args.start_year > args.end_year:
        parser.error(f"--start-year {args.start_year} is after --end-year {args.end_year}")
    if args.cross_section_year is not None and not (
        args.start_year <= args.cross_section_year <= args.end_year
    ):
        parser.error(
            f"--cross-section-year {args.cross_section_year} is outside "
            f"{args.start_year}-{args.end_year}"
        )
    return args


def main(argv=None):
    args = parse_args(argv)

    run_id = setup_logging(args.output_dir)
    log.info("Growth analysis pipeline (run_id=%s)", run_id)

    result = run_pipeline(args, run_id=run_id)
    save_pipeline_result(result, args.output_dir)

    log.info("Pipeline complete in %.1fs", result.total_time_seconds)
    if result.failed_steps:
        log.warning("Failed steps: %s", [s.step_name for s in result.failed_steps])

    if result.bundle_path is None:
        log.error("No result bundle was written")
        sys.exit(1)
    log.info("Result bundle: %s", result.bundle_path)


if __name__ == "__main__":
    main()
