"""
Result bundle: every table the reporting layer renders, in one file.

The bundle is a plain dict keyed by BUNDLE_KEYS and pickled with pandas.
It is written only after every analysis step has succeeded, and replaces
any previous bundle at the same path in a single rename, so a reader
never sees a partial file.
"""

import os

import pandas as pd

from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

BUNDLE_KEYS = [
    # models
    "tidy_model",
    "tidy_fe",
    "cross_summary",
    "fe_summary",
    # descriptive summaries
    "correlation_matrix",
    "regional_summary",
    "time_trends",
    "top_performers",
    "bottom_performers",
    # dataset snapshots
    "model_data",
    "clean_panel_data",
    "panel_model_data",
    # supplements
    "model_diagnostics",
    "model_comparison",
    "raw_cross_section",
    "drop_report",
]

# Tables whose row index carries meaning when exported.
_INDEXED_TABLES = {"correlation_matrix"}


def missing_keys(bundle):
    return [k for k in BUNDLE_KEYS if k not in bundle]


def save_bundle(bundle, path):
    """Write the bundle to *path*, overwriting any existing file.

    Parameters
    ----------
    bundle : dict
        Must contain every key in BUNDLE_KEYS. Extra keys are dropped.
    path : str
        Destination pickle file.

    Returns
    -------
    str
        The path written.

    Raises
    ------
    KeyError
        If any bundle key is missing. Nothing is written.
    """
    missing = missing_keys(bundle)
    if missing:
        raise KeyError(f"Result bundle is missing keys: {missing}")

    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    payload = {k: bundle[k] for k in BUNDLE_KEYS}
    tmp_path = path + ".tmp"
    pd.to_pickle(payload, tmp_path)
    os.replace(tmp_path, path)

    log.info("Saved result bundle: %s (%d entries)", path, len(payload))
    return path


def load_bundle(path):
    """Read a bundle written by save_bundle().

    Raises
    ------
    FileNotFoundError
        If no bundle exists at *path*.
    KeyError
        If the file is not a complete bundle.
    """
    bundle = pd.read_pickle(path)
    if not isinstance(bundle, dict):
        raise KeyError(f"{path} does not contain a result bundle")
    missing = missing_keys(bundle)
    if missing:
        raise KeyError(f"Result bundle {path} is missing keys: {missing}")
    return bundle


def export_bundle_csvs(bundle, csv_dir):
    """Write each DataFrame in the bundle to ``{csv_dir}/{key}.csv``.

    Non-tabular entries (the drop report) are skipped.

    Returns
    -------
    list[str]
        Paths written, in BUNDLE_KEYS order.
    """
    os.makedirs(csv_dir, exist_ok=True)
    paths = []
    for key in BUNDLE_KEYS:
        table = bundle.get(key)
        if not isinstance(table, pd.DataFrame):
            continue
        out_path = os.path.join(csv_dir, f"{key}.csv")
        table.to_csv(out_path, index=key in _INDEXED_TABLES)
        paths.append(out_path)

    log.info("Exported %d bundle tables to %s", len(paths), csv_dir)
    return paths
