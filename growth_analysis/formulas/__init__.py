"""
Centralized statistical formulas and threshold constants.

This subpackage holds the pure computational pieces used by the models
and diagnostics: the two-way within transform, significance markers, and
regression diagnostic thresholds. config.py retains runtime parameters,
the regression specification, and paths.
"""

from growth_analysis.formulas.significance import significance_stars
from growth_analysis.formulas.within import two_way_demean, within_residual_df
from growth_analysis.formulas.diagnostics_thresholds import (
    JB_P_THRESHOLD,
    BP_P_THRESHOLD,
    VIF_WARNING,
    CONDITION_NUMBER_WARNING,
    R_SQUARED_WARNING,
    MIN_OBS_PER_PARAMETER,
)

__all__ = [
    # significance
    "significance_stars",
    # within transform
    "two_way_demean",
    "within_residual_df",
    # diagnostics thresholds
    "JB_P_THRESHOLD",
    "BP_P_THRESHOLD",
    "VIF_WARNING",
    "CONDITION_NUMBER_WARNING",
    "R_SQUARED_WARNING",
    "MIN_OBS_PER_PARAMETER",
]
