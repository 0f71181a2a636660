"""
Regression diagnostics for the cross-sectional OLS model.

Checks the classical assumptions behind the reported standard errors:
residual normality, homoskedasticity, and collinearity among the
regressors. Findings are reported and logged as warnings; they never
abort the run.
"""

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import het_breuschpagan
from statsmodels.stats.outliers_influence import variance_inflation_factor
from statsmodels.stats.stattools import jarque_bera

from growth_analysis.formulas import diagnostics_thresholds as thresholds
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def scaled_condition_number(exog):
    """Condition number of the design matrix with unit-length columns.

    Column scaling removes the dependence on measurement units, so the
    number reflects collinearity only (Belsley, Kuh & Welsch, 1980).
    """
    exog = np.asarray(exog, dtype=float)
    norms = np.linalg.norm(exog, axis=0)
    norms[norms == 0] = 1.0
    return float(np.linalg.cond(exog / norms))


def compute_ols_diagnostics(result):
    """Diagnostics for a fitted statsmodels OLS result with intercept.

    Args:
        result: Output of models.fit_cross_section_ols().

    Returns:
        Dict with jarque_bera_p, breusch_pagan_p, condition_number,
        vif (regressor -> VIF), obs_per_parameter, r_squared and
        model_warnings (list of str).
    """
    exog = result.model.exog
    names = list(result.model.exog_names)
    resid = np.asarray(result.resid)

    _, jb_p, _, _ = jarque_bera(resid)
    _, bp_p, _, _ = het_breuschpagan(resid, exog)

    vif = {
        name: float(variance_inflation_factor(exog, i))
        for i, name in enumerate(names)
        if name != "const"
    }
    cond = scaled_condition_number(exog)
    obs_per_param = result.nobs / exog.shape[1]

    warnings_list = []
    if jb_p < thresholds.JB_P_THRESHOLD:
        warnings_list.append("non-normal residuals (JB p={:.3f})".format(jb_p))
    if bp_p < thresholds.BP_P_THRESHOLD:
        warnings_list.append("heteroskedastic residuals (BP p={:.3f})".format(bp_p))
    for name, value in vif.items():
        if value > thresholds.VIF_WARNING:
            warnings_list.append("collinear regressor {} (VIF={:.1f})".format(name, value))
    if cond > thresholds.CONDITION_NUMBER_WARNING:
        warnings_list.append("ill-conditioned design (cond={:.1f})".format(cond))
    if obs_per_param < thresholds.MIN_OBS_PER_PARAMETER:
        warnings_list.append(
            "few observations per parameter ({:.1f})".format(obs_per_param)
        )
    if result.rsquared < thresholds.R_SQUARED_WARNING:
        warnings_list.append("weak model fit (R²={:.3f})".format(result.rsquared))

    for w in warnings_list:
        log.warning("Cross-sectional OLS: %s", w)

    return {
        "jarque_bera_p": float(jb_p),
        "breusch_pagan_p": float(bp_p),
        "condition_number": cond,
        "vif": vif,
        "obs_per_parameter": float(obs_per_param),
        "r_squared": float(result.rsquared),
        "model_warnings": warnings_list,
    }


def diagnostics_table(diag):
    """Flatten a diagnostics dict into one row per check.

    Columns: check, value, threshold, flagged.
    """
    rows = [
        ("jarque_bera_p", diag["jarque_bera_p"], thresholds.JB_P_THRESHOLD,
         diag["jarque_bera_p"] < thresholds.JB_P_THRESHOLD),
        ("breusch_pagan_p", diag["breusch_pagan_p"], thresholds.BP_P_THRESHOLD,
         diag["breusch_pagan_p"] < thresholds.BP_P_THRESHOLD),
        ("condition_number", diag["condition_number"],
         thresholds.CONDITION_NUMBER_WARNING,
         diag["condition_number"] > thresholds.CONDITION_NUMBER_WARNING),
        ("obs_per_parameter", diag["obs_per_parameter"],
         thresholds.MIN_OBS_PER_PARAMETER,
         diag["obs_per_parameter"] < thresholds.MIN_OBS_PER_PARAMETER),
        ("r_squared", diag["r_squared"], thresholds.R_SQUARED_WARNING,
         diag["r_squared"] < thresholds.R_SQUARED_WARNING),
    ]
    for name, value in diag["vif"].items():
        rows.append((f"vif_{name}", value, thresholds.VIF_WARNING,
                     value > thresholds.VIF_WARNING))

    return pd.DataFrame(rows, columns=["check", "value", "threshold", "flagged"])
