"""
Cross-sectional OLS and two-way fixed-effects panel regressions.

Both models share one specification (config.DEPENDENT_VARIABLE on
config.REGRESSORS). Results are reduced to two tidy tables per model:
one row per term (estimate, standard error, t statistic, p-value,
significance marker) and one row of fit statistics.

Fit failures (singular design, too few observations, regressors with no
within variation) raise; nothing is substituted.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats

from growth_analysis import config
from growth_analysis.formulas.significance import significance_stars
from growth_analysis.formulas.within import two_way_demean, within_residual_df
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

TIDY_COLUMNS = [
    "term", "label", "estimate", "std_error", "statistic", "p_value", "significance",
]


def _check_full_rank(X, model_name):
    rank = np.linalg.matrix_rank(np.asarray(X, dtype=float))
    if rank < X.shape[1]:
        raise np.linalg.LinAlgError(
            f"{model_name}: design matrix is singular "
            f"(rank {rank} < {X.shape[1]} columns)"
        )


# ── Cross-sectional OLS ──────────────────────────────────────────────────


def fit_cross_section_ols(df, dependent=None, regressors=None):
    """Fit OLS with intercept: dependent ~ regressors.

    Parameters
    ----------
    df : pd.DataFrame
        Cross-sectional dataset, one row per country.
    dependent : str, optional
        Default: config.DEPENDENT_VARIABLE.
    regressors : list[str], optional
        Default: config.REGRESSORS.

    Returns
    -------
    statsmodels.regression.linear_model.RegressionResultsWrapper
        The intercept is the ``const`` parameter.

    Raises
    ------
    ValueError
        If there are no residual degrees of freedom.
    numpy.linalg.LinAlgError
        If the design matrix is rank deficient.
    """
    if dependent is None:
        dependent = config.DEPENDENT_VARIABLE
    if regressors is None:
        regressors = config.REGRESSORS

    y = df[dependent].astype(float)
    X = sm.add_constant(df[regressors].astype(float), has_constant="add")

    if len(df) <= X.shape[1]:
        raise ValueError(
            f"Cross-sectional OLS needs more than {X.shape[1]} observations, "
            f"got {len(df)}"
        )
    _check_full_rank(X, "cross-sectional OLS")

    result = sm.OLS(y, X).fit()
    log.info(
        "Cross-sectional OLS: n=%d, R²=%.3f, adj. R²=%.3f",
        int(result.nobs), result.rsquared, result.rsquared_adj,
    )
    return result


def tidy_coefficients(params, bse, tvalues, pvalues, labels=None):
    """Assemble a coefficient table from aligned per-term Series.

    Returns
    -------
    pd.DataFrame
        Columns: term, label, estimate, std_error, statistic, p_value,
        significance. Row order follows params.
    """
    if labels is None:
        labels = config.TERM_LABELS

    terms = list(params.index)
    table = pd.DataFrame({
        "term": terms,
        "label": [labels.get(t, t) for t in terms],
        "estimate": params.to_numpy(dtype=float),
        "std_error": bse.reindex(terms).to_numpy(dtype=float),
        "statistic": tvalues.reindex(terms).to_numpy(dtype=float),
        "p_value": pvalues.reindex(terms).to_numpy(dtype=float),
    })
    table["significance"] = table["p_value"].map(significance_stars)
    return table[TIDY_COLUMNS]


def tidy_ols(result, labels=None):
    """Coefficient table of a statsmodels OLS fit, intercept first."""
    rename = {"const": config.INTERCEPT_TERM}
    return tidy_coefficients(
        result.params.rename(index=rename),
        result.bse.rename(index=rename),
        result.tvalues.rename(index=rename),
        result.pvalues.rename(index=rename),
        labels,
    )


def glance_ols(result):
    """One-row table of OLS goodness-of-fit statistics."""
    return pd.DataFrame([{
        "r_squared": result.rsquared,
        "adj_r_squared": result.rsquared_adj,
        "sigma": float(np.sqrt(result.scale)),
        "statistic": result.fvalue,
        "p_value": result.f_pvalue,
        "df": int(result.df_model),
        "log_lik": result.llf,
        "aic": result.aic,
        "bic": result.bic,
        "deviance": result.ssr,
        "df_residual": int(result.df_resid),
        "nobs": int(result.nobs),
    }])


# ── Two-way fixed effects ────────────────────────────────────────────────


@dataclass
class PanelFitResult:
    """Two-way within-estimator fit. No intercept: effects are absorbed."""

    params: pd.Series
    bse: pd.Series
    tvalues: pd.Series
    pvalues: pd.Series
    rsquared: float
    rsquared_adj: float
    fvalue: float
    f_pvalue: float
    ssr: float
    df_resid: int
    nobs: int
    n_entities: int
    n_periods: int
    resid: pd.Series


def fit_panel_fixed_effects(df, dependent=None, regressors=None,
                            entity_col="country", time_col="year"):
    """Fit dependent ~ regressors with country and year fixed effects.

    Every variable is demeaned by country and by year (two_way_demean);
    the transformed dependent variable is regressed on the transformed
    regressors without an intercept. Standard errors use the residual
    degrees of freedom net of the absorbed effects.

    Parameters
    ----------
    df : pd.DataFrame
        Panel dataset, unique per (entity_col, time_col).
    dependent : str, optional
        Default: config.DEPENDENT_VARIABLE.
    regressors : list[str], optional
        Default: config.REGRESSORS.
    entity_col, time_col : str
        Panel index columns.

    Returns
    -------
    PanelFitResult

    Raises
    ------
    ValueError
        Duplicate (entity, time) pairs, a regressor with no within
        variation, or no residual degrees of freedom.
    numpy.linalg.LinAlgError
        If the demeaned regressors are collinear.
    """
    if dependent is None:
        dependent = config.DEPENDENT_VARIABLE
    if regressors is None:
        regressors = list(config.REGRESSORS)

    if df.duplicated(subset=[entity_col, time_col]).any():
        raise ValueError(f"Panel index ({entity_col}, {time_col}) is not unique")

    columns = [dependent] + list(regressors)
    demeaned = two_way_demean(df, columns, entity_col=entity_col, time_col=time_col)

    for col in regressors:
        scale = max(1.0, float(df[col].abs().max()))
        if float(demeaned[col].abs().max()) <= 1e-8 * scale:
            raise ValueError(
                f"Regressor '{col}' has no variation left after removing "
                f"{entity_col} and {time_col} effects"
            )

    n_obs = len(df)
    n_entities = df[entity_col].nunique()
    n_periods = df[time_col].nunique()
    k = len(regressors)
    df_resid = within_residual_df(n_obs, k, n_entities, n_periods)

    X = demeaned[list(regressors)]
    y = demeaned[dependent]
    _check_full_rank(X, "fixed-effects panel")

    ols = sm.OLS(y, X).fit()
    resid = ols.resid
    ssr = float(np.sum(resid ** 2))
    sigma2 = ssr / df_resid
    cov = sigma2 * np.asarray(ols.normalized_cov_params)
    bse = pd.Series(np.sqrt(np.diag(cov)), index=ols.params.index)
    tvalues = ols.params / bse
    pvalues = pd.Series(
        2 * stats.t.sf(np.abs(tvalues.to_numpy()), df_resid), index=ols.params.index
    )

    tss = float(np.sum(y ** 2))
    rsquared = 1.0 - ssr / tss if tss > 0 else np.nan
    rsquared_adj = 1.0 - (1.0 - rsquared) * (n_obs - 1) / df_resid
    with np.errstate(divide="ignore", invalid="ignore"):
        fvalue = float(np.float64(rsquared / k) / np.float64((1.0 - rsquared) / df_resid))
    f_pvalue = float(stats.f.sf(fvalue, k, df_resid))

    log.info(
        "Two-way FE: n=%d, countries=%d, years=%d, within R²=%.3f",
        n_obs, n_entities, n_periods, rsquared,
    )
    return PanelFitResult(
        params=ols.params,
        bse=bse,
        tvalues=tvalues,
        pvalues=pvalues,
        rsquared=rsquared,
        rsquared_adj=rsquared_adj,
        fvalue=fvalue,
        f_pvalue=f_pvalue,
        ssr=ssr,
        df_resid=df_resid,
        nobs=n_obs,
        n_entities=n_entities,
        n_periods=n_periods,
        resid=resid,
    )


def tidy_panel(result, labels=None):
    """Coefficient table of a PanelFitResult (no intercept row)."""
    return tidy_coefficients(
        result.params, result.bse, result.tvalues, result.pvalues, labels,
    )


def glance_panel(result):
    """One-row table of within-estimator fit statistics."""
    return pd.DataFrame([{
        "r_squared": result.rsquared,
        "adj_r_squared": result.rsquared_adj,
        "statistic": result.fvalue,
        "p_value": result.f_pvalue,
        "deviance": result.ssr,
        "df_residual": int(result.df_resid),
        "nobs": int(result.nobs),
        "n_entities": int(result.n_entities),
        "n_periods": int(result.n_periods),
    }])


# ── Side-by-side table ───────────────────────────────────────────────────


def _format_estimate(row, digits):
    if row is None:
        return "", ""
    return (
        f"{row['estimate']:.{digits}f}{row['significance']}",
        f"({row['std_error']:.{digits}f})",
    )


def model_comparison(tidy_cross, tidy_fe, digits=3, labels=None):
    """Regression table with both models side by side.

    One row per term in specification order (intercept first). Each model
    contributes a formatted estimate with significance marker and its
    standard error in parentheses; terms a model does not estimate are
    blank.
    """
    if labels is None:
        labels = config.TERM_LABELS

    terms = list(tidy_cross["term"])
    terms += [t for t in tidy_fe["term"] if t not in terms]
    cross_rows = {r["term"]: r for r in tidy_cross.to_dict("records")}
    fe_rows = {r["term"]: r for r in tidy_fe.to_dict("records")}

    rows = []
    for term in terms:
        cross_est, cross_se = _format_estimate(cross_rows.get(term), digits)
        fe_est, fe_se = _format_estimate(fe_rows.get(term), digits)
        rows.append({
            "term": term,
            "label": labels.get(term, term),
            "cross_section": cross_est,
            "cross_section_se": cross_se,
            "fixed_effects": fe_est,
            "fixed_effects_se": fe_se,
        })
    return pd.DataFrame(rows)
