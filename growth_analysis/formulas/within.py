"""
Two-way within (fixed-effects) transform.

METHODOLOGY:
The two-way fixed-effects model y_it = a_i + g_t + x_it'b + e_it is
estimated by removing the country and year effects from every variable
and regressing the transformed y on the transformed x without an
intercept (Wooldridge, 2010, Econometric Analysis of Cross Section and
Panel Data, ch. 10).

For a balanced panel a single sweep gives the closed form
x_it - x̄_i - x̄_t + x̄. Unbalanced panels need the alternating-projections
algorithm, which repeats entity and time demeaning until both sets of
group means vanish.
Ref: Guimarães, P. & Portugal, P. (2010). A simple feasible procedure to
fit models with high-dimensional fixed effects. Stata Journal, 10(4).
Ref: Gaure, S. (2013). OLS with multiple high dimensional category
variables. Computational Statistics & Data Analysis, 66, 8-18.
"""

import numpy as np

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def two_way_demean(df, columns, entity_col="country", time_col="year",
                   tol=None, max_iter=None):
    """Remove entity and time means from each column.

    Parameters
    ----------
    df : pd.DataFrame
        Panel with one row per (entity, time).
    columns : list[str]
        Numeric columns to transform.
    entity_col, time_col : str
        Grouping columns.
    tol : float, optional
        Convergence tolerance relative to the largest absolute input value.
        Default: config.WITHIN_TOL.
    max_iter : int, optional
        Default: config.WITHIN_MAX_ITER.

    Returns
    -------
    pd.DataFrame
        Transformed columns, same index as df.

    Raises
    ------
    ValueError
        If any value to transform is missing.
    RuntimeError
        If alternating projections do not converge within max_iter sweeps.
    """
    if tol is None:
        tol = config.WITHIN_TOL
    if max_iter is None:
        max_iter = config.WITHIN_MAX_ITER

    data = df[columns].astype(float)
    if data.isna().to_numpy().any():
        raise ValueError("Cannot demean columns containing missing values")

    entity = df[entity_col].to_numpy()
    time = df[time_col].to_numpy()
    threshold = tol * max(1.0, float(np.abs(data.to_numpy()).max(initial=0.0)))

    for iteration in range(1, max_iter + 1):
        data = data - data.groupby(entity).transform("mean")
        data = data - data.groupby(time).transform("mean")

        # Time means are zero right after the time sweep; only the entity
        # means can have drifted.
        residual = float(np.abs(data.groupby(entity).mean().to_numpy()).max(initial=0.0))
        if residual <= threshold:
            log.debug("Within transform converged after %d sweep(s)", iteration)
            return data

    raise RuntimeError(
        f"Within transform did not converge in {max_iter} sweeps "
        f"(max entity mean {residual:.3g})"
    )


def within_residual_df(n_obs, n_regressors, n_entities, n_periods):
    """Residual degrees of freedom of the two-way within estimator.

    Country and year effects absorb n_entities + n_periods - 1 parameters
    (one normalisation), in addition to the n_regressors slopes.

    Raises
    ------
    ValueError
        If no residual degrees of freedom remain.
    """
    df_resid = n_obs - n_regressors - (n_entities + n_periods - 1)
    if df_resid <= 0:
        raise ValueError(
            f"Insufficient observations for two-way fixed effects: "
            f"n={n_obs}, k={n_regressors}, entities={n_entities}, "
            f"periods={n_periods} leave {df_resid} residual degrees of freedom"
        )
    return df_resid
