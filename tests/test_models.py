"""
Tests for growth_analysis/models.py.

The fixed-effects estimator is checked against the least-squares dummy
variable (LSDV) regression, which must give identical slopes and
standard errors on balanced and unbalanced panels.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from growth_analysis import config
from growth_analysis.models import (
    TIDY_COLUMNS,
    fit_cross_section_ols,
    fit_panel_fixed_effects,
    glance_ols,
    glance_panel,
    model_comparison,
    tidy_ols,
    tidy_panel,
)

TRUE_BETA = {
    "log_gni_per_capita": -0.8,
    "exports_gdp": 0.03,
    "capital_formation": 0.15,
    "unemployment": -0.1,
    "inflation_rate": -0.05,
}


def _cross_section(n=60, noise=0.01, seed=1):
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        "country": [f"C{i}" for i in range(n)],
        "log_gni_per_capita": rng.uniform(6, 11, n),
        "exports_gdp": rng.uniform(10, 90, n),
        "capital_formation": rng.uniform(10, 40, n),
        "unemployment": rng.uniform(2, 25, n),
        "inflation_rate": rng.uniform(-1, 15, n),
    })
    df["gdp_growth"] = 4.0 + sum(df[k] * b for k, b in TRUE_BETA.items())
    df["gdp_growth"] += noise * rng.normal(size=n)
    return df


def _lsdv(df, regressors):
    """OLS with country and year dummies."""
    X = pd.concat(
        [
            df[regressors],
            pd.get_dummies(df["country"], prefix="c", drop_first=True, dtype=float),
            pd.get_dummies(df["year"].astype(str), prefix="t", drop_first=True, dtype=float),
        ],
        axis=1,
    )
    return sm.OLS(df["y"], sm.add_constant(X)).fit()


# ── Cross-sectional OLS ──────────────────────────────────────────────────


class TestCrossSectionOLS:

    def test_recovers_coefficients(self):
        result = fit_cross_section_ols(_cross_section())
        assert result.params["const"] == pytest.approx(4.0, abs=0.05)
        for term, beta in TRUE_BETA.items():
            assert result.params[term] == pytest.approx(beta, abs=0.01)

    def test_tidy_table(self):
        result = fit_cross_section_ols(_cross_section())
        tidy = tidy_ols(result)

        assert list(tidy.columns) == TIDY_COLUMNS
        assert tidy["term"].tolist() == [config.INTERCEPT_TERM] + config.REGRESSORS
        assert tidy["label"].iloc[0] == "Intercept"
        assert tidy["estimate"].iloc[0] == pytest.approx(result.params["const"])
        assert tidy["std_error"].iloc[1] == pytest.approx(result.bse["log_gni_per_capita"])

    def test_significance_markers(self):
        tidy = tidy_ols(fit_cross_section_ols(_cross_section()))
        # Near-noiseless data: every slope is highly significant.
        assert (tidy["significance"].iloc[1:] == "***").all()

    def test_glance(self):
        df = _cross_section()
        glance = glance_ols(fit_cross_section_ols(df))
        assert len(glance) == 1
        row = glance.iloc[0]
        assert row["nobs"] == len(df)
        assert row["df"] == 5
        assert row["df_residual"] == len(df) - 6
        assert 0.99 < row["r_squared"] <= 1.0
        assert row["adj_r_squared"] <= row["r_squared"]

    def test_too_few_observations(self):
        with pytest.raises(ValueError, match="observations"):
            fit_cross_section_ols(_cross_section(n=6))

    def test_collinear_regressors(self):
        df = _cross_section()
        df["unemployment"] = 2 * df["exports_gdp"]
        with pytest.raises(np.linalg.LinAlgError, match="singular"):
            fit_cross_section_ols(df)

    def test_synthetic_wdi_panel(self, cross_section_data):
        result = fit_cross_section_ols(cross_section_data)
        assert int(result.nobs) == len(cross_section_data)


# ── Two-way fixed effects ────────────────────────────────────────────────


class TestPanelFixedEffects:

    def test_recovers_beta_three_by_five(self, fe_panel):
        """3 entities x 5 periods, no noise: slopes are recovered exactly."""
        beta = [1.5, -0.7]
        df = fe_panel(3, 5, beta, noise=0.0, seed=11)
        result = fit_panel_fixed_effects(df, dependent="y", regressors=["x0", "x1"])
        np.testing.assert_allclose(result.params.to_numpy(), beta, atol=1e-8)
        assert result.df_resid == 15 - 2 - (3 + 5 - 1)

    def test_matches_lsdv_balanced(self, fe_panel):
        df = fe_panel(8, 6, [0.8, -0.4, 0.1], noise=1.0, seed=12)
        regs = ["x0", "x1", "x2"]
        fe = fit_panel_fixed_effects(df, dependent="y", regressors=regs)
        lsdv = _lsdv(df, regs)

        np.testing.assert_allclose(fe.params[regs], lsdv.params[regs], rtol=1e-6)
        np.testing.assert_allclose(fe.bse[regs], lsdv.bse[regs], rtol=1e-6)
        np.testing.assert_allclose(fe.pvalues[regs], lsdv.pvalues[regs], rtol=1e-5, atol=1e-12)
        assert fe.df_resid == int(lsdv.df_resid)

    def test_matches_lsdv_unbalanced(self, fe_panel):
        drop = [(0, 0), (1, 2), (3, 5), (5, 1), (5, 2), (7, 4)]
        df = fe_panel(8, 6, [0.8, -0.4], noise=1.0, seed=13, drop=drop)
        regs = ["x0", "x1"]
        fe = fit_panel_fixed_effects(df, dependent="y", regressors=regs)
        lsdv = _lsdv(df, regs)

        np.testing.assert_allclose(fe.params[regs], lsdv.params[regs], rtol=1e-6)
        np.testing.assert_allclose(fe.bse[regs], lsdv.bse[regs], rtol=1e-6)
        assert fe.df_resid == int(lsdv.df_resid)

    def test_within_r_squared_bounds(self, fe_panel):
        df = fe_panel(10, 8, [0.5], noise=1.0, seed=14)
        result = fit_panel_fixed_effects(df, dependent="y", regressors=["x0"])
        assert 0.0 <= result.rsquared <= 1.0
        assert result.rsquared_adj <= result.rsquared
        assert 0.0 <= result.f_pvalue <= 1.0

    def test_duplicate_index_raises(self, fe_panel):
        df = fe_panel(3, 4, [1.0], noise=1.0, seed=15)
        df = pd.concat([df, df.head(1)], ignore_index=True)
        with pytest.raises(ValueError, match="not unique"):
            fit_panel_fixed_effects(df, dependent="y", regressors=["x0"])

    def test_time_invariant_regressor_raises(self, fe_panel):
        df = fe_panel(5, 4, [1.0], noise=1.0, seed=16)
        df["x1"] = df["country"].str[1:].astype(float)
        with pytest.raises(ValueError, match="no variation"):
            fit_panel_fixed_effects(df, dependent="y", regressors=["x0", "x1"])

    def test_insufficient_degrees_of_freedom(self, fe_panel):
        df = fe_panel(3, 3, [1.0, 2.0, 3.0, 4.0], noise=1.0, seed=17)
        with pytest.raises(ValueError, match="Insufficient"):
            fit_panel_fixed_effects(df, dependent="y", regressors=["x0", "x1", "x2", "x3"])

    def test_tidy_and_glance(self, clean_data):
        from growth_analysis.preprocess import panel_model_data

        panel = panel_model_data(clean_data[0])
        result = fit_panel_fixed_effects(panel)
        tidy = tidy_panel(result)
        glance = glance_panel(result)

        assert tidy["term"].tolist() == config.REGRESSORS
        assert config.INTERCEPT_TERM not in tidy["term"].tolist()
        assert glance["nobs"].iloc[0] == len(panel)
        assert glance["n_entities"].iloc[0] == 24
        assert glance["n_periods"].iloc[0] == panel["year"].nunique()
        assert (tidy["std_error"] > 0).all()


# ── Side-by-side table ───────────────────────────────────────────────────


class TestModelComparison:

    def test_layout(self, fe_panel):
        cross = tidy_ols(fit_cross_section_ols(_cross_section()))
        fe_df = fe_panel(6, 5, [1.0, 0.5], noise=1.0, seed=18).rename(
            columns={"x0": "exports_gdp", "x1": "unemployment"}
        )
        fe = tidy_panel(fit_panel_fixed_effects(
            fe_df, dependent="y", regressors=["exports_gdp", "unemployment"],
        ))

        table = model_comparison(cross, fe)
        assert table["term"].tolist() == cross["term"].tolist()
        assert list(table.columns) == [
            "term", "label", "cross_section", "cross_section_se",
            "fixed_effects", "fixed_effects_se",
        ]

        intercept = table.iloc[0]
        assert intercept["fixed_effects"] == ""
        assert intercept["cross_section_se"].startswith("(")

        exports = table[table["term"] == "exports_gdp"].iloc[0]
        est = fe.loc[fe["term"] == "exports_gdp", "estimate"].iloc[0]
        assert exports["fixed_effects"].startswith(f"{est:.3f}")
