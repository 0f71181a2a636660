"""
Property-based tests using Hypothesis for the formula and cleaning code.

These tests verify invariants that must hold for ALL valid inputs,
not just specific examples.

Run with: pytest tests/test_property_based.py -v
"""

import numpy as np
import pandas as pd
from hypothesis import given, settings, assume
from hypothesis import strategies as st
from hypothesis.extra.numpy import arrays

from growth_analysis import config


# ── Significance markers ────────────────────────────────────────────────


class TestSignificanceStarsProperties:

    @given(p=st.floats(min_value=0.0, max_value=1.0, allow_nan=False))
    def test_marker_is_known(self, p):
        from growth_analysis.formulas.significance import significance_stars

        assert significance_stars(p) in ("***", "**", "*", ".", "")

    @given(
        a=st.floats(min_value=0.0, max_value=1.0, allow_nan=False),
        b=st.floats(min_value=0.0, max_value=1.0, allow_nan=False),
    )
    def test_smaller_p_never_fewer_stars(self, a, b):
        from growth_analysis.formulas.significance import significance_stars

        assume(a <= b)
        rank = {"***": 4, "**": 3, "*": 2, ".": 1, "": 0}
        assert rank[significance_stars(a)] >= rank[significance_stars(b)]

    def test_thresholds_are_strict(self):
        from growth_analysis.formulas.significance import significance_stars

        assert significance_stars(0.001) == "**"
        assert significance_stars(0.01) == "*"
        assert significance_stars(0.05) == "."
        assert significance_stars(0.1) == ""
        assert significance_stars(0.0009) == "***"
        assert significance_stars(float("nan")) == ""


# ── Within transform ────────────────────────────────────────────────────


class TestWithinTransformProperties:

    @given(
        n_entities=st.integers(min_value=2, max_value=6),
        n_periods=st.integers(min_value=2, max_value=6),
        data=st.data(),
    )
    @settings(max_examples=40, deadline=None)
    def test_group_means_are_zero(self, n_entities, n_periods, data):
        from growth_analysis.formulas.within import two_way_demean

        values = data.draw(arrays(
            np.float64, n_entities * n_periods,
            elements=st.floats(min_value=-1e3, max_value=1e3, allow_nan=False),
        ))
        df = pd.DataFrame({
            "country": np.repeat([f"E{i}" for i in range(n_entities)], n_periods),
            "year": np.tile(np.arange(2000, 2000 + n_periods), n_entities),
            "v": values,
        })
        out = two_way_demean(df, ["v"])
        scale = max(1.0, float(np.abs(values).max()))
        assert out.groupby(df["country"])["v"].mean().abs().max() <= 1e-9 * scale
        assert out.groupby(df["year"])["v"].mean().abs().max() <= 1e-9 * scale

    @given(shift=st.floats(min_value=-1e4, max_value=1e4, allow_nan=False))
    @settings(max_examples=25, deadline=None)
    def test_invariant_to_constant_shift(self, shift):
        from growth_analysis.formulas.within import two_way_demean

        rng = np.random.default_rng(0)
        df = pd.DataFrame({
            "country": np.repeat(["A", "B", "C"], 4),
            "year": np.tile([1, 2, 3, 4], 3),
            "v": rng.normal(size=12),
        })
        base = two_way_demean(df, ["v"])
        shifted = two_way_demean(df.assign(v=df["v"] + shift), ["v"])
        np.testing.assert_allclose(base["v"], shifted["v"], atol=1e-8 * max(1.0, abs(shift)))


# ── Cleaning ────────────────────────────────────────────────────────────


class TestCleaningProperties:

    @given(gni=arrays(np.float64, 10, elements=st.floats(
        min_value=0.0, max_value=1e6, allow_nan=False)))
    def test_log_income_monotonic(self, gni):
        from growth_analysis.preprocess import add_log_income

        out = add_log_income(pd.DataFrame({"gni_per_capita": gni}))
        order = np.argsort(gni, kind="mergesort")
        logs = out["log_gni_per_capita"].to_numpy()[order]
        assert (np.diff(logs) >= 0).all()
        assert (logs >= 0).all()

    @given(cpi=arrays(np.float64, 6, elements=st.floats(
        min_value=1.0, max_value=1e4, allow_nan=False)))
    def test_country_lag_first_year_missing(self, cpi):
        from growth_analysis.preprocess import add_inflation_rate

        df = pd.DataFrame({
            "country": ["A", "A", "A", "B", "B", "B"],
            "year": [2000, 2001, 2002, 2000, 2001, 2002],
            "cpi": cpi,
        })
        out = add_inflation_rate(df, lag_mode="country")
        assert out.loc[[0, 3], "inflation_rate"].isna().all()
        np.testing.assert_allclose(
            out.loc[4, "inflation_rate"], (cpi[4] / cpi[3] - 1) * 100
        )


# ── Summaries ───────────────────────────────────────────────────────────


class TestSummaryProperties:

    @given(seed=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=20, deadline=None)
    def test_correlation_bounded(self, seed):
        from growth_analysis.summaries import correlation_matrix

        rng = np.random.default_rng(seed)
        df = pd.DataFrame(
            rng.normal(size=(30, len(config.CORRELATION_VARIABLES))),
            columns=config.CORRELATION_VARIABLES,
        )
        corr = correlation_matrix(df).to_numpy()
        assert (np.abs(corr) <= 1.0 + 1e-12).all()
        np.testing.assert_array_equal(corr, corr.T)

    @given(n=st.integers(min_value=0, max_value=40))
    @settings(max_examples=20, deadline=None)
    def test_performers_length(self, n):
        from growth_analysis.summaries import bottom_performers, top_performers

        rng = np.random.default_rng(n)
        df = pd.DataFrame({
            "country": [f"C{i}" for i in range(25)],
            "region": ["R"] * 25,
            "gdp_growth": rng.normal(size=25),
            "capital_formation": rng.uniform(10, 40, 25),
            "exports_gdp": rng.uniform(10, 90, 25),
        })
        assert len(top_performers(df, n)) == min(n, 25)
        assert len(bottom_performers(df, n)) == min(n, 25)
