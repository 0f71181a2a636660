"""
Pandera DataFrame schemas for pipeline validation gates.

Declarative checks of both structure AND data quality between steps:
required columns, value ranges, completeness of the analysis dataset,
and ordering guarantees of the summary tables.

Usage:
    from growth_analysis.schemas import AnalysisPanelSchema
    AnalysisPanelSchema.validate(df)  # raises pa.errors.SchemaError on failure
"""

import numpy as np
import pandera as pa
from pandera import Column, Check, DataFrameSchema

from growth_analysis import config


def _finite(series):
    return np.isfinite(series.astype(float))


FINITE = Check(_finite, error="value must be finite")


# ── Raw WDI panel ───────────────────────────────────────────────────────

RawPanelSchema = DataFrameSchema(
    columns={
        "country": Column(str, nullable=False),
        "iso3c": Column(nullable=True),
        "year": Column(int, Check.in_range(1960, 2100), nullable=False),
        "region": Column(nullable=True),
        "income": Column(nullable=True),
        **{code: Column(float, nullable=True, coerce=True) for code in config.INDICATORS},
    },
    # Cache files carry extra metadata (capital, lending, coordinates).
    strict=False,
    coerce=False,
    name="RawPanelSchema",
)


# ── Derived observations (analysis dataset) ─────────────────────────────

AnalysisPanelSchema = DataFrameSchema(
    columns={
        "country": Column(str, nullable=False),
        "year": Column(int, nullable=False),
        "region": Column(str, Check.ne(config.AGGREGATE_REGION_LABEL), nullable=False),
        "income": Column(str, nullable=False),
        "gni_per_capita": Column(float, [FINITE, Check.greater_than(-1.0)], nullable=False),
        **{
            field: Column(float, FINITE, nullable=False)
            for field in config.BASE_FIELDS + config.DERIVED_FIELDS
            if field != "gni_per_capita"
        },
    },
    checks=[
        Check(
            lambda df: np.allclose(
                df["log_gni_per_capita"], np.log1p(df["gni_per_capita"]),
                rtol=1e-12, atol=1e-12,
            ),
            error="log_gni_per_capita != ln(gni_per_capita + 1)",
        ),
    ],
    unique=["country", "year"],
    strict=False,
    coerce=False,
    name="AnalysisPanelSchema",
)


# ── Coefficient tables ──────────────────────────────────────────────────

CoefficientTableSchema = DataFrameSchema(
    columns={
        "term": Column(str, unique=True, nullable=False),
        "label": Column(str, nullable=False),
        "estimate": Column(float, FINITE, nullable=False),
        "std_error": Column(float, Check.greater_than_or_equal_to(0.0), nullable=False),
        "statistic": Column(float, nullable=True),
        "p_value": Column(float, Check.in_range(0.0, 1.0), nullable=True),
        "significance": Column(
            str, Check.isin([""] + [m for _, m in config.SIGNIFICANCE_LEVELS]),
            nullable=False,
        ),
    },
    strict=False,
    coerce=False,
    name="CoefficientTableSchema",
)


# ── Regional summary ────────────────────────────────────────────────────

RegionalSummarySchema = DataFrameSchema(
    columns={
        "region": Column(str, unique=True, nullable=False),
        "countries": Column(int, Check.greater_than(0), nullable=False),
        "avg_gdp_growth": Column(float, nullable=False),
    },
    checks=[
        Check(
            lambda df: df["avg_gdp_growth"].is_monotonic_decreasing,
            error="regions must be sorted by avg_gdp_growth descending",
        ),
    ],
    strict=False,
    coerce=False,
    name="RegionalSummarySchema",
)


# ── Convenience validation function ─────────────────────────────────────

def validate_schema(df, schema, step_name, strict=False):
    """Validate a DataFrame against a Pandera schema.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to validate.
    schema : pa.DataFrameSchema
        Schema to validate against.
    step_name : str
        Pipeline step name for error messages.
    strict : bool
        If True, raise on failure. If False, return warnings list.

    Returns
    -------
    list[str]
        Validation warning messages (empty if all pass).

    Raises
    ------
    ValueError
        Only if strict=True and validation fails.
    """
    warnings_list = []

    if df is None:
        msg = f"[{step_name}] DataFrame is None"
        if strict:
            raise ValueError(msg)
        return [msg]

    if len(df) == 0:
        msg = f"[{step_name}] DataFrame is empty (0 rows)"
        if strict:
            raise ValueError(msg)
        return [msg]

    try:
        schema.validate(df, lazy=True)
    except pa.errors.SchemaErrors as exc:
        for failure in exc.failure_cases.itertuples():
            msg = (
                f"[{step_name}] Schema violation: "
                f"column='{failure.column}' check='{failure.check}' "
                f"failure_case={failure.failure_case}"
            )
            warnings_list.append(msg)

        if strict:
            raise ValueError(
                f"[{step_name}] Schema validation failed with "
                f"{len(warnings_list)} errors"
            ) from exc

    return warnings_list
