"""
Generic step executor for pipeline steps.

Every stage of the run goes through ``run_step()``: it times the work,
turns an exception into an error StepResult instead of propagating it,
and logs the result. Callers decide whether a failed step aborts the run.
"""

import traceback
from typing import TypeVar, Callable

import numpy as np
import pandas as pd
import requests

from growth_analysis.logging_config import StepTimer, get_pipeline_logger, log_step_result
from growth_analysis.pipeline_types import StepResult, StepStatus

T = TypeVar("T")

log = get_pipeline_logger(__name__)

# Failures the data or the WDI API can cause; anything else is a bug and
# is logged as unexpected.
_DEFAULT_EXPECTED = (
    FileNotFoundError,
    ValueError,
    KeyError,
    np.linalg.LinAlgError,
    pd.errors.EmptyDataError,
    pd.errors.ParserError,
    requests.RequestException,
)


def run_step(
    step_name: str,
    fn: Callable[..., T],
    *args,
    input_summary: dict | None = None,
    output_summary_fn: Callable[[T], dict] | None = None,
    warnings_fn: Callable[[T], list] | None = None,
    expected_exceptions: tuple[type[Exception], ...] = _DEFAULT_EXPECTED,
    **kwargs,
) -> tuple[StepResult, T | None]:
    """Execute a pipeline step with standardised error handling and timing.

    Parameters
    ----------
    step_name : str
        Name stored in the StepResult and in pipeline_run.json.
    fn : Callable
        The work function.  Called as ``fn(*args, **kwargs)``.
    input_summary : dict, optional
        Metadata about inputs.
    output_summary_fn : callable, optional
        Receives *fn*'s return value and produces an output-summary dict.
        Skipped when *fn* raises or returns None.
    warnings_fn : callable, optional
        Receives *fn*'s return value and returns findings worth recording
        that do not fail the step (e.g. model diagnostics).
    expected_exceptions : tuple
        Exception types that produce a "known error" log message.

    Returns
    -------
    tuple[StepResult, T | None]
        The payload is None whenever the step failed.
    """
    result_data = None
    error_tb = None

    with StepTimer() as timer:
        try:
            result_data = fn(*args, **kwargs)
        except expected_exceptions as exc:
            error_tb = traceback.format_exc()
            log.error("%s failed: %s", step_name, exc, exc_info=True)
        except Exception:
            error_tb = traceback.format_exc()
            log.error("%s failed unexpectedly", step_name, exc_info=True)

    step = StepResult(
        step_name=step_name,
        status=StepStatus.ERROR.value if error_tb else StepStatus.SUCCESS.value,
        input_summary=input_summary or {},
        timing_seconds=timer.elapsed,
        error=error_tb,
        started_at=timer.started_at,
        completed_at=timer.completed_at,
    )
    if error_tb is None and result_data is not None:
        if output_summary_fn is not None:
            step.output_summary = output_summary_fn(result_data)
        if warnings_fn is not None:
            step.warnings = list(warnings_fn(result_data))

    log_step_result(log, step)
    return step, (None if error_tb else result_data)
