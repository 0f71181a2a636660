"""
Conventional significance markers for regression tables.
"""

import math

from growth_analysis import config


def significance_stars(p_value, levels=None):
    """Return the significance marker for a p-value.

    Parameters
    ----------
    p_value : float
        Two-sided p-value.
    levels : list[tuple[float, str]], optional
        (threshold, marker) pairs in increasing threshold order; the first
        threshold strictly greater than p_value wins.
        Default: config.SIGNIFICANCE_LEVELS.

    Returns
    -------
    str
        ``"***"``, ``"**"``, ``"*"``, ``"."`` or ``""``. NaN gives ``""``.
    """
    if levels is None:
        levels = config.SIGNIFICANCE_LEVELS

    if p_value is None or math.isnan(p_value):
        return ""

    for threshold, marker in levels:
        if p_value < threshold:
            return marker
    return ""
