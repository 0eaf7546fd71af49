#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Rendering of sample values for plug-in output

Formatting must never abort the check: whatever cannot be rendered as a
number is rendered with str().
"""

import math


def drop_dotzero(v: float) -> str:
    """Renders a number with the shortest representation that reads back to
    the same float and drops a useless ".0" at the end

    >>> drop_dotzero(45.1)
    '45.1'
    >>> drop_dotzero(45.0)
    '45'
    >>> drop_dotzero(-1.0)
    '-1'
    >>> drop_dotzero(1e+20)
    '1e+20'
    """
    t = repr(float(v))
    if t.endswith(".0"):
        return t[:-2]
    return t


def sample_value(v: float) -> str:
    """Render a value for the human readable summary, Prometheus style

    >>> sample_value(150.0)
    '150'
    >>> sample_value(float("nan"))
    'NaN'
    >>> sample_value(float("-inf"))
    '-Inf'
    """
    try:
        if math.isnan(v):
            return "NaN"
        if math.isinf(v):
            return "+Inf" if v > 0 else "-Inf"
        return drop_dotzero(v)
    except (TypeError, ValueError, OverflowError):
        return str(v)


def perf_value(v: float) -> str:
    """Render a value for the performance data

    Graphing frontends cannot deal with non-finite numbers, the plug-in API
    uses "U" for an undeterminable value.

    >>> perf_value(0.25)
    '0.25'
    >>> perf_value(float("inf"))
    'U'
    """
    try:
        if not math.isfinite(v):
            return "U"
        return drop_dotzero(v)
    except (TypeError, ValueError, OverflowError):
        return "U"
