#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Nagios style threshold ranges

The general format is "[@][start:][end]":

    10        alert if value < 0 or value > 10
    10:       alert if value < 10
    ~:10      alert if value > 10
    10:20     alert if value < 10 or value > 20
    @10:20    alert if 10 <= value <= 20

"start" defaults to 0 and "~" means negative infinity, an omitted "end" means
positive infinity. Both bounds are inclusive.
"""

from __future__ import annotations

import dataclasses
import math
from typing import Self

from promcheck.utils.check_utils import State
from promcheck.utils.exceptions import ConfigurationError

__all__ = ["InvalidThresholdError", "Levels", "ThresholdRange", "classify"]


class InvalidThresholdError(ConfigurationError):
    pass


@dataclasses.dataclass(frozen=True)
class ThresholdRange:
    start: float
    end: float
    invert: bool = False
    spec: str = ""

    @classmethod
    def parse(cls, spec: str) -> Self:
        """
        >>> ThresholdRange.parse("10")
        ThresholdRange(start=0.0, end=10.0, invert=False, spec='10')
        >>> ThresholdRange.parse("@~:-5")
        ThresholdRange(start=-inf, end=-5.0, invert=True, spec='@~:-5')

        Bounds are Python float literals, so underscores and "inf" spellings work:

        >>> ThresholdRange.parse("1_0").end
        10.0
        >>> ThresholdRange.parse("10:Infinity").end
        inf
        """
        text = spec.strip()
        body = text[1:] if text.startswith("@") else text
        if not body:
            raise InvalidThresholdError(f"empty threshold range: {spec!r}")

        match body.split(":"):
            case [end_str]:
                start, end = 0.0, _parse_bound(end_str, spec, default=None)
            case [start_str, end_str]:
                start = (
                    -math.inf
                    if start_str.strip() == "~"
                    else _parse_bound(start_str, spec, default=0.0)
                )
                end = _parse_bound(end_str, spec, default=math.inf)
            case _:
                raise InvalidThresholdError(f"too many colons in threshold range: {spec!r}")

        if start > end:
            raise InvalidThresholdError(
                f"start {start:g} must not be greater than end {end:g} in threshold range: {spec!r}"
            )
        return cls(start=start, end=end, invert=text.startswith("@"), spec=text)

    def __contains__(self, value: float) -> bool:
        return self.start <= value <= self.end

    def alerts(self, value: float) -> bool:
        """Is the value in the alarm zone of this range?

        >>> ThresholdRange.parse("10").alerts(11.0)
        True
        >>> ThresholdRange.parse("@10").alerts(10.0)
        True
        """
        return (value in self) is self.invert

    def __str__(self) -> str:
        return self.spec


def _parse_bound(atom: str, spec: str, *, default: float | None) -> float:
    atom = atom.strip()
    if not atom:
        if default is None:
            raise InvalidThresholdError(f"missing bound in threshold range: {spec!r}")
        return default
    try:
        value = float(atom)
    except ValueError:
        raise InvalidThresholdError(
            f"invalid bound {atom!r} in threshold range: {spec!r}"
        ) from None
    if math.isnan(value):
        raise InvalidThresholdError(f"invalid bound {atom!r} in threshold range: {spec!r}")
    return value


@dataclasses.dataclass(frozen=True)
class Levels:
    warning: ThresholdRange
    critical: ThresholdRange

    @classmethod
    def parse(cls, warning: str, critical: str) -> Self:
        return cls(ThresholdRange.parse(warning), ThresholdRange.parse(critical))

    def classify(self, value: float) -> State:
        """The critical range is evaluated first

        >>> levels = Levels.parse("10", "100")
        >>> [levels.classify(v).name for v in (5, 50, 150, -1)]
        ['OK', 'WARN', 'CRIT', 'CRIT']
        """
        if math.isnan(value):
            return State.UNKNOWN
        if self.critical.alerts(value):
            return State.CRIT
        if self.warning.alerts(value):
            return State.WARN
        return State.OK


def classify(warning: ThresholdRange, critical: ThresholdRange, value: float) -> State:
    return Levels(warning, critical).classify(value)
