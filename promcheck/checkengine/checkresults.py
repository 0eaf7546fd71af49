#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

import dataclasses
import re
from collections.abc import Sequence
from typing import Self

from promcheck.checkengine.levels import Levels
from promcheck.checkengine.selection import NO_DATA_MESSAGE
from promcheck.prometheus.api import Sample
from promcheck.utils import render
from promcheck.utils.check_utils import service_state_name, State

__all__ = ["CheckResult", "PerfData", "report"]


@dataclasses.dataclass(frozen=True)
class PerfData:
    """label=value;warn;crit;min;max"""

    label: str
    value: float
    warn: str = ""
    crit: str = ""
    min: str = ""
    max: str = ""

    def as_text(self) -> str:
        """
        >>> PerfData("requests per second", 3.5, "10", "@0:1").as_text()
        "'requests per second'=3.5;10;@0:1;;"
        """
        return "%s=%s;%s;%s;%s;%s" % (
            self._quote(self.label),
            render.perf_value(self.value),
            self.warn,
            self.crit,
            self.min,
            self.max,
        )

    @staticmethod
    def _quote(label: str) -> str:
        label = re.sub(r"[='|]", "_", label) or "value"
        return f"'{label}'" if re.search(r"\s", label) else label


@dataclasses.dataclass(frozen=True, kw_only=True)
class CheckResult:
    state: State
    summary: str
    sample: Sample | None = None
    metrics: Sequence[PerfData] = ()

    @classmethod
    def from_sample(cls, state: State, name: str, sample: Sample, levels: Levels) -> Self:
        """The perf data label is the check name, the series only shows up in the summary

        A series identifier contains "=" and quotes and would break the
        "label=value;warn;crit;min;max" syntax.
        """
        return cls(
            state=state,
            summary=f"{name} ({sample.series} is {render.sample_value(sample.value)})",
            sample=sample,
            metrics=(
                PerfData(name, sample.value, levels.warning.spec, levels.critical.spec),
            ),
        )

    @classmethod
    def received_no_data(cls) -> Self:
        return cls(state=State.UNKNOWN, summary=NO_DATA_MESSAGE)

    @classmethod
    def unknown(cls, message: str) -> Self:
        return cls(state=State.UNKNOWN, summary=message)


def report(result: CheckResult) -> tuple[str, int]:
    """Serialize a check result to plug-in output and exit code

    >>> report(CheckResult.unknown("Error querying Prometheus: connection refused"))
    ('UNKNOWN - Error querying Prometheus: connection refused', 3)
    """
    text = f"{service_state_name(result.state)} - {_replace_pipe(result.summary)}"
    if result.metrics:
        text += " | " + " ".join(m.as_text() for m in result.metrics)
    return text, int(result.state)


def _replace_pipe(txt: str) -> str:
    """The vertical bar indicates end of service output and start of metrics.
    Replace the ones in the output by a Unicode "Light vertical bar"
    """
    return txt.replace("|", "\u2758")
