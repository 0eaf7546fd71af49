#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Pick the one series that represents a multi series query result"""

from collections.abc import Callable, Sequence
from typing import NamedTuple

from promcheck.prometheus.api import Sample
from promcheck.utils.check_utils import State
from promcheck.utils.log import logger

__all__ = ["NO_DATA_MESSAGE", "Selection", "select_representative"]

NO_DATA_MESSAGE = "query returned no data"


class Selection(NamedTuple):
    index: int | None
    state: State

    @property
    def received_no_data(self) -> bool:
        return self.index is None


def select_representative(
    samples: Sequence[Sample],
    evaluator: Callable[[float], State],
) -> Selection:
    """Scan the samples in order and return the index of the representative one

    The first CRIT sample ends the scan. Otherwise the first sample to reach
    the highest state seen wins, compared by exit code (OK < WARN < UNKNOWN).

    An empty sequence is UNKNOWN without an index.
    """
    if not samples:
        return Selection(None, State.UNKNOWN)

    selected_index = 0
    selected_state = State.OK
    for index, sample in enumerate(samples):
        state = evaluator(sample.value)
        logger.debug("Series %s is %s: %s", sample.series, sample.value, state.name)
        if state is State.CRIT:
            return Selection(index, state)
        # Strictly greater: a later sample with the same state does not win
        if state > selected_state:
            selected_index, selected_state = index, state

    return Selection(selected_index, selected_state)
