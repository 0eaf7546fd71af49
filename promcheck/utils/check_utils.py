#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import enum

__all__ = ["State", "service_state_name"]


class State(enum.IntEnum):
    """Monitoring states

    The integer value is the exit code of the plug-in:

        0 -> OK
        1 -> WARN
        2 -> CRIT
        3 -> UNKNOWN

    Note that this does not reflect the order of severity, or "badness", where

        OK -> WARN -> UNKNOWN -> CRIT

    >>> State.CRIT > State.WARN
    True
    >>> int(State.UNKNOWN)
    3
    """

    OK = 0
    WARN = 1
    CRIT = 2
    UNKNOWN = 3


def core_state_names() -> dict[int, str]:
    return {
        0: "OK",
        1: "WARNING",
        2: "CRITICAL",
        3: "UNKNOWN",
    }


def service_state_name(state_num: int, deflt: str = "UNKNOWN") -> str:
    """
    >>> service_state_name(State.WARN)
    'WARNING'
    >>> service_state_name(17)
    'UNKNOWN'
    """
    return core_state_names().get(state_num, deflt)
