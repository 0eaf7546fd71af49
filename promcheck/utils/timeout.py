#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Deadline for the whole query

The HTTP timeouts of requests only bound single socket operations. The alarm
bounds the query as a whole, including name resolution and slow responses that
keep trickling in.
"""

from __future__ import annotations

import signal
from types import FrameType
from typing import Any, Final, NoReturn

from promcheck.utils.exceptions import QueryTimeout
from promcheck.utils.log import logger, VERBOSE

__all__ = ["QueryDeadline"]


class QueryDeadline:
    """Raise QueryTimeout if the block runs longer than `seconds`

    The SIGALRM handler that was installed before entering is restored on exit.

    >>> with QueryDeadline(5) as deadline:
    ...     pass
    >>> deadline.message
    'Query timed out after 5 seconds'
    """

    def __init__(self, seconds: int) -> None:
        self.seconds: Final = seconds
        self.message: Final = f"Query timed out after {seconds} seconds"
        self._previous_handler: Any = None

    def _expired(self, signum: int, frame: FrameType | None) -> NoReturn:
        logger.log(VERBOSE, "Deadline of %d seconds reached, aborting query", self.seconds)
        raise QueryTimeout(self.message)

    def __enter__(self) -> QueryDeadline:
        self._previous_handler = signal.signal(signal.SIGALRM, self._expired)
        signal.alarm(self.seconds)
        return self

    def __exit__(self, *exc_info: object) -> None:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, self._previous_handler)
