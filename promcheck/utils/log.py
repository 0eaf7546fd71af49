#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import logging
import sys
from typing import IO

# Just for reference, the predefined logging levels:
#
# Nagios         Python         added here
# --------------------------------------------
# CRITICAL 2     CRITICAL 50
#                ERROR    40
# WARNING 1      WARNING  30                 <= default level in Python
#                INFO     20
#                               VERBOSE  15
#                DEBUG    10
#
# Plug-in output belongs to stdout. Everything logged here goes to stderr and
# is never parsed by the monitoring core.

# We need an additional log level between INFO and DEBUG to reflect the
# -v and -vv command line options.
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("promcheck")


def get_formatter(
    format_str: str = "%(asctime)s [%(levelno)s] [%(name)s] %(message)s",
) -> logging.Formatter:
    """Returns a new message formater instance that uses the standard
    log format by default. You can also set another format if you like."""
    return logging.Formatter(format_str)


def clear_console_logging() -> None:
    logger.handlers[:] = []
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)


# Set default logging handler to avoid "No handler found" warnings.
clear_console_logging()


def setup_logging_handler(stream: IO[str], formatter: logging.Formatter | None = None) -> None:
    """This method enables all log messages to be written to the given
    stream file object."""
    if formatter is None:
        formatter = get_formatter()

    handler = logging.StreamHandler(stream=stream)
    handler.setFormatter(formatter)

    del logger.handlers[:]  # Remove all previously existing handlers
    logger.addHandler(handler)


def setup_console_logging(verbosity: int) -> None:
    """Write log messages of the requested verbosity to stderr

    Without -v only warnings (for example the ones Prometheus attaches to a
    query result) are shown.
    """
    setup_logging_handler(sys.stderr, get_formatter("%(levelname)s %(message)s"))
    logger.setLevel(verbosity_to_log_level(verbosity))


def verbosity_to_log_level(verbosity: int) -> int:
    """Values for "verbosity":

      0: enables WARNING and above
      1: enables INFO and above
      2: enables VERBOSE and above
      3: enables DEBUG and above (ALL messages)

    >>> verbosity_to_log_level(0) == logging.WARNING
    True
    >>> verbosity_to_log_level(7) == logging.DEBUG
    True
    """
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    if verbosity == 2:
        return VERBOSE
    return logging.DEBUG
