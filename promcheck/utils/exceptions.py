#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""User-defined exceptions and error handling related constant."""

__all__ = [
    "ConfigurationError",
    "PromCheckException",
    "QueryError",
    "QueryTimeout",
]


# never used directly in the code. Just some wrapper to make all of our
# exceptions handleable with one call
class PromCheckException(Exception):
    pass


# This is raised to print an error message together with the usage and then
# end the program. The program should catch this at top level and exit with
# exit code 3, in order to be compatible with monitoring plug-in API.
# No query must have been sent when this is raised.
class ConfigurationError(PromCheckException):
    pass


class QueryError(PromCheckException):
    """Raised when the metrics source could not deliver usable samples.

    This covers transport errors, error responses of the API, result shapes
    the check does not understand and sample values that are not numbers.
    """


class QueryTimeout(QueryError):
    """Raised when the deadline for the query is reached.

    See also:
        `promcheck.utils.timeout` has a context manager using it.
    """
