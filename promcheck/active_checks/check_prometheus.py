#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_prometheus - Check the value of a Prometheus query against thresholds"""

from __future__ import annotations

import argparse
import sys
import traceback
from collections.abc import Callable, Sequence
from typing import NoReturn, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from promcheck.checkengine.checkresults import CheckResult, report
from promcheck.checkengine.levels import Levels
from promcheck.checkengine.selection import select_representative
from promcheck.prometheus.api import generate_api_session, PrometheusAPI, Sample
from promcheck.utils.exceptions import ConfigurationError, QueryError
from promcheck.utils.log import logger, setup_console_logging
from promcheck.utils.timeout import QueryDeadline

_EPILOG = """\
Warning and critical ranges are given in Nagios threshold format.

Example:
    check_prometheus -H 'my.host:9090' -q 'sum(my_metric)' -w 10 -c 100

Meaning: The value returned by the query 'sum(my_metric)' is OK if less
than or equal to 10, warning if greater than 10 but less than or equal to
100, critical if greater than 100. If it is less than zero, it is critical.

If the query returns several series, the first critical series is reported.
Otherwise the first series with the worst state is reported.
"""


class QueryClient(Protocol):
    def query(self, promql: str, *, timeout: int) -> Sequence[Sample]: ...


class Args(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    query: str
    warning: str
    critical: str
    name: str
    timeout: int = Field(gt=0)
    username: None | str
    password: None | str
    cert_check: bool
    debug: bool
    verbose: int


class ArgParser(argparse.ArgumentParser):
    # Use custom behaviour on error: exit code 2 means CRITICAL to the core
    def error(self, message: str) -> NoReturn:
        raise ConfigurationError(message)


def create_parser() -> ArgParser:
    parser = ArgParser(
        prog="check_prometheus",
        description="Check that the value given by a Prometheus query falls within "
        "certain warning and critical thresholds.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-H", "--host", default="", help="Prometheus host, e.g. my.host:9090")
    parser.add_argument("-q", "--query", default="", help="Prometheus query (PromQL)")
    parser.add_argument("-w", "--warning", default="", help="Warning range")
    parser.add_argument("-c", "--critical", default="", help="Critical range")
    parser.add_argument(
        "-n",
        "--name",
        default="metric",
        help="Short, descriptive name for the metric (default: metric)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=10,
        help="Execution timeout in seconds (default: 10)",
    )
    parser.add_argument("--username", default=None, help="Username for HTTP basic auth")
    parser.add_argument("--password", default=None, help="Password for HTTP basic auth")
    parser.add_argument(
        "--no-cert-check",
        action="store_false",
        dest="cert_check",
        help="Do not verify the TLS certificate of the Prometheus server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose mode, log to stderr (for even more output use -vvv)",
    )
    parser.add_argument("--debug", action="store_true", help="Raise python exceptions.")
    return parser


def parse_arguments(parser: argparse.ArgumentParser, argv: Sequence[str]) -> Args:
    namespace = parser.parse_args(argv)
    _check_required_options(namespace)
    try:
        return Args.model_validate(vars(namespace))
    except ValidationError as e:
        raise ConfigurationError(
            "; ".join(
                "%s: %s" % (".".join(str(part) for part in error["loc"]), error["msg"])
                for error in e.errors()
            )
        )


def _check_required_options(namespace: argparse.Namespace) -> None:
    for option in ("host", "query", "warning", "critical"):
        if not getattr(namespace, option):
            raise ConfigurationError(f"{option} is required")


def _create_api(args: Args) -> QueryClient:
    return PrometheusAPI(
        generate_api_session(
            username=args.username,
            password=args.password,
            verify=args.cert_check,
        ),
        args.host,
    )


def main(
    argv: Sequence[str] | None = None,
    api_factory: Callable[[Args], QueryClient] | None = None,
) -> int:
    parser = create_parser()
    try:
        args = parse_arguments(parser, sys.argv[1:] if argv is None else argv)
        levels = Levels.parse(args.warning, args.critical)
    except ConfigurationError as e:
        _print_usage_error(parser, e)
        return 3

    setup_console_logging(args.verbose)
    text, exitcode = report(_check_prometheus_main(args, levels, api_factory or _create_api))
    sys.stdout.write("%s\n" % text)
    return exitcode


def _print_usage_error(parser: argparse.ArgumentParser, error: ConfigurationError) -> None:
    sys.stdout.write("execution failed: %s\n" % error)
    parser.print_help(sys.stdout)


def _check_prometheus_main(
    args: Args,
    levels: Levels,
    api_factory: Callable[[Args], QueryClient],
) -> CheckResult:
    try:
        return check_prometheus(args, levels, api_factory(args))

    except QueryError as e:
        return CheckResult.unknown(str(e))

    except Exception as e:
        if args.debug:
            raise
        logger.debug(traceback.format_exc())
        return CheckResult.unknown(f"Unhandled exception: {e}")


def check_prometheus(args: Args, levels: Levels, api: QueryClient) -> CheckResult:
    with QueryDeadline(args.timeout):
        samples = api.query(args.query, timeout=args.timeout)

    selection = select_representative(samples, levels.classify)
    if selection.index is None:
        return CheckResult.received_no_data()

    sample = samples[selection.index]
    logger.info(
        "Reporting series %d of %d: %s (%s)",
        selection.index + 1,
        len(samples),
        sample.series,
        selection.state.name,
    )
    return CheckResult.from_sample(selection.state, args.name, sample, levels)
