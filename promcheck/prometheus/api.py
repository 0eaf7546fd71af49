#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Instant queries against the Prometheus HTTP API"""

from __future__ import annotations

import dataclasses
import json
import time
from collections.abc import Mapping, Sequence
from typing import Any

import requests
import urllib3

from promcheck.utils.exceptions import QueryError, QueryTimeout
from promcheck.utils.log import logger, VERBOSE

__all__ = [
    "generate_api_session",
    "normalize_address",
    "parse_query_response",
    "PrometheusAPI",
    "Sample",
    "series_identifier",
]


@dataclasses.dataclass(frozen=True)
class Sample:
    """One series of an instant query result

    {"metric": {"__name__": "up", "job": "node"}, "value": [1700000000, "1"]}
    """

    labels: Mapping[str, str]
    value: float

    @property
    def series(self) -> str:
        return series_identifier(self.labels)


def series_identifier(labels: Mapping[str, str]) -> str:
    """Render a label set the way Prometheus does

    >>> series_identifier({"__name__": "up", "job": "node", "instance": "a:9100"})
    'up{instance="a:9100", job="node"}'
    >>> series_identifier({"__name__": "up"})
    'up'
    >>> series_identifier({})
    '{}'
    """
    name = labels.get("__name__", "")
    label_strings = sorted(
        f"{key}={json.dumps(value)}" for key, value in labels.items() if key != "__name__"
    )
    if not label_strings:
        return name or "{}"
    return "%s{%s}" % (name, ", ".join(label_strings))


def normalize_address(host: str) -> str:
    """
    >>> normalize_address("prometheus:9090")
    'http://prometheus:9090'
    >>> normalize_address("https://prometheus.example.com/")
    'https://prometheus.example.com'
    """
    if not host.startswith(("http://", "https://")):
        host = "http://" + host
    return host.rstrip("/")


def generate_api_session(
    *,
    username: str | None = None,
    password: str | None = None,
    verify: bool = True,
) -> requests.Session:
    session = requests.Session()
    session.headers.update({"Accept": "application/json", "User-Agent": "check_prometheus"})
    if username:
        session.auth = (username, password or "")
    session.verify = verify
    if not verify:
        urllib3.disable_warnings(category=urllib3.exceptions.InsecureRequestWarning)
    return session


class PrometheusAPI:
    """
    Realizes communication with the Prometheus API
    """

    def __init__(self, session: requests.Session, address: str) -> None:
        self.session = session
        self.query_url = f"{normalize_address(address)}/api/v1/query"

    def query(self, promql: str, *, timeout: int) -> Sequence[Sample]:
        """Evaluate an instant query at the current time"""
        logger.log(VERBOSE, "Querying %s: %s", self.query_url, promql)
        try:
            # Watch out: we must provide the verify keyword to every individual request call!
            # Else it will be overwritten by the REQUESTS_CA_BUNDLE env variable
            response = self.session.get(
                self.query_url,
                params={"query": promql, "time": "%.3f" % time.time(), "timeout": f"{timeout}s"},
                timeout=(timeout, timeout),
                verify=self.session.verify,
            )
        except requests.exceptions.Timeout:
            raise QueryTimeout(f"Query timed out after {timeout} seconds")
        except requests.exceptions.RequestException as e:
            raise QueryError(f"Error querying Prometheus: {e}")

        logger.debug("Response %s: %s", response.status_code, response.text)
        return parse_query_response(self._decode(response))

    @staticmethod
    def _decode(response: requests.Response) -> Mapping[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            if not response.ok:
                raise QueryError(
                    f"Error querying Prometheus: HTTP {response.status_code} {response.reason}"
                )
            raise QueryError("Error querying Prometheus: response is not valid JSON")

        if not isinstance(payload, dict):
            raise QueryError("Error querying Prometheus: unexpected response")

        if not response.ok or payload.get("status") != "success":
            error = payload.get("error") or f"HTTP {response.status_code} {response.reason}"
            error_type = payload.get("errorType")
            raise QueryError(
                f"Error querying Prometheus: {error_type}: {error}"
                if error_type
                else f"Error querying Prometheus: {error}"
            )

        for warning in payload.get("warnings") or ():
            logger.warning("Prometheus: %s", warning)
        return payload


def parse_query_response(payload: Mapping[str, Any]) -> Sequence[Sample]:
    """Turn the body of a successful instant query into samples

    Only instant vectors and scalars are understood, anything else is reported
    instead of being guessed at.
    """
    data = payload.get("data")
    if not isinstance(data, dict):
        raise QueryError("Unexpected query response: no data section")

    result = data.get("result")
    match data.get("resultType"):
        case "vector":
            if not isinstance(result, list):
                raise QueryError("Unexpected query response: vector result is not a list")
            return [_parse_vector_entry(entry) for entry in result]
        case "scalar":
            return [Sample({}, _parse_value(result, "{}"))]
        case other:
            raise QueryError(
                f"Unexpected query result type {other!r}, the query must return an instant vector"
            )


def _parse_vector_entry(entry: object) -> Sample:
    if not isinstance(entry, dict) or not isinstance(entry.get("metric"), dict):
        raise QueryError(f"Unexpected series in query response: {entry!r}")
    labels = {str(k): str(v) for k, v in entry["metric"].items()}
    return Sample(labels, _parse_value(entry.get("value"), series_identifier(labels)))


def _parse_value(pair: object, series: str) -> float:
    # [<unix timestamp>, "<value>"]
    if not isinstance(pair, list) or len(pair) != 2:
        raise QueryError(f"Series {series} has no value in query response")
    try:
        return float(pair[1])
    except (TypeError, ValueError):
        raise QueryError(f"Cannot parse value {pair[1]!r} of series {series} as a number")
