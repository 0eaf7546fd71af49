#!/usr/bin/env python3
# Copyright (C) 2019 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import json
import math
from collections.abc import Mapping
from typing import Any

import pytest
import requests

from promcheck.prometheus.api import (
    generate_api_session,
    parse_query_response,
    PrometheusAPI,
    Sample,
)
from promcheck.utils.exceptions import QueryError, QueryTimeout


def _response(status_code: int, body: object, reason: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.encoding = "utf-8"
    response._content = (body if isinstance(body, str) else json.dumps(body)).encode("utf-8")
    return response


class _FakeSession:
    def __init__(self, response: requests.Response | Exception) -> None:
        self.verify = True
        self._response = response
        self.calls: list[tuple[str, Mapping[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append((url, kwargs))
        if isinstance(self._response, Exception):
            raise self._response
        return self._response


def _vector(*entries: Mapping[str, Any]) -> Mapping[str, Any]:
    return {"status": "success", "data": {"resultType": "vector", "result": list(entries)}}


def _query(session: _FakeSession, promql: str = "up") -> list[Sample]:
    api = PrometheusAPI(session, "prometheus:9090")  # type: ignore[arg-type]
    return list(api.query(promql, timeout=7))


def test_query_request() -> None:
    session = _FakeSession(_response(200, _vector()))
    _query(session, 'sum(rate(http_requests_total{job="api"}[5m]))')

    ((url, kwargs),) = session.calls
    assert url == "http://prometheus:9090/api/v1/query"
    assert kwargs["params"]["query"] == 'sum(rate(http_requests_total{job="api"}[5m]))'
    assert kwargs["params"]["timeout"] == "7s"
    assert float(kwargs["params"]["time"]) > 0
    assert kwargs["timeout"] == (7, 7)
    assert kwargs["verify"] is True


def test_query_vector() -> None:
    session = _FakeSession(
        _response(
            200,
            _vector(
                {"metric": {"__name__": "up", "instance": "a"}, "value": [1700000000.1, "1"]},
                {"metric": {"__name__": "up", "instance": "b"}, "value": [1700000000.1, "0"]},
            ),
        )
    )
    assert _query(session) == [
        Sample({"__name__": "up", "instance": "a"}, 1.0),
        Sample({"__name__": "up", "instance": "b"}, 0.0),
    ]


def test_query_empty_vector() -> None:
    assert not _query(_FakeSession(_response(200, _vector())))


def test_query_scalar() -> None:
    body = {"status": "success", "data": {"resultType": "scalar", "result": [1.5, "42"]}}
    assert _query(_FakeSession(_response(200, body))) == [Sample({}, 42.0)]


def test_query_special_float_values() -> None:
    samples = _query(
        _FakeSession(
            _response(
                200,
                _vector(
                    {"metric": {}, "value": [0, "NaN"]},
                    {"metric": {}, "value": [0, "+Inf"]},
                    {"metric": {}, "value": [0, "-Inf"]},
                ),
            )
        )
    )
    assert math.isnan(samples[0].value)
    assert samples[1].value == math.inf
    assert samples[2].value == -math.inf


def test_query_unparsable_value() -> None:
    session = _FakeSession(
        _response(200, _vector({"metric": {"__name__": "up"}, "value": [0, "yes"]}))
    )
    with pytest.raises(QueryError, match="Cannot parse value 'yes' of series up"):
        _query(session)


@pytest.mark.parametrize("result_type", ["matrix", "string", None])
def test_query_unexpected_result_type(result_type: str | None) -> None:
    body = {"status": "success", "data": {"resultType": result_type, "result": []}}
    with pytest.raises(QueryError, match="Unexpected query result type"):
        _query(_FakeSession(_response(200, body)))


@pytest.mark.parametrize(
    "body",
    [
        {"status": "success"},
        {"status": "success", "data": {"resultType": "vector", "result": {}}},
        _vector({"value": [0, "1"]}),
        _vector({"metric": {}, "value": "1"}),
        _vector({"metric": {}, "histogram": [0, {}]}),
    ],
)
def test_query_unexpected_shape(body: Mapping[str, Any]) -> None:
    with pytest.raises(QueryError):
        _query(_FakeSession(_response(200, body)))


def test_query_api_error() -> None:
    body = {
        "status": "error",
        "errorType": "bad_data",
        "error": 'parse error at char 4: unexpected "}"',
    }
    with pytest.raises(QueryError, match="Error querying Prometheus: bad_data: parse error"):
        _query(_FakeSession(_response(400, body, "Bad Request")))


def test_query_http_error_without_json() -> None:
    with pytest.raises(QueryError, match="HTTP 502 Bad Gateway"):
        _query(_FakeSession(_response(502, "<html>oops</html>", "Bad Gateway")))


def test_query_invalid_json() -> None:
    with pytest.raises(QueryError, match="not valid JSON"):
        _query(_FakeSession(_response(200, "no json here")))


def test_query_warnings_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    body = dict(_vector(), warnings=["results truncated"])
    _query(_FakeSession(_response(200, body)))
    assert "Prometheus: results truncated" in caplog.text


@pytest.mark.parametrize(
    "exc", [requests.exceptions.ConnectTimeout(), requests.exceptions.ReadTimeout()]
)
def test_query_timeout(exc: Exception) -> None:
    with pytest.raises(QueryTimeout, match="Query timed out after 7 seconds"):
        _query(_FakeSession(exc))


def test_query_connection_error() -> None:
    with pytest.raises(QueryError, match="Error querying Prometheus: connection refused"):
        _query(_FakeSession(requests.exceptions.ConnectionError("connection refused")))


def test_session_settings() -> None:
    session = generate_api_session(username="user", password="secret", verify=False)
    assert session.auth == ("user", "secret")
    assert session.verify is False
    assert session.headers["Accept"] == "application/json"


def test_session_without_auth() -> None:
    session = generate_api_session()
    assert session.auth is None
    assert session.verify is True


def test_parse_query_response_keeps_series_order() -> None:
    samples = parse_query_response(
        _vector(
            {"metric": {"__name__": "load", "host": "z"}, "value": [0, "3"]},
            {"metric": {"__name__": "load", "host": "a"}, "value": [0, "1"]},
        )
    )
    assert [s.series for s in samples] == ['load{host="z"}', 'load{host="a"}']
