from __future__ import annotations

import io
import logging
from unittest.mock import Mock

import pytest
import requests

from rqkit.domain.errors import InterceptorError, TransportError, ValidationError
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.request import Request
from rqkit.infrastructure.http_client import execute_once
from rqkit.infrastructure.transport.interceptors import (
    InterceptorTransport,
    dump_transport,
    format_request,
)
from rqkit.infrastructure.transport.requests_transport import RequestsTransport


def _prepared(method="GET", url="http://example.test/path?q=1", body=None, headers=None):
    return requests.Request(method=method, url=url, data=body, headers=headers or {}).prepare()


class TestInterceptorTransport:
    """Request/response hooks around a base transport"""

    def test_request_hook_mutation_reaches_base(self, scripted):
        base = scripted(200)

        def add_header(ctx, request):
            request.headers["X-Trace"] = "abc"

        transport = InterceptorTransport(base, request_interceptor=add_header)
        resp = execute_once(Request("GET", "http://example.test/", transport))

        assert resp.status_code == 200
        assert base.requests[0].headers["X-Trace"] == "abc"

    def test_request_hook_failure_skips_base(self, scripted):
        base = scripted(200)

        def reject(ctx, request):
            raise ValueError("not allowed")

        transport = InterceptorTransport(base, request_interceptor=reject)
        resp = execute_once(Request("GET", "http://example.test/", transport))

        assert base.calls == 0
        assert isinstance(resp.error, InterceptorError)
        assert "not allowed" in str(resp.error)
        assert resp.status_code is None

    def test_request_hook_request_error_passes_through(self, scripted):
        base = scripted(200)

        def reject(ctx, request):
            raise ValidationError("missing token")

        transport = InterceptorTransport(base, request_interceptor=reject)
        resp = execute_once(Request("GET", "http://example.test/", transport))

        assert base.calls == 0
        assert isinstance(resp.error, ValidationError)
        assert str(resp.error) == "missing token"

    def test_response_hook_failure_closes_response(self, scripted, make_response):
        response = make_response(200, b"ok")
        response.close = Mock()
        base = scripted(response)

        def reject(ctx, resp):
            raise RuntimeError("bad response")

        transport = InterceptorTransport(base, response_interceptor=reject)
        resp = execute_once(Request("GET", "http://example.test/", transport))

        assert base.calls == 1
        response.close.assert_called_once()
        assert isinstance(resp.error, InterceptorError)
        assert "response interceptor" in str(resp.error)

    def test_transport_error_skips_response_hook(self, scripted):
        base = scripted(requests.ConnectionError("refused"))
        hook = Mock()

        transport = InterceptorTransport(base, response_interceptor=hook)
        resp = execute_once(Request("GET", "http://example.test/", transport))

        hook.assert_not_called()
        assert isinstance(resp.error, TransportError)

    def test_hooks_receive_context(self, scripted):
        base = scripted(200)
        seen = []
        transport = InterceptorTransport(
            base,
            request_interceptor=lambda ctx, req: seen.append(("request", ctx)),
            response_interceptor=lambda ctx, resp: seen.append(("response", ctx)),
        )
        ctx = ExecutionContext()
        execute_once(Request("GET", "http://example.test/", transport), ctx)

        assert seen == [("request", ctx), ("response", ctx)]

    def test_default_base_is_owned(self):
        transport = InterceptorTransport()
        assert isinstance(transport.base, RequestsTransport)

        transport.base = Mock()
        transport.close()
        transport.base.close.assert_called_once()

    def test_supplied_base_not_closed(self, scripted):
        base = scripted(200)
        InterceptorTransport(base).close()
        assert base.closed is False


class TestDumpTransport:
    """Request/response dumps at INFO"""

    def test_dumps_request_and_response(self, scripted, make_response, caplog):
        base = scripted(make_response(201, b'{"id":1}', {"X-Resp": "yes"}))
        dump_logger = logging.getLogger("tests.dump")
        transport = dump_transport(base, dump_logger)

        with caplog.at_level(logging.INFO, logger="tests.dump"):
            resp = execute_once(
                Request("POST", "http://example.test/items", transport).header("X-Req", "1").body_string("hello")
            )

        assert resp.status_code == 201
        assert resp.bytes() == b'{"id":1}'
        messages = [r.getMessage() for r in caplog.records if r.name == "tests.dump"]
        assert len(messages) == 2
        assert messages[0].startswith("=== HTTP REQUEST ===")
        assert "POST /items HTTP/1.1" in messages[0]
        assert "X-Req: 1" in messages[0]
        assert "hello" in messages[0]
        assert messages[1].startswith("=== HTTP RESPONSE ===")
        assert "HTTP/1.1 201" in messages[1]
        assert "X-Resp: yes" in messages[1]
        assert '{"id":1}' in messages[1]

    def test_body_still_sent_after_dump(self, scripted):
        base = scripted(200)
        transport = dump_transport(base, logging.getLogger("tests.dump"))
        execute_once(Request("POST", "http://example.test/", transport).body(io.BytesIO(b"stream")))

        assert base.bodies == [b"stream"]

    def test_request_dumped_on_transport_failure(self, scripted, caplog):
        base = scripted(requests.ConnectionError("refused"))
        transport = dump_transport(base, logging.getLogger("tests.dump"))

        with caplog.at_level(logging.INFO, logger="tests.dump"):
            resp = execute_once(Request("GET", "http://example.test/", transport))

        assert isinstance(resp.error, TransportError)
        messages = [r.getMessage() for r in caplog.records if r.name == "tests.dump"]
        assert len(messages) == 1
        assert "=== HTTP REQUEST ===" in messages[0]

    def test_close_only_closes_owned_base(self, scripted):
        base = scripted(200)
        dump_transport(base).close()
        assert base.closed is False

        base = scripted(200)
        dump_transport(base, close_base=True).close()
        assert base.closed is True


@pytest.mark.parametrize(
    "body,expected",
    [
        (None, "GET /path?q=1 HTTP/1.1\r\nHost: example.test"),
        (b"data", "data"),
    ],
)
def test_format_request(body, expected):
    text = format_request(_prepared(body=body), body)
    assert expected in text
