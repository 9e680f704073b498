import pytest
from requests.structures import CaseInsensitiveDict

from rqkit.domain.errors import TransportError, ValidationError
from rqkit.domain.models.request import Request
from rqkit.domain.models.response import Response
from rqkit.domain.validators.response_validators import Validate


def _resp(status=200, body=b"hello world", headers=None) -> Response:
    return Response(status_code=status, content=body, headers=CaseInsensitiveDict(headers or {"ETag": "v1"}))


class TestBasicValidators:
    def test_ok(self):
        assert Validate.ok()(_resp(204)) is None
        assert isinstance(Validate.ok()(_resp(500)), ValidationError)

    def test_status_code(self):
        assert Validate.status_code(201)(_resp(201)) is None
        error = Validate.status_code(201)(_resp(200))
        assert str(error) == "expected status 201, got 200"

    def test_header(self):
        assert Validate.header("etag", "v1")(_resp()) is None
        assert isinstance(Validate.header("ETag", "v2")(_resp()), ValidationError)

    def test_header_exists(self):
        assert Validate.header_exists("ETag")(_resp()) is None
        assert isinstance(Validate.header_exists("X-Missing")(_resp()), ValidationError)

    def test_body_contains(self):
        assert Validate.body_contains("world")(_resp()) is None
        assert isinstance(Validate.body_contains("mars")(_resp()), ValidationError)

    def test_body_matches_searches_anywhere(self):
        assert Validate.body_matches(r"wor\w+")(_resp()) is None
        assert isinstance(Validate.body_matches(r"^world")(_resp()), ValidationError)

    def test_invalid_pattern_is_validation_error(self):
        error = Validate.body_matches("(unclosed")(_resp())
        assert isinstance(error, ValidationError)
        assert "invalid regex" in str(error)

    @pytest.mark.parametrize(
        "validator",
        [Validate.ok(), Validate.status_code(200), Validate.header_exists("ETag"), Validate.body_contains("x")],
    )
    def test_errored_response_fails_with_its_error(self, validator):
        stored = TransportError("down")
        assert validator(Response.from_error(stored)) is stored


class TestCombinators:
    def test_all_short_circuits(self):
        called = {"second": False}

        def second(resp):
            called["second"] = True
            return None

        error = Validate.all(Validate.status_code(201), second)(_resp(200))
        assert isinstance(error, ValidationError)
        assert called["second"] is False

    def test_all_passes(self):
        assert Validate.all(Validate.ok(), Validate.body_contains("hello"))(_resp()) is None

    def test_any_stops_at_first_success(self):
        called = {"second": False}

        def second(resp):
            called["second"] = True
            return ValidationError("never")

        assert Validate.any(Validate.ok(), second)(_resp()) is None
        assert called["second"] is False

    def test_any_single_error_returned_as_is(self):
        error = Validate.any(Validate.status_code(201))(_resp())
        assert str(error) == "expected status 201, got 200"

    def test_any_aggregates_errors(self):
        error = Validate.any(Validate.status_code(201), Validate.body_contains("mars"))(_resp())
        assert isinstance(error, ValidationError)
        assert str(error).startswith("all validators failed: [1] expected status 201")
        assert "[2] response body does not contain 'mars'" in str(error)

    def test_not_inverts(self):
        assert Validate.not_(Validate.status_code(500))(_resp()) is None
        error = Validate.not_(Validate.ok())(_resp())
        assert str(error) == "expected validation to fail but it passed"


class TestValidatorsOnExecution:
    def test_first_failure_becomes_response_error(self, scripted):
        request = Request("GET", "http://example.test/", scripted(404)).validate(
            Validate.ok(), Validate.header_exists("ETag")
        )
        resp = request.do()

        assert resp.status_code == 404
        assert isinstance(resp.error, ValidationError)
        assert "expected 2xx status" in str(resp.error)

    def test_passing_validators_leave_no_error(self, make_response, scripted):
        transport = scripted(make_response(200, b"ready", {"ETag": "abc"}))
        resp = Request("GET", "http://example.test/", transport).validate(
            Validate.ok(), Validate.header("ETag", "abc"), Validate.body_contains("ready")
        ).do()
        assert resp.error is None
