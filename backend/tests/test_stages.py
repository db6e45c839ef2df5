"""
Natours Backend — Pipeline Stage Tests
========================================

What:  The pure `(RequestContext) -> RequestContext` stages, without HTTP.

What we test:
    ✅ JSON and URL-encoded bodies parse; oversized and malformed bodies fail
    ✅ Cookies are materialized
    ✅ "$" and dotted keys are stripped from query, body and params
    ✅ "<" is escaped in every string
    ✅ Repeated params collapse unless whitelisted
    ✅ Timestamp format and stage order
"""

import json
import logging
import re

import pytest
from starlette.datastructures import Headers

from natours.context import RequestContext
from natours.exceptions import BadRequestError, PayloadTooLargeError
from natours.middleware.stages import (
    body_kind,
    build_stages,
    parse_body,
    parse_cookies,
    prevent_pollution,
    sanitize_nosql,
    sanitize_xss,
    stamp_request_time,
)

WHITELIST = ["duration", "ratingsQuantity", "ratingsAverage", "maxGroupSize", "difficulty", "price"]


def make_ctx(headers=None, raw_body=b"", query=None, body=None, body_type=None, params=None):
    return RequestContext(
        method="POST",
        path="/api/v1/tours",
        original_url="/api/v1/tours",
        client_ip="127.0.0.1",
        headers=Headers(headers or {}),
        query=query or {},
        raw_body=raw_body,
        body=body,
        body_type=body_type,
        params=params or {},
    )


class TestBodyKind:

    def test_json_with_charset(self):
        assert body_kind(Headers({"content-type": "application/json; charset=utf-8"})) == "json"

    def test_vendor_json(self):
        assert body_kind(Headers({"content-type": "application/merge-patch+json"})) == "json"

    def test_form(self):
        assert body_kind(Headers({"content-type": "application/x-www-form-urlencoded"})) == "form"

    def test_other_types_are_not_buffered(self):
        assert body_kind(Headers({"content-type": "multipart/form-data; boundary=x"})) is None
        assert body_kind(Headers({})) is None


class TestParseBody:

    def setup_method(self):
        self.stage = parse_body(10 * 1024)

    def test_json_object(self):
        ctx = make_ctx({"content-type": "application/json"}, b'{"name": "Test"}')
        result = self.stage(ctx)
        assert result.body == {"name": "Test"}
        assert result.body_type == "json"

    def test_form_body_nested(self):
        ctx = make_ctx(
            {"content-type": "application/x-www-form-urlencoded"},
            b"name=Test&price[lt]=10",
        )
        assert self.stage(ctx).body == {"name": "Test", "price": {"lt": "10"}}

    def test_empty_body_is_empty_dict(self):
        ctx = make_ctx({"content-type": "application/json"}, b"  ")
        assert self.stage(ctx).body == {}

    def test_oversized_body_fails_with_413(self):
        raw = json.dumps({"summary": "x" * 11000}).encode()
        ctx = make_ctx({"content-type": "application/json"}, raw)
        with pytest.raises(PayloadTooLargeError) as exc_info:
            self.stage(ctx)
        assert exc_info.value.status_code == 413
        assert exc_info.value.status == "fail"

    def test_exactly_at_limit_passes(self):
        stage = parse_body(20)
        raw = b'{"a": "' + b"x" * 11 + b'"}'
        assert len(raw) == 20
        assert stage(make_ctx({"content-type": "application/json"}, raw)).body == {"a": "x" * 11}

    def test_malformed_json_fails_with_400(self):
        ctx = make_ctx({"content-type": "application/json"}, b'{"name": ')
        with pytest.raises(BadRequestError) as exc_info:
            self.stage(ctx)
        assert exc_info.value.status_code == 400

    def test_scalar_json_rejected(self):
        ctx = make_ctx({"content-type": "application/json"}, b'"just a string"')
        with pytest.raises(BadRequestError):
            self.stage(ctx)

    def test_non_body_request_untouched(self):
        ctx = make_ctx({}, b"")
        assert self.stage(ctx) is ctx


class TestParseCookies:

    def test_cookie_header_parsed(self):
        ctx = make_ctx({"cookie": "jwt=abc; theme=dark"})
        assert parse_cookies(ctx).cookies == {"jwt": "abc", "theme": "dark"}

    def test_no_cookie_header(self):
        assert parse_cookies(make_ctx()).cookies == {}


class TestSanitizeNoSQL:

    def test_operator_keys_stripped_everywhere(self, caplog):
        ctx = make_ctx(
            query={"price": {"$gt": "0"}, "difficulty": "easy"},
            body={"email": {"$gt": ""}, "password": "pass1234", "profile.role": "admin"},
            params={"id": "abc"},
        )
        with caplog.at_level(logging.WARNING, logger="natours.middleware.stages"):
            result = sanitize_nosql(ctx)
        assert result.query == {"price": {}, "difficulty": "easy"}
        assert result.body == {"email": {}, "password": "pass1234"}
        assert result.params == {"id": "abc"}
        assert "Stripped operator keys" in caplog.text

    def test_nested_lists_are_walked(self):
        ctx = make_ctx(body=[{"$where": "1"}, {"ok": True}])
        assert sanitize_nosql(ctx).body == [{}, {"ok": True}]


class TestSanitizeXSS:

    def test_angle_brackets_escaped(self):
        ctx = make_ctx(
            query={"name": "<b>x</b>"},
            body={"summary": "<script>alert(1)</script>", "price": 10},
        )
        result = sanitize_xss(ctx)
        assert result.query == {"name": "&lt;b>x&lt;/b>"}
        assert result.body == {"summary": "&lt;script>alert(1)&lt;/script>", "price": 10}


class TestPreventPollution:

    def setup_method(self):
        self.stage = prevent_pollution(WHITELIST)

    def test_whitelisted_arrays_preserved(self):
        result = self.stage(make_ctx(query={"price": ["397", "997"]}))
        assert result.query == {"price": ["397", "997"]}
        assert result.query_polluted == {}

    def test_other_keys_collapse_to_last(self):
        result = self.stage(make_ctx(query={"sort": ["duration", "price"]}))
        assert result.query == {"sort": "price"}
        assert result.query_polluted == {"sort": ["duration", "price"]}

    def test_form_body_collapses_but_json_does_not(self):
        form = self.stage(make_ctx(body={"name": ["a", "b"]}, body_type="form"))
        assert form.body == {"name": "b"}
        json_ctx = self.stage(make_ctx(body={"name": ["a", "b"]}, body_type="json"))
        assert json_ctx.body == {"name": ["a", "b"]}


class TestRequestTime:

    def test_iso_utc_with_milliseconds(self):
        result = stamp_request_time(make_ctx())
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", result.request_time)


class TestStageOrder:

    def test_declared_order(self):
        names = [stage.name for stage in build_stages(10240, WHITELIST)]
        assert names == [
            "parse_body",
            "parse_cookies",
            "sanitize_nosql",
            "sanitize_xss",
            "prevent_pollution",
            "stamp_request_time",
        ]
