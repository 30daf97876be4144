"""Tests for body serialisation, fingerprinting, sending, and decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass

import httpx
import pytest
from pydantic import BaseModel

from typedtrail.exceptions import ResponseDecodeError, ResponseValidationError, TransportError
from typedtrail.form import FormData
from typedtrail.interceptors import RequestDraft, RequestOptions
from typedtrail.pipeline import decode_response, fingerprint, send_draft, serialize_body


class Resource(BaseModel):
    id: int
    name: str


@dataclass
class Point:
    x: int
    y: int


# ---------------------------------------------------------------------------
# serialize_body
# ---------------------------------------------------------------------------


class TestSerializeBody:
    def test_json_encodes_compactly(self) -> None:
        assert serialize_body({"a": 1}) == '{"a":1}'

    @pytest.mark.parametrize(
        "body",
        [{"a": [1, 2, {"b": None}]}, [1, "two", 3.5], "text", 42, True, None],
    )
    def test_json_round_trip(self, body) -> None:
        assert json.loads(serialize_body(body)) == body

    def test_form_data_passes_through(self) -> None:
        form = FormData().append("a", "1")
        assert serialize_body(form) is form

    def test_pydantic_model_and_dataclass(self) -> None:
        assert json.loads(serialize_body(Resource(id=1, name="x"))) == {"id": 1, "name": "x"}
        assert json.loads(serialize_body({"p": Point(1, 2)})) == {"p": {"x": 1, "y": 2}}

    def test_non_ascii_is_kept(self) -> None:
        assert serialize_body({"name": "café"}) == '{"name":"café"}'


# ---------------------------------------------------------------------------
# fingerprint
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_layout(self) -> None:
        headers = httpx.Headers([("Accept", "application/json"), ("X-Test", "v")])
        key = fingerprint("POST", "/api/1", headers, '{"a":1}')
        assert key == 'POST /api/1 accept=application/jsonx-test=v {"a":1}'

    def test_identical_requests_share_key(self) -> None:
        a = fingerprint("GET", "/x", {"A": "1"}, None)
        b = fingerprint("GET", "/x", httpx.Headers({"a": "1"}), None)
        assert a == b

    def test_header_order_matters(self) -> None:
        a = fingerprint("GET", "/x", httpx.Headers([("a", "1"), ("b", "2")]), None)
        b = fingerprint("GET", "/x", httpx.Headers([("b", "2"), ("a", "1")]), None)
        assert a != b

    def test_form_body_serialised_as_pairs(self) -> None:
        form = FormData().append("x", "1").append("y", "2")
        assert fingerprint("POST", "/f", None, form) == "POST /f  x=1y=2"

    def test_form_file_field_uses_filename(self) -> None:
        form = FormData().append("file", "a.txt", b"data", "text/plain")
        assert fingerprint("POST", "/f", None, form).endswith(" file=a.txt")

    def test_other_bodies_contribute_nothing(self) -> None:
        assert fingerprint("PUT", "/x", None, {"a": 1}) == "PUT /x  "
        assert fingerprint("PUT", "/x", None, None) == "PUT /x  "

    def test_different_bodies_differ(self) -> None:
        assert fingerprint("POST", "/x", None, "1") != fingerprint("POST", "/x", None, "2")


# ---------------------------------------------------------------------------
# send_draft
# ---------------------------------------------------------------------------


class _FailingTransport:
    async def send(self, method, url, headers, body):
        raise httpx.ConnectError("connection refused")


class _EchoTransport:
    async def send(self, method, url, headers, body):
        return httpx.Response(200, json={"method": method, "url": url, "body": body})


class TestSendDraft:
    async def test_passes_draft_fields(self) -> None:
        draft = RequestDraft(url="/x", options=RequestOptions(method="PUT", body='{"a":1}'))
        response = await send_draft(_EchoTransport(), draft)
        assert response.json() == {"method": "PUT", "url": "/x", "body": '{"a":1}'}

    async def test_network_error_becomes_transport_error(self) -> None:
        draft = RequestDraft(url="/x", options=RequestOptions(method="GET"))
        with pytest.raises(TransportError, match="GET /x failed") as exc_info:
            await send_draft(_FailingTransport(), draft)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


# ---------------------------------------------------------------------------
# decode_response
# ---------------------------------------------------------------------------


class TestDecodeResponse:
    def test_json_by_default(self) -> None:
        assert decode_response(httpx.Response(200, json={"ok": True})) == {"ok": True}

    def test_text_when_requested(self) -> None:
        response = httpx.Response(200, text='{"success":true}')
        assert decode_response(response, as_text=True) == '{"success":true}'

    def test_invalid_json_raises_decode_error(self) -> None:
        with pytest.raises(ResponseDecodeError, match="not valid JSON"):
            decode_response(httpx.Response(200, content=b"<html>oops</html>"))

    def test_validates_into_declared_type(self) -> None:
        response = httpx.Response(200, json=[{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])
        body = decode_response(response, response_type=list[Resource])
        assert body == [Resource(id=1, name="a"), Resource(id=2, name="b")]

    def test_mismatch_raises_validation_error(self) -> None:
        response = httpx.Response(200, json={"id": "not-a-number"})
        with pytest.raises(ResponseValidationError, match="Resource"):
            decode_response(response, response_type=Resource)
