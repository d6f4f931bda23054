"""Tests for RequestBuilder and response interpretation."""

import json
import uuid

import pytest
from support import API_BASE, CONTACT_ID, json_response

from dataverse_client.errors import DecodeError, ODataError, ValidationError
from dataverse_client.reference import ColumnSelection, Reference
from dataverse_client.requests import (
    RequestBuilder,
    created_id,
    odata_error_from_response,
    parse_json_body,
    raise_for_status,
)
from dataverse_client.types import ErrorCategory, HttpResponse


@pytest.fixture
def builder():
    return RequestBuilder(API_BASE)


@pytest.fixture
def reference():
    return Reference("contacts", CONTACT_ID)


def _assert_common_headers(request, token="tok"):
    assert request.headers["Authorization"] == f"Bearer {token}"
    assert request.headers["Accept"] == "application/json"
    assert request.headers["OData-MaxVersion"] == "4.0"
    assert request.headers["OData-Version"] == "4.0"


class TestRequestBuilder:
    def test_trailing_slash_stripped(self):
        assert RequestBuilder(API_BASE + "/").api_base_url == API_BASE

    def test_retrieve_scenario_url(self, builder, reference):
        request = builder.retrieve(reference, ["contactid", "firstname", "lastname"], "tok")

        assert request.method == "GET"
        assert request.url == (
            f"{API_BASE}/contacts(12345678-1234-1234-1234-123456789012)"
            "?$select=contactid,firstname,lastname"
        )
        assert request.body is None
        assert "Content-Type" not in request.headers
        _assert_common_headers(request)

    def test_retrieve_empty_selection(self, builder, reference):
        with pytest.raises(ValidationError, match="must not be empty"):
            builder.retrieve(reference, [], "tok")

    def test_create(self, builder):
        request = builder.create("contacts", {"firstname": "Testy"}, "tok")

        assert request.method == "POST"
        assert request.url == f"{API_BASE}/contacts"
        assert request.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(request.body) == {"firstname": "Testy"}
        assert "If-Match" not in request.headers
        _assert_common_headers(request)

    def test_update_never_creates(self, builder, reference):
        request = builder.update(reference, {"lastname": "New"}, "tok")

        assert request.method == "PATCH"
        assert request.url == f"{API_BASE}/contacts({CONTACT_ID})"
        assert request.headers["If-Match"] == "*"
        assert json.loads(request.body) == {"lastname": "New"}

    def test_upsert_has_no_if_match(self, builder, reference):
        request = builder.upsert(reference, {"lastname": "New"}, "tok")

        assert request.method == "PATCH"
        assert request.url == f"{API_BASE}/contacts({CONTACT_ID})"
        assert "If-Match" not in request.headers

    def test_delete(self, builder, reference):
        request = builder.delete(reference, "tok")

        assert request.method == "DELETE"
        assert request.url == f"{API_BASE}/contacts({CONTACT_ID})"
        assert request.body is None
        _assert_common_headers(request)

    def test_batch_independent(self, builder):
        request = builder.batch("batch_abc", b"payload", "tok")

        assert request.method == "POST"
        assert request.url == f"{API_BASE}/$batch"
        assert request.headers["Content-Type"] == "multipart/mixed; boundary=batch_abc"
        assert request.headers["Prefer"] == "odata.continue-on-error"
        assert request.body == b"payload"

    def test_batch_atomic_has_no_prefer(self, builder):
        request = builder.batch("batch_abc", b"payload", "tok", continue_on_error=False)
        assert "Prefer" not in request.headers

    def test_non_ascii_body_is_utf8(self, builder):
        request = builder.create("contacts", {"lastname": "Müller"}, "tok")
        assert "Müller".encode("utf-8") in request.body

    def test_selection_object_accepted(self, builder, reference):
        request = builder.retrieve(reference, ColumnSelection.of("fullname"), "tok")
        assert request.url.endswith("?$select=fullname")


class TestOdataError:
    def test_error_envelope(self):
        response = json_response(
            404,
            {"error": {"code": "0x80040217", "message": "contact With Id = x Does Not Exist"}},
        )

        error = odata_error_from_response(response)

        assert error.status_code == 404
        assert error.error_code == "0x80040217"
        assert error.server_message == "contact With Id = x Does Not Exist"
        assert error.category == ErrorCategory.PERMANENT
        assert str(error) == "HTTP 404 [0x80040217]: contact With Id = x Does Not Exist"

    def test_plain_text_body(self):
        error = odata_error_from_response(HttpResponse(status=503, body=b"Service Unavailable"))

        assert error.server_message == "Service Unavailable"
        assert error.error_code is None
        assert error.is_retryable

    def test_empty_body(self):
        error = odata_error_from_response(HttpResponse(status=500))
        assert error.server_message == "no error details provided from server"

    def test_raise_for_status(self):
        raise_for_status(HttpResponse(status=204))
        with pytest.raises(ODataError):
            raise_for_status(HttpResponse(status=412, body=b"precondition failed"))


class TestResponseInterpretation:
    def test_parse_json_body(self):
        assert parse_json_body(json_response(200, {"a": 1})) == {"a": 1}

    def test_parse_invalid_json(self):
        with pytest.raises(DecodeError, match="not valid JSON"):
            parse_json_body(HttpResponse(status=200, body=b"{nope"))

    def test_parse_empty_body(self):
        with pytest.raises(DecodeError, match="empty"):
            parse_json_body(HttpResponse(status=200))

    def test_created_id_from_entity_id_header(self):
        response = HttpResponse(
            status=204,
            headers={"odata-entityid": f"{API_BASE}/contacts({CONTACT_ID})"},
        )
        assert created_id(response) == uuid.UUID(CONTACT_ID)

    def test_created_id_from_location(self):
        response = HttpResponse(
            status=201, headers={"Location": f"{API_BASE}/contacts({CONTACT_ID})"}
        )
        assert created_id(response) == uuid.UUID(CONTACT_ID)

    def test_created_id_from_body(self):
        response = json_response(201, {"contactid": CONTACT_ID, "firstname": "Testy"})
        assert created_id(response, "contactid") == uuid.UUID(CONTACT_ID)

    def test_created_id_missing(self):
        with pytest.raises(DecodeError, match="no id"):
            created_id(HttpResponse(status=204), "contactid")
