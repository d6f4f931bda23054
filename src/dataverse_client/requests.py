"""
Request construction and response interpretation for single CRUD calls.

RequestBuilder turns a reference, selection or encoded document plus a
bearer token into an HttpRequest. The interpret helpers turn an
HttpResponse (whole response or one batch sub-response) back into an id,
a document or a typed error. Nothing here performs I/O.
"""

import json
import uuid
from typing import Any, Iterable
from urllib.parse import quote

from dataverse_client.errors import DecodeError, ODataError
from dataverse_client.reference import ColumnSelection, Reference, as_selection, find_uuid
from dataverse_client.types import HttpRequest, HttpResponse

ODATA_VERSION_HEADERS = {
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
}
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

NO_ERROR_DETAILS = "no error details provided from server"


def encode_json(document: dict[str, Any]) -> bytes:
    return json.dumps(document, ensure_ascii=False).encode("utf-8")


class RequestBuilder:
    """
    Builds one HTTP exchange per CRUD verb.

    Args:
        api_base_url: "{organization_url}/api/data/v{version}"
    """

    def __init__(self, api_base_url: str):
        self.api_base_url = api_base_url.rstrip("/")

    def collection_url(self, entity_set: str) -> str:
        return f"{self.api_base_url}/{entity_set}"

    def record_url(self, reference: Reference) -> str:
        return f"{self.api_base_url}/{reference.path}"

    def retrieve_url(self, reference: Reference, selection: ColumnSelection) -> str:
        # $ and , stay literal so the URL reads the way the service documents it
        select = quote(selection.as_query(), safe=",")
        return f"{self.record_url(reference)}?$select={select}"

    @staticmethod
    def base_headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            **ODATA_VERSION_HEADERS,
        }

    def retrieve(
        self,
        reference: Reference,
        selection: ColumnSelection | Iterable[str],
        token: str,
    ) -> HttpRequest:
        """GET {base}/{set}({id})?$select=a,b,c"""
        selection = as_selection(selection)
        return HttpRequest(
            method="GET",
            url=self.retrieve_url(reference, selection),
            headers=self.base_headers(token),
        )

    def create(self, entity_set: str, document: dict[str, Any], token: str) -> HttpRequest:
        """POST {base}/{set} with the encoded record."""
        headers = self.base_headers(token)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        return HttpRequest(
            method="POST",
            url=self.collection_url(entity_set),
            headers=headers,
            body=encode_json(document),
        )

    def update(self, reference: Reference, document: dict[str, Any], token: str) -> HttpRequest:
        """PATCH {base}/{set}({id}) that fails instead of creating a missing record."""
        headers = self.base_headers(token)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        headers["If-Match"] = "*"
        return HttpRequest(
            method="PATCH",
            url=self.record_url(reference),
            headers=headers,
            body=encode_json(document),
        )

    def upsert(self, reference: Reference, document: dict[str, Any], token: str) -> HttpRequest:
        """PATCH {base}/{set}({id}) that creates the record when it does not exist."""
        headers = self.base_headers(token)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        return HttpRequest(
            method="PATCH",
            url=self.record_url(reference),
            headers=headers,
            body=encode_json(document),
        )

    def delete(self, reference: Reference, token: str) -> HttpRequest:
        """DELETE {base}/{set}({id})"""
        return HttpRequest(
            method="DELETE",
            url=self.record_url(reference),
            headers=self.base_headers(token),
        )

    def batch(
        self,
        boundary: str,
        body: bytes,
        token: str,
        continue_on_error: bool = True,
    ) -> HttpRequest:
        """POST {base}/$batch carrying a multipart/mixed envelope."""
        headers = self.base_headers(token)
        headers["Content-Type"] = f"multipart/mixed; boundary={boundary}"
        if continue_on_error:
            # Without this the service stops at the first failing operation
            headers["Prefer"] = "odata.continue-on-error"
        return HttpRequest(
            method="POST",
            url=f"{self.api_base_url}/$batch",
            headers=headers,
            body=body,
        )


# =============================================================================
# Response interpretation
# =============================================================================


def odata_error_from_response(response: HttpResponse) -> ODataError:
    """
    Build an ODataError from a non-2xx response.

    Uses the OData error envelope {"error": {"code", "message"}} when the body
    carries one, otherwise the raw body text.
    """
    text = response.text().strip()
    code = None
    message = text or NO_ERROR_DETAILS

    if text:
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            code = error.get("code") or None
            message = error.get("message") or message

    return ODataError(response.status, message, error_code=code)


def raise_for_status(response: HttpResponse) -> None:
    if not response.ok:
        raise odata_error_from_response(response)


def parse_json_body(response: HttpResponse) -> Any:
    """
    Parse a JSON response body.

    Raises:
        DecodeError: Body is empty or not valid JSON
    """
    if not response.body:
        raise DecodeError(f"Expected a JSON body, got empty HTTP {response.status} response")
    try:
        return json.loads(response.body)
    except ValueError as e:
        raise DecodeError("Response body is not valid JSON", cause=e) from e


def created_id(response: HttpResponse, primary_key: str | None = None) -> uuid.UUID:
    """
    Extract the id of a newly created record.

    Looks at the OData-EntityId header, then Location, then the echoed body's
    primary key column (when the service returned a representation).

    Raises:
        DecodeError: No id could be found
    """
    for header in ("OData-EntityId", "Location"):
        record_id = find_uuid(response.header(header) or "")
        if record_id is not None:
            return record_id

    if primary_key and response.body:
        try:
            document = json.loads(response.body)
        except ValueError:
            document = None
        if isinstance(document, dict):
            value = document.get(primary_key)
            record_id = find_uuid(value) if isinstance(value, str) else None
            if record_id is not None:
                return record_id

    raise DecodeError("Service provided no id for the created record")


__all__ = [
    "RequestBuilder",
    "ODATA_VERSION_HEADERS",
    "JSON_CONTENT_TYPE",
    "encode_json",
    "odata_error_from_response",
    "raise_for_status",
    "parse_json_body",
    "created_id",
]
