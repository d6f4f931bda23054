"""Shared test doubles and record types."""

import json
import uuid
from dataclasses import dataclass

from dataverse_client.codec import EntityMapping, FieldMapping
from dataverse_client.types import HttpRequest, HttpResponse

ORG_URL = "https://contoso.crm.dynamics.com"
API_BASE = f"{ORG_URL}/api/data/v9.2"
CONTACT_ID = "12345678-1234-1234-1234-123456789012"


@dataclass
class Contact:
    contactid: uuid.UUID
    firstname: str
    lastname: str


@dataclass
class Account:
    accountid: uuid.UUID
    name: str
    revenue: float | None = None


def contact_mapping() -> EntityMapping:
    return EntityMapping(
        Contact,
        entity_set="contacts",
        primary_key="contactid",
        fields=[
            FieldMapping("contactid", type_=uuid.UUID),
            FieldMapping("firstname", type_=str),
            FieldMapping("lastname", type_=str),
        ],
    )


def account_mapping() -> EntityMapping:
    return EntityMapping(
        Account,
        entity_set="accounts",
        primary_key="accountid",
        fields=[
            FieldMapping("accountid", type_=uuid.UUID),
            FieldMapping("name", type_=str),
            FieldMapping("revenue", type_=float | None, required=False),
        ],
    )


class FakeTransport:
    """
    In-memory transport replaying queued responses in order.

    Queue HttpResponse objects or exceptions; every sent request is recorded
    together with the timeout it was sent with.
    """

    def __init__(self, *responses):
        self._responses = list(responses)
        self.requests: list[HttpRequest] = []
        self.timeouts: list[float | None] = []
        self.closed = False

    def queue(self, *responses) -> None:
        self._responses.extend(responses)

    async def send(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


def json_response(status: int, payload, headers: dict | None = None) -> HttpResponse:
    return HttpResponse(
        status=status,
        headers={"Content-Type": "application/json; charset=utf-8", **(headers or {})},
        body=json.dumps(payload).encode("utf-8"),
    )


def token_response(access_token: str = "access-token-1", expires_in: int = 3600) -> HttpResponse:
    return json_response(
        200,
        {"token_type": "Bearer", "expires_in": expires_in, "access_token": access_token},
    )


def batch_response(boundary: str, *sections: str) -> HttpResponse:
    """
    Multipart $batch response built from raw section texts (LF line endings).

    Sections are joined with the boundary and converted to CRLF.
    """
    parts = [f"--{boundary}\n{section.strip(chr(10))}\n" for section in sections]
    text = "".join(parts) + f"--{boundary}--\n"
    return HttpResponse(
        status=200,
        headers={"Content-Type": f"multipart/mixed; boundary={boundary}"},
        body=text.replace("\n", "\r\n").encode("utf-8"),
    )


def http_section(
    status_line: str,
    headers: dict | None = None,
    body: str = "",
    content_id: int | None = None,
) -> str:
    """One application/http section of a batch response."""
    lines = ["Content-Type: application/http", "Content-Transfer-Encoding: binary"]
    if content_id is not None:
        lines.append(f"Content-ID: {content_id}")
    lines.append("")
    lines.append(f"HTTP/1.1 {status_line}")
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    lines.append("")
    lines.append(body)
    return "\n".join(lines)
