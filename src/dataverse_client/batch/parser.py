"""
Parsing of multipart/mixed $batch responses.

Sections are split by the boundary announced in the response Content-Type,
nested changeset multiparts are flattened in place, and each section is
paired with the operation at the same position. Every section is decoded on
its own, so one malformed or failed sub-response never affects its
neighbours.
"""

import logging
import re
from dataclasses import dataclass
from typing import Mapping

from dataverse_client.batch.models import (
    BatchOperation,
    BatchResult,
    OperationKind,
    OperationOutcome,
)
from dataverse_client.batch.operations import Batch
from dataverse_client.codec import EntityCodec
from dataverse_client.errors import BatchIntegrityError, DecodeError, ValidationError
from dataverse_client.reference import Reference
from dataverse_client.requests import (
    created_id,
    odata_error_from_response,
    parse_json_body,
)
from dataverse_client.types import HttpResponse

logger = logging.getLogger(__name__)

BOUNDARY_PATTERN = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)
STATUS_LINE_PATTERN = re.compile(r"^HTTP/\d(?:\.\d)?\s+(\d{3})")


@dataclass(frozen=True)
class ResponseSection:
    """One sub-response of a batch, with the Content-ID it echoed (if any)."""

    content_id: str | None
    response: HttpResponse


def boundary_of(content_type: str) -> str:
    """
    Extract the multipart boundary from a Content-Type value.

    Raises:
        DecodeError: Not a multipart type or no boundary parameter
    """
    if not content_type.lower().startswith("multipart/"):
        raise DecodeError(f"Expected a multipart batch response, got {content_type!r}")
    match = BOUNDARY_PATTERN.search(content_type)
    if not match:
        raise DecodeError(f"No boundary in batch response Content-Type {content_type!r}")
    return match.group(1) or match.group(2)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def _split_headers(block: str) -> tuple[dict[str, str], str]:
    """Split "headers, blank line, rest" into a header dict and the rest."""
    if block.startswith("\n"):
        return {}, block[1:]
    head, sep, rest = block.partition("\n\n")
    if not sep:
        rest = ""
    headers: dict[str, str] = {}
    for line in head.split("\n"):
        name, colon, value = line.partition(":")
        if colon:
            headers[name.strip()] = value.strip()
    return headers, rest


def _split_parts(text: str, boundary: str) -> list[str]:
    delimiter = f"--{boundary}"
    parts: list[str] = []
    # pieces[0] is the preamble
    for piece in text.split(delimiter)[1:]:
        if piece.startswith("--"):
            break
        parts.append(piece.strip("\n"))
    return parts


def _parse_http_part(mime_headers: dict[str, str], content: str) -> ResponseSection:
    status_line, _, remainder = content.partition("\n")
    match = STATUS_LINE_PATTERN.match(status_line.strip())
    if not match:
        raise DecodeError(f"Batch section has no HTTP status line: {status_line[:80]!r}")

    headers, body = _split_headers(remainder)
    content_id = _header(mime_headers, "Content-ID") or _header(headers, "Content-ID")
    return ResponseSection(
        content_id=content_id.strip() if content_id else None,
        response=HttpResponse(
            status=int(match.group(1)),
            headers=headers,
            body=body.strip().encode("utf-8"),
        ),
    )


def parse_sections(text: str, boundary: str) -> list[ResponseSection]:
    """
    Split a multipart body into HTTP sub-responses, flattening changesets.

    Args:
        text: Body with LF line endings
        boundary: Boundary of this multipart level

    Raises:
        DecodeError: A section is not an HTTP response
    """
    sections: list[ResponseSection] = []
    for part in _split_parts(text, boundary):
        mime_headers, content = _split_headers(part)
        content_type = _header(mime_headers, "Content-Type") or ""
        if content_type.lower().startswith("multipart/"):
            sections.extend(parse_sections(content, boundary_of(content_type)))
        else:
            sections.append(_parse_http_part(mime_headers, content))
    return sections


def interpret_section(
    operation: BatchOperation, response: HttpResponse, codec: EntityCodec
) -> OperationOutcome:
    """Turn one sub-response into the outcome of its operation."""
    outcome = OperationOutcome(
        content_id=operation.content_id,
        kind=operation.kind,
        status_code=response.status,
    )
    if not response.ok:
        outcome.error = odata_error_from_response(response)
        return outcome

    try:
        if operation.kind is OperationKind.RETRIEVE:
            outcome.record = codec.decode(
                parse_json_body(response), operation.record_type, operation.selection
            )
        elif operation.kind is OperationKind.CREATE:
            record_id = created_id(response, operation.primary_key)
            outcome.reference = Reference(operation.entity_set, record_id)
        else:
            outcome.reference = operation.reference
    except (DecodeError, ValidationError) as e:
        outcome.error = e
    return outcome


def parse_batch_response(response: HttpResponse, batch: Batch) -> BatchResult:
    """
    Pair the sub-responses of a successful $batch call with the batch's operations.

    Returns:
        BatchResult with exactly one outcome per operation, in submission order

    Raises:
        DecodeError: Response is not a parseable multipart body
        BatchIntegrityError: Section count or echoed Content-IDs do not line up
    """
    boundary = boundary_of(response.header("Content-Type") or "")
    sections = parse_sections(response.text().replace("\r\n", "\n"), boundary)
    operations = batch.operations

    logger.debug(
        f"Parsed {len(sections)} batch sections for {len(operations)} operations",
        extra={"batch_id": batch.batch_id, "batch_size": len(operations)},
    )

    if len(sections) != len(operations):
        # A failed changeset answers with one error for the whole unit
        if batch.atomic and len(sections) == 1 and not sections[0].response.ok:
            error = odata_error_from_response(sections[0].response)
            outcomes = [
                OperationOutcome(
                    content_id=op.content_id,
                    kind=op.kind,
                    status_code=sections[0].response.status,
                    error=error,
                )
                for op in operations
            ]
            return BatchResult(outcomes, batch_id=batch.batch_id)

        raise BatchIntegrityError(
            f"Batch response has {len(sections)} sections for {len(operations)} operations",
            context={"batch_id": batch.batch_id},
        )

    outcomes = []
    for operation, section in zip(operations, sections):
        if section.content_id is not None and section.content_id != str(operation.content_id):
            raise BatchIntegrityError(
                f"Batch section {len(outcomes) + 1} echoes Content-ID {section.content_id!r}, "
                f"expected {operation.content_id}",
                context={"batch_id": batch.batch_id},
            )
        outcomes.append(interpret_section(operation, section.response, batch.codec))

    return BatchResult(outcomes, batch_id=batch.batch_id)


__all__ = [
    "ResponseSection",
    "boundary_of",
    "parse_sections",
    "interpret_section",
    "parse_batch_response",
]
