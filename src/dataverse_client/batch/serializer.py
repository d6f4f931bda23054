"""
multipart/mixed serialization of a Batch.

Independent batch:

    --batch_<id>
    Content-Type: application/http
    Content-Transfer-Encoding: binary
    Content-ID: 1

    POST https://org.crm.dynamics.com/api/data/v9.2/contacts HTTP/1.1
    Content-Type: application/json; type=entry

    {"firstname": "Testy"}
    --batch_<id>--

Atomic batches wrap the same parts in a single changeset part whose
Content-Type is multipart/mixed; boundary=changeset_<id>.
"""

from dataverse_client.batch.models import BatchOperation
from dataverse_client.batch.operations import Batch

CRLF = "\r\n"


def serialize_operation(operation: BatchOperation, boundary: str) -> bytes:
    lines = [
        f"--{boundary}",
        "Content-Type: application/http",
        "Content-Transfer-Encoding: binary",
        f"Content-ID: {operation.content_id}",
        "",
        f"{operation.method} {operation.url} HTTP/1.1",
    ]
    lines.extend(f"{name}: {value}" for name, value in operation.headers.items())
    lines.append("")
    head = CRLF.join(lines) + CRLF
    return head.encode("utf-8") + (operation.body or b"") + CRLF.encode("utf-8")


def serialize_batch(batch: Batch) -> bytes:
    """Render the whole $batch request body."""
    boundary = batch.boundary
    parts: list[bytes] = []

    if batch.atomic:
        changeset = batch.changeset_boundary
        parts.append(
            CRLF.join(
                [
                    f"--{boundary}",
                    f"Content-Type: multipart/mixed; boundary={changeset}",
                    "",
                    "",
                ]
            ).encode("utf-8")
        )
        parts.extend(serialize_operation(op, changeset) for op in batch)
        parts.append(f"--{changeset}--{CRLF}".encode("utf-8"))
    else:
        parts.extend(serialize_operation(op, boundary) for op in batch)

    parts.append(f"--{boundary}--{CRLF}".encode("utf-8"))
    return b"".join(parts)


__all__ = ["serialize_batch", "serialize_operation"]
