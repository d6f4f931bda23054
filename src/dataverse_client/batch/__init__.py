"""
$batch support: many CRUD operations in one HTTP exchange.

Operations are added to a Batch, serialized as a multipart/mixed body and
submitted once. The response is split back into one OperationOutcome per
operation, in submission order, with failures scoped to their own entry.
"""

from dataverse_client.batch.models import (
    BatchOperation,
    BatchResult,
    OperationKind,
    OperationOutcome,
)
from dataverse_client.batch.operations import MAX_BATCH_SIZE, Batch
from dataverse_client.batch.parser import parse_batch_response
from dataverse_client.batch.serializer import serialize_batch

__all__ = [
    "Batch",
    "BatchOperation",
    "BatchResult",
    "OperationKind",
    "OperationOutcome",
    "MAX_BATCH_SIZE",
    "parse_batch_response",
    "serialize_batch",
]
