"""Batch: an ordered list of CRUD sub-requests executed in one $batch call."""

import logging
import uuid
from typing import Any, Iterable, Iterator

from dataverse_client.batch.models import BatchOperation, OperationKind
from dataverse_client.codec import EntityCodec
from dataverse_client.errors import ValidationError
from dataverse_client.reference import ColumnSelection, Reference
from dataverse_client.requests import RequestBuilder, encode_json

logger = logging.getLogger(__name__)

# Service limit on operations per $batch request
MAX_BATCH_SIZE = 1000

BATCH_JSON_CONTENT_TYPE = "application/json; type=entry"


class Batch:
    """
    Collects operations for one $batch submission.

    Records are encoded when added, so a bad record fails at the adder, not
    at execution. Content ids run 1..N in the order operations are added.

    In independent mode (default) every operation is its own part and the
    service keeps going after a failed operation. In atomic mode every
    operation goes into one changeset that the service applies all-or-nothing;
    retrieves are not allowed there.

    Usage:
        batch = client.batch()
        batch.create(contact_a)
        batch.create(contact_b)
        result = await client.execute(batch)
    """

    def __init__(self, builder: RequestBuilder, codec: EntityCodec, atomic: bool = False):
        self.builder = builder
        self.codec = codec
        self.atomic = atomic
        self._operations: list[BatchOperation] = []
        self._new_ids()

    def _new_ids(self) -> None:
        self.batch_id = uuid.uuid4().hex
        self.changeset_id = uuid.uuid4().hex

    @property
    def boundary(self) -> str:
        return f"batch_{self.batch_id}"

    @property
    def changeset_boundary(self) -> str:
        return f"changeset_{self.changeset_id}"

    @property
    def operations(self) -> tuple[BatchOperation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[BatchOperation]:
        return iter(self._operations)

    def reset(self) -> None:
        """Drop every operation and start over with fresh boundaries."""
        self._operations.clear()
        self._new_ids()

    def _append(self, **kwargs: Any) -> int:
        if len(self._operations) >= MAX_BATCH_SIZE:
            raise ValidationError(f"A batch may hold at most {MAX_BATCH_SIZE} operations")
        content_id = len(self._operations) + 1
        operation = BatchOperation(content_id=content_id, **kwargs)
        self._operations.append(operation)
        logger.debug(
            f"Added {operation.kind.value} operation {content_id} to batch",
            extra={"batch_id": self.batch_id, "entity_set": operation.entity_set},
        )
        return content_id

    def retrieve(
        self,
        reference: Reference,
        record_type: type,
        selection: ColumnSelection | Iterable[str] | None = None,
    ) -> int:
        """
        Add a retrieve. Returns the operation's content id.

        Raises:
            ValidationError: Atomic batch, unmapped type or bad selection
        """
        if self.atomic:
            raise ValidationError("Retrieve operations cannot be part of an atomic changeset")
        columns = self.codec.selection_for(record_type, selection)
        return self._append(
            kind=OperationKind.RETRIEVE,
            method="GET",
            url=self.builder.retrieve_url(reference, columns),
            entity_set=reference.entity_set,
            headers={"Accept": "application/json"},
            reference=reference,
            record_type=record_type,
            selection=columns,
        )

    def create(self, record: Any) -> int:
        """Add a create for a mapped record. Returns the operation's content id."""
        mapping = self.codec.mapping_for(type(record))
        document = self.codec.encode(record)
        return self._append(
            kind=OperationKind.CREATE,
            method="POST",
            url=self.builder.collection_url(mapping.entity_set),
            entity_set=mapping.entity_set,
            headers={"Content-Type": BATCH_JSON_CONTENT_TYPE},
            body=encode_json(document),
            primary_key=mapping.primary_key,
        )

    def update(
        self, record: Any, selection: ColumnSelection | Iterable[str] | None = None
    ) -> int:
        """Add an update (never creates). Returns the operation's content id."""
        return self._add_patch(OperationKind.UPDATE, record, selection)

    def upsert(
        self, record: Any, selection: ColumnSelection | Iterable[str] | None = None
    ) -> int:
        """Add an upsert (creates when missing). Returns the operation's content id."""
        return self._add_patch(OperationKind.UPSERT, record, selection)

    def _add_patch(
        self,
        kind: OperationKind,
        record: Any,
        selection: ColumnSelection | Iterable[str] | None,
    ) -> int:
        reference = self.codec.reference_of(record)
        document = self.codec.encode(record, selection)
        headers = {"Content-Type": BATCH_JSON_CONTENT_TYPE}
        if kind is OperationKind.UPDATE:
            headers["If-Match"] = "*"
        return self._append(
            kind=kind,
            method="PATCH",
            url=self.builder.record_url(reference),
            entity_set=reference.entity_set,
            headers=headers,
            body=encode_json(document),
            reference=reference,
        )

    def delete(self, reference: Reference) -> int:
        """Add a delete. Returns the operation's content id."""
        return self._append(
            kind=OperationKind.DELETE,
            method="DELETE",
            url=self.builder.record_url(reference),
            entity_set=reference.entity_set,
            reference=reference,
        )

    def __repr__(self) -> str:
        mode = "atomic" if self.atomic else "independent"
        return f"Batch(id={self.batch_id}, operations={len(self)}, mode={mode})"


__all__ = [
    "Batch",
    "MAX_BATCH_SIZE",
    "BATCH_JSON_CONTENT_TYPE",
]
