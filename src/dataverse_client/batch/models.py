"""Batch operation and outcome models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from dataverse_client.errors import DataverseError
from dataverse_client.reference import ColumnSelection, Reference


class OperationKind(Enum):
    RETRIEVE = "retrieve"
    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchOperation:
    """
    One sub-request of a batch.

    Attributes:
        content_id: Position in the batch, starting at 1
        kind: CRUD verb
        method: HTTP method of the sub-request
        url: Absolute URL of the sub-request
        headers: Sub-request headers (no Authorization; the envelope carries it)
        body: Encoded JSON body, if any
        reference: Addressed record (None for create)
        entity_set: Entity set the operation targets
        record_type: Type to decode a retrieve response into
        selection: Columns to decode for a retrieve
        primary_key: Primary key column, used to find created ids in bodies
    """

    content_id: int
    kind: OperationKind
    method: str
    url: str
    entity_set: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    reference: Reference | None = None
    record_type: type | None = None
    selection: ColumnSelection | None = None
    primary_key: str | None = None


@dataclass
class OperationOutcome:
    """
    Result of one batch operation.

    Exactly one of the following holds:
      - error is set (ODataError or DecodeError for this operation only)
      - record is set (retrieve)
      - reference is set (create, update, upsert, delete)
    """

    content_id: int
    kind: OperationKind
    status_code: int
    record: Any = None
    reference: Reference | None = None
    error: DataverseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the record (or reference), raising the operation's error if it failed."""
        if self.error is not None:
            raise self.error
        return self.record if self.kind is OperationKind.RETRIEVE else self.reference


class BatchResult:
    """
    Ordered outcomes of an executed batch; entry i belongs to operation i.

    The length always equals the number of submitted operations.
    """

    def __init__(self, outcomes: list[OperationOutcome], batch_id: str | None = None):
        self._outcomes = tuple(outcomes)
        self.batch_id = batch_id

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[OperationOutcome]:
        return iter(self._outcomes)

    def __getitem__(self, index: int) -> OperationOutcome:
        return self._outcomes[index]

    @property
    def succeeded(self) -> list[OperationOutcome]:
        return [o for o in self._outcomes if o.ok]

    @property
    def failed(self) -> list[OperationOutcome]:
        return [o for o in self._outcomes if not o.ok]

    @property
    def all_ok(self) -> bool:
        return all(o.ok for o in self._outcomes)

    def __repr__(self) -> str:
        return (
            f"BatchResult(size={len(self)}, succeeded={len(self.succeeded)}, "
            f"failed={len(self.failed)})"
        )


__all__ = [
    "OperationKind",
    "BatchOperation",
    "OperationOutcome",
    "BatchResult",
]
