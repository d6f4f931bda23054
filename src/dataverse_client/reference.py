"""Record references and column selections."""

import re
import uuid
from dataclasses import dataclass
from typing import Iterable, Iterator

from dataverse_client.errors import ValidationError

# OData simple identifier; entity set and column names must match it
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

UUID_PATTERN = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def parse_uuid(value: "uuid.UUID | str") -> uuid.UUID:
    """Coerce a UUID or its string form, raising ValidationError on garbage."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError as e:
            raise ValidationError(f"Invalid record id: {value!r}", cause=e) from e
    raise ValidationError(f"Record id must be a UUID or string, got {type(value).__name__}")


def find_uuid(text: str) -> uuid.UUID | None:
    """Return the first hyphenated UUID embedded in text, if any."""
    match = UUID_PATTERN.search(text or "")
    if not match:
        return None
    return uuid.UUID(match.group(0))


@dataclass(frozen=True)
class Reference:
    """
    Address of exactly one record: entity set name plus record id.

    Attributes:
        entity_set: Entity set (table collection) name, e.g. "contacts"
        id: Record id
    """

    entity_set: str
    id: uuid.UUID

    def __post_init__(self) -> None:
        if not isinstance(self.entity_set, str) or not IDENTIFIER_PATTERN.match(self.entity_set):
            raise ValidationError(f"Invalid entity set name: {self.entity_set!r}")
        # frozen dataclass: normalize the id through object.__setattr__
        object.__setattr__(self, "id", parse_uuid(self.id))

    @property
    def path(self) -> str:
        """URL path segment addressing this record."""
        return f"{self.entity_set}({self.id})"

    def __str__(self) -> str:
        return f"{self.entity_set}:({self.id.hex})"


class ColumnSelection:
    """
    Non-empty ordered set of distinct column names.

    Used both to build the $select query option and to restrict which
    properties of a response document are decoded.
    """

    __slots__ = ("_columns",)

    def __init__(self, columns: Iterable[str]):
        if isinstance(columns, str):
            raise ValidationError("Column selection must be a sequence of names, not a string")
        names = tuple(columns)
        if not names:
            raise ValidationError("Column selection must not be empty")

        seen: set[str] = set()
        for name in names:
            if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
                raise ValidationError(f"Invalid column name in selection: {name!r}")
            if name in seen:
                raise ValidationError(f"Duplicate column in selection: {name!r}")
            seen.add(name)

        self._columns = names

    @classmethod
    def of(cls, *columns: str) -> "ColumnSelection":
        return cls(columns)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    def as_query(self) -> str:
        """Comma-joined column list for the $select query option."""
        return ",".join(self._columns)

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnSelection):
            return NotImplemented
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        return f"ColumnSelection({list(self._columns)!r})"


def as_selection(columns: "ColumnSelection | Iterable[str]") -> ColumnSelection:
    """Accept either a ColumnSelection or a plain iterable of names."""
    if isinstance(columns, ColumnSelection):
        return columns
    return ColumnSelection(columns)


__all__ = [
    "Reference",
    "ColumnSelection",
    "as_selection",
    "parse_uuid",
    "find_uuid",
]
