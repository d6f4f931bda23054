"""
Bidirectional mapping between typed records and OData JSON documents.

Each record type is described by an explicit EntityMapping: a table of
FieldMapping rows naming the column, the record attribute it maps to, the
Python type used to validate values and whether the column is required.
Mappings are registered with an EntityCodec; nothing is inferred from the
record class itself.

Example:
    @dataclass
    class Contact:
        contactid: uuid.UUID
        firstname: str
        lastname: str

    codec = EntityCodec()
    codec.register(
        EntityMapping(
            Contact,
            entity_set="contacts",
            primary_key="contactid",
            fields=[
                FieldMapping("contactid", type_=uuid.UUID),
                FieldMapping("firstname", type_=str),
                FieldMapping("lastname", type_=str),
            ],
        )
    )

    document = codec.encode(contact)
    contact = codec.decode(document, Contact)
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from dataverse_client.errors import DecodeError, ValidationError
from dataverse_client.reference import (
    IDENTIFIER_PATTERN,
    ColumnSelection,
    Reference,
    as_selection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMapping:
    """
    One row of a mapping table.

    Attributes:
        column: Column (JSON property) name on the wire
        attribute: Record attribute name; defaults to the column name
        type_: Type values are validated against in both directions
        required: Whether a value must be present when encoding and decoding
    """

    column: str
    attribute: str | None = None
    type_: Any = Any
    required: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.column, str) or not IDENTIFIER_PATTERN.match(self.column):
            raise ValidationError(f"Invalid column name in mapping: {self.column!r}")
        if self.attribute is None:
            object.__setattr__(self, "attribute", self.column)


class EntityMapping:
    """
    Mapping descriptor for one record type.

    The default selection is every mapped column in declared order. An
    explicit selection must name every mapped column; per-call selections
    passed to the codec may narrow it to a subset.
    """

    def __init__(
        self,
        record_type: type,
        entity_set: str,
        primary_key: str,
        fields: Iterable[FieldMapping],
        selection: ColumnSelection | Iterable[str] | None = None,
        factory: Callable[..., Any] | None = None,
    ):
        """
        Build and validate a mapping.

        Args:
            record_type: Record class this mapping describes
            entity_set: Entity set the records live in, e.g. "contacts"
            primary_key: Column holding the record id
            fields: Mapping table rows
            selection: Columns to request; defaults to every mapped column
            factory: Callable building a record from attribute keyword
                arguments; defaults to record_type

        Raises:
            ValidationError: Empty/duplicate fields, unknown primary key, or a
                selection that omits a mapped column
        """
        if not isinstance(entity_set, str) or not IDENTIFIER_PATTERN.match(entity_set):
            raise ValidationError(f"Invalid entity set name: {entity_set!r}")

        self.record_type = record_type
        self.entity_set = entity_set
        self.fields: tuple[FieldMapping, ...] = tuple(fields)
        self.factory = factory or record_type

        if not self.fields:
            raise ValidationError(f"Mapping for {record_type.__name__} has no fields")

        self._by_column: dict[str, FieldMapping] = {}
        for fm in self.fields:
            if fm.column in self._by_column:
                raise ValidationError(
                    f"Column {fm.column!r} mapped twice for {record_type.__name__}"
                )
            self._by_column[fm.column] = fm

        if primary_key not in self._by_column:
            raise ValidationError(
                f"Primary key {primary_key!r} is not a mapped column of {record_type.__name__}"
            )
        self.primary_key = primary_key

        if selection is None:
            self.selection = ColumnSelection(fm.column for fm in self.fields)
        else:
            self.selection = as_selection(selection)
            missing = [fm.column for fm in self.fields if fm.column not in self.selection]
            if missing:
                raise ValidationError(
                    f"Selection for {record_type.__name__} omits mapped columns: {missing}"
                )

        self._adapters: dict[str, TypeAdapter] = {
            fm.column: TypeAdapter(fm.type_) for fm in self.fields
        }

    def field(self, column: str) -> FieldMapping:
        return self._by_column[column]

    def resolve(self, selection: ColumnSelection | Iterable[str] | None) -> ColumnSelection:
        """Return the effective selection, checking it stays within the mapping."""
        if selection is None:
            return self.selection
        resolved = as_selection(selection)
        unknown = [column for column in resolved if column not in self._by_column]
        if unknown:
            raise ValidationError(
                f"Columns {unknown} are not mapped for {self.record_type.__name__}"
            )
        return resolved

    def validate_value(self, column: str, value: Any) -> Any:
        """Check a record attribute value against the column type without coercion."""
        return self._adapters[column].validate_python(value, strict=True)

    def validate_wire_value(self, column: str, raw: Any) -> Any:
        """
        Check a decoded JSON value against the column type.

        Strict JSON mode: ISO strings still become UUIDs and datetimes, but
        "42" is not an int and true is not a number.
        """
        return self._adapters[column].validate_json(json.dumps(raw), strict=True)

    def dump_value(self, column: str, value: Any) -> Any:
        if isinstance(value, Decimal):
            return float(value)
        return self._adapters[column].dump_python(value, mode="json")

    def __repr__(self) -> str:
        return (
            f"EntityMapping({self.record_type.__name__}, entity_set={self.entity_set!r}, "
            f"primary_key={self.primary_key!r}, selection={list(self.selection)!r})"
        )


class EntityCodec:
    """Registry of mappings plus the encode/decode operations over them."""

    def __init__(self, mappings: Iterable[EntityMapping] = ()):
        self._mappings: dict[type, EntityMapping] = {}
        for mapping in mappings:
            self.register(mapping)

    def register(self, mapping: EntityMapping) -> None:
        """
        Register a mapping for its record type.

        Raises:
            ValueError: If the record type already has a mapping
        """
        if mapping.record_type in self._mappings:
            raise ValueError(f"Mapping for {mapping.record_type.__name__} already registered")
        self._mappings[mapping.record_type] = mapping
        logger.debug(
            f"Registered mapping for {mapping.record_type.__name__}",
            extra={"entity_set": mapping.entity_set, "columns": list(mapping.selection)},
        )

    def mapping_for(self, record_type: type) -> EntityMapping:
        """
        Look up the mapping for a record type (or its nearest mapped base class).

        Raises:
            ValidationError: If no mapping is registered
        """
        for cls in getattr(record_type, "__mro__", (record_type,)):
            mapping = self._mappings.get(cls)
            if mapping is not None:
                return mapping
        raise ValidationError(f"No mapping registered for {getattr(record_type, '__name__', record_type)}")

    def selection_for(
        self, record_type: type, selection: ColumnSelection | Iterable[str] | None = None
    ) -> ColumnSelection:
        return self.mapping_for(record_type).resolve(selection)

    def encode(
        self, record: Any, selection: ColumnSelection | Iterable[str] | None = None
    ) -> dict[str, Any]:
        """
        Encode the selected fields of a record as a JSON-ready document.

        Optional fields holding None are omitted so that an update only
        touches the columns that carry values.

        Raises:
            ValidationError: Unmapped record type, selection outside the mapping,
                missing required value or a value of the wrong type
        """
        mapping = self.mapping_for(type(record))
        columns = mapping.resolve(selection)

        document: dict[str, Any] = {}
        for column in columns:
            fm = mapping.field(column)
            value = getattr(record, fm.attribute, None)
            if value is None:
                if fm.required:
                    raise ValidationError(
                        f"{type(record).__name__}.{fm.attribute} is required for column {column!r}"
                    )
                continue
            try:
                value = mapping.validate_value(column, value)
                document[column] = mapping.dump_value(column, value)
            except (PydanticValidationError, PydanticSerializationError) as e:
                raise ValidationError(
                    f"{type(record).__name__}.{fm.attribute} has an invalid value for column {column!r}",
                    cause=e,
                ) from e
        return document

    def decode(
        self,
        document: Any,
        record_type: type,
        selection: ColumnSelection | Iterable[str] | None = None,
    ) -> Any:
        """
        Build a record from the selected columns of a JSON document.

        Properties outside the selection are never read, even when present.

        Raises:
            DecodeError: Document is not an object, a required column is
                missing or null, or a value has an incompatible shape
            ValidationError: Record type unmapped, selection outside the mapping,
                or the record type cannot be built from the selected attributes
        """
        mapping = self.mapping_for(record_type)
        columns = mapping.resolve(selection)

        if not isinstance(document, Mapping):
            raise DecodeError(
                f"Expected a JSON object for {mapping.entity_set}, got {type(document).__name__}"
            )

        values: dict[str, Any] = {}
        for column in columns:
            fm = mapping.field(column)
            raw = document.get(column)
            if raw is None:
                if fm.required:
                    state = "null" if column in document else "missing"
                    raise DecodeError(
                        f"Required column {column!r} is {state} in {mapping.entity_set} document"
                    )
                values[fm.attribute] = None
                continue
            try:
                values[fm.attribute] = mapping.validate_wire_value(column, raw)
            except (PydanticValidationError, TypeError) as e:
                raise DecodeError(
                    f"Column {column!r} of {mapping.entity_set} has an incompatible value",
                    cause=e,
                ) from e

        try:
            return mapping.factory(**values)
        except TypeError as e:
            raise ValidationError(
                f"Cannot build {mapping.record_type.__name__} from columns {list(columns)}",
                cause=e,
            ) from e

    def reference_of(self, record: Any) -> Reference:
        """
        Reference addressing the given record.

        Raises:
            ValidationError: Unmapped record type or missing/invalid primary key
        """
        mapping = self.mapping_for(type(record))
        fm = mapping.field(mapping.primary_key)
        record_id = getattr(record, fm.attribute, None)
        if record_id is None:
            raise ValidationError(
                f"{type(record).__name__}.{fm.attribute} (primary key) has no value"
            )
        return Reference(mapping.entity_set, record_id)


__all__ = [
    "FieldMapping",
    "EntityMapping",
    "EntityCodec",
]
