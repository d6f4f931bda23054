"""Tests for EntityCodec."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from support import CONTACT_ID, Account, Contact, contact_mapping

from dataverse_client.codec import EntityCodec, EntityMapping, FieldMapping
from dataverse_client.errors import DecodeError, ValidationError
from dataverse_client.reference import ColumnSelection, Reference


def _contact() -> Contact:
    return Contact(contactid=uuid.UUID(CONTACT_ID), firstname="Testy", lastname="McTestface")


@dataclass
class Order:
    orderid: uuid.UUID
    count: int
    price: float
    active: bool


def _order_codec() -> EntityCodec:
    return EntityCodec(
        [
            EntityMapping(
                Order,
                "salesorders",
                "orderid",
                fields=[
                    FieldMapping("orderid", type_=uuid.UUID),
                    FieldMapping("count", type_=int),
                    FieldMapping("price", type_=float),
                    FieldMapping("active", type_=bool),
                ],
            )
        ]
    )


class TestEntityMapping:
    def test_default_selection_is_declared_order(self):
        mapping = contact_mapping()
        assert mapping.selection == ColumnSelection(["contactid", "firstname", "lastname"])

    def test_attribute_defaults_to_column(self):
        assert FieldMapping("firstname").attribute == "firstname"

    def test_primary_key_must_be_mapped(self):
        with pytest.raises(ValidationError, match="Primary key"):
            EntityMapping(
                Contact, "contacts", "id", fields=[FieldMapping("firstname", type_=str)]
            )

    def test_no_fields_rejected(self):
        with pytest.raises(ValidationError, match="no fields"):
            EntityMapping(Contact, "contacts", "contactid", fields=[])

    def test_duplicate_column_rejected(self):
        with pytest.raises(ValidationError, match="mapped twice"):
            EntityMapping(
                Contact,
                "contacts",
                "contactid",
                fields=[FieldMapping("contactid"), FieldMapping("contactid")],
            )

    def test_explicit_selection_must_cover_fields(self):
        with pytest.raises(ValidationError, match="omits mapped columns"):
            EntityMapping(
                Contact,
                "contacts",
                "contactid",
                fields=[FieldMapping("contactid"), FieldMapping("firstname")],
                selection=["contactid"],
            )

    def test_invalid_entity_set(self):
        with pytest.raises(ValidationError, match="entity set"):
            EntityMapping(Contact, "con tacts", "contactid", fields=[FieldMapping("contactid")])


class TestRegistry:
    def test_duplicate_registration_rejected(self):
        codec = EntityCodec([contact_mapping()])
        with pytest.raises(ValueError, match="already registered"):
            codec.register(contact_mapping())

    def test_unregistered_type(self, codec):
        @dataclass
        class Lead:
            leadid: uuid.UUID

        with pytest.raises(ValidationError, match="No mapping registered"):
            codec.mapping_for(Lead)

    def test_subclass_uses_base_mapping(self, codec):
        class VipContact(Contact):
            pass

        assert codec.mapping_for(VipContact).entity_set == "contacts"

    def test_selection_for_rejects_unmapped_column(self, codec):
        with pytest.raises(ValidationError, match="not mapped"):
            codec.selection_for(Contact, ["contactid", "emailaddress1"])

    def test_selection_for_rejects_empty(self, codec):
        with pytest.raises(ValidationError, match="must not be empty"):
            codec.selection_for(Contact, [])


class TestEncode:
    def test_encode_all_fields(self, codec):
        assert codec.encode(_contact()) == {
            "contactid": CONTACT_ID,
            "firstname": "Testy",
            "lastname": "McTestface",
        }

    def test_encode_subset(self, codec):
        assert codec.encode(_contact(), ["lastname"]) == {"lastname": "McTestface"}

    def test_optional_none_omitted(self, codec):
        account = Account(accountid=uuid.UUID(CONTACT_ID), name="Contoso")
        assert codec.encode(account) == {"accountid": CONTACT_ID, "name": "Contoso"}

    def test_optional_value_included(self, codec):
        account = Account(accountid=uuid.UUID(CONTACT_ID), name="Contoso", revenue=1250.5)
        assert codec.encode(account)["revenue"] == 1250.5

    def test_required_none_rejected(self, codec):
        contact = Contact(contactid=uuid.UUID(CONTACT_ID), firstname=None, lastname="X")
        with pytest.raises(ValidationError, match="firstname is required"):
            codec.encode(contact)

    def test_wrong_type_rejected(self, codec):
        contact = Contact(contactid=uuid.UUID(CONTACT_ID), firstname=42, lastname="X")
        with pytest.raises(ValidationError, match="invalid value"):
            codec.encode(contact)

    @pytest.mark.parametrize(
        "changes", [{"count": "42"}, {"count": True}, {"price": "9.5"}, {"active": "yes"}]
    )
    def test_numeric_and_bool_strings_rejected(self, changes):
        values = {"orderid": uuid.UUID(CONTACT_ID), "count": 3, "price": 9.5, "active": True}
        values.update(changes)

        with pytest.raises(ValidationError, match="invalid value"):
            _order_codec().encode(Order(**values))

    def test_json_mode_values(self):
        @dataclass
        class Invoice:
            invoiceid: uuid.UUID
            issued_on: datetime
            total: Decimal

        codec = EntityCodec(
            [
                EntityMapping(
                    Invoice,
                    "invoices",
                    "invoiceid",
                    fields=[
                        FieldMapping("invoiceid", type_=uuid.UUID),
                        FieldMapping("issued_on", type_=datetime),
                        FieldMapping("total", type_=Decimal),
                    ],
                )
            ]
        )
        invoice = Invoice(
            invoiceid=uuid.UUID(CONTACT_ID),
            issued_on=datetime(2024, 5, 1, 12, 30, tzinfo=UTC),
            total=Decimal("99.95"),
        )

        document = codec.encode(invoice)

        assert document["invoiceid"] == CONTACT_ID
        assert document["issued_on"].startswith("2024-05-01T12:30:00")
        assert document["total"] == 99.95

    def test_renamed_attribute(self):
        @dataclass
        class Person:
            id: uuid.UUID
            given_name: str

        codec = EntityCodec(
            [
                EntityMapping(
                    Person,
                    "contacts",
                    "contactid",
                    fields=[
                        FieldMapping("contactid", attribute="id", type_=uuid.UUID),
                        FieldMapping("firstname", attribute="given_name", type_=str),
                    ],
                )
            ]
        )
        person = Person(id=uuid.UUID(CONTACT_ID), given_name="Testy")

        document = codec.encode(person)
        assert document == {"contactid": CONTACT_ID, "firstname": "Testy"}
        assert codec.decode(document, Person) == person


class TestDecode:
    def test_decode_scenario_body(self, codec):
        document = {
            "@odata.context": "https://contoso.crm.dynamics.com/api/data/v9.2/$metadata#contacts",
            "@odata.etag": 'W/"123"',
            "contactid": CONTACT_ID,
            "firstname": "Testy",
            "lastname": "McTestface",
        }

        assert codec.decode(document, Contact) == _contact()

    def test_round_trip(self, codec):
        contact = _contact()
        selection = ColumnSelection(["contactid", "firstname", "lastname"])
        assert codec.decode(codec.encode(contact, selection), Contact, selection) == contact

    def test_missing_required_column(self, codec):
        with pytest.raises(DecodeError, match="'lastname' is missing"):
            codec.decode({"contactid": CONTACT_ID, "firstname": "Testy"}, Contact)

    def test_null_required_column(self, codec):
        with pytest.raises(DecodeError, match="'lastname' is null"):
            codec.decode(
                {"contactid": CONTACT_ID, "firstname": "Testy", "lastname": None}, Contact
            )

    def test_incompatible_value(self, codec):
        with pytest.raises(DecodeError, match="incompatible value"):
            codec.decode(
                {"contactid": "not-a-uuid", "firstname": "Testy", "lastname": "X"}, Contact
            )

    @pytest.mark.parametrize(
        "column,raw",
        [
            ("count", "42"),
            ("count", True),
            ("count", 4.5),
            ("price", "9.5"),
            ("active", "yes"),
            ("active", 1),
        ],
    )
    def test_no_coercion_across_json_types(self, column, raw):
        document = {"orderid": CONTACT_ID, "count": 3, "price": 9.5, "active": True}
        document[column] = raw

        with pytest.raises(DecodeError, match=f"'{column}' has an incompatible value"):
            _order_codec().decode(document, Order)

    def test_json_native_values_accepted(self):
        order = _order_codec().decode(
            {"orderid": CONTACT_ID, "count": 3, "price": 10, "active": False}, Order
        )

        assert order == Order(orderid=uuid.UUID(CONTACT_ID), count=3, price=10.0, active=False)

    def test_non_object_document(self, codec):
        with pytest.raises(DecodeError, match="Expected a JSON object"):
            codec.decode(["contactid"], Contact)

    def test_optional_absent_is_none(self, codec):
        account = codec.decode({"accountid": CONTACT_ID, "name": "Contoso"}, Account)
        assert account.revenue is None

    def test_unselected_properties_ignored(self, codec):
        account = codec.decode(
            {"accountid": CONTACT_ID, "name": "Contoso", "revenue": "garbage"},
            Account,
            ["accountid", "name"],
        )
        assert account.revenue is None

    def test_factory_failure_is_validation_error(self, codec):
        with pytest.raises(ValidationError, match="Cannot build Contact"):
            codec.decode({"contactid": CONTACT_ID}, Contact, ["contactid"])


class TestReferenceOf:
    def test_reference_of(self, codec):
        assert codec.reference_of(_contact()) == Reference("contacts", CONTACT_ID)

    def test_missing_primary_key(self, codec):
        contact = Contact(contactid=None, firstname="a", lastname="b")
        with pytest.raises(ValidationError, match="primary key"):
            codec.reference_of(contact)
