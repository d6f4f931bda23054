"""Tests for Batch construction."""

import json
import uuid

import pytest
from support import API_BASE, CONTACT_ID, Contact

from dataverse_client.batch import MAX_BATCH_SIZE, Batch, OperationKind
from dataverse_client.errors import ValidationError
from dataverse_client.reference import Reference
from dataverse_client.requests import RequestBuilder


def _contact(n: int = 0) -> Contact:
    return Contact(contactid=uuid.UUID(int=n + 1), firstname=f"First{n}", lastname="McTestface")


@pytest.fixture
def batch(codec):
    return Batch(RequestBuilder(API_BASE), codec)


class TestBatchOperations:
    def test_content_ids_sequential(self, batch):
        ids = [
            batch.create(_contact(0)),
            batch.update(_contact(1)),
            batch.delete(Reference("contacts", CONTACT_ID)),
        ]

        assert ids == [1, 2, 3]
        assert [op.content_id for op in batch] == [1, 2, 3]
        assert len(batch) == 3

    def test_create_operation(self, batch):
        batch.create(_contact(0))
        op = batch.operations[0]

        assert op.kind is OperationKind.CREATE
        assert op.method == "POST"
        assert op.url == f"{API_BASE}/contacts"
        assert op.primary_key == "contactid"
        assert json.loads(op.body)["firstname"] == "First0"
        assert "Authorization" not in op.headers

    def test_update_has_if_match(self, batch):
        batch.update(_contact(0), ["lastname"])
        op = batch.operations[0]

        assert op.method == "PATCH"
        assert op.headers["If-Match"] == "*"
        assert op.url == f"{API_BASE}/contacts({uuid.UUID(int=1)})"
        assert json.loads(op.body) == {"lastname": "McTestface"}
        assert op.reference == Reference("contacts", uuid.UUID(int=1))

    def test_upsert_has_no_if_match(self, batch):
        batch.upsert(_contact(0))
        op = batch.operations[0]

        assert op.kind is OperationKind.UPSERT
        assert "If-Match" not in op.headers

    def test_retrieve_operation(self, batch):
        batch.retrieve(Reference("contacts", CONTACT_ID), Contact, ["contactid", "lastname"])
        op = batch.operations[0]

        assert op.method == "GET"
        assert op.url == f"{API_BASE}/contacts({CONTACT_ID})?$select=contactid,lastname"
        assert op.record_type is Contact
        assert op.body is None

    def test_invalid_record_fails_at_adder(self, batch):
        with pytest.raises(ValidationError):
            batch.create(Contact(contactid=uuid.uuid4(), firstname=None, lastname="x"))
        assert len(batch) == 0

    def test_retrieve_not_allowed_in_atomic_batch(self, codec):
        batch = Batch(RequestBuilder(API_BASE), codec, atomic=True)
        with pytest.raises(ValidationError, match="atomic"):
            batch.retrieve(Reference("contacts", CONTACT_ID), Contact)

    def test_reset(self, batch):
        batch.create(_contact(0))
        old_batch_id = batch.batch_id
        old_changeset_id = batch.changeset_id

        batch.reset()

        assert len(batch) == 0
        assert batch.batch_id != old_batch_id
        assert batch.changeset_id != old_changeset_id
        assert batch.create(_contact(1)) == 1

    def test_boundaries(self, batch):
        assert batch.boundary == f"batch_{batch.batch_id}"
        assert batch.changeset_boundary == f"changeset_{batch.changeset_id}"
        assert len(batch.batch_id) == 32

    def test_size_limit(self, batch):
        reference = Reference("contacts", CONTACT_ID)
        for _ in range(MAX_BATCH_SIZE):
            batch.delete(reference)

        with pytest.raises(ValidationError, match="at most"):
            batch.delete(reference)
        assert len(batch) == MAX_BATCH_SIZE
