"""Tests for LocalRecordStore (SQLite credential records)."""

import pytest

from keyward.core.exceptions import NotFound, ValidationError
from keyward.vault.identity_store import IdentityStore
from keyward.vault.records import LocalRecordStore, validate_record_fields


@pytest.fixture
def identities(tmp_path):
    return IdentityStore(tmp_path / "vault.db")


@pytest.fixture
def records(tmp_path, identities):
    return LocalRecordStore(tmp_path / "vault.db")


@pytest.fixture
def alice(identities):
    return identities.create("alice", "hash")


@pytest.fixture
def bob(identities):
    return identities.create("bob", "hash")


class TestValidateRecordFields:

    def test_canonical_order(self):
        fields = validate_record_fields({"secret": "s", "service": "mail"})
        assert list(fields) == ["service", "secret"]

    def test_unknown_field(self):
        with pytest.raises(ValidationError, match="Unknown"):
            validate_record_fields({"owner_id": "x"})

    def test_missing_field_on_create(self):
        with pytest.raises(ValidationError, match="Missing"):
            validate_record_fields({"service": "mail"}, require_all=True)

    def test_empty_value(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_record_fields({"service": ""})

    def test_nothing_to_update(self):
        with pytest.raises(ValidationError):
            validate_record_fields({})


class TestLocalRecordStore:

    def test_name(self, records):
        assert records.name == "local"

    @pytest.mark.asyncio
    async def test_create_and_get(self, records, alice):
        record_id = await records.create(alice.id, "mail", "alice@example.com", "s3cret")
        record = await records.get(record_id, alice.id)
        assert record.owner_id == alice.id
        assert record.service == "mail"
        assert record.username == "alice@example.com"
        assert record.secret == "s3cret"

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, records, alice):
        first = await records.create(alice.id, "mail", "a", "1")
        second = await records.create(alice.id, "bank", "b", "2")
        third = await records.create(alice.id, "forum", "c", "3")

        listed = await records.list_by_owner(alice.id)
        assert [r.id for r in listed] == [first, second, third]

    @pytest.mark.asyncio
    async def test_owner_scoping(self, records, alice, bob):
        record_id = await records.create(alice.id, "mail", "a", "1")

        assert await records.list_by_owner(bob.id) == []
        with pytest.raises(NotFound):
            await records.get(record_id, bob.id)
        with pytest.raises(NotFound):
            await records.update(record_id, {"secret": "stolen"}, owner_id=bob.id)
        with pytest.raises(NotFound):
            await records.delete(record_id, owner_id=bob.id)

        assert (await records.get(record_id, alice.id)).secret == "1"

    @pytest.mark.asyncio
    async def test_partial_update(self, records, alice):
        record_id = await records.create(alice.id, "mail", "a", "1")
        await records.update(record_id, {"secret": "2"}, owner_id=alice.id)

        record = await records.get(record_id, alice.id)
        assert record.secret == "2"
        assert record.service == "mail"
        assert record.username == "a"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, records, alice):
        record_id = await records.create(alice.id, "mail", "a", "1")
        with pytest.raises(ValidationError):
            await records.update(record_id, {"owner_id": alice.id})

    @pytest.mark.asyncio
    async def test_delete(self, records, alice):
        record_id = await records.create(alice.id, "mail", "a", "1")
        await records.delete(record_id, owner_id=alice.id)

        assert await records.list_by_owner(alice.id) == []
        with pytest.raises(NotFound):
            await records.delete(record_id)

    @pytest.mark.asyncio
    async def test_create_for_unknown_owner(self, records):
        with pytest.raises(NotFound, match="Owner"):
            await records.create("ghost", "mail", "a", "1")

    @pytest.mark.asyncio
    async def test_create_requires_all_fields(self, records, alice):
        with pytest.raises(ValidationError):
            await records.create(alice.id, "mail", "a", "")
