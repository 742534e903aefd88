"""
CRM - Builder du schéma de formulaire
CRUD sections / champs, réordonnancement, suppression en cascade, event_log.
"""

import pytest
from pymongo.errors import PyMongoError

from models import FieldCreate, FieldUpdate, OrderPosition, SectionCreate, SectionUpdate
from services.data_collection_errors import DataCollectionStoreError, SchemaItemNotFoundError
from services.data_collection_store import MongoDataCollectionStore
from services.schema_admin import SchemaAdmin

from conftest import SCHEMA_ID


class TestSections:

    @pytest.mark.asyncio
    async def test_create_update_delete(self, fake_db):
        admin = SchemaAdmin(fake_db)
        section = await admin.create_section(
            SectionCreate(schema_id=SCHEMA_ID, key="protection", title="Proteção", order_position=9),
            user="admin@crm",
        )
        assert section["id"]
        assert "_id" not in section

        updated = await admin.update_section(section["id"], SectionUpdate(title="Proteção Familiar"))
        assert updated["title"] == "Proteção Familiar"
        assert updated["key"] == "protection"

        await admin.create_field(FieldCreate(
            section_id=section["id"], key="life_insurance", label="Seguro de vida",
            field_type="boolean", data_path="protection.life_insurance",
        ))
        deleted_fields = await admin.delete_section(section["id"])
        assert deleted_fields == 1
        assert await admin.list_fields(section["id"]) == []

        actions = [e["action"] for e in fake_db.event_log.docs]
        assert actions == ["create_section", "update_section", "create_field", "delete_section"]
        assert fake_db.event_log.docs[0]["user"] == "admin@crm"

    @pytest.mark.asyncio
    async def test_unknown_schema(self, fake_db):
        with pytest.raises(SchemaItemNotFoundError):
            await SchemaAdmin(fake_db).create_section(SectionCreate(schema_id="nope", key="k", title="T"))

    @pytest.mark.asyncio
    async def test_unknown_section(self, fake_db):
        admin = SchemaAdmin(fake_db)
        with pytest.raises(SchemaItemNotFoundError):
            await admin.update_section("nope", SectionUpdate(title="x"))
        with pytest.raises(SchemaItemNotFoundError):
            await admin.delete_section("nope")

    @pytest.mark.asyncio
    async def test_reorder_changes_loaded_order(self, fake_db):
        admin = SchemaAdmin(fake_db)
        updated = await admin.reorder_sections([
            OrderPosition(id="sec-goals", order_position=0),
            OrderPosition(id="sec-personal", order_position=1),
            OrderPosition(id="sec-cash", order_position=2),
            OrderPosition(id="missing", order_position=3),
        ])
        assert updated == 3

        form = await MongoDataCollectionStore(fake_db).fetch_form_schema()
        assert [s.key for s in form.main_sections()] == ["goals", "personal", "cash_flow"]


class TestFields:

    @pytest.mark.asyncio
    async def test_create_field_in_unknown_section(self, fake_db):
        with pytest.raises(SchemaItemNotFoundError):
            await SchemaAdmin(fake_db).create_field(FieldCreate(
                section_id="nope", key="k", label="K", field_type="text", data_path="k",
            ))

    @pytest.mark.asyncio
    async def test_field_type_stored_as_string(self, fake_db):
        field = await SchemaAdmin(fake_db).create_field(FieldCreate(
            section_id="sec-personal", key="nickname", label="Apelido", field_type="text",
            data_path="personal.nickname", conditional_on={"field": "personal.has_children", "value": True},
        ))
        assert field["field_type"] == "text"
        assert field["conditional_on"] == {"field": "personal.has_children", "value": True}

    @pytest.mark.asyncio
    async def test_partial_update_can_clear_condition(self, fake_db):
        admin = SchemaAdmin(fake_db)
        updated = await admin.update_field("f-referrer", FieldUpdate(conditional_on=None, label="Indicado por"))
        assert updated["conditional_on"] is None
        assert updated["label"] == "Indicado por"
        assert updated["is_required"] is True

    @pytest.mark.asyncio
    async def test_delete_and_reorder(self, fake_db):
        admin = SchemaAdmin(fake_db)
        await admin.delete_field("f-age")
        with pytest.raises(SchemaItemNotFoundError):
            await admin.get_field("f-age")

        await admin.reorder_fields([
            OrderPosition(id="f-children", order_position=0),
            OrderPosition(id="f-name", order_position=1),
        ])
        fields = await admin.list_fields("sec-personal")
        assert fields[0]["key"] == "has_children"


class TestMongoErrors:

    @pytest.fixture
    def broken_writes(self, fake_db, monkeypatch):
        async def broken(*args, **kwargs):
            raise PyMongoError("connection reset")

        for collection in (fake_db.data_collection_sections, fake_db.data_collection_fields):
            for method in ("insert_one", "update_one", "delete_one", "delete_many"):
                monkeypatch.setattr(collection, method, broken)
        return fake_db

    @pytest.mark.asyncio
    async def test_section_writes_wrapped(self, broken_writes):
        admin = SchemaAdmin(broken_writes)
        with pytest.raises(DataCollectionStoreError):
            await admin.create_section(SectionCreate(schema_id=SCHEMA_ID, key="protection", title="Proteção"))
        with pytest.raises(DataCollectionStoreError):
            await admin.update_section("sec-personal", SectionUpdate(title="x"))
        with pytest.raises(DataCollectionStoreError):
            await admin.delete_section("sec-goals")
        with pytest.raises(DataCollectionStoreError):
            await admin.reorder_sections([OrderPosition(id="sec-goals", order_position=0)])
        assert broken_writes.event_log.docs == []

    @pytest.mark.asyncio
    async def test_field_writes_wrapped(self, broken_writes):
        admin = SchemaAdmin(broken_writes)
        with pytest.raises(DataCollectionStoreError):
            await admin.create_field(FieldCreate(
                section_id="sec-personal", key="cpf", label="CPF", field_type="text", data_path="personal.cpf",
            ))
        with pytest.raises(DataCollectionStoreError):
            await admin.update_field("f-age", FieldUpdate(label="x"))
        with pytest.raises(DataCollectionStoreError):
            await admin.delete_field("f-age")
        with pytest.raises(DataCollectionStoreError):
            await admin.reorder_fields([OrderPosition(id="f-age", order_position=0)])

    @pytest.mark.asyncio
    async def test_lookup_errors_wrapped(self, fake_db, monkeypatch):
        async def broken(*args, **kwargs):
            raise PyMongoError("connection reset")

        monkeypatch.setattr(fake_db.data_collection_fields, "find_one", broken)
        with pytest.raises(DataCollectionStoreError):
            await SchemaAdmin(fake_db).get_field("f-age")
