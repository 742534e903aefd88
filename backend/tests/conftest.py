"""
Fixtures partagées: base Mongo en mémoire (mêmes appels que motor),
schéma de formulaire d'exemple, notifier mémoire.
"""

import copy
import itertools
from types import SimpleNamespace

import pytest
from pymongo.errors import DuplicateKeyError

from models import FormSchema
from services.data_collection_errors import DataCollectionStoreError
from services.data_collection_store import MongoDataCollectionStore
from services.notifier import MemoryNotifier


# ════════════════════════════════════════════════════════════════════════════
# FAKE MOTOR
# ════════════════════════════════════════════════════════════════════════════

_object_ids = itertools.count(1)


def _matches(doc, query):
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if value not in expected["$in"]:
                return False
        elif value != expected:
            return False
    return True


def _project(doc, projection):
    result = copy.deepcopy(doc)
    if projection and projection.get("_id") == 0:
        result.pop("_id", None)
    return result


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key) or 0, reverse=direction == -1)
        return self

    async def to_list(self, length):
        return self._docs[:length] if length else self._docs


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = []
        self.unique_keys = []

    async def create_index(self, keys, unique=False):
        if unique and isinstance(keys, str):
            self.unique_keys.append(keys)
        return keys

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc):
        for key in self.unique_keys:
            if any(d.get(key) == doc.get(key) for d in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key {key}")
        doc["_id"] = next(_object_ids)  # motor ajoute _id au dict passé
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def insert_many(self, docs):
        for doc in docs:
            await self.insert_one(doc)

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, query)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


class RecordingStore(MongoDataCollectionStore):
    """Store réel sur FakeDatabase, avec journal des écritures et panne simulable"""

    def __init__(self, database):
        super().__init__(database)
        self.updates = []
        self.fail_updates = False
        self.fail_reads = False

    async def fetch_collection(self, contact_id):
        if self.fail_reads:
            raise DataCollectionStoreError("connexion perdue")
        return await super().fetch_collection(contact_id)

    async def update_collection(self, collection_id, data_collection, status=None):
        if self.fail_updates:
            raise DataCollectionStoreError("timeout écriture")
        self.updates.append({"id": collection_id, "data_collection": copy.deepcopy(data_collection), "status": status})
        return await super().update_collection(collection_id, data_collection, status=status)


# ════════════════════════════════════════════════════════════════════════════
# SCHÉMA D'EXEMPLE
# 5 champs obligatoires: full_name, source, referrer (conditionnel), income, planner_notes
# ════════════════════════════════════════════════════════════════════════════

SCHEMA_ID = "a0000000-0000-0000-0000-000000000001"

SECTIONS = [
    {"id": "sec-personal", "schema_id": SCHEMA_ID, "key": "personal", "title": "Dados Pessoais", "icon": "User", "order_position": 0},
    {"id": "sec-cash", "schema_id": SCHEMA_ID, "key": "cash_flow", "title": "Fluxo de Caixa", "icon": "Wallet", "order_position": 1},
    {"id": "sec-goals", "schema_id": SCHEMA_ID, "key": "goals", "title": "Objetivos", "icon": "Target", "order_position": 2},
    {"id": "sec-notes", "schema_id": SCHEMA_ID, "key": "notes", "title": "Anotações", "icon": "StickyNote", "order_position": 3},
]

FIELDS = [
    {"id": "f-name", "section_id": "sec-personal", "key": "full_name", "label": "Nome completo",
     "field_type": "text", "data_path": "personal.full_name", "is_required": True, "order_position": 0},
    {"id": "f-source", "section_id": "sec-personal", "key": "source", "label": "Origem",
     "field_type": "select", "data_path": "personal.source", "is_required": True, "order_position": 1,
     "options": {"items": ["Indicação", "Google", "Evento"]}},
    {"id": "f-referrer", "section_id": "sec-personal", "key": "referrer", "label": "Quem indicou",
     "field_type": "text", "data_path": "personal.referrer", "is_required": True, "order_position": 2,
     "conditional_on": {"field": "personal.source", "value": "Indicação"}},
    {"id": "f-age", "section_id": "sec-personal", "key": "age", "label": "Idade",
     "field_type": "number", "data_path": "personal.age", "order_position": 3},
    {"id": "f-children", "section_id": "sec-personal", "key": "has_children", "label": "Tem filhos?",
     "field_type": "boolean", "data_path": "personal.has_children", "order_position": 4},
    {"id": "f-income", "section_id": "sec-cash", "key": "income", "label": "Receitas",
     "field_type": "list", "data_path": "cash_flow.income", "is_required": True, "order_position": 0,
     "default_value": [{"name": "Salário", "value_monthly_brl": None}],
     "options": {"itemSchema": {"name": "text", "value_monthly_brl": "currency"}}},
    {"id": "f-total-income", "section_id": "sec-cash", "key": "total_income", "label": "Total de receitas",
     "field_type": "computed", "data_path": "cash_flow.total_income", "order_position": 1,
     "options": {"sourceType": "list_sum", "sourceField": "cash_flow.income", "sumKey": "value_monthly_brl"}},
    {"id": "f-savings", "section_id": "sec-cash", "key": "monthly_savings", "label": "Poupança mensal",
     "field_type": "currency", "data_path": "cash_flow.monthly_savings", "order_position": 2},
    {"id": "f-goals", "section_id": "sec-goals", "key": "goals_list", "label": "Objetivos de vida",
     "field_type": "list", "data_path": "goals.goals_list", "order_position": 0,
     "options": {
         "itemSchema": {"how": "text", "name": "text", "priority": "select", "target_value_brl": "currency"},
         "priorityOptions": ["Alta", "Média", "Baixa"],
     }},
    {"id": "f-profession", "section_id": "sec-goals", "key": "profession", "label": "Profissão",
     "field_type": "searchable_select", "data_path": "goals.profession", "order_position": 1,
     "options": {"items": ["Médico(a)", "Engenheiro(a)"]}},
    {"id": "f-profile", "section_id": "sec-goals", "key": "investor_profile", "label": "Perfil",
     "field_type": "multi_select", "data_path": "goals.investor_profile", "order_position": 2,
     "options": {"items": ["Renda fixa", "Ações", "Previdência"]}},
    {"id": "f-notes", "section_id": "sec-notes", "key": "planner_notes", "label": "Anotações",
     "field_type": "textarea", "data_path": "notes.planner_notes", "is_required": True, "order_position": 0},
]


def build_form_schema() -> FormSchema:
    sections = []
    for section in SECTIONS:
        sections.append({
            **section,
            "fields": [f for f in FIELDS if f["section_id"] == section["id"]],
        })
    return FormSchema(id=SCHEMA_ID, name="Coleta Financeira", sections=sections)


def complete_document() -> dict:
    """Document qui remplit les 5 champs obligatoires"""
    return {
        "personal": {"full_name": "Ana Souza", "source": "Indicação", "referrer": "Carlos"},
        "cash_flow": {"income": [{"name": "Salário", "value_monthly_brl": 8000}]},
        "notes": {"planner_notes": "Cliente quer se aposentar aos 55."},
    }


@pytest.fixture
def form_schema():
    return build_form_schema()


@pytest.fixture
def fake_db():
    database = FakeDatabase()
    database.data_collection_schemas.docs.append(
        {"id": SCHEMA_ID, "name": "Coleta Financeira", "version": "1", "is_active": True, "created_at": "2026-01-01T00:00:00+00:00"}
    )
    database.data_collection_sections.docs.extend(copy.deepcopy(SECTIONS))
    for section in database.data_collection_sections.docs:
        section["is_active"] = True
    for field in copy.deepcopy(FIELDS):
        database.data_collection_fields.docs.append({"is_active": True, **field})
    return database


@pytest.fixture
def store(fake_db):
    return RecordingStore(fake_db)


@pytest.fixture
def notifier():
    return MemoryNotifier()
