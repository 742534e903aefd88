"""
CRM - Seed du formulaire de coleta par défaut (dev/staging)
Crée le schéma actif "Coleta Financeira" avec ses sections et champs.
Run: python scripts/seed_data_collection_schema.py
Reset: python scripts/seed_data_collection_schema.py --reset
"""

import asyncio
import os
import sys
import uuid
from datetime import datetime, timezone

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))

MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.environ.get("DB_NAME", "test_database")
SCHEMA_ID = os.environ.get("DATA_COLLECTION_SCHEMA_ID", "a0000000-0000-0000-0000-000000000001")

ASSET_ITEM_SCHEMA = {
    "name": "text",
    "market_value_brl": "currency",
    "is_paid_off": "boolean",
    "installment_monthly_brl": "currency",
    "months_remaining": "number",
    "has_insurance": "boolean",
}

# (key, title, icon, [champs])
# champ: (key, label, field_type, data_path, extra)
SECTIONS = [
    ("personal", "Dados Pessoais", "User", [
        ("full_name", "Nome completo", "text", "personal.full_name", {"is_required": True}),
        ("birth_date", "Data de nascimento", "date", "personal.birth_date", {"is_required": True}),
        ("marital_status", "Estado civil", "select", "personal.marital_status", {
            "is_required": True,
            "options": {"items": ["Solteiro(a)", "Casado(a)", "União estável", "Divorciado(a)", "Viúvo(a)"]},
        }),
        ("profession", "Profissão", "searchable_select", "personal.profession", {
            "options": {"items": ["Médico(a)", "Engenheiro(a)", "Advogado(a)", "Empresário(a)", "Servidor(a) público(a)", "Outros"]},
        }),
        ("has_children", "Tem filhos?", "boolean", "personal.has_children", {}),
        ("children", "Filhos", "list", "personal.children", {
            "conditional_on": {"field": "personal.has_children", "value": True},
            "options": {"itemSchema": {"name": "text", "idade": "number"}},
        }),
    ]),
    ("goals", "Objetivos", "Target", [
        ("goals_list", "Objetivos de vida", "list", "goals.goals_list", {
            "is_required": True,
            "default_value": [{"name": "Aposentadoria", "target_value_brl": None, "target_date": "", "priority": "Alta", "how": ""}],
            "options": {
                "itemSchema": {"name": "text", "target_value_brl": "currency", "target_date": "text", "priority": "select", "how": "text"},
                "priorityOptions": ["Alta", "Média", "Baixa"],
            },
        }),
        ("investor_profile", "Perfil de investidor", "multi_select", "goals.investor_profile", {
            "options": {"items": ["Renda fixa", "Ações", "Fundos imobiliários", "Previdência", "Cripto"]},
        }),
    ]),
    ("cash_flow", "Fluxo de Caixa", "Wallet", [
        ("income", "Receitas", "list", "cash_flow.income", {
            "is_required": True,
            "default_value": [{"name": "Salário", "value_monthly_brl": None}],
            "options": {"itemSchema": {"name": "text", "value_monthly_brl": "currency"}},
        }),
        ("fixed_expenses", "Despesas fixas", "list", "cash_flow.fixed_expenses", {
            "default_value": [
                {"name": "Moradia", "value_monthly_brl": None},
                {"name": "Alimentação", "value_monthly_brl": None},
            ],
            "options": {"itemSchema": {"name": "text", "value_monthly_brl": "currency"}},
        }),
        ("total_income", "Total de receitas", "computed", "cash_flow.total_income", {
            "options": {"sourceType": "list_sum", "sourceField": "cash_flow.income", "sumKey": "value_monthly_brl"},
        }),
        ("total_expenses", "Total de despesas", "computed", "cash_flow.total_expenses", {
            "options": {"sourceType": "list_sum", "sourceField": "cash_flow.fixed_expenses", "sumKey": "value_monthly_brl"},
        }),
        ("monthly_savings", "Poupança mensal (R$)", "currency", "cash_flow.monthly_savings", {}),
    ]),
    ("assets", "Patrimônio", "Building", [
        ("real_estate", "Imóveis", "list", "assets.real_estate", {"options": {"itemSchema": ASSET_ITEM_SCHEMA}}),
        ("cars", "Veículos", "list", "assets.cars", {"options": {"itemSchema": ASSET_ITEM_SCHEMA}}),
        ("financial_investments", "Investimentos financeiros (R$)", "currency", "assets.financial_investments", {}),
        ("emergency_reserve", "Reserva de emergência (R$)", "currency", "assets.emergency_reserve", {}),
        ("total_liquid_assets", "Total líquido", "computed", "assets.total_liquid_assets", {
            "options": {"sourceFields": ["assets.financial_investments", "assets.emergency_reserve"]},
        }),
    ]),
    ("debts", "Dívidas", "CreditCard", [
        ("has_debts", "Possui dívidas?", "boolean", "debts.has_debts", {}),
        ("debts_list", "Dívidas", "list", "debts.debts_list", {
            "conditional_on": {"field": "debts.has_debts", "value": True},
            "options": {
                "itemSchema": {
                    "name": "text", "cause": "text", "outstanding_brl": "currency",
                    "installment_monthly_brl": "currency", "interest_type": "select",
                },
                "interestTypeOptions": ["Pré-fixado", "Pós-fixado", "Rotativo"],
            },
        }),
    ]),
    ("notes", "Anotações", "StickyNote", [
        ("planner_notes", "Anotações do planejador", "textarea", "notes.planner_notes", {
            "placeholder": "Observações livres sobre a reunião",
        }),
    ]),
]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_documents():
    now = now_iso()
    schema = {
        "id": SCHEMA_ID,
        "name": "Coleta Financeira",
        "version": "1",
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    sections, fields = [], []
    for s_pos, (key, title, icon, section_fields) in enumerate(SECTIONS):
        section_id = str(uuid.uuid4())
        sections.append({
            "id": section_id,
            "schema_id": SCHEMA_ID,
            "key": key,
            "title": title,
            "icon": icon,
            "order_position": s_pos,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        })
        for f_pos, (f_key, label, field_type, data_path, extra) in enumerate(section_fields):
            fields.append({
                "id": str(uuid.uuid4()),
                "section_id": section_id,
                "key": f_key,
                "label": label,
                "field_type": field_type,
                "data_path": data_path,
                "is_required": extra.get("is_required", False),
                "placeholder": extra.get("placeholder"),
                "default_value": extra.get("default_value"),
                "conditional_on": extra.get("conditional_on"),
                "options": extra.get("options", {}),
                "validation": {},
                "order_position": f_pos,
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            })
    return schema, sections, fields


async def seed(reset: bool = False):
    client = AsyncIOMotorClient(MONGO_URL)
    db = client[DB_NAME]

    if reset:
        sections = await db.data_collection_sections.find({"schema_id": SCHEMA_ID}, {"id": 1}).to_list(500)
        await db.data_collection_fields.delete_many({"section_id": {"$in": [s["id"] for s in sections]}})
        await db.data_collection_sections.delete_many({"schema_id": SCHEMA_ID})
        await db.data_collection_schemas.delete_one({"id": SCHEMA_ID})
        print(f"[RESET] Schéma {SCHEMA_ID} supprimé")

    existing = await db.data_collection_schemas.find_one({"id": SCHEMA_ID})
    if existing:
        print(f"[SKIP] Schéma {SCHEMA_ID} déjà présent (utiliser --reset)")
        client.close()
        return

    schema, sections, fields = build_documents()
    # Un seul schéma actif
    await db.data_collection_schemas.update_many({"is_active": True}, {"$set": {"is_active": False}})
    await db.data_collection_schemas.insert_one(schema)
    await db.data_collection_sections.insert_many(sections)
    await db.data_collection_fields.insert_many(fields)

    print(f"[OK] Schéma '{schema['name']}': {len(sections)} sections, {len(fields)} champs")
    client.close()


if __name__ == "__main__":
    asyncio.run(seed(reset="--reset" in sys.argv))
