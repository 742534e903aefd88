"""
Champs de type "list": mise en page des items et opérations sur les lignes.

Chaque item est un dict conforme à options.itemSchema ({cle: type}).
Toute modification produit une NOUVELLE liste (l'item édité est copié),
c'est l'unité atomique de mutation d'une liste.

Mise en page:
  - liste "simple": exactement 2 clés, "name" + une clé valeur connue
    -> une ligne par item (texte + monnaie)
  - liste générale: clés ordonnées par table par liste, séparées en
    principales (grille), secondaire ("how", pleine largeur) et
    conditionnelles (affichées seulement si l'item n'est pas quitado)
"""

from typing import Any, Dict, List, Optional

from models import FieldSchema
from services.value_coercion import coerce_item_value


SIMPLE_NAME_KEY = "name"
SIMPLE_VALUE_KEYS = ("value_monthly_brl", "market_value_brl")

SECONDARY_FIELDS = ("how",)
CONDITIONAL_FIELDS = ("installment_monthly_brl", "months_remaining")
PAID_OFF_KEY = "is_paid_off"

MAX_GRID_COLUMNS = 4

# Labels pt-BR des sous-champs
FIELD_LABELS = {
    # Objetivos
    "name": "Descrição",
    "target_value_brl": "Quanto precisa (R$)",
    "target_date": "Quando pretende",
    "priority": "Prioridade",
    "how": "Como pensa em atingir",
    # Patrimônio
    "market_value_brl": "Valor de Mercado (R$)",
    "is_paid_off": "Quitado",
    "installment_monthly_brl": "Valor da Parcela (R$)",
    "months_remaining": "Meses Restantes",
    "has_insurance": "Tem Seguro",
    # Filhos
    "idade": "Idade",
    # Dívidas
    "cause": "Causa",
    "outstanding_brl": "Saldo Devedor (R$)",
    "interest_type": "Tipo de Juros",
    # Fluxo de caixa
    "value_monthly_brl": "Valor Mensal (R$)",
}

# Patrimônio: même modèle pour toutes les listes d'actifs
ASSET_FIELDS = ("cars", "real_estate", "businesses", "company_shares", "other_assets")
ASSET_FIELD_ORDER = [
    "name", "market_value_brl", "is_paid_off",
    "installment_monthly_brl", "months_remaining", "has_insurance",
]

FIELD_ORDER_BY_LIST = {
    "goals_list": ["name", "target_value_brl", "target_date", "priority", "how"],
    "children": ["name", "idade"],
    "debts_list": ["name", "cause", "outstanding_brl", "installment_monthly_brl", "interest_type"],
    "income": ["name", "value_monthly_brl"],
    "fixed_expenses": ["name", "value_monthly_brl"],
}


def item_schema_of(field: FieldSchema) -> Dict[str, str]:
    schema = field.options.get("itemSchema") or {}
    return schema if isinstance(schema, dict) else {}


def item_label(key: str) -> str:
    return FIELD_LABELS.get(key, key)


def simple_value_key(item_schema: Dict[str, str]) -> Optional[str]:
    """Clé valeur d'une liste simple, None si la liste n'est pas simple"""
    keys = list(item_schema.keys())
    if len(keys) != 2 or SIMPLE_NAME_KEY not in keys:
        return None
    other = keys[0] if keys[1] == SIMPLE_NAME_KEY else keys[1]
    return other if other in SIMPLE_VALUE_KEYS else None


def is_simple_list(item_schema: Dict[str, str]) -> bool:
    return simple_value_key(item_schema) is not None


def ordered_item_keys(list_key: str, item_schema: Dict[str, str]) -> List[str]:
    """Clés de l'item dans l'ordre d'affichage (inconnues à la fin, ordre du schéma)"""
    if list_key in ASSET_FIELDS:
        order = ASSET_FIELD_ORDER
    else:
        order = FIELD_ORDER_BY_LIST.get(list_key, [])

    keys = list(item_schema.keys())
    known = sorted((k for k in keys if k in order), key=order.index)
    unknown = [k for k in keys if k not in order]
    return known + unknown


def list_layout(field: FieldSchema) -> Dict[str, Any]:
    item_schema = item_schema_of(field)
    value_key = simple_value_key(item_schema)
    if value_key:
        return {
            "simple": True,
            "name_key": SIMPLE_NAME_KEY,
            "value_key": value_key,
            "main": [SIMPLE_NAME_KEY, value_key],
            "secondary": [],
            "conditional": [],
            "columns": 2,
        }

    keys = ordered_item_keys(field.key, item_schema)
    main = [k for k in keys if k not in SECONDARY_FIELDS and k not in CONDITIONAL_FIELDS]
    return {
        "simple": False,
        "main": main,
        "secondary": [k for k in keys if k in SECONDARY_FIELDS],
        "conditional": [k for k in CONDITIONAL_FIELDS if k in keys],
        "columns": min(len(main), MAX_GRID_COLUMNS),
    }


def item_choices(field: FieldSchema, key: str) -> List[str]:
    """Options d'un sous-champ select: <cle>Options ("interest_type" -> interestTypeOptions) sinon typeOptions"""
    parts = key.split("_")
    camel = parts[0] + "".join(p.capitalize() for p in parts[1:])
    choices = field.options.get(f"{camel}Options")
    if not isinstance(choices, list):
        choices = field.options.get("typeOptions") or []
    return list(choices)


def normalize_items(value: Any) -> List[Dict[str, Any]]:
    """Valeur stockée -> liste d'items (tout ce qui n'est pas un dict devient {})"""
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, dict) else {} for item in value]


# ==================== OPÉRATIONS SUR LES LIGNES ====================

def append_item(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [*items, {}]


def remove_item(items: List[Dict[str, Any]], index: int) -> List[Dict[str, Any]]:
    if index < 0 or index >= len(items):
        raise IndexError(f"item {index} hors liste (taille {len(items)})")
    return [item for i, item in enumerate(items) if i != index]


def update_item(items: List[Dict[str, Any]], index: int, key: str, value: Any) -> List[Dict[str, Any]]:
    """Remplace l'item `index` par {**item, key: value}; les autres items sont repris tels quels"""
    if index < 0 or index >= len(items):
        raise IndexError(f"item {index} hors liste (taille {len(items)})")
    new_items = list(items)
    new_items[index] = {**items[index], key: value}
    return new_items


def coerce_item_field(field: FieldSchema, key: str, raw: Any) -> Any:
    item_type = item_schema_of(field).get(key, "text")
    return coerce_item_value(item_type, raw)


# ==================== RENDU ====================

def describe_item(field: FieldSchema, layout: Dict[str, Any], item: Dict[str, Any], index: int) -> Dict[str, Any]:
    item_schema = item_schema_of(field)

    def cell(key):
        item_type = item_schema.get(key, "text")
        value = item.get(key)
        entry = {"key": key, "type": item_type, "label": item_label(key), "value": value}
        if item_type == "boolean":
            entry["value"] = bool(value)
            entry["display"] = "Sim" if value else "Não"
        elif item_type == "select":
            entry["value"] = value or ""
            entry["choices"] = item_choices(field, key)
        elif item_type in ("text", "date"):
            entry["value"] = value if value is not None else ""
        return entry

    show_conditional = bool(layout["conditional"]) and not item.get(PAID_OFF_KEY)
    return {
        "index": index,
        "main": [cell(k) for k in layout["main"]],
        "conditional": [cell(k) for k in layout["conditional"]] if show_conditional else [],
        "secondary": [cell(k) for k in layout["secondary"]],
    }


def describe_list(field: FieldSchema, value: Any) -> Dict[str, Any]:
    items = normalize_items(value)
    layout = list_layout(field)
    return {
        "layout": layout,
        "rows": [describe_item(field, layout, item, i) for i, item in enumerate(items)],
    }
