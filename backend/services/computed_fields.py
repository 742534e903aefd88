"""
Champs calculés (lecture seule).

Deux modes selon options.sourceType:
  - défaut: somme des valeurs aux chemins options.sourceFields
    (chaque chemin résolu contre le document COMPLET)
  - "list_sum": somme de options.sumKey sur les items de la liste
    options.sourceField

Ce qui n'est pas numérique (absent, texte, bool) compte 0.
Un champ calculé n'écrit jamais dans le document: recalcul à chaque rendu.
"""

from typing import Any, Dict

from models import FieldSchema
from services.path_accessor import get_value_by_path
from services.value_coercion import to_number


LIST_SUM = "list_sum"


def sum_source_fields(document: Dict[str, Any], source_fields) -> float:
    if not isinstance(source_fields, list):
        return 0
    total = 0
    for path in source_fields:
        if not isinstance(path, str) or not path:
            continue
        total += to_number(get_value_by_path(document, path))
    return total


def sum_list_key(document: Dict[str, Any], source_field, sum_key) -> float:
    if not isinstance(source_field, str) or not source_field or not sum_key:
        return 0
    items = get_value_by_path(document, source_field)
    if not isinstance(items, list):
        return 0
    return sum(to_number(item.get(sum_key)) for item in items if isinstance(item, dict))


def compute_value(field: FieldSchema, document: Dict[str, Any]) -> float:
    options = field.options
    if options.get("sourceType") == LIST_SUM:
        return sum_list_key(document, options.get("sourceField"), options.get("sumKey"))
    return sum_source_fields(document, options.get("sourceFields"))
