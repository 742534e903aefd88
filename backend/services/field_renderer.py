"""
Rendu et édition d'un champ du formulaire.

render_field: schéma + document -> description JSON du contrôle
  (valeur courante, visibilité, props du type)
apply_*: saisie -> nouveau document via le handler du type
"""

from typing import Any, Dict

from models import FieldSchema, FieldType
from services.data_collection_errors import InvalidFieldValueError
from services.field_types import handler_for
from services.list_fields import append_item, coerce_item_field, remove_item, update_item
from services.path_accessor import MISSING, get_value_by_path, set_value_by_path


def strict_equals(left: Any, right: Any) -> bool:
    """Égalité sans coercition de type (True != 1, "1" != 1, absent != None)"""
    if left is MISSING or right is MISSING:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def is_field_visible(field: FieldSchema, document: Dict[str, Any]) -> bool:
    condition = field.conditional_on
    if condition is None:
        return True
    return strict_equals(get_value_by_path(document, condition.field), condition.value)


def render_field(field: FieldSchema, document: Dict[str, Any]) -> Dict[str, Any]:
    handler = handler_for(field)
    value = handler.get_value(field, document)
    view = {
        "id": field.id,
        "key": field.key,
        "label": field.label,
        "field_type": field.field_type.value,
        "data_path": field.data_path,
        "is_required": field.is_required,
        "description": field.description,
        "placeholder": field.placeholder or "",
        "visible": is_field_visible(field, document),
        "read_only": handler.read_only,
        "value": value,
    }
    view.update(handler.describe(field, value, document))
    return view


# ==================== ÉDITION ====================

def apply_field_input(field: FieldSchema, document: Dict[str, Any], raw: Any) -> Dict[str, Any]:
    """Saisie brute -> nouveau document (le handler convertit la valeur)"""
    return handler_for(field).set_value(field, document, raw)


def _require_type(field: FieldSchema, field_type: FieldType):
    if field.field_type != field_type:
        raise InvalidFieldValueError(f"{field.key} n'est pas un champ {field_type.value}")


def add_list_item(field: FieldSchema, document: Dict[str, Any]) -> Dict[str, Any]:
    _require_type(field, FieldType.LIST)
    items = handler_for(field).get_value(field, document)
    return set_value_by_path(document, field.data_path, append_item(items))


def remove_list_item(field: FieldSchema, document: Dict[str, Any], index: int) -> Dict[str, Any]:
    _require_type(field, FieldType.LIST)
    items = handler_for(field).get_value(field, document)
    try:
        new_items = remove_item(items, index)
    except IndexError as e:
        raise InvalidFieldValueError(str(e)) from e
    return set_value_by_path(document, field.data_path, new_items)


def edit_list_item(field: FieldSchema, document: Dict[str, Any], index: int, key: str, raw: Any) -> Dict[str, Any]:
    """Édite un seul sous-champ d'un seul item; la liste entière est réécrite"""
    _require_type(field, FieldType.LIST)
    items = handler_for(field).get_value(field, document)
    value = coerce_item_field(field, key, raw)
    try:
        new_items = update_item(items, index, key, value)
    except IndexError as e:
        raise InvalidFieldValueError(str(e)) from e
    return set_value_by_path(document, field.data_path, new_items)


def add_selection(field: FieldSchema, document: Dict[str, Any], item: str) -> Dict[str, Any]:
    _require_type(field, FieldType.MULTI_SELECT)
    return handler_for(field).add(field, document, item)


def remove_selection(field: FieldSchema, document: Dict[str, Any], item: str) -> Dict[str, Any]:
    _require_type(field, FieldType.MULTI_SELECT)
    return handler_for(field).remove(field, document, item)


def choose_option(field: FieldSchema, document: Dict[str, Any], choice: str) -> Dict[str, Any]:
    _require_type(field, FieldType.SEARCHABLE_SELECT)
    return handler_for(field).choose(field, document, choice)


def set_custom_option(field: FieldSchema, document: Dict[str, Any], text: str) -> Dict[str, Any]:
    _require_type(field, FieldType.SEARCHABLE_SELECT)
    return handler_for(field).set_custom_text(field, document, text)
