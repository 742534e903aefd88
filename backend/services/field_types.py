"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Handlers par type de champ                                            ║
║                                                                              ║
║  Un handler par type (FieldType) avec la même interface:                     ║
║    get_value(field, document)        valeur affichée                         ║
║    set_value(field, document, raw)   nouveau document (copie)                ║
║    is_valid(value)                   champ obligatoire rempli ?              ║
║    describe(field, value, document)  props spécifiques du contrôle           ║
║                                                                              ║
║  Les règles de conversion de chaque type restent dans son handler.          ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Any, Dict, List

from config import format_brl
from models import FieldSchema, FieldType
from services.computed_fields import compute_value
from services.data_collection_errors import InvalidFieldValueError
from services.list_fields import describe_list, normalize_items
from services.path_accessor import MISSING, get_value_by_path, set_value_by_path
from services.value_coercion import (
    coerce_bool,
    coerce_currency,
    coerce_number,
    coerce_string_list,
    coerce_text,
    is_value_filled,
)


OTHER_OPTION = "Outros"


def field_items(field: FieldSchema) -> List[str]:
    items = field.options.get("items") or []
    return [str(i) for i in items] if isinstance(items, list) else []


class FieldHandler:
    """Comportement par défaut: valeur brute passée telle quelle"""

    field_type: FieldType = None
    read_only = False

    def raw_value(self, field: FieldSchema, document: Dict[str, Any]) -> Any:
        return get_value_by_path(document, field.data_path)

    def get_value(self, field: FieldSchema, document: Dict[str, Any]) -> Any:
        value = self.raw_value(field, document)
        return None if value is MISSING else value

    def coerce(self, field: FieldSchema, raw: Any) -> Any:
        return raw

    def set_value(self, field: FieldSchema, document: Dict[str, Any], raw: Any) -> Dict[str, Any]:
        return set_value_by_path(document, field.data_path, self.coerce(field, raw))

    def is_valid(self, value: Any) -> bool:
        return is_value_filled(value)

    def describe(self, field: FieldSchema, value: Any, document: Dict[str, Any]) -> Dict[str, Any]:
        return {}


class TextHandler(FieldHandler):
    """text / textarea / date: chaîne, vide -> "" (jamais None)"""

    def __init__(self, field_type: FieldType):
        self.field_type = field_type

    def get_value(self, field, document):
        return coerce_text(self.raw_value(field, document))

    def coerce(self, field, raw):
        return coerce_text(raw)

    def describe(self, field, value, document):
        if self.field_type == FieldType.TEXTAREA:
            return {"rows": 3}
        return {}


class NumberHandler(FieldHandler):
    field_type = FieldType.NUMBER

    def get_value(self, field, document):
        value = self.raw_value(field, document)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    def coerce(self, field, raw):
        return coerce_number(raw)


class CurrencyHandler(NumberHandler):
    """Stocké en nombre simple; le formatage pt-BR est pour l'affichage"""

    field_type = FieldType.CURRENCY

    def coerce(self, field, raw):
        return coerce_currency(raw)

    def describe(self, field, value, document):
        return {"formatted": format_brl(value), "locale": "pt-BR", "prefix": "R$"}


class BooleanHandler(FieldHandler):
    field_type = FieldType.BOOLEAN

    def get_value(self, field, document):
        value = self.raw_value(field, document)
        if value is MISSING:
            return False
        return bool(value)

    def coerce(self, field, raw):
        return coerce_bool(raw)

    def describe(self, field, value, document):
        return {"display": "Sim" if value else "Não"}


class SelectHandler(FieldHandler):
    field_type = FieldType.SELECT

    def get_value(self, field, document):
        value = self.raw_value(field, document)
        return value if isinstance(value, str) else ""

    def coerce(self, field, raw):
        value = coerce_text(raw)
        if value and value not in field_items(field):
            raise InvalidFieldValueError(f"'{value}' n'est pas une option de {field.key}")
        return value

    def describe(self, field, value, document):
        return {"choices": field_items(field)}


class SearchableSelectHandler(SelectHandler):
    """
    Select avec texte libre: une valeur hors options (et différente de
    "Outros") est une valeur personnalisée -> sélection "Outros" + texte.
    """

    field_type = FieldType.SEARCHABLE_SELECT

    def coerce(self, field, raw):
        return coerce_text(raw)

    def is_custom(self, field, value) -> bool:
        return bool(value) and value not in field_items(field) and value != OTHER_OPTION

    def choose(self, field, document, choice: str) -> Dict[str, Any]:
        """Sélection dans la liste; "Outros" sans texte stocke le littéral"""
        choice = coerce_text(choice)
        if choice and choice != OTHER_OPTION and choice not in field_items(field):
            raise InvalidFieldValueError(f"'{choice}' n'est pas une option de {field.key}")
        return set_value_by_path(document, field.data_path, choice)

    def set_custom_text(self, field, document, text: str) -> Dict[str, Any]:
        text = coerce_text(text)
        return set_value_by_path(document, field.data_path, text or OTHER_OPTION)

    def describe(self, field, value, document):
        custom = self.is_custom(field, value)
        return {
            "choices": [*field_items(field), OTHER_OPTION],
            "selection": OTHER_OPTION if custom else value,
            "custom_text": value if custom else "",
            "is_custom": custom,
            "show_custom_input": custom or value == OTHER_OPTION,
        }


class MultiSelectHandler(FieldHandler):
    """Liste de chaînes dans l'ordre de sélection"""

    field_type = FieldType.MULTI_SELECT

    def get_value(self, field, document):
        value = self.raw_value(field, document)
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    def coerce(self, field, raw):
        return coerce_string_list(raw)

    def add(self, field, document, item: str) -> Dict[str, Any]:
        selected = self.get_value(field, document)
        if item in selected:
            return document
        return set_value_by_path(document, field.data_path, [*selected, item])

    def remove(self, field, document, item: str) -> Dict[str, Any]:
        selected = self.get_value(field, document)
        return set_value_by_path(document, field.data_path, [i for i in selected if i != item])

    def describe(self, field, value, document):
        return {"available": [i for i in field_items(field) if i not in value]}


class ListHandler(FieldHandler):
    field_type = FieldType.LIST

    def get_value(self, field, document):
        return normalize_items(self.raw_value(field, document))

    def coerce(self, field, raw):
        return normalize_items(raw)

    def describe(self, field, value, document):
        return describe_list(field, value)


class ComputedHandler(FieldHandler):
    """Valeur dérivée, jamais écrite dans le document"""

    field_type = FieldType.COMPUTED
    read_only = True

    def get_value(self, field, document):
        return compute_value(field, document)

    def set_value(self, field, document, raw):
        return document

    def describe(self, field, value, document):
        return {"formatted": format_brl(value), "read_only": True}


HANDLERS = {
    FieldType.TEXT: TextHandler(FieldType.TEXT),
    FieldType.TEXTAREA: TextHandler(FieldType.TEXTAREA),
    FieldType.DATE: TextHandler(FieldType.DATE),
    FieldType.NUMBER: NumberHandler(),
    FieldType.CURRENCY: CurrencyHandler(),
    FieldType.BOOLEAN: BooleanHandler(),
    FieldType.SELECT: SelectHandler(),
    FieldType.SEARCHABLE_SELECT: SearchableSelectHandler(),
    FieldType.MULTI_SELECT: MultiSelectHandler(),
    FieldType.LIST: ListHandler(),
    FieldType.COMPUTED: ComputedHandler(),
}


def handler_for(field: FieldSchema) -> FieldHandler:
    return HANDLERS[field.field_type]
