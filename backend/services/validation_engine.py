"""
Validation des champs obligatoires d'une coleta de dados.

Un champ obligatoire est rempli si sa valeur (au data_path) n'est ni
absente, ni None, ni "", ni une liste vide.

ATTENTION: la visibilité (conditional_on) n'est PAS consultée. Un champ
obligatoire caché compte quand même dans le total: un formulaire peut
donc rester non finalisable tant que ce champ n'a pas été rempli.
"""

from typing import Any, Dict, Iterable

from models import FieldSchema, FormSchema, ValidationResult
from services.field_types import handler_for
from services.path_accessor import get_value_by_path


def validate_data_collection(document: Dict[str, Any], fields: Iterable[FieldSchema]) -> ValidationResult:
    errors = {}
    completed = 0
    total = 0

    for field in fields:
        if not field.is_required:
            continue
        total += 1
        value = get_value_by_path(document, field.data_path)

        if handler_for(field).is_valid(value):
            completed += 1
        elif isinstance(value, list):
            errors[field.data_path] = f"{field.label} deve ter pelo menos 1 item"
        else:
            errors[field.data_path] = f"{field.label} é obrigatório"

    return ValidationResult(
        is_valid=completed == total,
        total_required_fields=total,
        completed_required_fields=completed,
        errors=errors,
    )


def validate_form(form: FormSchema, document: Dict[str, Any]) -> ValidationResult:
    """Tous les champs de toutes les sections (utilisé pour finaliser)"""
    return validate_data_collection(document, form.all_fields())


def completion_summary(form: FormSchema, document: Dict[str, Any]) -> ValidationResult:
    """Progression affichée: sections principales seulement (notes exclues)"""
    fields = [f for s in form.main_sections() for f in s.fields]
    return validate_data_collection(document, fields)


def validation_payload(result: ValidationResult) -> Dict[str, Any]:
    return {
        "is_valid": result.is_valid,
        "total_required_fields": result.total_required_fields,
        "completed_required_fields": result.completed_required_fields,
        "progress": round(result.progress, 1),
        "errors": result.errors,
    }
