"""
Sections du formulaire: filtrage par visibilité et rendu des champs.

La section "notes" n'apparaît pas dans la navigation par onglets:
elle est rendue à part (panneau latéral).
"""

from typing import Any, Dict, List, Optional

from models import FieldSchema, FormSchema, SectionSchema
from services.field_renderer import is_field_visible, render_field


def visible_fields(section: SectionSchema, document: Dict[str, Any]) -> List[FieldSchema]:
    return [f for f in section.fields if is_field_visible(f, document)]


def render_section(section: SectionSchema, document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": section.id,
        "key": section.key,
        "title": section.title,
        "description": section.description,
        "icon": section.icon,
        "fields": [render_field(f, document) for f in visible_fields(section, document)],
    }


def section_tabs(form: FormSchema) -> List[Dict[str, str]]:
    """Onglets de navigation (sans la section notes), dans l'ordre du schéma"""
    return [
        {"key": s.key, "title": s.title, "icon": s.icon}
        for s in form.main_sections()
    ]


def render_form(form: FormSchema, document: Dict[str, Any], active_section: Optional[str] = None) -> Dict[str, Any]:
    """
    Rendu complet: onglets + sections principales + panneau notes.
    Si active_section est donné, seule cette section est rendue.
    """
    sections = form.main_sections()
    if active_section:
        sections = [s for s in sections if s.key == active_section]

    notes = form.notes_section()
    return {
        "tabs": section_tabs(form),
        "sections": [render_section(s, document) for s in sections],
        "notes": render_section(notes, document) if notes else None,
    }
