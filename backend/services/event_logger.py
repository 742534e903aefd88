"""
CRM - Journal d'audit (event_log)

Une entrée par action sensible: coleta finalisée, mutation du schéma
de formulaire (sections / champs / ordre).
"""

from config import db, generate_id, now_iso


async def log_event(
    action: str,
    entity_type: str,
    entity_id: str,
    user: str = "system",
    details: dict = None,
    related: dict = None,
    database=None
):
    """
    Écrit une entrée dans event_log et la retourne.

    Args:
        action: complete_data_collection, create_section, update_field, reorder_fields...
        entity_type: data_collection | data_collection_section | data_collection_field
        entity_id: id de l'entité principale ("bulk" pour un réordonnancement)
        user: id/email de l'auteur
        details: libre (changements, compteurs)
        related: ids liés (contact_id, schema_id, section_id)
        database: base cible (défaut: config.db)
    """
    event = {
        "id": generate_id(),
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "user": user or "system",
        "details": details or {},
        "related": related or {},
        "created_at": now_iso(),
    }
    target = database if database is not None else db
    await target.event_log.insert_one(event)
    event.pop("_id", None)
    return event
