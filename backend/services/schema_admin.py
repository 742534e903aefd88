"""
CRM - Builder du schéma de formulaire (admin)

CRUD sections / champs + réordonnancement (order_position en masse).
Supprimer une section supprime ses champs.
Chaque mutation écrit un event_log.

La session de coleta lit le schéma une fois à l'ouverture: une
modification ne touche que les sessions ouvertes après.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from config import db, generate_id, now_iso
from models import FieldCreate, FieldUpdate, OrderPosition, SectionCreate, SectionUpdate
from services.data_collection_errors import DataCollectionStoreError, SchemaItemNotFoundError
from services.event_logger import log_event

logger = logging.getLogger("schema_admin")

NO_ID = {"_id": 0}


class SchemaAdmin:

    def __init__(self, database=None):
        self.db = database if database is not None else db

    async def _audit(self, action: str, entity_type: str, entity_id: str, user: Optional[str], details: dict = None, related: dict = None):
        await log_event(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user=user or "system",
            details=details,
            related=related,
            database=self.db,
        )

    # ==================== LECTURE ====================

    async def list_schemas(self) -> List[Dict[str, Any]]:
        try:
            return await self.db.data_collection_schemas.find({}, NO_ID).sort("created_at", 1).to_list(100)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture des schémas impossible: {e}") from e

    async def list_sections(self, schema_id: str) -> List[Dict[str, Any]]:
        """Toutes les sections du schéma (actives ou non), triées"""
        try:
            return await self.db.data_collection_sections.find(
                {"schema_id": schema_id}, NO_ID
            ).sort("order_position", 1).to_list(500)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture des sections impossible: {e}") from e

    async def list_fields(self, section_id: str) -> List[Dict[str, Any]]:
        try:
            return await self.db.data_collection_fields.find(
                {"section_id": section_id}, NO_ID
            ).sort("order_position", 1).to_list(1000)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture des champs impossible: {e}") from e

    async def get_section(self, section_id: str) -> Dict[str, Any]:
        try:
            section = await self.db.data_collection_sections.find_one({"id": section_id}, NO_ID)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture de la section {section_id} impossible: {e}") from e
        if not section:
            raise SchemaItemNotFoundError(f"Section {section_id} introuvable")
        return section

    async def get_field(self, field_id: str) -> Dict[str, Any]:
        try:
            field = await self.db.data_collection_fields.find_one({"id": field_id}, NO_ID)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture du champ {field_id} impossible: {e}") from e
        if not field:
            raise SchemaItemNotFoundError(f"Champ {field_id} introuvable")
        return field

    # ==================== SECTIONS ====================

    async def create_section(self, data: SectionCreate, user: Optional[str] = None) -> Dict[str, Any]:
        now = now_iso()
        section = {
            "id": generate_id(),
            **data.model_dump(),
            "created_at": now,
            "updated_at": now,
        }
        try:
            schema = await self.db.data_collection_schemas.find_one({"id": data.schema_id}, NO_ID)
            if not schema:
                raise SchemaItemNotFoundError(f"Schéma {data.schema_id} introuvable")

            await self.db.data_collection_sections.insert_one(section)
            section.pop("_id", None)

            await self._audit("create_section", "data_collection_section", section["id"], user,
                              details={"key": section["key"], "title": section["title"]},
                              related={"schema_id": data.schema_id})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Création de la section '{data.key}' impossible: {e}") from e

        logger.info(f"[SCHEMA] Section '{section['key']}' créée ({section['id']})")
        return section

    async def update_section(self, section_id: str, data: SectionUpdate, user: Optional[str] = None) -> Dict[str, Any]:
        current = await self.get_section(section_id)
        update = data.model_dump(exclude_unset=True)
        update["updated_at"] = now_iso()

        try:
            await self.db.data_collection_sections.update_one({"id": section_id}, {"$set": update})
            await self._audit("update_section", "data_collection_section", section_id, user,
                              details={"changes": {k: v for k, v in update.items() if k != "updated_at"}},
                              related={"schema_id": current.get("schema_id")})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Mise à jour de la section {section_id} impossible: {e}") from e
        return await self.get_section(section_id)

    async def delete_section(self, section_id: str, user: Optional[str] = None) -> int:
        """Supprime la section et ses champs. Returns: nombre de champs supprimés"""
        section = await self.get_section(section_id)
        try:
            fields = await self.db.data_collection_fields.delete_many({"section_id": section_id})
            await self.db.data_collection_sections.delete_one({"id": section_id})

            await self._audit("delete_section", "data_collection_section", section_id, user,
                              details={"key": section.get("key"), "deleted_fields": fields.deleted_count},
                              related={"schema_id": section.get("schema_id")})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Suppression de la section {section_id} impossible: {e}") from e

        logger.info(f"[SCHEMA] Section '{section.get('key')}' supprimée ({fields.deleted_count} champs)")
        return fields.deleted_count

    async def reorder_sections(self, positions: List[OrderPosition], user: Optional[str] = None) -> int:
        return await self._reorder(self.db.data_collection_sections, "reorder_sections", "data_collection_section", positions, user)

    async def _reorder(self, collection, action: str, entity_type: str, positions: List[OrderPosition], user: Optional[str]) -> int:
        """order_position en masse. Returns: nombre d'éléments trouvés"""
        updated = 0
        try:
            for item in positions:
                result = await collection.update_one(
                    {"id": item.id},
                    {"$set": {"order_position": item.order_position, "updated_at": now_iso()}},
                )
                updated += result.matched_count

            await self._audit(action, entity_type, "bulk", user,
                              details={"order": [p.model_dump() for p in positions]})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Réordonnancement impossible ({action}): {e}") from e
        return updated

    # ==================== CHAMPS ====================

    async def create_field(self, data: FieldCreate, user: Optional[str] = None) -> Dict[str, Any]:
        section = await self.get_section(data.section_id)

        now = now_iso()
        field = {
            "id": generate_id(),
            **data.model_dump(mode="json"),
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.db.data_collection_fields.insert_one(field)
            field.pop("_id", None)

            await self._audit("create_field", "data_collection_field", field["id"], user,
                              details={"key": field["key"], "field_type": field["field_type"]},
                              related={"section_id": section["id"], "schema_id": section.get("schema_id")})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Création du champ '{data.key}' impossible: {e}") from e

        logger.info(f"[SCHEMA] Champ '{field['key']}' ({field['field_type']}) créé dans '{section.get('key')}'")
        return field

    async def update_field(self, field_id: str, data: FieldUpdate, user: Optional[str] = None) -> Dict[str, Any]:
        current = await self.get_field(field_id)
        update = data.model_dump(mode="json", exclude_unset=True)
        update["updated_at"] = now_iso()

        try:
            await self.db.data_collection_fields.update_one({"id": field_id}, {"$set": update})
            await self._audit("update_field", "data_collection_field", field_id, user,
                              details={"changes": {k: v for k, v in update.items() if k != "updated_at"}},
                              related={"section_id": current.get("section_id")})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Mise à jour du champ {field_id} impossible: {e}") from e
        return await self.get_field(field_id)

    async def delete_field(self, field_id: str, user: Optional[str] = None):
        field = await self.get_field(field_id)
        try:
            await self.db.data_collection_fields.delete_one({"id": field_id})
            await self._audit("delete_field", "data_collection_field", field_id, user,
                              details={"key": field.get("key")},
                              related={"section_id": field.get("section_id")})
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Suppression du champ {field_id} impossible: {e}") from e
        logger.info(f"[SCHEMA] Champ '{field.get('key')}' supprimé")

    async def reorder_fields(self, positions: List[OrderPosition], user: Optional[str] = None) -> int:
        return await self._reorder(self.db.data_collection_fields, "reorder_fields", "data_collection_field", positions, user)
