"""
CRM - Persistance Coleta de Dados (MongoDB)

Collections:
  - data_collection_schemas  (schéma actif: is_active = true)
  - data_collection_sections (schema_id, order_position)
  - data_collection_fields   (section_id, order_position)
  - contact_data_collections (1 document par contact_id, index unique)

Toute erreur Mongo est convertie en DataCollectionStoreError.
Écriture = remplacement complet de data_collection (pas de patch).
"""

import logging
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from config import db, generate_id, now_iso, DEFAULT_SCHEMA_ID
from models import CollectionStatus, FormSchema
from services.data_collection_errors import DataCollectionStoreError
from services.event_logger import log_event

logger = logging.getLogger("data_collection_store")

NO_ID = {"_id": 0}


class MongoDataCollectionStore:
    """Collaborateur de persistance de la session de coleta"""

    def __init__(self, database=None, schema_id: str = DEFAULT_SCHEMA_ID):
        self.db = database if database is not None else db
        self.schema_id = schema_id

    async def ensure_indexes(self):
        try:
            await self.db.contact_data_collections.create_index("contact_id", unique=True)
            await self.db.data_collection_sections.create_index([("schema_id", 1), ("order_position", 1)])
            await self.db.data_collection_fields.create_index([("section_id", 1), ("order_position", 1)])
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Création des index impossible: {e}") from e

    # ==================== SCHÉMA ====================

    async def fetch_form_schema(self) -> Optional[FormSchema]:
        """Schéma actif + sections actives + champs actifs, triés par order_position"""
        try:
            schema = await self.db.data_collection_schemas.find_one({"is_active": True}, NO_ID)
            if not schema:
                return None

            sections = await self.db.data_collection_sections.find(
                {"schema_id": schema["id"], "is_active": True}, NO_ID
            ).sort("order_position", 1).to_list(500)

            section_ids = [s["id"] for s in sections]
            fields = await self.db.data_collection_fields.find(
                {"section_id": {"$in": section_ids}, "is_active": True}, NO_ID
            ).sort("order_position", 1).to_list(5000)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture du schéma impossible: {e}") from e

        for section in sections:
            section["fields"] = [f for f in fields if f.get("section_id") == section["id"]]
        schema["sections"] = sections

        logger.info(
            f"[SCHEMA] Schéma {schema['id']} chargé: "
            f"{len(sections)} sections, {len(fields)} champs"
        )
        return FormSchema(**schema)

    # ==================== COLETA ====================

    async def fetch_collection(self, contact_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.db.contact_data_collections.find_one({"contact_id": contact_id}, NO_ID)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Lecture de la coleta {contact_id} impossible: {e}") from e

    async def create_collection(self, contact_id: str, collected_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Crée une coleta vide (draft) pour le contact.
        Idempotent: si elle existe déjà (ou création concurrente), retourne l'existante.
        """
        existing = await self.fetch_collection(contact_id)
        if existing:
            return existing

        now = now_iso()
        doc = {
            "id": generate_id(),
            "contact_id": contact_id,
            "schema_id": self.schema_id,
            "collected_by": collected_by,
            "status": CollectionStatus.DRAFT.value,
            "data_collection": {},
            "collected_at": None,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.db.contact_data_collections.insert_one(doc)
        except DuplicateKeyError:
            logger.info(f"[SESSION] Coleta {contact_id} créée en parallèle, reprise de l'existante")
            return await self.fetch_collection(contact_id)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Création de la coleta {contact_id} impossible: {e}") from e

        doc.pop("_id", None)
        return doc

    async def update_collection(
        self,
        collection_id: str,
        data_collection: Dict[str, Any],
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Remplace data_collection (et le statut si donné). completed -> collected_at"""
        now = now_iso()
        update = {"data_collection": data_collection, "updated_at": now}
        if status:
            update["status"] = status
            if status == CollectionStatus.COMPLETED.value:
                update["collected_at"] = now

        try:
            result = await self.db.contact_data_collections.update_one(
                {"id": collection_id}, {"$set": update}
            )
            if result.matched_count == 0:
                raise DataCollectionStoreError(f"Coleta {collection_id} introuvable")
            return await self.db.contact_data_collections.find_one({"id": collection_id}, NO_ID)
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Écriture de la coleta {collection_id} impossible: {e}") from e

    async def record_event(self, action: str, collection: Dict[str, Any], user: Optional[str] = None, details: dict = None):
        try:
            await log_event(
                action=action,
                entity_type="data_collection",
                entity_id=collection["id"],
                user=user or "system",
                details=details,
                related={"contact_id": collection.get("contact_id"), "schema_id": collection.get("schema_id")},
                database=self.db,
            )
        except PyMongoError as e:
            raise DataCollectionStoreError(f"Écriture event_log impossible: {e}") from e
