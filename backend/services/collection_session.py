"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Session de Coleta de Dados                                            ║
║                                                                              ║
║  Une session = un contact = un document data_collection en mémoire.          ║
║                                                                              ║
║  ÉTATS: uninitialized -> loading -> draft -> completed (TERMINAL)            ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - Chaque édition remplace le document (copie), marque dirty et              ║
║    reprogramme l'autosave (debounce)                                         ║
║  - L'autosave écrit le document LE PLUS RÉCENT au moment où il part          ║
║  - dirty n'est effacé qu'après une écriture confirmée, et seulement si       ║
║    aucune édition n'est arrivée pendant l'écriture                           ║
║  - Finaliser exige 100% des champs obligatoires, sinon refus sans            ║
║    écriture ni changement d'état                                             ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import copy
import logging
from typing import Any, Dict, Optional

from models import CollectionStatus, ContactDataCollection, FieldSchema, FieldType, FormSchema, ValidationResult
from services.autosave import AutosaveScheduler
from services.data_collection_errors import (
    DataCollectionLoadError,
    DataCollectionSaveError,
    DataCollectionStoreError,
    SchemaNotFoundError,
    SessionStateError,
    UnknownFieldError,
)
from services.field_renderer import (
    add_list_item,
    add_selection,
    apply_field_input,
    choose_option,
    edit_list_item,
    remove_list_item,
    remove_selection,
    set_custom_option,
)
from services.notifier import ERROR, SUCCESS, LogNotifier, Notifier
from services.path_accessor import MISSING, get_value_by_path, set_value_by_path
from services.section_controller import render_form
from services.validation_engine import completion_summary, validate_form, validation_payload

logger = logging.getLogger("collection_session")


# ════════════════════════════════════════════════════════════════════════════
# ÉTATS ET TRANSITIONS
# ════════════════════════════════════════════════════════════════════════════

UNINITIALIZED = "uninitialized"
LOADING = "loading"
DRAFT = CollectionStatus.DRAFT.value
COMPLETED = CollectionStatus.COMPLETED.value

READY_STATES = (DRAFT, COMPLETED)

VALID_SESSION_TRANSITIONS = {
    UNINITIALIZED: [LOADING],
    LOADING: [DRAFT, COMPLETED, UNINITIALIZED],  # UNINITIALIZED = échec de chargement
    DRAFT: [COMPLETED],
    COMPLETED: [],  # TERMINAL
}


def backfill_defaults(form: FormSchema, document: Dict[str, Any]):
    """
    Écrit default_value dans les champs list vides (absents ou []).
    Returns: (document, chemins remplis)
    """
    filled = []
    for field in form.all_fields():
        if field.field_type != FieldType.LIST or field.default_value is None:
            continue
        current = get_value_by_path(document, field.data_path)
        if current is MISSING or current is None or (isinstance(current, list) and not current):
            document = set_value_by_path(document, field.data_path, copy.deepcopy(field.default_value))
            filled.append(field.data_path)
    return document, filled


class CollectionSession:
    """Contrôleur d'une session d'édition pour un contact"""

    def __init__(
        self,
        contact_id: str,
        store,
        autosave: Optional[AutosaveScheduler] = None,
        notifier: Optional[Notifier] = None,
        collected_by: Optional[str] = None,
        form_schema: Optional[FormSchema] = None,
    ):
        self.contact_id = contact_id
        self.store = store
        self.autosave = autosave
        self.notifier = notifier or LogNotifier()
        self.collected_by = collected_by
        self.form: Optional[FormSchema] = form_schema

        self.state = UNINITIALIZED
        self.record: Optional[ContactDataCollection] = None
        self._document: Dict[str, Any] = {}
        self._dirty = False
        self._revision = 0
        self._save_lock = asyncio.Lock()
        self.last_saved_at: Optional[str] = None
        self.backfilled_paths = []

    # ==================== PROPRIÉTÉS ====================

    @property
    def document(self) -> Dict[str, Any]:
        return self._document

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def is_ready(self) -> bool:
        return self.state in READY_STATES

    @property
    def collection_id(self) -> Optional[str]:
        return self.record.id if self.record else None

    @property
    def status(self) -> Optional[str]:
        return self.state if self.is_ready else None

    def _transition(self, to_state: str):
        valid_next = VALID_SESSION_TRANSITIONS.get(self.state, [])
        if to_state not in valid_next:
            raise SessionStateError(
                f"INVALID TRANSITION: session {self.contact_id} cannot go from "
                f"'{self.state}' to '{to_state}'. Valid transitions: {valid_next}"
            )
        logger.debug(f"[SESSION] {self.contact_id}: {self.state} -> {to_state}")
        self.state = to_state

    def _require_ready(self):
        if not self.is_ready:
            raise SessionStateError(f"Session {self.contact_id} non prête (état: {self.state})")

    # ==================== CHARGEMENT ====================

    async def initialize(self) -> "CollectionSession":
        """
        Charge (ou crée) la coleta du contact puis applique les valeurs
        par défaut des listes vides. En cas d'échec la session revient à
        uninitialized et initialize() peut être rappelé.
        """
        if self.is_ready:
            return self
        self._transition(LOADING)

        try:
            if self.form is None:
                self.form = await self.store.fetch_form_schema()
            if self.form is None:
                raise SchemaNotFoundError("Nenhum formulário de coleta configurado.")

            raw = await self.store.fetch_collection(self.contact_id)
            if raw is None:
                raw = await self.store.create_collection(self.contact_id, self.collected_by)
                logger.info(f"[SESSION] Coleta créée pour contact {self.contact_id}")
        except (DataCollectionStoreError, SchemaNotFoundError) as e:
            self._transition(UNINITIALIZED)
            logger.error(f"[SESSION] Chargement impossible pour {self.contact_id}: {e}")
            raise DataCollectionLoadError(str(e)) from e

        self.record = ContactDataCollection(**raw)
        document, self.backfilled_paths = backfill_defaults(self.form, self.record.data_collection)
        self._document = document
        if self.backfilled_paths:
            logger.info(f"[SESSION] {self.contact_id}: valeurs par défaut appliquées {self.backfilled_paths}")

        self._transition(self.record.status.value)
        logger.info(f"[SESSION] Coleta {self.record.id} ouverte (contact {self.contact_id}, {self.state})")
        return self

    # ==================== ÉDITION ====================

    def _replace_document(self, document: Dict[str, Any]):
        if document is self._document:
            return
        self._document = document
        self._dirty = True
        self._revision += 1
        if self.autosave is not None:
            self.autosave.schedule(self.record.id, self._run_autosave)

    def on_field_change(self, path: str, value: Any):
        """Écrit `value` tel quel au chemin donné"""
        self._require_ready()
        self._replace_document(set_value_by_path(self._document, path, value))

    def _field(self, key: str) -> FieldSchema:
        field = self.form.find_field(key)
        if field is None:
            raise UnknownFieldError(f"Champ inconnu: {key}")
        return field

    def apply_field_input(self, data_path: str, raw: Any):
        """Saisie d'un champ: convertie par le type du champ si le chemin appartient au schéma"""
        self._require_ready()
        field = self.form.find_field_by_path(data_path)
        if field is None:
            self.on_field_change(data_path, raw)
            return
        self._replace_document(apply_field_input(field, self._document, raw))

    def add_list_item(self, field_key: str):
        self._require_ready()
        self._replace_document(add_list_item(self._field(field_key), self._document))

    def remove_list_item(self, field_key: str, index: int):
        self._require_ready()
        self._replace_document(remove_list_item(self._field(field_key), self._document, index))

    def edit_list_item(self, field_key: str, index: int, key: str, raw: Any):
        self._require_ready()
        self._replace_document(edit_list_item(self._field(field_key), self._document, index, key, raw))

    def add_selection(self, field_key: str, item: str):
        self._require_ready()
        self._replace_document(add_selection(self._field(field_key), self._document, item))

    def remove_selection(self, field_key: str, item: str):
        self._require_ready()
        self._replace_document(remove_selection(self._field(field_key), self._document, item))

    def choose_option(self, field_key: str, choice: str):
        self._require_ready()
        self._replace_document(choose_option(self._field(field_key), self._document, choice))

    def set_custom_option(self, field_key: str, text: str):
        self._require_ready()
        self._replace_document(set_custom_option(self._field(field_key), self._document, text))

    # ==================== VALIDATION ====================

    def validate(self) -> ValidationResult:
        """Tous les champs de toutes les sections"""
        self._require_ready()
        return validate_form(self.form, self._document)

    def completion(self) -> ValidationResult:
        """Progression affichée (sans la section notes)"""
        self._require_ready()
        return completion_summary(self.form, self._document)

    # ==================== PERSISTANCE ====================

    async def _persist(self, status: Optional[str] = None):
        """Écrit le document courant"""
        async with self._save_lock:
            await self._persist_locked(self._document, status)

    async def _persist_locked(self, payload: Dict[str, Any], status: Optional[str] = None):
        """
        Écrit `payload` tel quel. L'appelant détient _save_lock.
        dirty effacé seulement si aucune édition n'est arrivée entre-temps.
        """
        revision = self._revision
        raw = await self.store.update_collection(self.record.id, payload, status=status)
        if raw:
            self.record = ContactDataCollection(**{**raw, "data_collection": payload})
        if self._revision == revision and self._document is payload:
            self._dirty = False
        self.last_saved_at = self.record.updated_at

    def _cancel_autosave(self):
        if self.autosave is not None and self.record is not None:
            self.autosave.cancel(self.record.id)

    async def _run_autosave(self):
        """Job d'autosave: écrit l'état le plus récent si dirty"""
        if not self._dirty or not self.is_ready:
            return
        try:
            await self._persist()
        except DataCollectionStoreError as e:
            logger.error(f"[AUTOSAVE] Échec coleta {self.collection_id}: {e}")
            self.notifier.notify(ERROR, f"Erro ao salvar automaticamente: {e}")
            return
        logger.info(f"[AUTOSAVE] Coleta {self.collection_id} sauvegardée (dirty={self._dirty})")

    async def flush(self):
        """Sauvegarde immédiate si une autosave est en attente (dirty)"""
        self._cancel_autosave()
        if self._dirty:
            await self._run_autosave()

    async def save_draft(self):
        """Sauvegarde manuelle: immédiate, statut inchangé"""
        self._require_ready()
        self._cancel_autosave()
        try:
            await self._persist()
        except DataCollectionStoreError as e:
            logger.error(f"[SESSION] Rascunho coleta {self.collection_id} non sauvegardé: {e}")
            self.notifier.notify(ERROR, f"Erro ao salvar rascunho: {e}")
            raise DataCollectionSaveError(str(e)) from e
        logger.info(f"[SESSION] Rascunho coleta {self.collection_id} sauvegardé")
        self.notifier.notify(SUCCESS, "Rascunho salvo")

    async def finalize(self) -> ValidationResult:
        """
        Marque la coleta comme concluída si tous les champs obligatoires
        sont remplis. Sinon: refus (aucune écriture, état inchangé), le
        résultat de validation explique ce qui manque.
        """
        self._require_ready()
        # validation et écriture portent sur le même snapshot, sous le verrou
        async with self._save_lock:
            payload = self._document
            result = validate_form(self.form, payload)
            if not result.is_valid:
                logger.info(
                    f"[SESSION] Finalisation refusée coleta {self.collection_id}: "
                    f"{result.completed_required_fields}/{result.total_required_fields} obligatoires"
                )
                return result

            self._cancel_autosave()
            try:
                await self._persist_locked(payload, status=COMPLETED)
            except DataCollectionStoreError as e:
                logger.error(f"[SESSION] Finalisation coleta {self.collection_id} échouée: {e}")
                self.notifier.notify(ERROR, f"Erro ao concluir coleta: {e}")
                raise DataCollectionSaveError(str(e)) from e

        if self.state == DRAFT:
            self._transition(COMPLETED)
        try:
            await self.store.record_event(
                "complete_data_collection",
                self.record.model_dump(mode="json"),
                user=self.collected_by,
                details={"total_required_fields": result.total_required_fields},
            )
        except DataCollectionStoreError as e:
            logger.error(f"[SESSION] event_log non écrit pour coleta {self.collection_id}: {e}")
        logger.info(f"[SESSION] Coleta {self.collection_id} -> completed")
        self.notifier.notify(SUCCESS, "Coleta de dados concluída!")
        return result

    async def close(self):
        """Fermeture: annule le timer et écrit les modifications en attente"""
        if self.is_ready:
            await self.flush()

    # ==================== VUE ====================

    def view(self, active_section: Optional[str] = None) -> Dict[str, Any]:
        self._require_ready()
        summary = self.completion()
        return {
            "collection_id": self.collection_id,
            "contact_id": self.contact_id,
            "schema_id": self.form.id,
            "status": self.state,
            "dirty": self._dirty,
            "autosave_pending": bool(self.autosave and self.autosave.is_pending(self.record.id)),
            "last_saved_at": self.last_saved_at,
            "collected_at": self.record.collected_at,
            "validation": validation_payload(summary),
            "form": render_form(self.form, self._document, active_section),
            "data_collection": self._document,
        }
