"""
CRM - Routes Coleta de Dados (session d'édition par contact)

Chaque réponse renvoie la vue complète de la session (onglets, sections,
champs évalués, notes, validation) + les notifications en attente.
L'ouverture est implicite: toute route ouvre la session si besoin.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional

from models import FieldChange, ListItemChange, OpenCollectionRequest
from services.collection_session import CollectionSession
from services.data_collection_errors import (
    DataCollectionError,
    DataCollectionLoadError,
    DataCollectionSaveError,
    InvalidFieldValueError,
    SchemaNotFoundError,
    SessionStateError,
    UnknownFieldError,
)
from services.notifier import MemoryNotifier
from services.session_registry import SessionRegistry
from services.validation_engine import validation_payload

router = APIRouter(prefix="/data-collection", tags=["DataCollection"])


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def http_error(e: DataCollectionError) -> HTTPException:
    """Exception du moteur -> code HTTP"""
    if isinstance(e, DataCollectionLoadError):
        if isinstance(e.__cause__, SchemaNotFoundError):
            return HTTPException(status_code=404, detail=str(e))
        return HTTPException(status_code=502, detail=f"Erro ao carregar coleta: {e}")
    if isinstance(e, UnknownFieldError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidFieldValueError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, SessionStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, DataCollectionSaveError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def drain_notifications(session: CollectionSession) -> list:
    if isinstance(session.notifier, MemoryNotifier):
        return session.notifier.drain()
    return []


def session_response(session: CollectionSession, active_section: Optional[str] = None) -> dict:
    view = session.view(active_section)
    view["notifications"] = drain_notifications(session)
    return view


async def open_session(registry: SessionRegistry, contact_id: str, collected_by: Optional[str] = None) -> CollectionSession:
    try:
        return await registry.open(contact_id, collected_by)
    except DataCollectionError as e:
        raise http_error(e)


# ==================== SCHÉMA ====================

@router.get("/schema")
async def get_active_schema(registry: SessionRegistry = Depends(get_registry)):
    """Schéma actif (sections + champs triés)"""
    try:
        form = await registry.store.fetch_form_schema()
    except DataCollectionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if form is None:
        raise HTTPException(status_code=404, detail="Nenhum formulário de coleta configurado.")
    return {"schema": form.model_dump(mode="json")}


# ==================== SESSION ====================

@router.post("/contacts/{contact_id}/open")
async def open_collection(
    contact_id: str,
    data: Optional[OpenCollectionRequest] = None,
    registry: SessionRegistry = Depends(get_registry)
):
    """Charge (ou crée) la coleta du contact"""
    session = await open_session(registry, contact_id, data.collected_by if data else None)
    return session_response(session)


@router.post("/contacts/{contact_id}/close")
async def close_collection(contact_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Écrit les modifications en attente et libère la session du contact"""
    session = await registry.close(contact_id)
    if session is None:
        return {"contact_id": contact_id, "closed": False, "notifications": []}
    if session.dirty:
        raise HTTPException(
            status_code=502,
            detail={"message": "Erro ao salvar alterações pendentes", "notifications": drain_notifications(session)}
        )
    return {
        "contact_id": contact_id,
        "closed": True,
        "last_saved_at": session.last_saved_at,
        "notifications": drain_notifications(session),
    }


@router.get("/contacts/{contact_id}")
async def get_collection(
    contact_id: str,
    section: Optional[str] = Query(None, description="Onglet actif (clé de section)"),
    registry: SessionRegistry = Depends(get_registry)
):
    session = await open_session(registry, contact_id)
    return session_response(session, section)


@router.patch("/contacts/{contact_id}/fields")
async def change_field(
    contact_id: str,
    data: FieldChange,
    registry: SessionRegistry = Depends(get_registry)
):
    """Saisie d'un champ (valeur convertie selon le type du champ)"""
    session = await open_session(registry, contact_id)
    try:
        session.apply_field_input(data.data_path, data.value)
    except DataCollectionError as e:
        raise http_error(e)
    return session_response(session)


# ==================== LISTES ====================

@router.post("/contacts/{contact_id}/lists/{field_key}/items")
async def add_list_item(
    contact_id: str,
    field_key: str,
    registry: SessionRegistry = Depends(get_registry)
):
    session = await open_session(registry, contact_id)
    try:
        session.add_list_item(field_key)
    except DataCollectionError as e:
        raise http_error(e)
    return session_response(session)


@router.patch("/contacts/{contact_id}/lists/{field_key}/items/{index}")
async def edit_list_item(
    contact_id: str,
    field_key: str,
    index: int,
    data: ListItemChange,
    registry: SessionRegistry = Depends(get_registry)
):
    session = await open_session(registry, contact_id)
    try:
        session.edit_list_item(field_key, index, data.key, data.value)
    except DataCollectionError as e:
        raise http_error(e)
    return session_response(session)


@router.delete("/contacts/{contact_id}/lists/{field_key}/items/{index}")
async def remove_list_item(
    contact_id: str,
    field_key: str,
    index: int,
    registry: SessionRegistry = Depends(get_registry)
):
    session = await open_session(registry, contact_id)
    try:
        session.remove_list_item(field_key, index)
    except DataCollectionError as e:
        raise http_error(e)
    return session_response(session)


# ==================== SAUVEGARDE ====================

@router.post("/contacts/{contact_id}/save-draft")
async def save_draft(contact_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Sauvegarde manuelle immédiate"""
    session = await open_session(registry, contact_id)
    try:
        await session.save_draft()
    except DataCollectionSaveError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "notifications": drain_notifications(session)}
        )
    return session_response(session)


@router.post("/contacts/{contact_id}/complete")
async def complete_collection(contact_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Finalise la coleta (422 si des champs obligatoires manquent)"""
    session = await open_session(registry, contact_id)
    try:
        result = await session.finalize()
    except DataCollectionSaveError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "notifications": drain_notifications(session)}
        )

    if not result.is_valid:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Preencha todos os campos obrigatórios antes de concluir.",
                "validation": validation_payload(result),
            }
        )
    return session_response(session)
