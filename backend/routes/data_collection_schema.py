"""
CRM - Routes Builder du formulaire de coleta (admin)

Sections et champs du schéma: CRUD + réordonnancement.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from typing import List

from models import FieldCreate, FieldUpdate, OrderPosition, SectionCreate, SectionUpdate
from services.data_collection_errors import DataCollectionStoreError, SchemaItemNotFoundError
from services.schema_admin import SchemaAdmin

router = APIRouter(prefix="/data-collection-schema", tags=["DataCollectionSchema"])


def get_schema_admin(request: Request) -> SchemaAdmin:
    return request.app.state.schema_admin


@router.get("")
async def list_schemas(admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        schemas = await admin.list_schemas()
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"schemas": schemas, "count": len(schemas)}


# ==================== SECTIONS ====================

@router.get("/{schema_id}/sections")
async def list_sections(schema_id: str, admin: SchemaAdmin = Depends(get_schema_admin)):
    """Sections du schéma avec leurs champs (actifs ou non)"""
    try:
        sections = await admin.list_sections(schema_id)
        for section in sections:
            section["fields"] = await admin.list_fields(section["id"])
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"sections": sections, "count": len(sections)}


@router.post("/sections")
async def create_section(data: SectionCreate, admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        section = await admin.create_section(data)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "section": section}


# Déclaré avant /sections/{section_id} pour ne pas être capturé
@router.put("/sections/reorder")
async def reorder_sections(positions: List[OrderPosition], admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        updated = await admin.reorder_sections(positions)
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "updated": updated}


@router.put("/sections/{section_id}")
async def update_section(section_id: str, data: SectionUpdate, admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        section = await admin.update_section(section_id, data)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "section": section}


@router.delete("/sections/{section_id}")
async def delete_section(section_id: str, admin: SchemaAdmin = Depends(get_schema_admin)):
    """Supprime la section ET ses champs"""
    try:
        deleted_fields = await admin.delete_section(section_id)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "deleted_id": section_id, "deleted_fields": deleted_fields}


# ==================== CHAMPS ====================

@router.post("/fields")
async def create_field(data: FieldCreate, admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        field = await admin.create_field(data)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "field": field}


@router.put("/fields/reorder")
async def reorder_fields(positions: List[OrderPosition], admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        updated = await admin.reorder_fields(positions)
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "updated": updated}


@router.put("/fields/{field_id}")
async def update_field(field_id: str, data: FieldUpdate, admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        field = await admin.update_field(field_id, data)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "field": field}


@router.delete("/fields/{field_id}")
async def delete_field(field_id: str, admin: SchemaAdmin = Depends(get_schema_admin)):
    try:
        await admin.delete_field(field_id)
    except SchemaItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataCollectionStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "deleted_id": field_id}
