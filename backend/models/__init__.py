"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Models Package                                                        ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import FieldSchema, FormSchema, ContactDataCollection, etc.     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from .data_collection import (
    NOTES_SECTION_KEY,
    FieldType,
    VALID_FIELD_TYPES,
    CollectionStatus,
    ConditionalOn,
    FieldSchema,
    SectionSchema,
    FormSchema,
    ContactDataCollection,
    ValidationResult,
    # Payloads API
    OpenCollectionRequest,
    FieldChange,
    ListItemChange,
    SectionCreate,
    SectionUpdate,
    FieldCreate,
    FieldUpdate,
    OrderPosition,
)

__all__ = [
    "NOTES_SECTION_KEY",
    "FieldType",
    "VALID_FIELD_TYPES",
    "CollectionStatus",
    "ConditionalOn",
    "FieldSchema",
    "SectionSchema",
    "FormSchema",
    "ContactDataCollection",
    "ValidationResult",
    # Payloads API
    "OpenCollectionRequest",
    "FieldChange",
    "ListItemChange",
    "SectionCreate",
    "SectionUpdate",
    "FieldCreate",
    "FieldUpdate",
    "OrderPosition",
]
