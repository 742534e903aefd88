"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Modèles Coleta de Dados (formulaire dynamique)                        ║
║                                                                              ║
║  Un schéma de formulaire = sections ordonnées, chacune avec ses champs.      ║
║  Chaque champ pointe vers un chemin (data_path) dans le document libre       ║
║  `data_collection` d'un contact.                                             ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - Le schéma est descriptif: clés inconnues du document ignorées             ║
║  - La section "notes" est hors navigation et hors calcul de complétion       ║
║  - status: draft -> completed (terminal)                                     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum


NOTES_SECTION_KEY = "notes"


class FieldType(str, Enum):
    """Types de champ supportés par le moteur"""
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    TEXTAREA = "textarea"
    BOOLEAN = "boolean"
    SELECT = "select"
    SEARCHABLE_SELECT = "searchable_select"
    MULTI_SELECT = "multi_select"
    DATE = "date"
    COMPUTED = "computed"
    LIST = "list"


VALID_FIELD_TYPES = [t.value for t in FieldType]


class CollectionStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


class ConditionalOn(BaseModel):
    """Champ visible seulement si document[field] == value (égalité stricte)"""
    field: str
    value: Any = None


class FieldSchema(BaseModel):
    """
    Description d'un champ du formulaire.

    options (sac spécifique au type):
      - select / multi_select / searchable_select: items
      - list: itemSchema {cle: type}, typeOptions, <cle>Options
      - computed: sourceType, sourceFields | sourceField + sumKey
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    section_id: str = ""
    key: str
    label: str
    field_type: FieldType
    data_path: str
    is_required: bool = False
    description: Optional[str] = None
    placeholder: Optional[str] = None
    default_value: Any = None
    conditional_on: Optional[ConditionalOn] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    validation: Dict[str, Any] = Field(default_factory=dict)
    order_position: int = 0
    is_active: bool = True

    @field_validator("options", "validation", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return v or {}


class SectionSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    schema_id: str = ""
    key: str
    title: str
    description: Optional[str] = None
    icon: str = "FileText"
    order_position: int = 0
    is_active: bool = True
    fields: List[FieldSchema] = Field(default_factory=list)

    @property
    def is_notes(self) -> bool:
        return self.key == NOTES_SECTION_KEY


class FormSchema(BaseModel):
    """Schéma actif complet. Chargé une fois, lu seulement par la session."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str = ""
    version: str = "1"
    is_active: bool = True
    sections: List[SectionSchema] = Field(default_factory=list)

    def all_fields(self) -> List[FieldSchema]:
        return [f for s in self.sections for f in s.fields]

    def main_sections(self) -> List[SectionSchema]:
        return [s for s in self.sections if not s.is_notes]

    def notes_section(self) -> Optional[SectionSchema]:
        for section in self.sections:
            if section.is_notes:
                return section
        return None

    def find_field(self, key: str) -> Optional[FieldSchema]:
        for field in self.all_fields():
            if field.key == key:
                return field
        return None

    def find_field_by_path(self, data_path: str) -> Optional[FieldSchema]:
        for field in self.all_fields():
            if field.data_path == data_path:
                return field
        return None


class ContactDataCollection(BaseModel):
    """Document contact_data_collections en base"""
    model_config = ConfigDict(extra="ignore")

    id: str
    contact_id: str
    schema_id: str = ""
    collected_by: Optional[str] = None
    status: CollectionStatus = CollectionStatus.DRAFT
    data_collection: Dict[str, Any] = Field(default_factory=dict)
    collected_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("data_collection", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return v or {}


class ValidationResult(BaseModel):
    is_valid: bool
    total_required_fields: int
    completed_required_fields: int
    errors: Dict[str, str] = Field(default_factory=dict)

    @property
    def progress(self) -> float:
        if self.total_required_fields == 0:
            return 0.0
        return self.completed_required_fields / self.total_required_fields * 100


# ==================== PAYLOADS API ====================

class OpenCollectionRequest(BaseModel):
    collected_by: Optional[str] = None


class FieldChange(BaseModel):
    data_path: str
    value: Any = None


class ListItemChange(BaseModel):
    key: str
    value: Any = None


class SectionCreate(BaseModel):
    schema_id: str
    key: str
    title: str
    description: Optional[str] = None
    icon: str = "FileText"
    order_position: int = 0
    is_active: bool = True


class SectionUpdate(BaseModel):
    key: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    order_position: Optional[int] = None
    is_active: Optional[bool] = None


class FieldCreate(BaseModel):
    section_id: str
    key: str
    label: str
    field_type: FieldType
    data_path: str
    description: Optional[str] = None
    placeholder: Optional[str] = None
    default_value: Any = None
    conditional_on: Optional[ConditionalOn] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    validation: Dict[str, Any] = Field(default_factory=dict)
    order_position: int = 0
    is_required: bool = False
    is_active: bool = True


class FieldUpdate(BaseModel):
    key: Optional[str] = None
    label: Optional[str] = None
    field_type: Optional[FieldType] = None
    data_path: Optional[str] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    default_value: Any = None
    conditional_on: Optional[ConditionalOn] = None
    options: Optional[Dict[str, Any]] = None
    validation: Optional[Dict[str, Any]] = None
    order_position: Optional[int] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None


class OrderPosition(BaseModel):
    id: str
    order_position: int
