from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from office_core.domains.documents.entities import Document, DocumentKind, content_to_data


def _clean_name(v):
    if v is not None and not v.strip():
        raise ValueError('Name cannot be empty')
    return v.strip() if v else v


class DocumentCreate(BaseModel):
    """Схема для создания документа"""
    kind: DocumentKind
    name: Optional[str] = Field(None, max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)


class DocumentImport(BaseModel):
    """Схема для создания документа с готовым содержимым"""
    kind: DocumentKind
    name: str = Field(..., min_length=1, max_length=255)
    content: Any = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)


class DocumentRename(BaseModel):
    """Схема для переименования"""
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _clean_name(v)


class ContentUpdate(BaseModel):
    """Новое содержимое открытого документа (форма зависит от типа)"""
    content: Any


class DocumentResponse(BaseModel):
    """Схема для ответа с данными документа"""
    id: str
    name: str
    kind: DocumentKind
    content: Any
    created_at: datetime
    saved_at: datetime
    word_count: int
    content_length: int

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            name=document.name,
            kind=document.kind,
            content=content_to_data(document.content),
            created_at=document.created_at,
            saved_at=document.saved_at,
            word_count=document.get_word_count(),
            content_length=document.get_content_length()
        )


class DocumentListResponse(BaseModel):
    """Схема для списка документов"""
    documents: List[DocumentResponse]
    total: int


class OpenRequest(BaseModel):
    document_id: str


class SessionResponse(BaseModel):
    """Состояние сессии редактирования"""
    state: str
    document: Optional[DocumentResponse] = None
    autosave_interval: float


class CellUpdate(BaseModel):
    raw: str = Field("", max_length=10000)


class CellResponse(BaseModel):
    address: str
    raw: str
    display: str


class CellsResponse(BaseModel):
    values: Dict[str, str]
