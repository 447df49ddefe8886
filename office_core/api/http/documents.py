from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from typing import Optional

from office_core.api.deps import get_manager, storage_unavailable
from office_core.core.errors import ContentKindMismatch, StorageError
from office_core.domains.documents.entities import DocumentKind, content_from_data
from office_core.domains.documents.schemas import (
    DocumentCreate, DocumentImport, DocumentListResponse, DocumentResponse
)
from office_core.domains.documents.services import DocumentManager

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("/", response_model=DocumentListResponse)
async def list_documents(
    query: str = Query("", max_length=255),
    kind: Optional[DocumentKind] = Query(None),
    manager: DocumentManager = Depends(get_manager)
):
    """Получение списка документов (новые первыми)"""
    documents = manager.search(query, kind)
    return DocumentListResponse(
        documents=[DocumentResponse.from_entity(d) for d in documents],
        total=len(documents)
    )


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    manager: DocumentManager = Depends(get_manager)
):
    """Создание нового документа"""
    try:
        document = await manager.create(document_data.kind, document_data.name)
    except StorageError as e:
        raise storage_unavailable(e)
    return DocumentResponse.from_entity(document)


@router.post("/import", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def import_document(
    document_data: DocumentImport,
    manager: DocumentManager = Depends(get_manager)
):
    """Создание документа с готовым содержимым"""
    try:
        content = content_from_data(document_data.kind, document_data.content)
    except (ContentKindMismatch, KeyError, ValueError, TypeError) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid content: {e}"
        )

    try:
        document = await manager.import_document(document_data.kind, document_data.name, content)
    except StorageError as e:
        raise storage_unavailable(e)
    return DocumentResponse.from_entity(document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    manager: DocumentManager = Depends(get_manager)
):
    """Получение документа по ID"""
    document = manager.get(document_id)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )
    return DocumentResponse.from_entity(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    manager: DocumentManager = Depends(get_manager)
):
    """Удаление документа (повторное удаление не ошибка)"""
    try:
        await manager.delete(document_id)
    except StorageError as e:
        raise storage_unavailable(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/")
async def clear_documents(manager: DocumentManager = Depends(get_manager)):
    """Удаление всех документов"""
    try:
        removed = await manager.clear_all()
    except StorageError as e:
        raise storage_unavailable(e)
    return {"removed": removed}
