from fastapi import APIRouter, Depends, HTTPException, status

from office_core.api.deps import get_manager, storage_unavailable
from office_core.core.errors import (
    ContentKindMismatch, DocumentNotFound, SessionClosedError, StorageError
)
from office_core.domains.documents.entities import content_from_data
from office_core.domains.documents.schemas import (
    CellResponse, CellsResponse, CellUpdate, ContentUpdate, DocumentRename,
    DocumentResponse, OpenRequest, SessionResponse
)
from office_core.domains.documents.services import DocumentManager
from office_core.domains.spreadsheet.references import normalize_address

router = APIRouter(prefix="/session", tags=["session"])


def _session_response(manager: DocumentManager) -> SessionResponse:
    session = manager.session
    document = session.active_document
    return SessionResponse(
        state=session.state.value,
        document=DocumentResponse.from_entity(document) if document else None,
        autosave_interval=session.settings.autosave_interval
    )


def _closed(e: SessionClosedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


def _unprocessable(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/", response_model=SessionResponse)
async def get_session(manager: DocumentManager = Depends(get_manager)):
    """Текущее состояние сессии"""
    return _session_response(manager)


@router.post("/open", response_model=SessionResponse)
async def open_document(
    request: OpenRequest,
    manager: DocumentManager = Depends(get_manager)
):
    """Открытие документа для редактирования"""
    try:
        await manager.open(request.document_id)
    except DocumentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )
    except StorageError as e:
        raise storage_unavailable(e)
    return _session_response(manager)


@router.post("/close", response_model=SessionResponse)
async def close_document(manager: DocumentManager = Depends(get_manager)):
    """Закрытие документа без сохранения"""
    manager.session.close()
    return _session_response(manager)


@router.put("/content", response_model=DocumentResponse)
async def update_content(
    update: ContentUpdate,
    manager: DocumentManager = Depends(get_manager)
):
    """Замена содержимого открытого документа"""
    document = manager.session.active_document
    if document is None:
        raise _closed(SessionClosedError("mutate content"))
    try:
        content = content_from_data(document.kind, update.content)
        document = manager.session.mutate_content(content)
    except (ContentKindMismatch, KeyError, ValueError, TypeError) as e:
        raise _unprocessable(e)
    return DocumentResponse.from_entity(document)


@router.put("/name", response_model=DocumentResponse)
async def rename_document(
    update: DocumentRename,
    manager: DocumentManager = Depends(get_manager)
):
    """Переименование открытого документа (сохраняется сразу)"""
    try:
        document = await manager.session.rename(update.name)
    except SessionClosedError as e:
        raise _closed(e)
    except StorageError as e:
        raise storage_unavailable(e)
    return DocumentResponse.from_entity(document)


@router.post("/save", response_model=DocumentResponse)
async def save_document(manager: DocumentManager = Depends(get_manager)):
    """Явное сохранение открытого документа"""
    try:
        document = await manager.session.save()
    except SessionClosedError as e:
        raise _closed(e)
    except StorageError as e:
        raise storage_unavailable(e)
    return DocumentResponse.from_entity(document)


@router.get("/cells", response_model=CellsResponse)
async def get_cells(manager: DocumentManager = Depends(get_manager)):
    """Вычисленные значения всех ячеек открытой таблицы"""
    try:
        values = manager.session.cell_values()
    except SessionClosedError as e:
        raise _closed(e)
    except ContentKindMismatch as e:
        raise _unprocessable(e)
    return CellsResponse(values=values)


@router.get("/cells/{address}", response_model=CellResponse)
async def get_cell(address: str, manager: DocumentManager = Depends(get_manager)):
    """Ячейка: сырое и вычисленное значение"""
    try:
        display = manager.session.cell_value(address)
        raw = manager.session.active_document.content.raw(address)
    except SessionClosedError as e:
        raise _closed(e)
    except (ContentKindMismatch, ValueError) as e:
        raise _unprocessable(e)
    return CellResponse(address=normalize_address(address), raw=raw, display=display)


@router.put("/cells/{address}", response_model=CellResponse)
async def set_cell(
    address: str,
    update: CellUpdate,
    manager: DocumentManager = Depends(get_manager)
):
    """Изменение ячейки; пустое значение очищает её"""
    try:
        document = manager.session.set_cell(address, update.raw)
        display = manager.session.cell_value(address)
    except SessionClosedError as e:
        raise _closed(e)
    except (ContentKindMismatch, ValueError) as e:
        raise _unprocessable(e)
    return CellResponse(
        address=normalize_address(address),
        raw=document.content.raw(address),
        display=display
    )
