import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TypeVar

from office_core.db.repositories.keyed_store import DOCUMENTS, KeyedStore
from office_core.domains.documents.entities import (
    Content, Document, DocumentKind, content_from_data, content_to_data
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentRepository:
    """Репозиторий для работы с документами

    Сохранения одного документа выполняются строго в порядке вызова:
    снимок берётся в момент вызова save(), запись идёт под FIFO-замком
    этого id. Удаление встаёт в ту же очередь, clear_all дожидается
    всех начатых записей.
    """

    def __init__(self, store: KeyedStore):
        self.store = store
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self._in_flight: Set[asyncio.Future] = set()
        self._writes_open = asyncio.Event()
        self._writes_open.set()

    async def create(self, kind: DocumentKind, name: Optional[str] = None) -> Document:
        """Создание нового документа с пустым содержимым"""
        document = Document.create_document(kind=kind, name=name)
        await self.store.put(DOCUMENTS, self._to_record(document))
        logger.info("Created %s document %s", kind.value, document.id)
        return document

    async def import_document(self, kind: DocumentKind, name: str, content: Content) -> Document:
        """Создание документа с готовым содержимым"""
        document = Document.create_document(kind=kind, name=name, content=content)
        await self.store.put(DOCUMENTS, self._to_record(document))
        logger.info("Imported %s document %s", kind.value, document.id)
        return document

    async def get(self, document_id: str) -> Optional[Document]:
        """Получение документа по id"""
        record = await self.store.get(DOCUMENTS, document_id)
        return self._to_domain(record) if record else None

    async def list(self) -> List[Document]:
        """Все документы, последние сохранённые первыми"""
        records = await self.store.get_all(DOCUMENTS)
        documents = [self._to_domain(record) for record in records]
        documents.sort(key=lambda doc: doc.saved_at, reverse=True)
        return documents

    async def save(self, document: Document) -> Document:
        """Сохранение (upsert) документа; saved_at обновляется

        Возвращает сохранённую копию, переданный объект не меняется.
        """
        snapshot = document.copy()
        snapshot.stamp()
        record = self._to_record(snapshot)

        await self._writes_open.wait()
        # Отмена вызывающего не прерывает начатую запись: замок держится до её конца
        await asyncio.shield(self._track(
            self._locked(document.id, self.store.put, DOCUMENTS, record)
        ))

        logger.debug("Saved document %s at %s", snapshot.id, snapshot.saved_at.isoformat())
        return snapshot

    async def delete(self, document_id: str) -> bool:
        """Удаление документа; повторное удаление не ошибка"""
        await self._writes_open.wait()
        existed = await asyncio.shield(self._track(
            self._locked(document_id, self.store.delete, DOCUMENTS, document_id)
        ))

        if existed:
            logger.info("Deleted document %s", document_id)
        return existed

    async def clear_all(self) -> int:
        """Удаление всех документов (необратимо)

        Новые записи ждут окончания очистки; уже начатые дописываются до неё.
        """
        self._writes_open.clear()
        try:
            while self._in_flight:
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            removed = await self.store.clear(DOCUMENTS)
        finally:
            self._writes_open.set()

        logger.warning("Removed all documents (%d)", removed)
        return removed

    def _track(self, operation: Awaitable[T]) -> "asyncio.Future[T]":
        task = asyncio.ensure_future(operation)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _locked(self, document_id: str, operation: Callable[..., Awaitable[T]], *args) -> T:
        """Операция под FIFO-замком id; свободный замок удаляется"""
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._users[document_id] = self._users.get(document_id, 0) + 1
        try:
            async with lock:
                return await operation(*args)
        finally:
            self._users[document_id] -= 1
            if not self._users[document_id]:
                del self._users[document_id]
                del self._locks[document_id]

    def _to_record(self, document: Document) -> Dict[str, Any]:
        """Доменная сущность -> запись хранилища"""
        return {
            "id": document.id,
            "name": document.name,
            "kind": document.kind.value,
            "content": content_to_data(document.content),
            "created_at": document.created_at.isoformat(),
            "saved_at": document.saved_at.isoformat(),
        }

    def _to_domain(self, record: Dict[str, Any]) -> Document:
        """Запись хранилища -> доменная сущность"""
        kind = DocumentKind(record["kind"])
        return Document(
            id=record["id"],
            name=record["name"],
            kind=kind,
            content=content_from_data(kind, record.get("content")),
            created_at=datetime.fromisoformat(record["created_at"]),
            saved_at=datetime.fromisoformat(record["saved_at"])
        )
