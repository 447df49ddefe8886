import logging
from typing import List, Optional, Set

from office_core.core.errors import DocumentNotFound, StorageError
from office_core.db.repositories.document_repository import DocumentRepository
from office_core.domains.documents.entities import Content, Document, DocumentKind
from office_core.domains.session.services import SessionController
from office_core.domains.settings.schemas import UserSettings
from office_core.domains.spreadsheet.references import GridBounds

logger = logging.getLogger(__name__)


class DocumentManager:
    """Сервис для работы с документами

    Держит список документов в памяти (проекция хранилища) и сессию
    редактирования. Список синхронизируется явно после каждой мутации.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        settings: UserSettings,
        bounds: GridBounds = GridBounds()
    ):
        self.repository = repository
        self.documents: List[Document] = []
        # id, удаление которых ещё не дошло до хранилища
        self.deleting: Set[str] = set()
        self.session = SessionController(
            repository, settings, on_update=self.replace, bounds=bounds,
            deleting=self.deleting
        )

    async def load(self) -> List[Document]:
        """Загрузка списка из хранилища"""
        self.documents = await self.repository.list()
        logger.info("Loaded %d documents", len(self.documents))
        return list(self.documents)

    async def create(self, kind: DocumentKind, name: Optional[str] = None) -> Document:
        """Создание документа; он встаёт в начало списка"""
        document = await self.repository.create(kind, name)
        self.documents.insert(0, document.copy())
        return document

    async def import_document(self, kind: DocumentKind, name: str, content: Content) -> Document:
        """Создание документа с готовым содержимым"""
        document = await self.repository.import_document(kind, name, content)
        self.documents.insert(0, document.copy())
        return document

    def get(self, document_id: str) -> Optional[Document]:
        """Документ из списка в памяти"""
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    async def open(self, document_id: str) -> Document:
        """Открытие документа из списка в сессии"""
        document = self.get(document_id)
        if document is None or document_id in self.deleting:
            raise DocumentNotFound(document_id)
        return self.session.open(document)

    def search(self, query: str = "", kind: Optional[DocumentKind] = None) -> List[Document]:
        """Фильтр списка по имени (без учёта регистра) и типу"""
        needle = query.strip().lower()
        return [
            document for document in self.documents
            if (kind is None or document.kind is kind)
            and (not needle or needle in document.name.lower())
        ]

    async def delete(self, document_id: str) -> bool:
        """Удаление документа из хранилища и списка

        До первого await документ уходит из списка и помечается как
        удаляемый, а таймер автосохранения отменяется. Если хранилище
        отказало, документ возвращается в список.
        """
        if self.session.is_open(document_id):
            self.session.close()

        index = next((i for i, d in enumerate(self.documents) if d.id == document_id), None)
        removed = self.documents.pop(index) if index is not None else None
        self.deleting.add(document_id)
        try:
            existed = await self.repository.delete(document_id)
        except StorageError:
            if removed is not None:
                self.documents.insert(min(index, len(self.documents)), removed)
            raise
        finally:
            self.deleting.discard(document_id)
        return existed

    async def clear_all(self) -> int:
        """Полный сброс: все документы удаляются"""
        self.session.close()
        removed = await self.repository.clear_all()
        self.documents = []
        return removed

    def replace(self, document: Document) -> None:
        """Обновление документа в списке (позиция сохраняется)"""
        if document.id in self.deleting:
            return
        for index, existing in enumerate(self.documents):
            if existing.id == document.id:
                self.documents[index] = document
                return
        self.documents.insert(0, document)

    def apply_settings(self, settings: UserSettings) -> None:
        self.session.apply_settings(settings)
