import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set

from office_core.core.errors import (
    ContentKindMismatch, DocumentNotFound, SessionClosedError, StorageError
)
from office_core.db.repositories.document_repository import DocumentRepository
from office_core.domains.documents.entities import (
    Content, Document, DocumentKind, SpreadsheetContent
)
from office_core.domains.session.entities import Session, SessionState
from office_core.domains.settings.schemas import UserSettings
from office_core.domains.spreadsheet.engine import FormulaEngine
from office_core.domains.spreadsheet.references import GridBounds

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """Периодические задачи автосохранения, по одной на id документа"""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(
        self,
        document_id: str,
        interval: float,
        callback: Callable[[str], Awaitable[object]]
    ) -> asyncio.Task:
        """Запуск (или перезапуск) таймера для документа"""
        self.cancel(document_id)
        task = asyncio.get_running_loop().create_task(
            self._run(document_id, interval, callback),
            name=f"autosave-{document_id}"
        )
        self._tasks[document_id] = task
        return task

    async def _run(self, document_id, interval, callback) -> None:
        while True:
            await asyncio.sleep(interval)
            await callback(document_id)

    def cancel(self, document_id: str) -> bool:
        """Отмена таймера; выполняется синхронно, до любых await вызывающего"""
        task = self._tasks.pop(document_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug("Autosave for %s cancelled", document_id)
        return True

    def cancel_all(self) -> None:
        for document_id in list(self._tasks):
            self.cancel(document_id)

    def is_scheduled(self, document_id: str) -> bool:
        task = self._tasks.get(document_id)
        return task is not None and not task.done()


class SessionController:
    """Сессия редактирования: не более одного открытого документа

    Правки содержимого идут только в память (и в список документов
    через on_update); в хранилище документ попадает при автосохранении,
    переименовании и явном save().
    """

    def __init__(
        self,
        repository: DocumentRepository,
        settings: UserSettings,
        on_update: Optional[Callable[[Document], None]] = None,
        bounds: GridBounds = GridBounds(),
        scheduler: Optional[AutosaveScheduler] = None,
        deleting: Optional[Set[str]] = None
    ):
        self.repository = repository
        self.settings = settings
        self.bounds = bounds
        self.scheduler = scheduler or AutosaveScheduler()
        self.session = Session()
        self._on_update = on_update
        # Документы, удаление которых ещё выполняется
        self._deleting = deleting if deleting is not None else set()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def active_document(self) -> Optional[Document]:
        return self.session.document

    def is_open(self, document_id: str) -> bool:
        return self.session.is_active(document_id)

    def open(self, document: Document) -> Document:
        """Открытие документа; ранее открытый закрывается"""
        if document.id in self._deleting:
            raise DocumentNotFound(document.id)
        if self.session.document is not None:
            self.close()

        self.session.document = document.copy()
        self._schedule_autosave()
        logger.info("Opened document %s (%s)", document.id, document.kind.value)
        return self.session.document

    def close(self) -> None:
        """Закрытие без сохранения: последнее автосохранение определяет сохранность"""
        document = self.session.document
        if document is None:
            return
        self.scheduler.cancel(document.id)
        self.session.reset()
        logger.info("Closed document %s", document.id)

    def mutate_content(self, content: Content) -> Document:
        """Замена содержимого активного документа (без записи в хранилище)"""
        document = self._require_open("mutate content")
        document.update_content(content)
        self._publish(document)
        return document

    def set_cell(self, address: str, raw: str) -> Document:
        """Изменение одной ячейки таблицы; пустое значение очищает ячейку"""
        content = self._spreadsheet_content("set cell")
        return self.mutate_content(content.with_cell(address, raw))

    def cell_value(self, address: str) -> str:
        """Отображаемое значение ячейки, вычисленное заново"""
        content = self._spreadsheet_content("read cell")
        return FormulaEngine(content.cells, self.bounds).display(address)

    def cell_values(self) -> Dict[str, str]:
        """Отображаемые значения всех непустых ячеек за один проход"""
        content = self._spreadsheet_content("read cells")
        return FormulaEngine(content.cells, self.bounds).display_all()

    async def rename(self, name: str) -> Document:
        """Переименование с немедленным сохранением"""
        document = self._require_open("rename")
        document.update_name(name)
        self._publish(document)
        return await self._save(document)

    async def save(self) -> Document:
        """Явное сохранение активного документа"""
        document = self._require_open("save")
        return await self._save(document)

    async def tick(self, document_id: Optional[str] = None) -> Optional[Document]:
        """Автосохранение: безусловная запись текущего документа

        Закрытая сессия или чужой id: ничего не делаем. Ошибка хранилища
        логируется, следующий тик повторит попытку.
        """
        document = self.session.document
        if document is None or (document_id is not None and document.id != document_id):
            logger.debug("Stale autosave tick for %s ignored", document_id)
            return None
        if document.id in self._deleting:
            logger.debug("Autosave of %s skipped, deletion in progress", document.id)
            return None
        try:
            return await self._save(document)
        except StorageError as exc:
            logger.warning("Autosave of %s failed, retrying on next tick: %s", document.id, exc)
            return None

    def apply_settings(self, settings: UserSettings) -> None:
        """Новые настройки; таймер перезапускается с новым интервалом"""
        self.settings = settings
        if self.session.document is not None:
            self.scheduler.cancel(self.session.document.id)
            self._schedule_autosave()

    def _schedule_autosave(self) -> None:
        document = self.session.document
        interval = self.settings.autosave_interval
        if document is None or not interval > 0:
            self.session.autosave_task = None
            return
        self.session.autosave_task = self.scheduler.start(document.id, interval, self.tick)

    async def _save(self, document: Document) -> Document:
        saved = await self.repository.save(document)
        # Отметка сохранения возвращается в открытый документ и в список
        if self.session.document is document:
            document.stamp(saved.saved_at)
            self._publish(document)
        return saved

    def _require_open(self, operation: str) -> Document:
        if self.session.document is None:
            raise SessionClosedError(operation)
        return self.session.document

    def _spreadsheet_content(self, operation: str) -> SpreadsheetContent:
        document = self._require_open(operation)
        if not isinstance(document.content, SpreadsheetContent):
            raise ContentKindMismatch(document.kind, DocumentKind.SPREADSHEET)
        return document.content

    def _publish(self, document: Document) -> None:
        if self._on_update is not None:
            self._on_update(document.copy())
