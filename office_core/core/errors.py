"""
Исключения office_core.

Ошибки формул сюда не входят: это значения ячеек, а не исключения
(см. office_core.domains.spreadsheet.engine.FormulaError).
"""


class StorageError(Exception):
    """Базовая ошибка хранилища"""


class StorageUnavailable(StorageError):
    """Хранилище не инициализировано или не открывается"""


class StorageWriteFailed(StorageError):
    """Запись в хранилище не удалась (квота, IO)"""


class SessionError(Exception):
    """Базовая ошибка сессии редактирования"""


class SessionClosedError(SessionError):
    """Операция требует открытого документа"""

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation}: no document is open")
        self.operation = operation


class ContentKindMismatch(TypeError):
    """Содержимое не соответствует типу документа"""

    def __init__(self, expected, actual):
        super().__init__(f"Content of kind {actual!r} does not match document kind {expected!r}")
        self.expected = expected
        self.actual = actual


class AssistantError(Exception):
    """Базовая ошибка AI-ассистента"""


class AssistantAuthError(AssistantError):
    """Ключ API не задан или отклонён"""


class AssistantNetworkError(AssistantError):
    """Сетевая ошибка или ошибка API"""


class DocumentNotFound(LookupError):
    """Документ с таким id не существует"""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id
