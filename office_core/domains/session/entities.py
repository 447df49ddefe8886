import asyncio
from enum import Enum
from typing import Optional

from office_core.domains.documents.entities import Document


class SessionState(Enum):
    """Состояния сессии редактирования"""
    CLOSED = "closed"
    OPEN = "open"


class Session:
    """Контекст сессии: активный документ и задача автосохранения"""

    def __init__(self):
        self.document: Optional[Document] = None
        self.autosave_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SessionState:
        return SessionState.OPEN if self.document is not None else SessionState.CLOSED

    def is_active(self, document_id: str) -> bool:
        """Открыт ли сейчас документ с этим id"""
        return self.document is not None and self.document.id == document_id

    def reset(self) -> None:
        self.document = None
        self.autosave_task = None

    def __repr__(self) -> str:
        document_id = self.document.id if self.document else None
        return f"Session(state={self.state.value}, document={document_id})"
