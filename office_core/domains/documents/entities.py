import copy
import html
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from office_core.core.errors import ContentKindMismatch
from office_core.domains.spreadsheet.formulas import Formula, is_formula, parse_formula
from office_core.domains.spreadsheet.references import normalize_address

DEFAULT_SLIDE_BACKGROUND = "#1e1e22"
_TAG_PATTERN = re.compile(r"<[^>]+>")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentKind(Enum):
    """Тип документа; задаётся при создании и не меняется"""
    RICH_TEXT = "rich_text"
    SPREADSHEET = "spreadsheet"
    SLIDE_DECK = "slide_deck"

    @property
    def label(self) -> str:
        return {
            DocumentKind.RICH_TEXT: "document",
            DocumentKind.SPREADSHEET: "spreadsheet",
            DocumentKind.SLIDE_DECK: "presentation",
        }[self]


@dataclass
class CellEntry:
    """Ячейка таблицы: сырое значение и разобранная формула

    Вычисленное значение здесь не хранится.
    """
    raw: str
    formula: Optional[Formula] = field(default=None, compare=False)

    @classmethod
    def from_raw(cls, raw: str) -> "CellEntry":
        if not isinstance(raw, str):
            raise TypeError(f"Cell value must be a string, got {type(raw).__name__}")
        return cls(raw=raw, formula=parse_formula(raw) if is_formula(raw) else None)


@dataclass
class Slide:
    """Слайд презентации"""
    id: str
    title: str = ""
    body: str = ""
    background: str = DEFAULT_SLIDE_BACKGROUND

    @classmethod
    def create(cls, title: str = "New Slide", body: str = "Content here") -> "Slide":
        return cls(id=uuid.uuid4().hex, title=title, body=body)


@dataclass
class RichTextContent:
    markup: str = ""
    kind: ClassVar[DocumentKind] = DocumentKind.RICH_TEXT


@dataclass
class SpreadsheetContent:
    """Разреженная карта ячеек: нет ключа, значит пустая ячейка"""
    cells: Dict[str, CellEntry] = field(default_factory=dict)
    kind: ClassVar[DocumentKind] = DocumentKind.SPREADSHEET

    def with_cell(self, address: str, raw: str) -> "SpreadsheetContent":
        """Копия карты с изменённой ячейкой; пустое значение удаляет ячейку"""
        key = normalize_address(address)
        cells = dict(self.cells)
        if raw == "":
            cells.pop(key, None)
        else:
            cells[key] = CellEntry.from_raw(raw)
        return SpreadsheetContent(cells=cells)

    def raw(self, address: str) -> str:
        entry = self.cells.get(normalize_address(address))
        return entry.raw if entry else ""


@dataclass
class SlideDeckContent:
    slides: List[Slide] = field(default_factory=list)
    kind: ClassVar[DocumentKind] = DocumentKind.SLIDE_DECK


Content = Union[RichTextContent, SpreadsheetContent, SlideDeckContent]


def default_content(kind: DocumentKind) -> Content:
    """Пустое содержимое для типа документа"""
    if kind is DocumentKind.RICH_TEXT:
        return RichTextContent()
    if kind is DocumentKind.SPREADSHEET:
        return SpreadsheetContent()
    if kind is DocumentKind.SLIDE_DECK:
        return SlideDeckContent(slides=[Slide(id="1", title="New Presentation", body="Click to edit")])
    raise TypeError(f"Unknown document kind: {kind!r}")


def content_to_data(content: Content) -> Any:
    """Содержимое -> JSON-совместимые данные"""
    if isinstance(content, RichTextContent):
        return content.markup
    if isinstance(content, SpreadsheetContent):
        return {address: {"raw": entry.raw} for address, entry in content.cells.items()}
    if isinstance(content, SlideDeckContent):
        return [
            {"id": s.id, "title": s.title, "body": s.body, "background": s.background}
            for s in content.slides
        ]
    raise TypeError(f"Unknown content variant: {content!r}")


def content_from_data(kind: DocumentKind, data: Any) -> Content:
    """JSON-данные -> содержимое нужного типа

    Данные чужой формы дают ContentKindMismatch, нестроковые значения
    ячеек и полей слайда дают ValueError.
    """
    expected = {
        DocumentKind.RICH_TEXT: str,
        DocumentKind.SPREADSHEET: dict,
        DocumentKind.SLIDE_DECK: list,
    }.get(kind)
    if data is not None and expected is not None and not isinstance(data, expected):
        raise ContentKindMismatch(kind, type(data).__name__)

    if kind is DocumentKind.RICH_TEXT:
        return RichTextContent(markup=data or "")
    if kind is DocumentKind.SPREADSHEET:
        return SpreadsheetContent(cells={
            normalize_address(address): CellEntry.from_raw(_cell_raw(address, entry))
            for address, entry in (data or {}).items()
        })
    if kind is DocumentKind.SLIDE_DECK:
        return SlideDeckContent(slides=[_slide(item) for item in (data or [])])
    raise TypeError(f"Unknown document kind: {kind!r}")


def _cell_raw(address: str, entry: Any) -> str:
    raw = entry.get("raw") if isinstance(entry, dict) else entry
    if not isinstance(raw, str):
        raise ValueError(f"Cell {address}: raw value must be a string")
    return raw


def _slide(item: Any) -> Slide:
    if not isinstance(item, dict):
        raise ValueError(f"Slide must be an object, got {type(item).__name__}")
    fields = {
        "title": item.get("title", ""),
        "body": item.get("body", ""),
        "background": item.get("background", DEFAULT_SLIDE_BACKGROUND),
    }
    for name, value in fields.items():
        if not isinstance(value, str):
            raise ValueError(f"Slide {name} must be a string")
    return Slide(id=str(item["id"]), **fields)


class Document:
    """Сущность документа: имя, тип и содержимое, соответствующее типу"""

    def __init__(
        self,
        id: str,
        name: str,
        kind: DocumentKind,
        content: Optional[Content] = None,
        created_at: Optional[datetime] = None,
        saved_at: Optional[datetime] = None
    ):
        self.id = id
        self.name = name
        self.kind = kind
        self._content = self._checked(content if content is not None else default_content(kind))
        self.created_at = created_at or utcnow()
        self.saved_at = saved_at or self.created_at

    @property
    def content(self) -> Content:
        return self._content

    @content.setter
    def content(self, content: Content) -> None:
        self._content = self._checked(content)

    def _checked(self, content: Content) -> Content:
        actual = getattr(content, "kind", None)
        if actual is not self.kind:
            raise ContentKindMismatch(self.kind, actual)
        return content

    def stamp(self, at: Optional[datetime] = None) -> datetime:
        """Отметка сохранения; saved_at не убывает"""
        self.saved_at = max(at or utcnow(), self.saved_at)
        return self.saved_at

    def update_content(self, content: Content) -> None:
        """Замена содержимого"""
        self.content = content
        self.stamp()

    def update_name(self, name: str) -> None:
        """Переименование"""
        self.name = name
        self.stamp()

    def get_text(self) -> str:
        """Плоский текст документа для статистики"""
        content = self.content
        if isinstance(content, RichTextContent):
            return html.unescape(_TAG_PATTERN.sub(" ", content.markup))
        if isinstance(content, SpreadsheetContent):
            return " ".join(entry.raw for entry in content.cells.values())
        if isinstance(content, SlideDeckContent):
            return " ".join(f"{s.title} {s.body}" for s in content.slides)
        raise TypeError(f"Unknown content variant: {content!r}")

    def get_word_count(self) -> int:
        """Подсчет количества слов в документе"""
        text = self.get_text()
        if not text.strip():
            return 0
        return len(text.split())

    def get_content_length(self) -> int:
        """Количество символов текста"""
        return len(" ".join(self.get_text().split()))

    def copy(self) -> "Document":
        """Независимая копия (снимок)"""
        return Document(
            id=self.id,
            name=self.name,
            kind=self.kind,
            content=copy.deepcopy(self.content),
            created_at=self.created_at,
            saved_at=self.saved_at
        )

    @classmethod
    def create_document(cls, kind: DocumentKind, name: Optional[str] = None,
                        content: Optional[Content] = None) -> "Document":
        """Создание нового документа"""
        now = utcnow()
        return cls(
            id=uuid.uuid4().hex,
            name=name or f"Untitled {kind.label}",
            kind=kind,
            content=content,
            created_at=now,
            saved_at=now
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Document(id={self.id}, name={self.name}, kind={self.kind.value})"
