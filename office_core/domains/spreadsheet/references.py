import re
from dataclasses import dataclass
from typing import Iterator, Optional

# Ссылка на ячейку: буквы столбца + номер строки с единицы
CELL_PATTERN = re.compile(r"^([A-Z]+)([1-9][0-9]*)$")


@dataclass(frozen=True)
class GridBounds:
    """Границы адресуемой сетки"""
    columns: int = 26
    rows: int = 100

    def contains(self, address: "CellAddress") -> bool:
        return 1 <= address.column <= self.columns and 1 <= address.row <= self.rows


@dataclass(frozen=True, order=True)
class CellAddress:
    """Адрес ячейки; столбец и строка нумеруются с единицы"""
    column: int
    row: int

    @property
    def label(self) -> str:
        return f"{column_label(self.column)}{self.row}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class CellRange:
    """Прямоугольный диапазон, углы нормализованы"""
    start: CellAddress
    end: CellAddress

    @classmethod
    def between(cls, first: CellAddress, second: CellAddress) -> "CellRange":
        """Диапазон между двумя углами в любом порядке"""
        return cls(
            start=CellAddress(min(first.column, second.column), min(first.row, second.row)),
            end=CellAddress(max(first.column, second.column), max(first.row, second.row)),
        )

    def cells(self) -> Iterator[CellAddress]:
        """Ячейки диапазона построчно"""
        for row in range(self.start.row, self.end.row + 1):
            for column in range(self.start.column, self.end.column + 1):
                yield CellAddress(column, row)

    def within(self, bounds: GridBounds) -> bool:
        return bounds.contains(self.start) and bounds.contains(self.end)

    def __str__(self) -> str:
        return f"{self.start.label}:{self.end.label}"


def column_index(letters: str) -> int:
    """A -> 1, Z -> 26, AA -> 27"""
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def column_label(index: int) -> str:
    """1 -> A, 27 -> AA"""
    letters = ""
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def parse_address(text: str) -> Optional[CellAddress]:
    """Разбор адреса вида A1; None для некорректной строки"""
    match = CELL_PATTERN.match(text.strip().upper())
    if not match:
        return None
    return CellAddress(column_index(match.group(1)), int(match.group(2)))


def parse_range(text: str) -> Optional[CellRange]:
    """Разбор диапазона вида A1:B3"""
    if ":" not in text:
        return None
    first, _, second = text.partition(":")
    start = parse_address(first)
    end = parse_address(second)
    if start is None or end is None:
        return None
    return CellRange.between(start, end)


def normalize_address(text: str) -> str:
    """Каноническая запись адреса (верхний регистр); ValueError для мусора"""
    address = parse_address(text)
    if address is None:
        raise ValueError(f"Invalid cell address: {text!r}")
    return address.label
