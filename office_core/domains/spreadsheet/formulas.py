"""
Разбор формул ячеек.

Формула начинается с "=". Остаток разбирается в дерево: арифметика
(+ - * /, унарный минус, скобки), числа, строки в двойных кавычках,
ссылки на ячейки, диапазоны и вызовы функций. Имена функций и ссылки
нечувствительны к регистру.
"""
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from office_core.domains.spreadsheet.references import (
    CellAddress, CellRange, column_index
)

TOKEN_PATTERN = re.compile(r"""
    (?P<number>\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)
  | (?P<string>"(?:[^"]|"")*")
  | (?P<name>[A-Za-z_][A-Za-z0-9_.]*)
  | (?P<op>[-+*/])
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<comma>,)
  | (?P<colon>:)
  | (?P<space>\s+)
""", re.VERBOSE)

# Имя, похожее на ссылку: буквы + цифры (A1, B0, AA10)
REFERENCE_LIKE = re.compile(r"^([A-Z]+)([0-9]+)$")


class FormulaSyntaxError(ValueError):
    """Формула не разбирается"""


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Reference:
    """Ссылка на ячейку; address = None для некорректной ссылки (A0)"""
    text: str
    address: Optional[CellAddress]


@dataclass(frozen=True)
class RangeReference:
    start: Reference
    end: Reference

    @property
    def cell_range(self) -> Optional[CellRange]:
        if self.start.address is None or self.end.address is None:
            return None
        return CellRange.between(self.start.address, self.end.address)


@dataclass(frozen=True)
class UnknownName:
    name: str


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple["Node", ...]


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Union[Number, Text, Reference, RangeReference, UnknownName, FunctionCall, UnaryOp, BinaryOp]


@dataclass
class Formula:
    """Разобранная формула ячейки"""
    source: str
    tree: Optional[Node] = None
    syntax_error: Optional[str] = None
    _references: Optional[List[Union[CellAddress, CellRange, None]]] = field(default=None, repr=False, compare=False)

    @property
    def is_valid(self) -> bool:
        return self.syntax_error is None

    def references(self) -> List[Union[CellAddress, CellRange, None]]:
        """Ссылки и диапазоны формулы в порядке появления (None для битой ссылки)"""
        if self._references is None:
            self._references = list(_walk_references(self.tree)) if self.tree is not None else []
        return self._references


def is_formula(raw: str) -> bool:
    return raw.startswith("=")


def tokenize(expression: str) -> List[Token]:
    """Разбиение выражения на токены"""
    tokens = []
    position = 0
    while position < len(expression):
        match = TOKEN_PATTERN.match(expression, position)
        if match is None:
            raise FormulaSyntaxError(f"Unexpected character {expression[position]!r} at {position}")
        kind = match.lastgroup
        if kind != "space":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    return tokens


class _Parser:
    """Рекурсивный спуск по списку токенов"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise FormulaSyntaxError("Unexpected end of formula")
        self.index += 1
        return token

    def expect(self, kind: str) -> Token:
        token = self.advance()
        if token.kind != kind:
            raise FormulaSyntaxError(f"Expected {kind}, got {token.text!r} at {token.position}")
        return token

    def parse(self) -> Node:
        node = self.expression()
        token = self.peek()
        if token is not None:
            raise FormulaSyntaxError(f"Unexpected {token.text!r} at {token.position}")
        return node

    def expression(self) -> Node:
        node = self.term()
        while self._at_op("+", "-"):
            op = self.advance().text
            node = BinaryOp(op, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while self._at_op("*", "/"):
            op = self.advance().text
            node = BinaryOp(op, node, self.unary())
        return node

    def unary(self) -> Node:
        if self._at_op("+", "-"):
            op = self.advance().text
            return UnaryOp(op, self.unary())
        return self.primary()

    def primary(self) -> Node:
        token = self.advance()

        if token.kind == "number":
            return Number(float(token.text))
        if token.kind == "string":
            return Text(token.text[1:-1].replace('""', '"'))
        if token.kind == "lparen":
            node = self.expression()
            self.expect("rparen")
            return node
        if token.kind == "name":
            name = token.text.upper()
            following = self.peek()
            if following is not None and following.kind == "lparen":
                self.advance()
                return FunctionCall(name, tuple(self.arguments()))
            if REFERENCE_LIKE.match(name):
                start = _reference(name)
                if following is not None and following.kind == "colon":
                    self.advance()
                    end_token = self.expect("name")
                    end_name = end_token.text.upper()
                    if not REFERENCE_LIKE.match(end_name):
                        raise FormulaSyntaxError(f"Invalid range end {end_token.text!r}")
                    return RangeReference(start, _reference(end_name))
                return start
            return UnknownName(name)

        raise FormulaSyntaxError(f"Unexpected {token.text!r} at {token.position}")

    def arguments(self) -> List[Node]:
        args = []
        token = self.peek()
        if token is not None and token.kind == "rparen":
            self.advance()
            return args
        while True:
            args.append(self.expression())
            token = self.advance()
            if token.kind == "rparen":
                return args
            if token.kind != "comma":
                raise FormulaSyntaxError(f"Expected ',' or ')', got {token.text!r}")

    def _at_op(self, *ops: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == "op" and token.text in ops


def _reference(name: str) -> Reference:
    match = REFERENCE_LIKE.match(name)
    letters, digits = match.group(1), match.group(2)
    if digits.startswith("0"):
        # A0, A01 вне грамматики адресов
        return Reference(name, None)
    return Reference(name, CellAddress(column_index(letters), int(digits)))


def _walk_references(node: Node) -> Iterator[Union[CellAddress, CellRange, None]]:
    if isinstance(node, Reference):
        yield node.address
    elif isinstance(node, RangeReference):
        yield node.cell_range
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            yield from _walk_references(arg)
    elif isinstance(node, UnaryOp):
        yield from _walk_references(node.operand)
    elif isinstance(node, BinaryOp):
        yield from _walk_references(node.left)
        yield from _walk_references(node.right)


def parse_formula(raw: str) -> Formula:
    """Разбор формулы; синтаксическая ошибка сохраняется в Formula, а не бросается"""
    if not is_formula(raw):
        raise ValueError(f"Not a formula: {raw!r}")
    try:
        tree = _Parser(tokenize(raw[1:])).parse()
    except FormulaSyntaxError as exc:
        return Formula(source=raw, syntax_error=str(exc))
    return Formula(source=raw, tree=tree)
