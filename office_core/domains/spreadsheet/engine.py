"""
Вычисление значений ячеек таблицы.

Значения не кешируются в содержимом документа: каждое чтение строит
новый проход по снимку карты ячеек. Внутри прохода граф зависимостей
(networkx.DiGraph, A -> B: формула A читает B) строится от запрошенной
ячейки. Компоненты сильной связности с циклом получают #CIRCULAR!,
остальные ячейки вычисляются в топологическом порядке и запоминаются
по адресу.
Ошибки формул являются значениями, а не исключениями.
"""
import logging
import re
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

import networkx as nx

from office_core.domains.spreadsheet.formulas import (
    BinaryOp, Formula, FunctionCall, Node, Number, RangeReference, Reference,
    Text, UnaryOp, UnknownName, is_formula, parse_formula
)
from office_core.domains.spreadsheet.references import (
    CellAddress, CellRange, GridBounds, parse_address
)

logger = logging.getLogger(__name__)

NUMERIC_LITERAL = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


class FormulaError(Enum):
    """Ошибки формул, отображаемые в ячейке"""
    CIRCULAR = "#CIRCULAR!"
    REF = "#REF!"
    VALUE = "#VALUE!"
    NAME = "#NAME?"
    DIV_ZERO = "#DIV/0!"
    SYNTAX = "#ERROR!"

    def __str__(self) -> str:
        return self.value


# Пустая ячейка: None
CellValue = Union[float, str, FormulaError, None]


class _Argument:
    """Аргумент функции: значения и признак диапазона"""

    def __init__(self, values: List[CellValue], from_range: bool):
        self.values = values
        self.from_range = from_range


def parse_number(text: str) -> Optional[float]:
    """Число из литерала ячейки или None"""
    if NUMERIC_LITERAL.match(text):
        return float(text)
    return None


def format_value(value: CellValue) -> str:
    """Отображение вычисленного значения"""
    if value is None:
        return ""
    if isinstance(value, FormulaError):
        return value.value
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return format(value, ".15g")
    return str(value)


def _numbers(args: List[_Argument], strict: bool) -> Union[List[float], FormulaError]:
    """Числа из аргументов: пустые пропускаются, текст даёт #VALUE! при strict"""
    numbers = []
    for arg in args:
        for value in arg.values:
            if isinstance(value, FormulaError):
                return value
            if value is None:
                continue
            if isinstance(value, float):
                numbers.append(value)
                continue
            number = parse_number(value) if not arg.from_range else None
            if number is not None:
                numbers.append(number)
            elif strict:
                return FormulaError.VALUE
    return numbers


def _sum(args):
    numbers = _numbers(args, strict=True)
    return numbers if isinstance(numbers, FormulaError) else float(sum(numbers))


def _average(args):
    numbers = _numbers(args, strict=True)
    if isinstance(numbers, FormulaError):
        return numbers
    if not numbers:
        return FormulaError.DIV_ZERO
    return sum(numbers) / len(numbers)


def _count(args):
    numbers = _numbers(args, strict=False)
    return numbers if isinstance(numbers, FormulaError) else float(len(numbers))


def _min(args):
    numbers = _numbers(args, strict=True)
    if isinstance(numbers, FormulaError):
        return numbers
    return min(numbers) if numbers else 0.0


def _max(args):
    numbers = _numbers(args, strict=True)
    if isinstance(numbers, FormulaError):
        return numbers
    return max(numbers) if numbers else 0.0


def _product(args):
    numbers = _numbers(args, strict=True)
    if isinstance(numbers, FormulaError):
        return numbers
    result = 1.0
    for number in numbers:
        result *= number
    return result


BUILTINS: Dict[str, Callable[[List[_Argument]], CellValue]] = {
    "SUM": _sum,
    "AVERAGE": _average,
    "COUNT": _count,
    "MIN": _min,
    "MAX": _max,
    "PRODUCT": _product,
}


class FormulaEngine:
    """Один проход вычисления над снимком карты ячеек

    cells: адрес -> сырое значение (str) или объект с атрибутами raw/formula.
    """

    def __init__(self, cells: Mapping[str, object], bounds: GridBounds = GridBounds()):
        self.bounds = bounds
        self._raw: Dict[CellAddress, str] = {}
        self._formulas: Dict[CellAddress, Formula] = {}
        self._memo: Dict[CellAddress, CellValue] = {}

        # Снимок: последующие правки исходной карты проход не видит
        for key, entry in dict(cells).items():
            address = parse_address(key)
            if address is None:
                logger.warning("Skipping cell with invalid address %r", key)
                continue
            raw = entry if isinstance(entry, str) else entry.raw
            if raw == "":
                continue
            self._raw[address] = raw
            if is_formula(raw):
                formula = None if isinstance(entry, str) else getattr(entry, "formula", None)
                self._formulas[address] = formula or parse_formula(raw)

    def evaluate(self, key: Union[str, CellAddress]) -> CellValue:
        """Значение ячейки"""
        address = key if isinstance(key, CellAddress) else parse_address(key)
        if address is None or not self.bounds.contains(address):
            return FormulaError.REF
        if address not in self._memo:
            for node in self._order(address):
                self._memo[node] = self._compute(node)
        return self._memo[address]

    def display(self, key: Union[str, CellAddress]) -> str:
        """Отображаемое значение: литерал как есть, для формулы вычисленное значение"""
        address = key if isinstance(key, CellAddress) else parse_address(key)
        if address is not None and address in self._raw and address not in self._formulas:
            return self._raw[address]
        return format_value(self.evaluate(key))

    def display_all(self) -> Dict[str, str]:
        """Отображаемые значения всех непустых ячеек"""
        return {address.label: self.display(address) for address in sorted(self._raw)}

    def dependencies(self, address: CellAddress) -> List[CellAddress]:
        """Ячейки, которые читает формула (в пределах сетки)"""
        formula = self._formulas.get(address)
        if formula is None or not formula.is_valid:
            return []
        result = []
        for reference in formula.references():
            if isinstance(reference, CellAddress):
                if self.bounds.contains(reference):
                    result.append(reference)
            elif isinstance(reference, CellRange):
                if reference.within(self.bounds):
                    result.extend(reference.cells())
        return result

    def _graph(self, root: CellAddress) -> nx.DiGraph:
        """Подграф зависимостей, достижимый из root (без уже вычисленных ячеек)"""
        graph = nx.DiGraph()
        graph.add_node(root)
        pending = [root]
        while pending:
            node = pending.pop()
            for dependency in self.dependencies(node):
                if dependency in self._memo:
                    continue
                if dependency not in graph:
                    pending.append(dependency)
                graph.add_edge(node, dependency)
        return graph

    def _order(self, root: CellAddress) -> List[CellAddress]:
        """Порядок вычисления подграфа от root; члены циклов получают #CIRCULAR!"""
        graph = self._graph(root)
        circular: Set[CellAddress] = set()
        for component in nx.strongly_connected_components(graph):
            node = next(iter(component))
            if len(component) > 1 or graph.has_edge(node, node):
                circular.update(component)

        for node in circular:
            self._memo[node] = FormulaError.CIRCULAR
        if circular:
            logger.debug("Circular references: %s", ", ".join(sorted(a.label for a in circular)))

        # Ребро A -> B: A читает B, поэтому B вычисляется раньше
        acyclic = graph.subgraph(node for node in graph if node not in circular)
        return list(reversed(list(nx.topological_sort(acyclic))))

    def _compute(self, address: CellAddress) -> CellValue:
        raw = self._raw.get(address)
        if raw is None:
            return None
        formula = self._formulas.get(address)
        if formula is None:
            number = parse_number(raw)
            return number if number is not None else raw
        if not formula.is_valid:
            return FormulaError.SYNTAX
        return self._eval(formula.tree)

    def _lookup(self, address: CellAddress) -> CellValue:
        if not self.bounds.contains(address):
            return FormulaError.REF
        if address not in self._memo:
            # Зависимость вне текущего порядка (не должно случаться)
            return self.evaluate(address)
        return self._memo[address]

    def _eval(self, node: Node) -> CellValue:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, Text):
            return node.value
        if isinstance(node, Reference):
            if node.address is None:
                return FormulaError.REF
            value = self._lookup(node.address)
            return 0.0 if value is None else value
        if isinstance(node, RangeReference):
            # Диапазон вне аргумента функции
            return FormulaError.REF if node.cell_range is None else FormulaError.VALUE
        if isinstance(node, UnknownName):
            return FormulaError.NAME
        if isinstance(node, FunctionCall):
            return self._call(node)
        if isinstance(node, UnaryOp):
            operand = self._arithmetic_operand(self._eval(node.operand))
            if isinstance(operand, FormulaError):
                return operand
            return -operand if node.op == "-" else operand
        if isinstance(node, BinaryOp):
            return self._binary(node)
        raise TypeError(f"Unknown formula node: {node!r}")

    def _call(self, node: FunctionCall) -> CellValue:
        function = BUILTINS.get(node.name)
        if function is None:
            return FormulaError.NAME

        # Аргументы слева направо; первая встреченная ошибка побеждает
        args = []
        for arg in node.args:
            if isinstance(arg, RangeReference):
                cell_range = arg.cell_range
                if cell_range is None or not cell_range.within(self.bounds):
                    return FormulaError.REF
                argument = _Argument([self._lookup(a) for a in cell_range.cells()], from_range=True)
            elif isinstance(arg, Reference):
                if arg.address is None:
                    return FormulaError.REF
                argument = _Argument([self._lookup(arg.address)], from_range=False)
            else:
                argument = _Argument([self._eval(arg)], from_range=False)

            for value in argument.values:
                if isinstance(value, FormulaError):
                    return value
            args.append(argument)
        return function(args)

    def _binary(self, node: BinaryOp) -> CellValue:
        left = self._arithmetic_operand(self._eval(node.left))
        if isinstance(left, FormulaError):
            return left
        right = self._arithmetic_operand(self._eval(node.right))
        if isinstance(right, FormulaError):
            return right

        if node.op == "+":
            return left + right
        if node.op == "-":
            return left - right
        if node.op == "*":
            return left * right
        if right == 0:
            return FormulaError.DIV_ZERO
        return left / right

    @staticmethod
    def _arithmetic_operand(value: CellValue) -> Union[float, FormulaError]:
        if isinstance(value, FormulaError):
            return value
        if value is None:
            return 0.0
        if isinstance(value, float):
            return value
        number = parse_number(value)
        return FormulaError.VALUE if number is None else number


def evaluate_cells(cells: Mapping[str, object], bounds: GridBounds = GridBounds(),
                   addresses: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """Отображаемые значения за один проход"""
    engine = FormulaEngine(cells, bounds)
    if addresses is None:
        return engine.display_all()
    return {address: engine.display(address) for address in addresses}
