from office_core.domains.spreadsheet.engine import (
    BUILTINS, FormulaEngine, FormulaError, evaluate_cells, format_value
)
from office_core.domains.spreadsheet.formulas import Formula, is_formula, parse_formula
from office_core.domains.spreadsheet.references import (
    CellAddress, CellRange, GridBounds, column_label, parse_address, parse_range
)

__all__ = [
    "BUILTINS", "FormulaEngine", "FormulaError", "evaluate_cells", "format_value",
    "Formula", "is_formula", "parse_formula",
    "CellAddress", "CellRange", "GridBounds", "column_label", "parse_address", "parse_range"
]
