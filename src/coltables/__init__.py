"""coltables - Columnar tables that share column storage across transformations."""

import logging

from coltables.attributes import AttributeSet
from coltables.builder import build_table
from coltables.coerce import as_table
from coltables.column import ColumnStore
from coltables.errors import (
    ComparisonError,
    DuplicateNameError,
    EvaluationError,
    OwnershipError,
    ShapeError,
    StructuralError,
    TableError,
    UnknownColumnError,
)
from coltables.evaluator import Environment, Evaluator
from coltables.inspect import Sharing, diff_tables, identity, inspect_table
from coltables.table import Table
from coltables.transforms import (
    DROP,
    SortKey,
    arrange,
    bind_cols,
    desc,
    filter_rows,
    group_by,
    mutate,
    rename,
    select,
    set_attribute,
    summarise,
    summarize,
    ungroup,
)
from coltables.types import ColumnType

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Construction
    "Table",
    "build_table",
    "as_table",
    # Storage
    "ColumnStore",
    "AttributeSet",
    "ColumnType",
    # Transformations
    "DROP",
    "SortKey",
    "arrange",
    "bind_cols",
    "desc",
    "filter_rows",
    "group_by",
    "mutate",
    "rename",
    "select",
    "set_attribute",
    "summarise",
    "summarize",
    "ungroup",
    # Expressions
    "Environment",
    "Evaluator",
    # Inspection
    "Sharing",
    "diff_tables",
    "identity",
    "inspect_table",
    # Errors
    "TableError",
    "ComparisonError",
    "DuplicateNameError",
    "EvaluationError",
    "OwnershipError",
    "ShapeError",
    "StructuralError",
    "UnknownColumnError",
]

__version__ = "0.1.0"
