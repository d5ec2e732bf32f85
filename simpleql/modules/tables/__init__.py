"""
Tables Module - Black Box Interface

Purpose: Turn user table declarations into one canonical schema
Interface: prepare_tables(), parse_column(), parse_index(), TableSchema
Hidden: Shorthand parsing ("string/40", "email/unique"), legacy index forms

Plugins only ever see TableSchema objects, whatever notation was used to
declare the tables.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ...errors import ConfigValidationError
from ..validation import DB_COLUMN, INDEX, check

logger = logging.getLogger(__name__)

ACCEPTED_TYPES = (
    "string", "integer", "float", "double", "decimal", "date",
    "dateTime", "boolean", "text", "binary", "char",
)
SCALED_TYPES = ("float", "double", "decimal")
INDEX_TYPES = ("unique", "fulltext", "spatial")


class Column(BaseModel):
    """A typed table column."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    length: Optional[int] = None
    scale: Optional[int] = None
    unsigned: bool = False
    not_null: bool = Field(False, alias="notNull")
    auto_increment: bool = Field(False, alias="autoIncrement")
    default_value: Any = Field(None, alias="defaultValue")


class Index(BaseModel):
    """An index over one or several columns."""

    column: Union[str, List[str]]
    type: Optional[str] = None
    length: Optional[int] = None


class TableSchema(BaseModel):
    """Normalized declaration of one table."""

    name: str
    columns: Dict[str, Column] = Field(default_factory=dict)
    index: List[Index] = Field(default_factory=list)

    def has_unique_index(self, column: str) -> bool:
        """Check whether ``column`` alone carries a unique index."""
        return any(idx.column == column and idx.type == "unique" for idx in self.index)


def parse_column(table_name: str, field: str, declaration: Any) -> Column:
    """
    Normalize one column declaration.

    Args:
        table_name: Table owning the column
        field: Column name
        declaration: Shorthand string ("binary/64", "decimal/8,2") or descriptive dict

    Returns:
        The Column model

    Raises:
        ConfigValidationError: If the declaration is invalid
    """
    if isinstance(declaration, str):
        type_name, _, size = declaration.partition("/")
        data: Dict[str, Any] = {"type": type_name}
        if size:
            data.update(_parse_size(table_name, field, type_name, size))
    else:
        check(DB_COLUMN, declaration, f"column {field} in table {table_name}")
        data = dict(declaration)

    if data["type"] not in ACCEPTED_TYPES:
        raise ConfigValidationError(
            f"{data['type']} is an invalid type for {field} in {table_name}. "
            f"Valid types are: {', '.join(ACCEPTED_TYPES)}"
        )
    return Column.model_validate(data)


def _parse_size(table_name: str, field: str, type_name: str, size: str) -> Dict[str, int]:
    if type_name in SCALED_TYPES and "," in size:
        precision, _, scale = size.partition(",")
        if not precision.isdigit() or not scale.isdigit():
            raise ConfigValidationError(
                f"{field} in {table_name} expected a decimal parameter like 8,2 but we received {size}"
            )
        return {"length": int(precision), "scale": int(scale)}
    if not size.isdigit():
        raise ConfigValidationError(
            f"{field} in {table_name} expected an integer after the / but we received {size}"
        )
    return {"length": int(size)}


def parse_index(table_name: str, columns: Mapping[str, Any], declaration: Any) -> Index:
    """
    Normalize one index declaration.

    The shorthand form is a "/" separated string where each part is read as a
    length (number), a column name, or an index type.
    """
    if not isinstance(declaration, str):
        check(INDEX, declaration, f"index of table {table_name}")
        return Index.model_validate(declaration)

    data: Dict[str, Any] = {}
    for part in declaration.split("/"):
        if part.isdigit():
            data["length"] = int(part)
        elif part in columns:
            data["column"] = part
        elif part in INDEX_TYPES:
            data["type"] = part
        else:
            raise ConfigValidationError(
                f"The value {part} for index of table {table_name} could not be interpreted, "
                "nor as a type, nor as a column, nor as a length."
            )
    if "column" not in data:
        raise ConfigValidationError(f"Index {declaration} of table {table_name} names no column")
    return Index.model_validate(data)


def _is_column(declaration: Any) -> bool:
    if isinstance(declaration, str):
        return True
    return isinstance(declaration, Mapping) and "type" in declaration


def prepare_table(name: str, declaration: Mapping[str, Any]) -> TableSchema:
    """Normalize a single table declaration."""
    columns: Dict[str, Column] = {}
    for field, value in declaration.items():
        if field in ("index", "notNull", "tableName"):
            continue
        if not _is_column(value):
            # References to other tables belong to the query collaborator
            logger.debug(f"Skipping relation {field} in table {name}")
            continue
        columns[field] = parse_column(name, field, value)

    for field in declaration.get("notNull", ()):
        if field in columns:
            columns[field].not_null = True

    raw_index = declaration.get("index") or []
    if isinstance(raw_index, Mapping):
        # Legacy form: {"email": "unique"}
        raw_index = [{"column": column, "type": kind} for column, kind in raw_index.items()]
    index = [parse_index(name, columns, entry) for entry in raw_index]

    return TableSchema(name=name, columns=columns, index=index)


def prepare_tables(declarations: Mapping[str, Any]) -> Dict[str, TableSchema]:
    """
    Normalize every table declaration.

    Args:
        declarations: Mapping of table name to declaration. Already normalized
            TableSchema values are kept as they are.

    Returns:
        Mapping of table name to TableSchema
    """
    tables = {}
    for name, declaration in declarations.items():
        if isinstance(declaration, TableSchema):
            tables[name] = declaration
        else:
            tables[name] = prepare_table(name, declaration)
    return tables


__all__ = [
    "ACCEPTED_TYPES",
    "Column",
    "Index",
    "TableSchema",
    "parse_column",
    "parse_index",
    "prepare_table",
    "prepare_tables",
]
