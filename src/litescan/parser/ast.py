"""
AST Nodes - Abstract Syntax Tree for SQL
"""

from dataclasses import dataclass, field
from typing import List, Optional, Any, Union
from ..types.value import Value, Type


@dataclass
class Node:
    """Base AST node"""
    pass


# --------------------------------------------------------------------
# Expressions
# --------------------------------------------------------------------

@dataclass
class Column(Node):
    """Column reference"""
    name: str
    table_alias: Optional[str] = None  # For qualified names: table.column
    quoted: bool = False  # Written as "name"; may fall back to a string


@dataclass
class Literal(Node):
    """Literal value"""
    value: Any
    value_type: Type = Type.NULL

    def to_value(self) -> Value:
        """Convert to Value object"""
        return Value(self.value_type, self.value)


@dataclass
class Expression(Node):
    """Base expression"""
    pass


@dataclass
class BinaryExpression(Expression):
    """Binary expression: left op right"""
    left: Expression
    operator: str  # =, !=, <, >, <=, >=, AND, OR
    right: Expression


@dataclass
class UnaryExpression(Expression):
    """Unary expression: op operand"""
    operator: str  # NOT, +, -
    operand: Expression


@dataclass
class ColumnExpression(Expression):
    """Column reference expression"""
    column: Column


@dataclass
class LiteralExpression(Expression):
    """Literal expression"""
    literal: Literal


@dataclass
class FunctionCall(Expression):
    """Function call, e.g. COUNT(*)"""
    function_name: str
    arguments: List[Expression] = field(default_factory=list)
    star: bool = False  # Called as name(*)


# --------------------------------------------------------------------
# Statements
# --------------------------------------------------------------------

@dataclass
class SelectStatement(Node):
    """SELECT statement"""
    columns: List[Union[Column, FunctionCall]]  # Result columns
    table_name: str  # Table name
    where_clause: Optional[Expression] = None
    limit: Optional[int] = None


@dataclass
class ColumnDefinition(Node):
    """Column definition in CREATE TABLE"""
    name: str
    data_type: str = ''  # Declared type as written, '' when omitted
    constraints: List[str] = field(default_factory=list)  # e.g. 'PRIMARY KEY', 'NOT NULL'
    primary_key: bool = False
    primary_key_descending: bool = False
    default: Optional[Literal] = None  # Constant DEFAULT value, if any
    generated: Optional[str] = None  # 'VIRTUAL' or 'STORED' for generated columns


@dataclass
class CreateTableStatement(Node):
    """CREATE TABLE statement"""
    table_name: str
    columns: List[ColumnDefinition] = field(default_factory=list)
    if_not_exists: bool = False
    schema_name: Optional[str] = None
    primary_key: List[str] = field(default_factory=list)  # Table-level PRIMARY KEY(...)
    without_rowid: bool = False
    strict: bool = False
    virtual_module: Optional[str] = None  # Set for CREATE VIRTUAL TABLE


@dataclass
class IndexedColumn(Node):
    """One term of an index definition"""
    name: Optional[str]  # None for expression terms
    descending: bool = False
    collation: Optional[str] = None


@dataclass
class CreateIndexStatement(Node):
    """CREATE INDEX statement"""
    index_name: str
    table_name: str
    columns: List[IndexedColumn] = field(default_factory=list)
    unique: bool = False
    if_not_exists: bool = False
    schema_name: Optional[str] = None
    partial: bool = False  # Has a WHERE clause
