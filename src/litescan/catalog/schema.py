"""
Schema Module - Table, index and catalog entry metadata
Defines the in-memory representation of the schema stored in sqlite_schema.
"""

from enum import Enum
from typing import List, Optional
from dataclasses import dataclass, field
from ..types.value import Value, Affinity, affinity_for


class ObjectType(Enum):
    """Kinds of schema objects listed in the catalog"""
    TABLE = 'table'
    INDEX = 'index'
    VIEW = 'view'
    TRIGGER = 'trigger'


@dataclass
class Column:
    """Column metadata definition"""
    name: str
    declared_type: str = ''
    constraints: List[str] = field(default_factory=list)
    primary_key: bool = False
    is_rowid_alias: bool = False
    default: Optional[Value] = None  # Read for rows stored before the column was added
    generated: Optional[str] = None  # 'VIRTUAL' or 'STORED'

    @property
    def is_stored(self) -> bool:
        """Whether the column has a slot in each record"""
        return self.generated != 'VIRTUAL'

    @property
    def affinity(self) -> Affinity:
        return affinity_for(self.declared_type)

    def has_constraint(self, constraint: str) -> bool:
        """Check if column has specific constraint"""
        return constraint.upper() in (c.upper() for c in self.constraints)


@dataclass
class TableSchema:
    """Table metadata definition"""
    name: str
    columns: List[Column]
    root_page: int
    sql: Optional[str] = None
    without_rowid: bool = False
    virtual_module: Optional[str] = None

    def __post_init__(self):
        """Validate table definition"""
        column_names = [col.name.lower() for col in self.columns]
        if len(column_names) != len(set(column_names)):
            raise ValueError(f"Duplicate column names in table {self.name}")

    @property
    def is_virtual(self) -> bool:
        return self.virtual_module is not None

    @property
    def rowid_alias_index(self) -> Optional[int]:
        """Position of the INTEGER PRIMARY KEY column, if the table has one"""
        for i, col in enumerate(self.columns):
            if col.is_rowid_alias:
                return i
        return None

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def get_column(self, name: str) -> Optional[Column]:
        """Get column by name (case-insensitive)"""
        index = self.get_column_index(name)
        return None if index is None else self.columns[index]

    def get_column_index(self, name: str) -> Optional[int]:
        """Get column position by name (case-insensitive)"""
        lowered = name.lower()
        for i, col in enumerate(self.columns):
            if col.name.lower() == lowered:
                return i
        return None

    def __repr__(self) -> str:
        """String representation of table schema"""
        cols = []
        for col in self.columns:
            constraint_str = f" {' '.join(col.constraints)}" if col.constraints else ""
            type_str = f" {col.declared_type}" if col.declared_type else ""
            cols.append(f"  {col.name}{type_str}{constraint_str}")

        cols_str = ",\n".join(cols)
        return f"Table: {self.name}\nColumns:\n{cols_str}"


@dataclass
class IndexSchema:
    """Index metadata definition"""
    name: str
    table_name: str
    columns: List[Optional[str]]  # None marks an expression term
    root_page: int
    sql: Optional[str] = None
    unique: bool = False
    partial: bool = False
    ordered_by_binary: bool = True  # All terms ascending with BINARY collation

    @property
    def usable_for_seek(self) -> bool:
        """Whether an equality seek on the first column can use this index"""
        return (bool(self.columns) and self.columns[0] is not None
                and not self.partial and self.ordered_by_binary and self.root_page > 0)

    @property
    def first_column(self) -> Optional[str]:
        return self.columns[0] if self.columns else None


@dataclass
class SchemaEntry:
    """One row of the schema catalog table"""
    type: ObjectType
    name: str
    tbl_name: str
    root_page: int
    sql: Optional[str]
    rowid: int = 0
    table: Optional[TableSchema] = None
    index: Optional[IndexSchema] = None
