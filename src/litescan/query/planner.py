"""
Query Planner - Validates query requests and chooses an access method
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional
from ..catalog.catalog import Catalog
from ..catalog.schema import Column, TableSchema, IndexSchema
from ..types.value import Value, Type, Affinity, apply_affinity
from .exceptions import ColumnNotFoundError, UnsupportedQueryError

SEQ_SCAN = 'SEQ_SCAN'
INDEX_SEEK = 'INDEX_SEEK'
ROWID_LOOKUP = 'ROWID_LOOKUP'

# Names that refer to the rowid unless a real column uses them
ROWID_NAMES = ('rowid', 'oid', '_rowid_')


@dataclass
class Filter:
    """Single-column equality filter: column = value"""
    column: str
    value: Any  # Value, or a plain Python object wrapped on planning

    def literal(self) -> Value:
        if isinstance(self.value, Value):
            return self.value
        return Value.from_python(self.value)


@dataclass
class QueryRequest:
    """Structured description of a restricted SELECT"""
    table_name: str
    columns: List[str] = field(default_factory=lambda: ['*'])
    where: Optional[Filter] = None
    count_only: bool = False
    limit: Optional[int] = None


@dataclass
class QueryPlan:
    """Execution plan for a query request"""
    table: TableSchema
    access_method: str
    column_indices: List[int]
    column_names: List[str]
    count_only: bool = False
    limit: Optional[int] = None
    filter_index: Optional[int] = None  # Position of the filtered column
    filter_value: Optional[Value] = None  # Literal after affinity
    index: Optional[IndexSchema] = None

    def __repr__(self):
        return (f"QueryPlan({self.access_method}, table={self.table.name}, "
                f"columns={self.column_names}, index={self.index.name if self.index else None})")


class Planner:
    """Creates execution plans from query requests"""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def plan(self, request: QueryRequest) -> QueryPlan:
        """
        Create an execution plan

        Args:
            request: Query request from a front end

        Returns:
            QueryPlan using a rowid lookup, an index seek or a full scan

        Raises:
            TableNotFoundError: If the table does not exist
            ColumnNotFoundError: If a projected or filtered column does not exist
            UnsupportedQueryError: For tables this engine cannot scan, or
                virtual generated columns it cannot compute
        """
        table = self.catalog.lookup(request.table_name)
        if table.is_virtual:
            raise UnsupportedQueryError(
                f"{table.name} is a virtual table ({table.virtual_module})")
        if table.without_rowid:
            raise UnsupportedQueryError(f"{table.name} is a WITHOUT ROWID table")
        if request.limit is not None and request.limit < 0:
            raise UnsupportedQueryError("LIMIT must not be negative")

        # Validate columns
        column_indices = []
        column_names = []
        if request.count_only:
            column_names = ['COUNT(*)']
        else:
            for name in request.columns or ['*']:
                if name == '*':
                    column_indices.extend(range(len(table.columns)))
                    column_names.extend(table.column_names)
                    continue
                index = self._find_column_index(name, table)
                column_indices.append(index)
                column_names.append(table.columns[index].name)
            for index in column_indices:
                self._check_stored(table.columns[index], table)

        plan = QueryPlan(table=table, access_method=SEQ_SCAN,
                         column_indices=column_indices, column_names=column_names,
                         count_only=request.count_only, limit=request.limit)

        if request.where is None:
            return plan

        # Plan WHERE clause
        literal = request.where.literal()
        if (request.where.column.lower() in ROWID_NAMES
                and table.get_column_index(request.where.column) is None):
            # Implicit rowid column
            plan.access_method = ROWID_LOOKUP
            plan.filter_value = apply_affinity(literal, Affinity.INTEGER)
            return plan

        filter_index = self._find_column_index(request.where.column, table)
        column = table.columns[filter_index]
        self._check_stored(column, table)
        plan.filter_index = filter_index
        plan.filter_value = apply_affinity(literal, column.affinity)

        if column.is_rowid_alias:
            plan.access_method = ROWID_LOOKUP
        else:
            index = self.catalog.lookup_index_for(table.name, column.name)
            if index is not None:
                plan.access_method = INDEX_SEEK
                plan.index = index

        return plan

    def _find_column_index(self, column_name: str, table: TableSchema) -> int:
        """Find column index by name"""
        index = table.get_column_index(column_name)
        if index is None:
            raise ColumnNotFoundError(column_name, table.name)
        return index

    @staticmethod
    def _check_stored(column: Column, table: TableSchema):
        if not column.is_stored:
            raise UnsupportedQueryError(
                f"{table.name}.{column.name} is a virtual generated column")


def rowid_key(value: Value) -> Optional[int]:
    """Integer rowid a filter value can match, or None if it matches no row"""
    if value.type == Type.INTEGER:
        return value.value
    if value.type == Type.FLOAT and value.value.is_integer():
        return int(value.value)
    return None
