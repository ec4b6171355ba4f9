"""
Query Executor - Executes query plans lazily over the b-tree walker
"""

from typing import Any, Iterator, List, Optional, Tuple
from ..storage.btree import BTreeWalker
from ..storage.exceptions import CorruptPageError
from ..storage.record import Record
from ..catalog.schema import TableSchema
from ..types.value import Value, Type, Affinity
from .planner import QueryPlan, SEQ_SCAN, INDEX_SEEK, ROWID_LOOKUP, rowid_key


class Row:
    """A single result row"""

    def __init__(self, values: List[Value], row_id: Optional[int] = None):
        self.values = values
        self.row_id = row_id  # Table rowid, None for aggregate rows

    def to_python(self) -> List[Any]:
        """Plain Python values in column order"""
        return [value.to_python() for value in self.values]

    def __eq__(self, other):
        if not isinstance(other, Row):
            return False
        return self.values == other.values

    def __repr__(self):
        values_str = ', '.join(repr(v) for v in self.values)
        return f"Row({values_str})"

    def __str__(self):
        return repr(self)


class QueryResult:
    """Column names plus a lazy, single-pass sequence of rows"""

    def __init__(self, columns: List[str], rows: Iterator[Row], plan: QueryPlan = None):
        self.columns = columns
        self.plan = plan
        self._rows = rows

    def __iter__(self) -> Iterator[Row]:
        return self._rows

    def fetchall(self) -> List[Row]:
        """Drain the remaining rows"""
        return list(self._rows)

    def to_lists(self) -> List[List[Any]]:
        """Drain the remaining rows as lists of plain Python values"""
        return [row.to_python() for row in self._rows]

    def scalar(self) -> Any:
        """First value of the first row, e.g. the result of COUNT(*)"""
        row = next(self._rows, None)
        if row is None:
            return None
        return row.values[0].to_python()


class Executor:
    """Executes query plans"""

    def __init__(self, walker: BTreeWalker):
        self.walker = walker

    def execute(self, plan: QueryPlan) -> QueryResult:
        """
        Execute a query plan

        Nothing is read until the result is iterated. Decode and traversal
        errors surface from the iteration.
        """
        if plan.count_only:
            return QueryResult(plan.column_names, self._count(plan), plan)
        return QueryResult(plan.column_names, self._project(plan), plan)

    def _count(self, plan: QueryPlan) -> Iterator[Row]:
        if plan.limit == 0:
            return
        count = 0
        for _ in self._matching_rows(plan):
            count += 1
        yield Row([Value(Type.INTEGER, count)])

    def _project(self, plan: QueryPlan) -> Iterator[Row]:
        if plan.limit == 0:
            return
        produced = 0
        for rowid, values in self._matching_rows(plan):
            yield Row([values[i] for i in plan.column_indices], rowid)
            produced += 1
            if plan.limit is not None and produced >= plan.limit:
                return

    def _matching_rows(self, plan: QueryPlan) -> Iterator[Tuple[int, List[Value]]]:
        """Rows passing the filter, with the rowid alias already applied"""
        for rowid, values in self._candidate_rows(plan):
            if plan.filter_index is not None:
                if not values[plan.filter_index].equals(plan.filter_value):
                    continue
            yield rowid, values

    def _candidate_rows(self, plan: QueryPlan) -> Iterator[Tuple[int, List[Value]]]:
        table = plan.table
        root = table.root_page

        if plan.access_method == SEQ_SCAN:
            for rowid, record in self.walker.scan_table(root):
                yield rowid, self.row_values(table, rowid, record)

        elif plan.access_method == ROWID_LOOKUP:
            rowid = rowid_key(plan.filter_value)
            if rowid is None:
                return
            record = self.walker.lookup_rowid(root, rowid)
            if record is not None:
                yield rowid, self.row_values(table, rowid, record)

        elif plan.access_method == INDEX_SEEK:
            for rowid in self.walker.seek_index(plan.index.root_page, plan.filter_value):
                record = self.walker.lookup_rowid(root, rowid)
                if record is None:
                    raise CorruptPageError(
                        f"Index {plan.index.name} refers to missing rowid {rowid}",
                        page_number=plan.index.root_page)
                yield rowid, self.row_values(table, rowid, record)

        else:
            raise ValueError(f"Unknown access method: {plan.access_method}")

    @staticmethod
    def row_values(table: TableSchema, rowid: int, record: Record) -> List[Value]:
        """
        Column values of a table row

        Records written before an ALTER TABLE ADD COLUMN are shorter than the
        schema; the missing trailing columns read as the column DEFAULT, or NULL
        without one. Virtual generated columns have no slot in the record and
        read as NULL. A NULL stored in the INTEGER PRIMARY KEY column reads as
        the rowid. Whole numbers in REAL columns are stored as integers and
        read back as floats.
        """
        values = []
        position = 0
        for column in table.columns:
            if not column.is_stored:
                values.append(Value.null())
                continue
            if position < len(record.values):
                value = record.values[position]
            elif column.default is not None:
                value = column.default
            else:
                value = Value.null()
            position += 1
            if column.affinity == Affinity.REAL and value.type == Type.INTEGER:
                value = Value(Type.FLOAT, float(value.value))
            values.append(value)

        alias = table.rowid_alias_index
        if alias is not None and values[alias].is_null:
            values[alias] = Value(Type.INTEGER, rowid)
        return values
