import threading
from typing import Any, Dict, List, Optional

from litescan.query.engine import QueryEngine
from litescan.query.planner import QueryRequest, Filter
from litescan.query.executor import QueryResult
from litescan.query.exceptions import UnsupportedQueryError


def json_value(value: Any) -> Any:
    """Column value as something jsonify can encode; blobs become hex"""
    if isinstance(value, bytes):
        return value.hex()
    return value


class LiteScanManager:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._engine: Optional[QueryEngine] = None
        self._lock = threading.Lock()

    @property
    def engine(self) -> QueryEngine:
        """Open the database on first use"""
        with self._lock:
            if self._engine is None:
                self._engine = QueryEngine.open(self.db_path)
            return self._engine

    def close(self):
        with self._lock:
            if self._engine is not None:
                self._engine.close()
                self._engine = None

    # --- Metadata ---
    def get_info(self) -> Dict[str, Any]:
        info = self.engine.dbinfo()
        info['path'] = self.db_path
        return info

    def list_tables(self) -> List[Dict[str, Any]]:
        engine = self.engine
        tables = []
        for name in engine.table_names():
            schema = engine.describe(name)
            tables.append({
                'name': schema.name,
                'root_page': schema.root_page,
                'columns': len(schema.columns),
            })
        return tables

    def describe_table(self, table_name: str) -> Dict[str, Any]:
        engine = self.engine
        schema = engine.describe(table_name)
        return {
            'name': schema.name,
            'root_page': schema.root_page,
            'sql': schema.sql,
            'columns': [{
                'name': col.name,
                'type': col.declared_type,
                'affinity': col.affinity.value,
                'constraints': col.constraints,
                'rowid_alias': col.is_rowid_alias,
            } for col in schema.columns],
            'indexes': [{
                'name': index.name,
                'columns': index.columns,
                'unique': index.unique,
            } for index in engine.catalog.indexes_for(schema.name)],
        }

    # --- Queries ---
    def run_sql(self, sql: str) -> Dict[str, Any]:
        return self._collect(self.engine.execute_sql(sql))

    def run_request(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Run a structured query: table, columns, where, count, limit"""
        return self._collect(self.engine.execute(request_from_json(data)))

    def _collect(self, result: QueryResult) -> Dict[str, Any]:
        rows = [[json_value(v) for v in row] for row in result.to_lists()]
        return {
            'columns': result.columns,
            'data': rows,
            'count': len(rows),
            'access_method': result.plan.access_method if result.plan else None,
        }


def request_from_json(data: Dict[str, Any]) -> QueryRequest:
    """
    Validate a structured query body

    Raises:
        UnsupportedQueryError: If a field has the wrong shape
    """
    table = data.get('table')
    if not isinstance(table, str) or not table:
        raise UnsupportedQueryError("'table' must be a non-empty string")

    columns = data.get('columns', ['*'])
    if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
        raise UnsupportedQueryError("'columns' must be a list of column names")

    where = None
    if data.get('where') is not None:
        clause = data['where']
        if not isinstance(clause, dict) or not isinstance(clause.get('column'), str):
            raise UnsupportedQueryError("'where' must be an object with 'column' and 'value'")
        value = clause.get('value')
        if value is not None and not isinstance(value, (int, float, str)):
            raise UnsupportedQueryError("'where.value' must be a number, string or null")
        where = Filter(clause['column'], value)

    limit = data.get('limit')
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int)):
        raise UnsupportedQueryError("'limit' must be an integer")

    return QueryRequest(table_name=table, columns=columns or ['*'], where=where,
                        count_only=bool(data.get('count', False)), limit=limit)
