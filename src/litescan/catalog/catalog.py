"""
Catalog Module - Schema catalog loaded from the sqlite_schema table
Scans the table b-tree rooted at page 1 and parses the stored creation SQL
of every table and index.
"""

from typing import Dict, List, Optional
from ..storage.btree import BTreeWalker
from ..parser.parser import parse_create_table, parse_index
from ..parser.exceptions import LiteScanParseError
from ..parser.ast import CreateTableStatement, CreateIndexStatement
from ..query.exceptions import TableNotFoundError, UnsupportedQueryError
from ..types.value import apply_affinity
from .schema import ObjectType, Column, TableSchema, IndexSchema, SchemaEntry
from .exceptions import SchemaError, UnparseableCreateStatementError
from ..constants import (CATALOG_ROOT_PAGE, CATALOG_TABLE_NAMES, CATALOG_COLUMNS,
                         INTERNAL_TABLE_PREFIX)


def catalog_table_schema(name: str = 'sqlite_schema') -> TableSchema:
    """Schema of the built-in catalog table itself"""
    columns = [Column(name=col_name, declared_type=col_type)
               for col_name, col_type in CATALOG_COLUMNS]
    return TableSchema(name=name, columns=columns, root_page=CATALOG_ROOT_PAGE)


def build_table_schema(name: str, root_page: int, sql: str,
                       statement: CreateTableStatement) -> TableSchema:
    """Turn a parsed CREATE TABLE into table metadata, marking the rowid alias"""
    columns = []
    for definition in statement.columns:
        column = Column(name=definition.name,
                        declared_type=definition.data_type,
                        constraints=list(definition.constraints),
                        primary_key=definition.primary_key,
                        generated=definition.generated)
        if definition.default is not None:
            column.default = apply_affinity(definition.default.to_value(), column.affinity)
        columns.append(column)

    table_pk = {pk_name.lower() for pk_name in statement.primary_key}
    for column in columns:
        if column.name.lower() in table_pk:
            column.primary_key = True

    pk_columns = [(column, definition) for column, definition
                  in zip(columns, statement.columns) if column.primary_key]
    if len(pk_columns) == 1 and not statement.without_rowid:
        column, definition = pk_columns[0]
        # PRIMARY KEY DESC in the column definition is a real index, not an alias
        descending_column_key = definition.primary_key and definition.primary_key_descending
        if column.declared_type.upper() == 'INTEGER' and not descending_column_key:
            column.is_rowid_alias = True

    return TableSchema(name=name, columns=columns, root_page=root_page, sql=sql,
                       without_rowid=statement.without_rowid,
                       virtual_module=statement.virtual_module)


class Catalog:
    """Manages the database schema catalog (sqlite_schema)"""

    def __init__(self, walker: BTreeWalker):
        """
        Load the catalog

        Args:
            walker: BTreeWalker over the open database

        Raises:
            UnparseableCreateStatementError: If a table or index definition
                cannot be parsed
            SchemaError: If a catalog row is malformed
        """
        self.walker = walker
        self.entries: List[SchemaEntry] = []
        self.tables: Dict[str, TableSchema] = {}
        self.indexes: Dict[str, IndexSchema] = {}
        self._other_objects: Dict[str, ObjectType] = {}

        self._load_catalog()

    def _load_catalog(self) -> None:
        """Load catalog rows from the b-tree rooted at page 1"""
        index_rows = []

        for rowid, record in self.walker.scan_table(CATALOG_ROOT_PAGE):
            values = [value.to_python() for value in record.values]
            values += [None] * (len(CATALOG_COLUMNS) - len(values))
            obj_type, name, tbl_name, root_page, sql = values[:len(CATALOG_COLUMNS)]

            try:
                object_type = ObjectType(obj_type)
            except ValueError:
                raise SchemaError(f"Unknown schema object type {obj_type!r} in catalog row {rowid}")
            if not isinstance(name, str):
                raise SchemaError(f"Catalog row {rowid} has no object name")

            entry = SchemaEntry(type=object_type, name=name, tbl_name=tbl_name or name,
                                root_page=root_page or 0, sql=sql, rowid=rowid)
            self.entries.append(entry)

            if object_type == ObjectType.TABLE:
                entry.table = self._load_table(entry)
                self.tables[name.lower()] = entry.table
            elif object_type == ObjectType.INDEX:
                index_rows.append(entry)
            else:
                self._other_objects[name.lower()] = object_type

        # Indexes need their table's column collations
        for entry in index_rows:
            entry.index = self._load_index(entry)
            self.indexes[entry.name.lower()] = entry.index

    def _load_table(self, entry: SchemaEntry) -> TableSchema:
        if entry.sql is None:
            raise UnparseableCreateStatementError(entry.name, '', "no creation SQL stored")
        try:
            statement = parse_create_table(entry.sql)
            return build_table_schema(entry.name, entry.root_page, entry.sql, statement)
        except (LiteScanParseError, ValueError) as e:
            raise UnparseableCreateStatementError(entry.name, entry.sql, str(e))

    def _load_index(self, entry: SchemaEntry) -> IndexSchema:
        # Automatic indexes for UNIQUE / PRIMARY KEY constraints store no SQL
        if entry.sql is None:
            return IndexSchema(name=entry.name, table_name=entry.tbl_name, columns=[],
                               root_page=entry.root_page)
        try:
            statement: CreateIndexStatement = parse_index(entry.sql)
        except LiteScanParseError as e:
            raise UnparseableCreateStatementError(entry.name, entry.sql, str(e))

        ordered_by_binary = True
        if statement.columns:
            first = statement.columns[0]
            collation = first.collation
            table = self.tables.get(entry.tbl_name.lower())
            if collation is None and table is not None and first.name is not None:
                column = table.get_column(first.name)
                if column is not None:
                    for constraint in column.constraints:
                        if constraint.upper().startswith('COLLATE '):
                            collation = constraint.split(' ', 1)[1]
            ordered_by_binary = (not first.descending
                                 and (collation is None or collation.upper() == 'BINARY'))

        return IndexSchema(name=entry.name, table_name=statement.table_name,
                           columns=[term.name for term in statement.columns],
                           root_page=entry.root_page, sql=entry.sql,
                           unique=statement.unique, partial=statement.partial,
                           ordered_by_binary=ordered_by_binary)

    def get_table(self, table_name: str) -> Optional[TableSchema]:
        """Get table schema by name (case-insensitive), or None"""
        lowered = table_name.lower()
        if lowered in CATALOG_TABLE_NAMES:
            return catalog_table_schema(lowered)
        return self.tables.get(lowered)

    def lookup(self, table_name: str) -> TableSchema:
        """
        Get table schema by name

        Raises:
            TableNotFoundError: If no table has that name
            UnsupportedQueryError: If the name belongs to a view or trigger
        """
        table = self.get_table(table_name)
        if table is not None:
            return table
        other = self._other_objects.get(table_name.lower())
        if other is not None:
            raise UnsupportedQueryError(f"{table_name} is a {other.value} and cannot be queried")
        raise TableNotFoundError(table_name)

    def lookup_index_for(self, table_name: str, column_name: str) -> Optional[IndexSchema]:
        """Index usable for an equality filter on a column, if one exists"""
        table_lowered = table_name.lower()
        column_lowered = column_name.lower()
        for entry in self.entries:
            index = entry.index
            if index is None or index.table_name.lower() != table_lowered:
                continue
            if index.usable_for_seek and index.first_column.lower() == column_lowered:
                return index
        return None

    def indexes_for(self, table_name: str) -> List[IndexSchema]:
        """All indexes on a table, in catalog order"""
        lowered = table_name.lower()
        return [entry.index for entry in self.entries
                if entry.index is not None and entry.index.table_name.lower() == lowered]

    def list_tables(self) -> List[str]:
        """Names of all tables in catalog order"""
        return [entry.name for entry in self.entries if entry.type == ObjectType.TABLE]

    def table_names(self) -> List[str]:
        """Sorted names of user tables, excluding internal sqlite_* tables"""
        # Same listing as the sqlite3 shell .tables command
        return sorted(name for name in self.list_tables()
                      if not name.lower().startswith(INTERNAL_TABLE_PREFIX))

    def table_count(self) -> int:
        """Number of table entries in the catalog"""
        return len(self.list_tables())

    def __repr__(self) -> str:
        return f"Catalog(tables={len(self.tables)}, indexes={len(self.indexes)})"
