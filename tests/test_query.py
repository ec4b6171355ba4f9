import sqlite3

import pytest
from litescan.query.engine import QueryEngine
from litescan.query.planner import (QueryRequest, Filter, SEQ_SCAN, INDEX_SEEK,
                                    ROWID_LOOKUP)
from litescan.query.exceptions import (TableNotFoundError, ColumnNotFoundError,
                                       UnsupportedQueryError, QueryError)
from litescan.parser.exceptions import LiteScanParseError
from litescan.storage.exceptions import DatabaseNotFoundError, InvalidHeaderError
from litescan.types.value import Value, Type


def name_for(i):
    return f"name{i % 40:02d}"


@pytest.fixture
def engine(users_db):
    with QueryEngine.open(users_db) as eng:
        yield eng


@pytest.fixture
def items_path(make_db):
    return make_db([
        "CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT, grp INTEGER, "
        "price REAL, note TEXT)",
        ("INSERT INTO items VALUES (?, ?, ?, ?, ?)",
         [(i, name_for(i), i % 9, i / 4, 'n' * (i % 1300) if i % 3 else None)
          for i in range(1, 1501)]),
        "CREATE INDEX idx_items_name ON items (name)",
        "CREATE INDEX idx_items_grp ON items (grp)",
    ], name="items.db", page_size=1024)


@pytest.fixture
def items(items_path):
    with QueryEngine.open(items_path) as eng:
        yield eng


def expected_rows(path, sql, params=()):
    conn = sqlite3.connect(path)
    try:
        return [list(row) for row in conn.execute(sql, params)]
    finally:
        conn.close()


# --------------------------------------------------------------------
# Basic scenarios
# --------------------------------------------------------------------

def test_select_by_primary_key(engine):
    result = engine.execute_sql("SELECT name FROM users WHERE id = 2")
    assert result.plan.access_method == ROWID_LOOKUP
    assert result.columns == ['name']
    assert result.to_lists() == [["bob"]]


def test_count(engine):
    assert engine.execute_sql("SELECT COUNT(*) FROM users").scalar() == 2
    result = engine.execute_sql("SELECT count(*) FROM users WHERE name = 'alice'")
    assert result.columns == ['COUNT(*)']
    assert result.to_lists() == [[1]]


def test_select_star_applies_rowid_alias(engine):
    result = engine.execute_sql("SELECT * FROM users")
    assert result.columns == ['id', 'name']
    assert result.to_lists() == [[1, 'alice'], [2, 'bob']]


def test_catalog_listing_in_insertion_order(make_db):
    path = make_db([
        "CREATE TABLE zebra (a)",
        "CREATE TABLE apple (a)",
        "CREATE INDEX idx_apple ON apple (a)",
        "CREATE TABLE mango (a)",
    ])
    with QueryEngine.open(path) as eng:
        rows = eng.execute_sql("SELECT name FROM sqlite_master WHERE type='table'").to_lists()
        assert rows == [['zebra'], ['apple'], ['mango']]

        rows = eng.execute_sql("SELECT type, tbl_name FROM sqlite_schema "
                               "WHERE name = 'idx_apple'").to_lists()
        assert rows == [['index', 'apple']]


def test_limit(engine):
    assert engine.execute_sql("SELECT name FROM users LIMIT 1").to_lists() == [['alice']]
    assert engine.execute_sql("SELECT name FROM users LIMIT 0").to_lists() == []
    assert engine.execute_sql("SELECT COUNT(*) FROM users LIMIT 0").to_lists() == []


def test_missing_rows(engine):
    assert engine.execute_sql("SELECT name FROM users WHERE id = 99").to_lists() == []
    assert engine.execute_sql("SELECT name FROM users WHERE id = 'x'").to_lists() == []
    assert engine.execute_sql("SELECT name FROM users WHERE name = NULL").to_lists() == []
    assert engine.execute_sql("SELECT COUNT(*) FROM users WHERE id = 99").scalar() == 0


def test_literal_forms(engine):
    assert engine.execute_sql("SELECT id FROM users WHERE 'bob' = name").to_lists() == [[2]]
    assert engine.execute_sql('SELECT id FROM users WHERE name = "bob"').to_lists() == [[2]]
    assert engine.execute_sql("SELECT name FROM users WHERE id = '2'").to_lists() == [['bob']]
    assert engine.execute_sql("SELECT name FROM users WHERE id = 2.0").to_lists() == [['bob']]
    assert engine.execute_sql("SELECT name FROM users WHERE rowid = 1").to_lists() == [['alice']]
    assert engine.execute_sql("SELECT users.name FROM users WHERE id == 1;").to_lists() == [
        ['alice']]


def test_structured_request(engine):
    request = QueryRequest('users', ['name', 'id'], where=Filter('name', 'bob'))
    assert engine.execute(request).to_lists() == [['bob', 2]]

    request = QueryRequest('USERS', count_only=True)
    assert engine.execute(request).scalar() == 2

    with pytest.raises(UnsupportedQueryError):
        engine.execute(QueryRequest('users', limit=-1))


def test_results_are_lazy(engine):
    result = engine.execute_sql("SELECT * FROM users")
    first = next(iter(result))
    assert first.to_python() == [1, 'alice']
    assert first.row_id == 1
    assert [row.to_python() for row in result] == [[2, 'bob']]


# --------------------------------------------------------------------
# Errors
# --------------------------------------------------------------------

def test_unknown_names(engine):
    with pytest.raises(TableNotFoundError):
        engine.execute_sql("SELECT * FROM missing")
    with pytest.raises(ColumnNotFoundError):
        engine.execute_sql("SELECT age FROM users")
    with pytest.raises(ColumnNotFoundError):
        engine.execute_sql("SELECT name FROM users WHERE age = 3")


@pytest.mark.parametrize("sql", [
    "SELECT COUNT(*), name FROM users",
    "SELECT MAX(id) FROM users",
    "SELECT COUNT(name) FROM users",
    "SELECT name FROM users WHERE id > 1",
    "SELECT name FROM users WHERE id = 1 AND name = 'alice'",
    "SELECT name FROM users WHERE id = name",
    "SELECT name FROM users WHERE 1 = 1",
    "CREATE TABLE t (a)",
])
def test_unsupported_queries(engine, sql):
    with pytest.raises(UnsupportedQueryError):
        engine.execute_sql(sql)


def test_parse_errors(engine):
    with pytest.raises(LiteScanParseError):
        engine.execute_sql("SELECT name users")
    with pytest.raises(LiteScanParseError):
        engine.execute_sql("SELECT name FROM users WHERE id = ?")


def test_views_and_without_rowid(make_db):
    path = make_db([
        "CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT)",
        "CREATE TABLE kv (k TEXT PRIMARY KEY, v) WITHOUT ROWID",
        "CREATE VIEW tv AS SELECT v FROM t",
    ])
    with QueryEngine.open(path) as eng:
        with pytest.raises(UnsupportedQueryError):
            eng.execute_sql("SELECT * FROM tv")
        with pytest.raises(QueryError):
            eng.execute_sql("SELECT * FROM kv")


def test_open_errors(tmp_path):
    with pytest.raises(DatabaseNotFoundError):
        QueryEngine.open(str(tmp_path / "nope.db"))

    path = tmp_path / "bad.db"
    path.write_bytes(b"\x00" * 200)
    with pytest.raises(InvalidHeaderError):
        QueryEngine.open(str(path))


# --------------------------------------------------------------------
# Access methods
# --------------------------------------------------------------------

def test_plan_selection(items):
    assert items.plan(QueryRequest('items')).access_method == SEQ_SCAN
    assert items.plan(QueryRequest('items', where=Filter('id', 5))).access_method == ROWID_LOOKUP
    assert items.plan(QueryRequest('items', where=Filter('oid', 5))).access_method == ROWID_LOOKUP

    plan = items.plan(QueryRequest('items', where=Filter('name', 'name07')))
    assert plan.access_method == INDEX_SEEK
    assert plan.index.name == 'idx_items_name'

    assert items.plan(QueryRequest('items', where=Filter('price', 2.5))).access_method == SEQ_SCAN


@pytest.mark.parametrize("column, value", [
    ('name', 'name07'),
    ('name', 'name39'),
    ('name', 'missing'),
    ('grp', 4),
    ('grp', '4'),
    ('id', 777),
])
def test_index_seek_matches_scan(items, items_path, column, value):
    columns = ['id', 'name', 'grp']
    result = items.execute(QueryRequest('items', columns, where=Filter(column, value)))
    rows = result.to_lists()

    # Same rows a full scan with row-by-row filtering returns
    literal = items.plan(QueryRequest('items', where=Filter(column, value))).filter_value
    position = columns.index(column)
    scanned = [row.to_python() for row in items.execute(QueryRequest('items', columns))
               if row.values[position].equals(literal)]
    assert sorted(rows) == sorted(scanned)

    expected = expected_rows(items_path,
                             f"SELECT id, name, grp FROM items WHERE {column} = ?", (value,))
    assert sorted(rows) == sorted(expected)


def test_count_matches_rows(items):
    for where in (None, Filter('name', 'name07'), Filter('grp', 0), Filter('price', 10)):
        count = items.execute(QueryRequest('items', count_only=True, where=where)).scalar()
        rows = items.execute(QueryRequest('items', ['id'], where=where)).to_lists()
        assert count == len(rows)
    assert items.execute_sql("SELECT COUNT(*) FROM items").scalar() == 1500


def test_index_seek_reads_fewer_pages(items):
    items.walker.reset_stats()
    items.execute_sql("SELECT id FROM items WHERE name = 'name07'").to_lists()
    seek_pages = items.get_stats()["btree"]["table_pages"]

    items.walker.reset_stats()
    items.execute_sql("SELECT id FROM items WHERE price = 1.75").to_lists()
    scan_pages = items.get_stats()["btree"]["table_pages"]

    assert seek_pages < scan_pages


def test_overflow_rows_match_sqlite(items, items_path):
    rows = items.execute_sql("SELECT id, note FROM items").to_lists()
    assert rows == expected_rows(items_path, "SELECT id, note FROM items ORDER BY id")


# --------------------------------------------------------------------
# Record shapes
# --------------------------------------------------------------------

def test_added_columns_read_as_null(make_db):
    path = make_db([
        "CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT)",
        "INSERT INTO people VALUES (1, 'ann')",
        "ALTER TABLE people ADD COLUMN age INTEGER",
        "INSERT INTO people VALUES (2, 'ben', 30)",
    ])
    with QueryEngine.open(path) as eng:
        assert eng.execute_sql("SELECT * FROM people").to_lists() == [
            [1, 'ann', None], [2, 'ben', 30]]
        assert eng.execute_sql("SELECT name FROM people WHERE age = 30").to_lists() == [['ben']]


def test_added_columns_read_their_default(make_db):
    path = make_db([
        "CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT)",
        "INSERT INTO people VALUES (1, 'ann')",
        "ALTER TABLE people ADD COLUMN age INTEGER DEFAULT 7",
        "ALTER TABLE people ADD COLUMN code INTEGER DEFAULT '12'",
        "ALTER TABLE people ADD COLUMN score REAL DEFAULT -2",
        "ALTER TABLE people ADD COLUMN tag TEXT DEFAULT 'none'",
        "INSERT INTO people VALUES (2, 'ben', 30, 1, 0.5, 'x')",
    ])
    with QueryEngine.open(path) as eng:
        assert eng.execute_sql("SELECT * FROM people WHERE id = 1").to_lists() == [
            [1, 'ann', 7, 12, -2.0, 'none']]
        assert eng.execute_sql("SELECT * FROM people").to_lists() == expected_rows(
            path, "SELECT * FROM people")
        assert eng.execute_sql("SELECT name FROM people WHERE age = 7").to_lists() == [['ann']]
        assert eng.execute_sql("SELECT name FROM people WHERE tag = 'x'").to_lists() == [['ben']]


def test_generated_columns(make_db):
    path = make_db([
        "CREATE TABLE t (a INTEGER, b INTEGER GENERATED ALWAYS AS (a * 2) VIRTUAL, "
        "c TEXT, d INTEGER AS (a + 1) STORED, e TEXT)",
        "INSERT INTO t (a, c, e) VALUES (1, 'x', 'p'), (2, 'y', 'q')",
    ])
    with QueryEngine.open(path) as eng:
        assert eng.execute_sql("SELECT a, c, d, e FROM t").to_lists() == [
            [1, 'x', 2, 'p'], [2, 'y', 3, 'q']]
        assert eng.execute_sql("SELECT e FROM t WHERE d = 3").to_lists() == [['q']]
        assert eng.execute_sql("SELECT COUNT(*) FROM t").to_lists() == [[2]]

        for sql in ("SELECT b FROM t", "SELECT * FROM t", "SELECT a FROM t WHERE b = 2"):
            with pytest.raises(UnsupportedQueryError):
                eng.execute_sql(sql)


def test_implicit_rowid_and_types(make_db):
    path = make_db([
        "CREATE TABLE things (label TEXT, amount REAL, data BLOB, code)",
        ("INSERT INTO things VALUES (?, ?, ?, ?)",
         [('a', 1.0, b'\x01\x02', 7), ('b', 2.5, None, 'x'), ('5', 3, b'', None)]),
    ])
    with QueryEngine.open(path) as eng:
        assert eng.execute_sql("SELECT label FROM things WHERE rowid = 2").to_lists() == [['b']]
        assert eng.execute_sql("SELECT label FROM things WHERE _rowid_ = 3").to_lists() == [['5']]
        assert eng.execute_sql("SELECT label FROM things WHERE amount = 3").to_lists() == [['5']]
        assert eng.execute_sql("SELECT label FROM things WHERE label = 5").to_lists() == [['5']]
        assert eng.execute_sql("SELECT label FROM things WHERE data = X'0102'").to_lists() == [
            ['a']]
        assert eng.execute_sql("SELECT label FROM things WHERE code = 7").to_lists() == [['a']]

        row = eng.execute_sql("SELECT amount, data FROM things WHERE rowid = 1").fetchall()[0]
        assert row.values == [Value(Type.FLOAT, 1.0), Value(Type.BLOB, b'\x01\x02')]


def test_utf16_database(make_db):
    path = make_db([
        "PRAGMA encoding = 'UTF-16le'",
        "CREATE TABLE words (w TEXT)",
        ("INSERT INTO words VALUES (?)", [('héllo',), ('wörld',)]),
    ])
    with QueryEngine.open(path) as eng:
        assert eng.header.encoding == 'utf-16-le'
        assert eng.execute_sql("SELECT w FROM words").to_lists() == [['héllo'], ['wörld']]


@pytest.mark.parametrize("encoding", ['UTF-16le', 'UTF-16be'])
def test_utf16_index_seek(make_db, encoding):
    # Code point order and UTF-16 byte order disagree for these words
    words = [chr(0x100 + i) + str(i) for i in range(300)] + [f"b{i}" for i in range(300)]
    path = make_db([
        f"PRAGMA encoding = '{encoding}'",
        "CREATE TABLE words (w TEXT)",
        ("INSERT INTO words VALUES (?)", [(w,) for w in words]),
        "CREATE INDEX idx_words_w ON words (w)",
    ], name="words16.db", page_size=512)

    with QueryEngine.open(path) as eng:
        for word in ('b5', 'b250', chr(0x103) + '3', chr(0x22b) + '299', 'zzz'):
            result = eng.execute(QueryRequest('words', ['w'], where=Filter('w', word)))
            assert result.plan.access_method == INDEX_SEEK
            assert result.to_lists() == expected_rows(
                path, "SELECT w FROM words WHERE w = ?", (word,))


def test_dbinfo_and_stats(engine):
    info = engine.dbinfo()
    assert info["number_of_tables"] == 1
    assert info["page_size"] == engine.header.page_size

    engine.execute_sql("SELECT * FROM users").to_lists()
    stats = engine.get_stats()
    assert stats["pages_read"] >= 2
    assert stats["btree"]["table_pages"] >= 1
    assert set(stats["buffer_pool"]) >= {"hits", "misses", "hit_ratio"}
    assert engine.table_names() == ['users']
    assert engine.describe('users').rowid_alias_index == 0
