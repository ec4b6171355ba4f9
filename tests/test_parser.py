import pytest
from litescan.parser.lexer import Lexer, TokenType
from litescan.parser.parser import Parser, parse_create_table, parse_columns, parse_index
from litescan.parser.ast import (SelectStatement, Column, FunctionCall, BinaryExpression,
                                 ColumnExpression, LiteralExpression, CreateTableStatement,
                                 Literal)
from litescan.parser.exceptions import (LiteScanParseError, LiteScanLexerError,
                                        LiteScanSyntaxError)
from litescan.types.value import Type


def test_lexer_tokens():
    tokens = Lexer("SELECT name FROM t WHERE x = 'it''s' -- trailing").tokenize()
    types = [token.type for token in tokens]

    assert types == [TokenType.SELECT, TokenType.IDENTIFIER, TokenType.FROM,
                     TokenType.IDENTIFIER, TokenType.WHERE, TokenType.IDENTIFIER,
                     TokenType.EQ, TokenType.STRING_LITERAL, TokenType.EOF]
    assert tokens[7].value == "it's"


def test_lexer_quoted_identifiers_and_literals():
    tokens = Lexer('"a ""b""" [c d] `e` X\'0aff\' 0x10 1.5e3').tokenize()
    assert [(t.type, t.value) for t in tokens[:-1]] == [
        (TokenType.QUOTED_IDENTIFIER, 'a "b"'),
        (TokenType.QUOTED_IDENTIFIER, 'c d'),
        (TokenType.QUOTED_IDENTIFIER, 'e'),
        (TokenType.BLOB_LITERAL, '0aff'),
        (TokenType.NUMBER, '0x10'),
        (TokenType.FLOAT_LITERAL, '1.5e3'),
    ]


def test_select_statement():
    statement = Parser.parse_sql("SELECT name, email FROM users WHERE id = 2 LIMIT 10;")

    assert isinstance(statement, SelectStatement)
    assert statement.columns == [Column(name='name'), Column(name='email')]
    assert statement.table_name == 'users'
    assert statement.limit == 10
    assert statement.where_clause.operator == '='
    assert statement.where_clause.left.column.name == 'id'
    assert statement.where_clause.right.literal.value == 2


def test_select_star_and_count():
    assert Parser.parse_sql("SELECT * FROM t").columns == [Column(name='*')]

    count = Parser.parse_sql("select count(*) from t").columns[0]
    assert isinstance(count, FunctionCall)
    assert count.function_name == 'COUNT'
    assert count.star


def test_where_literals():
    def where(sql):
        return Parser.parse_sql(f"SELECT a FROM t WHERE {sql}").where_clause

    assert where("a == -5").operator == '='
    assert where("a == -5").right.literal.value == -5
    assert where("a = 2.5").right.literal.value_type == Type.FLOAT
    assert where("a = X'0aff'").right.literal.value == b'\x0a\xff'
    assert where("a = NULL").right.literal.value_type == Type.NULL
    assert where("a <> 1").operator == '!='

    reversed_clause = where("'bob' = a")
    assert isinstance(reversed_clause.left, LiteralExpression)
    assert isinstance(reversed_clause.right, ColumnExpression)

    combined = where("a = 1 AND b = 2")
    assert isinstance(combined, BinaryExpression)
    assert combined.operator == 'AND'


def test_quoted_column_reference():
    clause = Parser.parse_sql('SELECT a FROM t WHERE "b" = 1').where_clause
    assert clause.left.column == Column(name='b', quoted=True)


@pytest.mark.parametrize("sql", [
    "",
    "SELECT",
    "SELECT FROM t",
    "SELECT a t",
    "SELECT a FROM t LIMIT",
    "SELECT a FROM t extra",
    "DELETE FROM t",
    "CREATE TABLE t ()",
])
def test_syntax_errors(sql):
    with pytest.raises(LiteScanSyntaxError):
        Parser.parse_sql(sql)


def test_lexer_errors():
    with pytest.raises(LiteScanLexerError):
        Parser.parse_sql("SELECT a FROM t WHERE a = ?")
    with pytest.raises(LiteScanParseError):
        Parser.parse_sql("SELECT a FROM t WHERE a = #")


def test_create_table():
    statement = parse_create_table("""
        CREATE TABLE IF NOT EXISTS main.orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            total DECIMAL(10,2) DEFAULT 0.0 CHECK (total >= 0),
            note VARCHAR(20) COLLATE NOCASE,
            status TEXT DEFAULT 'new',
            raw
        )
    """)

    assert isinstance(statement, CreateTableStatement)
    assert statement.table_name == 'orders'
    assert statement.schema_name == 'main'
    assert statement.if_not_exists
    assert [c.name for c in statement.columns] == ['id', 'user_id', 'total', 'note',
                                                   'status', 'raw']
    assert [c.data_type for c in statement.columns] == [
        'INTEGER', 'INTEGER', 'DECIMAL(10, 2)', 'VARCHAR(20)', 'TEXT', '']
    assert statement.columns[0].primary_key
    assert 'AUTOINCREMENT' in statement.columns[0].constraints
    assert 'NOT NULL' in statement.columns[1].constraints
    assert 'COLLATE NOCASE' in statement.columns[3].constraints


def test_create_table_constraints_and_options():
    statement = parse_create_table(
        'CREATE TABLE "pairs" (a INT, b TEXT, CONSTRAINT pk PRIMARY KEY (a DESC), '
        'UNIQUE (b), FOREIGN KEY (a) REFERENCES other(x)) WITHOUT ROWID, STRICT')

    assert statement.table_name == 'pairs'
    assert statement.primary_key == ['a']
    assert statement.without_rowid
    assert statement.strict
    assert len(statement.columns) == 2


def test_primary_key_desc_column():
    column = parse_columns("CREATE TABLE t (id INTEGER PRIMARY KEY DESC, v)")[0]
    assert column.primary_key
    assert column.primary_key_descending


def test_not_deferrable_reference():
    columns = parse_columns("CREATE TABLE t (a INTEGER REFERENCES p(id) NOT DEFERRABLE, "
                            "b TEXT NOT NULL)")
    assert [c.name for c in columns] == ['a', 'b']
    assert 'NOT NULL' not in columns[0].constraints
    assert 'NOT NULL' in columns[1].constraints


def test_column_defaults():
    columns = parse_columns(
        "CREATE TABLE t (a INTEGER DEFAULT -5, b TEXT DEFAULT 'new', c DEFAULT (7), "
        "d REAL DEFAULT +1.5, e DEFAULT CURRENT_TIMESTAMP, f DEFAULT (abs(-2)), "
        "g DEFAULT NULL NOT NULL, h INTEGER)")

    defaults = [c.default for c in columns]
    assert defaults[0] == Literal(value=-5, value_type=Type.INTEGER)
    assert defaults[1] == Literal(value='new', value_type=Type.TEXT)
    assert defaults[2] == Literal(value=7, value_type=Type.INTEGER)
    assert defaults[3] == Literal(value=1.5, value_type=Type.FLOAT)
    assert defaults[4] is None
    assert defaults[5] is None
    assert defaults[6] == Literal(value=None, value_type=Type.NULL)
    assert defaults[7] is None
    assert 'NOT NULL' in columns[6].constraints
    assert [c.name for c in columns] == ['a', 'b', 'c', 'd', 'e', 'f', 'g', 'h']


def test_generated_columns():
    columns = parse_columns(
        "CREATE TABLE t (a INTEGER, b INTEGER GENERATED ALWAYS AS (a * 2) VIRTUAL, "
        "c TEXT AS (upper(a)) STORED, d AS (a + 1), e TEXT NOT NULL)")

    assert [c.name for c in columns] == ['a', 'b', 'c', 'd', 'e']
    assert [c.generated for c in columns] == [None, 'VIRTUAL', 'STORED', 'VIRTUAL', None]
    assert columns[1].data_type == 'INTEGER'
    assert columns[3].data_type == ''
    assert 'NOT NULL' in columns[4].constraints


def test_keyword_like_column_names():
    columns = parse_columns("CREATE TABLE t (key TEXT, [order] INT, desc TEXT)")
    assert [c.name for c in columns] == ['key', 'order', 'desc']


def test_create_virtual_table():
    statement = Parser.parse_sql("CREATE VIRTUAL TABLE docs USING fts5(title, body)")
    assert statement.virtual_module == 'fts5'
    assert statement.columns == []


def test_create_index():
    index = parse_index("CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email "
                        "ON users (email COLLATE NOCASE, name DESC)")

    assert index.index_name == 'idx_users_email'
    assert index.table_name == 'users'
    assert index.unique
    assert index.if_not_exists
    assert [term.name for term in index.columns] == ['email', 'name']
    assert index.columns[0].collation == 'NOCASE'
    assert index.columns[1].descending
    assert not index.partial


def test_expression_and_partial_index():
    index = parse_index("CREATE INDEX idx_lower ON users (lower(name), id) WHERE id > 10")
    assert index.columns[0].name is None
    assert index.columns[1].name == 'id'
    assert index.partial


def test_create_helpers_reject_other_statements():
    with pytest.raises(LiteScanSyntaxError):
        parse_create_table("CREATE INDEX i ON t (a)")
    with pytest.raises(LiteScanSyntaxError):
        parse_index("CREATE TABLE t (a)")
