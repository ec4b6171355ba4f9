import sqlite3

import pytest


def create_database(path, statements, page_size=None):
    """Write a database with the sqlite3 module; tuples run through executemany"""
    conn = sqlite3.connect(str(path))
    try:
        if page_size:
            conn.execute(f"PRAGMA page_size = {page_size}")
        for statement in statements:
            if isinstance(statement, tuple):
                sql, rows = statement
                conn.executemany(sql, rows)
            else:
                conn.execute(statement)
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture
def make_db(tmp_path):
    def make(statements, name="test.db", page_size=None):
        return create_database(tmp_path / name, statements, page_size)
    return make


@pytest.fixture
def users_db(make_db):
    return make_db([
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)",
        ("INSERT INTO users VALUES (?, ?)", [(1, "alice"), (2, "bob")]),
    ])
