"""
Command Line Interface Module - REPL and one-shot commands over the query engine
"""

import cmd
import sys
from typing import List, Optional

from .query.engine import QueryEngine
from .query.executor import QueryResult
from .parser.exceptions import LiteScanParseError
from .exceptions import LiteScanError


def format_row(row) -> str:
    """Pipe-separated values; NULL prints as an empty field"""
    return "|".join(str(value) for value in row.values)


def print_dbinfo(engine: QueryEngine) -> None:
    info = engine.dbinfo()
    print(f"database page size: {info['page_size']}")
    print(f"number of tables: {info['number_of_tables']}")


def print_tables(engine: QueryEngine) -> None:
    print(" ".join(engine.table_names()))


def print_schema(engine: QueryEngine, table_name: str = '') -> None:
    """Print stored creation SQL, for one table or the whole catalog"""
    for entry in engine.catalog.entries:
        if entry.sql is None:
            continue
        if table_name and entry.tbl_name.lower() != table_name.lower():
            continue
        print(f"{entry.sql};")


def print_stats(engine: QueryEngine) -> None:
    stats = engine.get_stats()
    btree = stats['btree']
    pool = stats['buffer_pool']
    print(f"pages read: {stats['pages_read']}")
    print(f"parsed {btree['table_pages']} table pages and {btree['index_pages']} index pages "
          f"({btree['overflow_pages']} overflow)")
    print(f"buffer pool: {pool['current_size']}/{pool['capacity']} pages, "
          f"hit ratio {pool['hit_ratio']}")


def run_command(engine: QueryEngine, command: str) -> int:
    """
    Run one command and print its output the way the sqlite3 shell does

    Args:
        engine: Open query engine
        command: Dot-command or SELECT statement

    Returns:
        Process exit code
    """
    command = command.strip()
    try:
        if command == '.dbinfo':
            print_dbinfo(engine)
        elif command == '.tables':
            print_tables(engine)
        elif command.startswith('.schema'):
            print_schema(engine, command[len('.schema'):].strip())
        elif command == '.stats':
            print_stats(engine)
        elif command.startswith('.'):
            print(f"Unknown command: {command}", file=sys.stderr)
            return 1
        else:
            for row in engine.execute_sql(command):
                print(format_row(row))
    except LiteScanParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 1
    except LiteScanError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


class LiteScanREPL(cmd.Cmd):
    """Interactive REPL for reading SQLite database files"""

    intro = """
    ╔══════════════════════════════════════╗
    ║      LiteScan                        ║
    ║      Read-only SQLite file reader    ║
    ║      Type 'help' for commands        ║
    ╚══════════════════════════════════════╝

    Commands:
      open <path>       .dbinfo    .tables    .schema [table]    .stats
      describe <table>
      SELECT col, ... | * | COUNT(*) FROM table [WHERE col = value] [LIMIT n]
    """
    prompt = "litescan> "

    def __init__(self, db_path: Optional[str] = None):
        super().__init__()
        self.engine = None
        self.db_path = None
        if db_path:
            self.do_open(db_path)

    def do_quit(self, arg):
        """Exit the REPL"""
        self._close()
        print("Goodbye!")
        return True

    def do_exit(self, arg):
        """Exit the REPL"""
        return self.do_quit(arg)

    def do_EOF(self, arg):
        """Exit on Ctrl-D"""
        print()
        return self.do_quit(arg)

    def emptyline(self):
        """Do nothing on an empty line"""
        return False

    def _close(self):
        if self.engine:
            self.engine.close()
            self.engine = None
            self.db_path = None

    def do_open(self, path):
        """Open a database file: open <path>"""
        path = path.strip()
        if not path:
            print("Usage: open <path>")
            return

        try:
            engine = QueryEngine.open(path)
        except LiteScanError as e:
            print(f"Error opening database: {e}")
            return

        self._close()
        self.engine = engine
        self.db_path = path
        self.prompt = f"litescan({path})> "
        print(f"Using database: {path}")
        print(f"Loaded {engine.catalog.table_count()} tables from catalog")

    def do_describe(self, table_name):
        """Describe a table schema: describe <table>"""
        if not self.engine:
            print("No database open")
            return

        try:
            schema = self.engine.describe(table_name.strip())
        except LiteScanError as e:
            print(f"Error: {e}")
            return

        print(f"\nTable: {schema.name} (root page {schema.root_page})")
        print("-" * 60)
        print(f"{'Column':<20} | {'Type':<15} | {'Constraints'}")
        print("-" * 60)

        for col in schema.columns:
            constraints = ' '.join(col.constraints)
            if col.is_rowid_alias:
                constraints = f"{constraints} (rowid)".strip()
            print(f"{col.name:<20} | {col.declared_type:<15} | {constraints}")

        for index in self.engine.catalog.indexes_for(schema.name):
            columns = ', '.join(name or '<expr>' for name in index.columns)
            print(f"index {index.name} ({columns})")
        print()

    def default(self, line: str) -> None:
        """Handle dot-commands and SQL"""
        if not self.engine:
            print("No database open. Use: open <path>")
            return

        command = line.strip()
        if command.startswith('.'):
            if command in ('.quit', '.exit'):
                return self.do_quit('')
            run_command(self.engine, command)
            return

        try:
            result = self.engine.execute_sql(command)
            self._display_select_result(result)
        except LiteScanParseError as e:
            print(f"Parse error: {e}")
        except LiteScanError as e:
            print(f"Error: {e}")

    def _display_select_result(self, result: QueryResult) -> None:
        """Display SELECT query result in table format"""
        columns = result.columns
        data = [[str(value) for value in row.values] for row in result]

        if not data:
            print("Empty result set")
            return

        # Calculate column widths
        col_widths = []
        for i, col in enumerate(columns):
            max_len = len(str(col))
            for row in data:
                max_len = max(max_len, len(row[i]))
            col_widths.append(min(max_len, 50))  # Cap at 50 chars

        # Print header
        header = " | ".join(f"{col:<{width}}" for col, width in zip(columns, col_widths))
        separator = "-+-".join("-" * width for width in col_widths)

        print(header)
        print(separator)

        # Print rows
        for row in data:
            row_str = " | ".join(f"{val:<{width}}" for val, width in zip(row, col_widths))
            print(row_str)

        print(f"\n{len(data)} row(s) returned")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point

    litescan <db> <command>   run one command and exit
    litescan [db]             start the REPL
    """
    args = sys.argv[1:] if argv is None else argv

    if len(args) >= 2:
        try:
            engine = QueryEngine.open(args[0])
        except LiteScanError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        with engine:
            return run_command(engine, " ".join(args[1:]))

    repl = LiteScanREPL(args[0] if args else None)
    try:
        repl.cmdloop()
    except KeyboardInterrupt:
        print("\nExiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
