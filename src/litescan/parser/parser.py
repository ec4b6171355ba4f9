"""
SQL Parser - Parses tokens into AST

Handles the CREATE TABLE and CREATE INDEX statements stored in the schema
catalog and the restricted SELECT form accepted by the front ends.
"""

from typing import List, Optional, Union
from .lexer import Lexer, Token, TokenType
from .ast import (Node, Column, Literal, Expression, BinaryExpression, UnaryExpression,
                  ColumnExpression, LiteralExpression, FunctionCall, SelectStatement,
                  ColumnDefinition, CreateTableStatement, IndexedColumn,
                  CreateIndexStatement)
from .exceptions import LiteScanLexerError, LiteScanSyntaxError
from ..types.value import Type

# Keywords that cannot stand in for a bare name
RESERVED = {
    TokenType.SELECT, TokenType.FROM, TokenType.WHERE, TokenType.LIMIT,
    TokenType.AND, TokenType.OR, TokenType.NOT, TokenType.NULL, TokenType.IS,
    TokenType.AS, TokenType.CREATE, TokenType.TABLE, TokenType.INDEX,
    TokenType.UNIQUE, TokenType.ON, TokenType.CONSTRAINT, TokenType.PRIMARY,
    TokenType.CHECK, TokenType.FOREIGN, TokenType.REFERENCES, TokenType.DEFAULT,
    TokenType.COLLATE, TokenType.GENERATED,
}

NAME_TOKENS = {TokenType.IDENTIFIER, TokenType.QUOTED_IDENTIFIER, TokenType.STRING_LITERAL}

TABLE_CONSTRAINT_START = {
    TokenType.CONSTRAINT, TokenType.PRIMARY, TokenType.UNIQUE,
    TokenType.CHECK, TokenType.FOREIGN,
}

COMPARISON_TOKENS = {
    TokenType.EQ, TokenType.NEQ, TokenType.LT, TokenType.GT, TokenType.LTE, TokenType.GTE,
}

LITERAL_TOKENS = {
    TokenType.NUMBER, TokenType.FLOAT_LITERAL, TokenType.STRING_LITERAL,
    TokenType.BLOB_LITERAL, TokenType.NULL,
}


class Parser:
    """SQL parser that builds AST from tokens"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self.current_token = tokens[0] if tokens else None

    def parse(self) -> Node:
        """Parse one statement, rejecting trailing tokens"""
        if not self.tokens or self.current_token.type == TokenType.EOF:
            raise LiteScanSyntaxError("Empty statement")

        if self._match(TokenType.SELECT):
            statement = self.parse_select()
        elif self._match(TokenType.CREATE):
            statement = self.parse_create()
        else:
            raise LiteScanSyntaxError(f"Unexpected token: {self.current_token}")

        self._match(TokenType.SEMICOLON)
        if self.current_token.type != TokenType.EOF:
            raise LiteScanSyntaxError(f"Unexpected trailing input: {self.current_token}")
        return statement

    # --------------------------------------------------------------------
    # SELECT
    # --------------------------------------------------------------------

    def parse_select(self) -> SelectStatement:
        """Parse SELECT statement"""
        # SELECT already consumed
        columns = self.parse_column_list()

        # FROM clause
        self._consume(TokenType.FROM, "Expected FROM after columns")
        table_name = self._name("Expected table name")
        if self._match(TokenType.DOT):
            table_name = self._name("Expected table name after .")

        # WHERE clause (optional)
        where_clause = None
        if self._match(TokenType.WHERE):
            where_clause = self.parse_expression()

        # LIMIT clause (optional)
        limit = None
        if self._match(TokenType.LIMIT):
            limit_token = self._consume(TokenType.NUMBER, "Expected number after LIMIT")
            limit = int(limit_token.value, 0)

        return SelectStatement(
            columns=columns,
            table_name=table_name,
            where_clause=where_clause,
            limit=limit
        )

    def parse_column_list(self) -> List[Union[Column, FunctionCall]]:
        """Parse list of result columns"""
        columns = [self.parse_result_column()]
        while self._match(TokenType.COMMA):
            columns.append(self.parse_result_column())
        return columns

    def parse_result_column(self) -> Union[Column, FunctionCall]:
        """Parse *, a column reference or a function call such as COUNT(*)"""
        if self._match(TokenType.STAR):  # SELECT *
            return Column(name="*")

        if (self.current_token.type == TokenType.IDENTIFIER
                and self._peek().type == TokenType.LPAREN):
            return self.parse_function_call()

        return self.parse_column()

    def parse_function_call(self) -> FunctionCall:
        """Parse name(*) or name(expr, ...)"""
        name = self._advance().value.upper()
        self._consume(TokenType.LPAREN, "Expected ( after function name")
        if self._match(TokenType.STAR):
            self._consume(TokenType.RPAREN, "Expected ) after *")
            return FunctionCall(function_name=name, star=True)

        arguments = []
        if self.current_token.type != TokenType.RPAREN:
            arguments.append(self.parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self.parse_expression())
        self._consume(TokenType.RPAREN, "Expected ) after function arguments")
        return FunctionCall(function_name=name, arguments=arguments)

    def parse_column(self) -> Column:
        """Parse a column reference"""
        # Could be: column_name or table_name.column_name
        quoted = self.current_token.type == TokenType.QUOTED_IDENTIFIER
        first = self._name("Expected column name")

        if self._match(TokenType.DOT):
            quoted = self.current_token.type == TokenType.QUOTED_IDENTIFIER
            column_name = self._name("Expected column name after .")
            return Column(name=column_name, table_alias=first, quoted=quoted)
        return Column(name=first, quoted=quoted)

    # --------------------------------------------------------------------
    # Expressions
    # --------------------------------------------------------------------

    def parse_expression(self) -> Expression:
        """Parse an expression"""
        return self.parse_logical_or()

    def parse_logical_or(self) -> Expression:
        """Parse OR expressions"""
        expr = self.parse_logical_and()

        while self._match(TokenType.OR):
            right = self.parse_logical_and()
            expr = BinaryExpression(left=expr, operator='OR', right=right)

        return expr

    def parse_logical_and(self) -> Expression:
        """Parse AND expressions"""
        expr = self.parse_comparison()

        while self._match(TokenType.AND):
            right = self.parse_comparison()
            expr = BinaryExpression(left=expr, operator='AND', right=right)

        return expr

    def parse_comparison(self) -> Expression:
        """Parse comparison expressions"""
        expr = self.parse_unary()

        while self.current_token.type in COMPARISON_TOKENS:
            operator = self._advance().value
            if operator == '==':
                operator = '='
            elif operator == '<>':
                operator = '!='
            right = self.parse_unary()
            expr = BinaryExpression(left=expr, operator=operator, right=right)

        return expr

    def parse_unary(self) -> Expression:
        """Parse unary expressions, folding signs into numeric literals"""
        if self._match(TokenType.NOT):
            operand = self.parse_unary()
            return UnaryExpression(operator='NOT', operand=operand)

        if self._match(TokenType.PLUS, TokenType.MINUS):
            operator = self.previous_token().value
            operand = self.parse_unary()
            if (isinstance(operand, LiteralExpression)
                    and operand.literal.value_type in (Type.INTEGER, Type.FLOAT)):
                if operator == '-':
                    operand.literal.value = -operand.literal.value
                return operand
            return UnaryExpression(operator=operator, operand=operand)

        return self.parse_primary()

    def parse_primary(self) -> Expression:
        """Parse primary expressions"""
        if self._match(TokenType.NUMBER):
            value = int(self.previous_token().value, 0)
            return LiteralExpression(Literal(value=value, value_type=Type.INTEGER))

        elif self._match(TokenType.FLOAT_LITERAL):
            value = float(self.previous_token().value)
            return LiteralExpression(Literal(value=value, value_type=Type.FLOAT))

        elif self._match(TokenType.STRING_LITERAL):
            value = self.previous_token().value
            return LiteralExpression(Literal(value=value, value_type=Type.TEXT))

        elif self._match(TokenType.BLOB_LITERAL):
            hex_digits = self.previous_token().value
            if len(hex_digits) % 2:
                raise LiteScanSyntaxError(f"Malformed blob literal X'{hex_digits}'")
            return LiteralExpression(Literal(value=bytes.fromhex(hex_digits),
                                             value_type=Type.BLOB))

        elif self._match(TokenType.NULL):
            return LiteralExpression(Literal(value=None, value_type=Type.NULL))

        elif self._match(TokenType.LPAREN):
            expr = self.parse_expression()
            self._consume(TokenType.RPAREN, "Expected ) after expression")
            return expr

        elif (self.current_token.type == TokenType.IDENTIFIER
              and self._peek().type == TokenType.LPAREN):
            return self.parse_function_call()

        else:
            # Must be a column reference
            column = self.parse_column()
            return ColumnExpression(column=column)

    # --------------------------------------------------------------------
    # CREATE
    # --------------------------------------------------------------------

    def parse_create(self) -> Node:
        """Parse CREATE statement"""
        # CREATE already consumed
        self._match(TokenType.TEMP)

        if self._match(TokenType.VIRTUAL):
            self._consume(TokenType.TABLE, "Expected TABLE after VIRTUAL")
            return self.parse_create_virtual_table()
        if self._match(TokenType.TABLE):
            return self.parse_create_table()
        if self._match(TokenType.UNIQUE):
            self._consume(TokenType.INDEX, "Expected INDEX after UNIQUE")
            return self.parse_create_index(unique=True)
        if self._match(TokenType.INDEX):
            return self.parse_create_index(unique=False)
        raise LiteScanSyntaxError(f"Expected TABLE or INDEX after CREATE, got {self.current_token}")

    def _parse_if_not_exists(self) -> bool:
        if self._match(TokenType.IF):
            self._consume(TokenType.NOT, "Expected NOT after IF")
            self._consume(TokenType.EXISTS, "Expected EXISTS after NOT")
            return True
        return False

    def _parse_qualified_name(self, message: str):
        """Parse [schema.]name, returning (schema, name)"""
        name = self._name(message)
        if self._match(TokenType.DOT):
            return name, self._name(message)
        return None, name

    def parse_create_table(self) -> CreateTableStatement:
        """Parse CREATE TABLE statement"""
        if_not_exists = self._parse_if_not_exists()
        schema_name, table_name = self._parse_qualified_name("Expected table name")

        if self.current_token.type == TokenType.AS:
            raise LiteScanSyntaxError("CREATE TABLE ... AS SELECT has no column list")
        self._consume(TokenType.LPAREN, "Expected ( after table name")

        statement = CreateTableStatement(table_name=table_name,
                                         if_not_exists=if_not_exists,
                                         schema_name=schema_name)

        # Parse definitions (columns, then table constraints)
        while True:
            if self.current_token.type in TABLE_CONSTRAINT_START:
                self.parse_table_constraint(statement)
            else:
                statement.columns.append(self.parse_column_definition())

            if not self._match(TokenType.COMMA):
                break

        self._consume(TokenType.RPAREN, "Expected ) after column definitions")

        # Table options: WITHOUT ROWID, STRICT
        while self.current_token.type in (TokenType.WITHOUT, TokenType.IDENTIFIER):
            if self._match(TokenType.WITHOUT):
                option = self._consume(TokenType.IDENTIFIER, "Expected ROWID after WITHOUT")
                if option.value.upper() != 'ROWID':
                    raise LiteScanSyntaxError(f"Expected ROWID after WITHOUT, got {option}")
                statement.without_rowid = True
            else:
                option = self._advance()
                if option.value.upper() != 'STRICT':
                    raise LiteScanSyntaxError(f"Unknown table option {option.value}")
                statement.strict = True
            if not self._match(TokenType.COMMA):
                break

        if not statement.columns:
            raise LiteScanSyntaxError(f"Table {table_name} declares no columns")
        return statement

    def parse_create_virtual_table(self) -> CreateTableStatement:
        """Parse CREATE VIRTUAL TABLE name USING module(...)"""
        if_not_exists = self._parse_if_not_exists()
        schema_name, table_name = self._parse_qualified_name("Expected table name")
        self._consume(TokenType.USING, "Expected USING after virtual table name")
        module = self._name("Expected module name")
        if self._match(TokenType.LPAREN):
            self._skip_until_depth_zero({TokenType.RPAREN})
            self._consume(TokenType.RPAREN, "Expected ) after module arguments")
        return CreateTableStatement(table_name=table_name, if_not_exists=if_not_exists,
                                    schema_name=schema_name, virtual_module=module)

    def parse_column_definition(self) -> ColumnDefinition:
        """Parse column definition in CREATE TABLE"""
        name = self._name("Expected column name")

        # Type name: zero or more words, then an optional (n) or (n, m)
        type_words = []
        while self.current_token.type == TokenType.IDENTIFIER:
            type_words.append(self._advance().value)
        data_type = ' '.join(type_words)
        if type_words and self.current_token.type == TokenType.LPAREN:
            data_type += self._collect_parenthesized()

        column = ColumnDefinition(name=name, data_type=data_type)

        # Column constraints up to the next top-level comma
        while self.current_token.type not in (TokenType.COMMA, TokenType.RPAREN,
                                              TokenType.EOF):
            if self._match(TokenType.CONSTRAINT):
                self._name("Expected constraint name")
            elif self._match(TokenType.PRIMARY):
                self._consume(TokenType.KEY, "Expected KEY after PRIMARY")
                column.primary_key = True
                column.constraints.append("PRIMARY KEY")
                if self._match(TokenType.DESC):
                    column.primary_key_descending = True
                else:
                    self._match(TokenType.ASC)
            elif self._match(TokenType.NOT):
                # NOT DEFERRABLE follows REFERENCES clauses
                if self._match(TokenType.NULL):
                    column.constraints.append("NOT NULL")
            elif self._match(TokenType.UNIQUE):
                column.constraints.append("UNIQUE")
            elif self._match(TokenType.AUTOINCREMENT):
                column.constraints.append("AUTOINCREMENT")
            elif self._match(TokenType.DEFAULT):
                column.constraints.append("DEFAULT")
                column.default = self.parse_default()
            elif self._match(TokenType.COLLATE):
                column.constraints.append(f"COLLATE {self._name('Expected collation name')}")
            elif self._match(TokenType.AS):
                # [GENERATED ALWAYS] AS (expr) [VIRTUAL | STORED]
                self._collect_parenthesized()
                if (self.current_token.type == TokenType.IDENTIFIER
                        and self.current_token.value.upper() == 'STORED'):
                    self._advance()
                    column.generated = 'STORED'
                else:
                    self._match(TokenType.VIRTUAL)
                    column.generated = 'VIRTUAL'
                column.constraints.append(f"GENERATED {column.generated}")
            elif self.current_token.type == TokenType.LPAREN:
                self._collect_parenthesized()
            else:
                # CHECK, REFERENCES, ON CONFLICT, GENERATED ALWAYS ... and their arguments
                self._advance()

        return column

    def parse_table_constraint(self, statement: CreateTableStatement) -> None:
        """Parse a table constraint, keeping only a PRIMARY KEY column list"""
        if self._match(TokenType.CONSTRAINT):
            self._name("Expected constraint name")

        if self._match(TokenType.PRIMARY):
            self._consume(TokenType.KEY, "Expected KEY after PRIMARY")
            self._consume(TokenType.LPAREN, "Expected ( after PRIMARY KEY")
            for term in self._parse_indexed_columns():
                if term.name is not None:
                    statement.primary_key.append(term.name)

        self._skip_until_depth_zero({TokenType.COMMA, TokenType.RPAREN})

    def parse_create_index(self, unique: bool) -> CreateIndexStatement:
        """Parse CREATE [UNIQUE] INDEX statement"""
        if_not_exists = self._parse_if_not_exists()
        schema_name, index_name = self._parse_qualified_name("Expected index name")
        self._consume(TokenType.ON, "Expected ON after index name")
        table_name = self._name("Expected table name")
        self._consume(TokenType.LPAREN, "Expected ( after table name")
        columns = self._parse_indexed_columns()

        partial = False
        if self._match(TokenType.WHERE):
            partial = True
            self._skip_until_depth_zero({TokenType.SEMICOLON})

        return CreateIndexStatement(index_name=index_name, table_name=table_name,
                                    columns=columns, unique=unique,
                                    if_not_exists=if_not_exists, schema_name=schema_name,
                                    partial=partial)

    def _parse_indexed_columns(self) -> List[IndexedColumn]:
        """Parse indexed-column terms after '(' through the closing ')'"""
        terms = []
        while True:
            name = None
            if (self._is_name(self.current_token)
                    and self._peek().type in (TokenType.COMMA, TokenType.RPAREN,
                                              TokenType.COLLATE, TokenType.ASC,
                                              TokenType.DESC)):
                name = self._name("Expected column name")
            else:
                # Expression term
                self._skip_until_depth_zero({TokenType.COMMA, TokenType.RPAREN,
                                             TokenType.COLLATE, TokenType.ASC,
                                             TokenType.DESC})

            term = IndexedColumn(name=name)
            if self._match(TokenType.COLLATE):
                term.collation = self._name("Expected collation name")
            if self._match(TokenType.DESC):
                term.descending = True
            else:
                self._match(TokenType.ASC)
            terms.append(term)

            if not self._match(TokenType.COMMA):
                break

        self._consume(TokenType.RPAREN, "Expected ) after indexed columns")
        return terms

    # Helper methods
    def _is_name(self, token: Token) -> bool:
        if token.type in NAME_TOKENS:
            return True
        # Non-reserved keywords (KEY, ASC, TEMP, ...) double as names
        return (token.type not in RESERVED and token.value.isidentifier()
                and token.type not in (TokenType.EOF, TokenType.ERROR))

    def _name(self, message: str) -> str:
        """Consume an identifier, quoted identifier or non-reserved keyword"""
        if self.current_token and self._is_name(self.current_token):
            return self._advance().value
        raise LiteScanSyntaxError(f"{message}, got {self.current_token}")

    def _collect_parenthesized(self) -> str:
        """Consume a balanced (...) group, returning its text"""
        self._consume(TokenType.LPAREN, "Expected (")
        parts = []
        depth = 1
        while depth:
            token = self.current_token
            if token.type == TokenType.EOF:
                raise LiteScanSyntaxError("Unbalanced parentheses")
            if token.type == TokenType.LPAREN:
                depth += 1
            elif token.type == TokenType.RPAREN:
                depth -= 1
            self._advance()
            if depth:
                parts.append(token.value)
        text = ' '.join(parts).replace(' , ', ', ')
        return f"({text})"

    def parse_default(self) -> Optional[Literal]:
        """
        Parse one DEFAULT value

        Returns:
            The value when it is a constant literal, optionally signed or
            parenthesized; None for expressions such as CURRENT_TIMESTAMP
        """
        if self.current_token.type == TokenType.LPAREN:
            offset = 2 if self._peek().type in (TokenType.PLUS, TokenType.MINUS) else 1
            if (self._peek(offset).type in LITERAL_TOKENS
                    and self._peek(offset + 1).type == TokenType.RPAREN):
                self._advance()
                literal = self.parse_default()
                self._consume(TokenType.RPAREN, "Expected ) after default value")
                return literal
            self._collect_parenthesized()
            return None

        if self.current_token.type in LITERAL_TOKENS | {TokenType.PLUS, TokenType.MINUS}:
            expr = self.parse_unary()
            if isinstance(expr, LiteralExpression):
                return expr.literal
            return None

        token = self._advance()
        if token.type == TokenType.QUOTED_IDENTIFIER:
            return Literal(value=token.value, value_type=Type.TEXT)
        if token.type == TokenType.IDENTIFIER and token.value.upper() in ('TRUE', 'FALSE'):
            return Literal(value=int(token.value.upper() == 'TRUE'), value_type=Type.INTEGER)
        return None

    def _skip_until_depth_zero(self, stop_types: set) -> None:
        """Advance until a stop token outside any parentheses, or EOF"""
        depth = 0
        while self.current_token.type != TokenType.EOF:
            token_type = self.current_token.type
            if depth == 0 and token_type in stop_types:
                return
            if token_type == TokenType.LPAREN:
                depth += 1
            elif token_type == TokenType.RPAREN:
                if depth == 0:
                    return
                depth -= 1
            self._advance()

    def _advance(self) -> Token:
        """Move to next token"""
        if self.position < len(self.tokens) - 1:
            self.position += 1
            self.current_token = self.tokens[self.position]
        return self.previous_token()

    def _peek(self, offset: int = 1) -> Token:
        """Look ahead without consuming"""
        index = min(self.position + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _match(self, *token_types: str) -> bool:
        """Check if current token matches any of the given types"""
        if self.current_token and self.current_token.type in token_types:
            self._advance()
            return True
        return False

    def _consume(self, token_type: str, message: str) -> Token:
        """Consume token of expected type or raise error"""
        if self.current_token and self.current_token.type == token_type:
            return self._advance()
        raise LiteScanSyntaxError(f"{message}, got {self.current_token}")

    def previous_token(self) -> Token:
        """Get previous token"""
        if self.position > 0:
            return self.tokens[self.position - 1]
        return None

    @classmethod
    def parse_sql(cls, sql: str) -> Node:
        """Parse SQL string into AST"""
        lexer = Lexer(sql)
        tokens = lexer.tokenize()

        # Check for lexer errors
        for token in tokens:
            if token.type == TokenType.ERROR:
                raise LiteScanLexerError(
                    f"Unexpected character at {token.line}:{token.column}: {token.value}")

        parser = cls(tokens)
        return parser.parse()


def parse_create_table(create_sql: str) -> CreateTableStatement:
    """Parse stored CREATE TABLE text"""
    statement = Parser.parse_sql(create_sql)
    if not isinstance(statement, CreateTableStatement):
        raise LiteScanSyntaxError("Not a CREATE TABLE statement")
    return statement


def parse_columns(create_sql: str) -> List[ColumnDefinition]:
    """Ordered column definitions of a CREATE TABLE statement"""
    return parse_create_table(create_sql).columns


def parse_index(create_sql: str) -> CreateIndexStatement:
    """Parse stored CREATE INDEX text"""
    statement = Parser.parse_sql(create_sql)
    if not isinstance(statement, CreateIndexStatement):
        raise LiteScanSyntaxError("Not a CREATE INDEX statement")
    return statement
