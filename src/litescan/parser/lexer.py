"""
SQL Lexer - Tokenizes SQL strings into tokens
Covers the SQLite dialect found in stored CREATE statements and the small
SELECT subset accepted by the front ends.
"""

import re
from typing import List, Iterator, Optional


class TokenType:
    """Token types for SQL"""
    # Keywords
    SELECT = 'SELECT'
    FROM = 'FROM'
    WHERE = 'WHERE'
    LIMIT = 'LIMIT'
    AND = 'AND'
    OR = 'OR'
    NOT = 'NOT'
    NULL = 'NULL'
    IS = 'IS'
    AS = 'AS'
    CREATE = 'CREATE'
    TEMP = 'TEMP'
    VIRTUAL = 'VIRTUAL'
    TABLE = 'TABLE'
    INDEX = 'INDEX'
    VIEW = 'VIEW'
    TRIGGER = 'TRIGGER'
    UNIQUE = 'UNIQUE'
    IF = 'IF'
    EXISTS = 'EXISTS'
    ON = 'ON'
    USING = 'USING'
    WITHOUT = 'WITHOUT'

    # Constraints & Default
    CONSTRAINT = 'CONSTRAINT'
    PRIMARY = 'PRIMARY'
    KEY = 'KEY'
    CHECK = 'CHECK'
    FOREIGN = 'FOREIGN'
    REFERENCES = 'REFERENCES'
    DEFAULT = 'DEFAULT'
    COLLATE = 'COLLATE'
    AUTOINCREMENT = 'AUTOINCREMENT'
    GENERATED = 'GENERATED'

    # Ordering
    ASC = 'ASC'
    DESC = 'DESC'

    # Literals
    IDENTIFIER = 'IDENTIFIER'
    QUOTED_IDENTIFIER = 'QUOTED_IDENTIFIER'
    STRING_LITERAL = 'STRING_LITERAL'
    BLOB_LITERAL = 'BLOB_LITERAL'
    NUMBER = 'NUMBER'
    FLOAT_LITERAL = 'FLOAT_LITERAL'

    # Operators
    EQ = 'EQ'  # = or ==
    NEQ = 'NEQ'  # != or <>
    LT = 'LT'  # <
    GT = 'GT'  # >
    LTE = 'LTE'  # <=
    GTE = 'GTE'  # >=
    CONCAT = 'CONCAT'  # ||
    PLUS = 'PLUS'  # +
    MINUS = 'MINUS'  # -
    STAR = 'STAR'  # *
    SLASH = 'SLASH'  # /
    PERCENT = 'PERCENT'  # %

    # Punctuation
    COMMA = 'COMMA'  # ,
    SEMICOLON = 'SEMICOLON'  # ;
    LPAREN = 'LPAREN'  # (
    RPAREN = 'RPAREN'  # )
    DOT = 'DOT'  # .

    # Special
    EOF = 'EOF'
    ERROR = 'ERROR'


# Bare words that are keywords; every other bare word is an identifier
KEYWORDS = {
    'SELECT': TokenType.SELECT,
    'FROM': TokenType.FROM,
    'WHERE': TokenType.WHERE,
    'LIMIT': TokenType.LIMIT,
    'AND': TokenType.AND,
    'OR': TokenType.OR,
    'NOT': TokenType.NOT,
    'NULL': TokenType.NULL,
    'IS': TokenType.IS,
    'AS': TokenType.AS,
    'CREATE': TokenType.CREATE,
    'TEMP': TokenType.TEMP,
    'TEMPORARY': TokenType.TEMP,
    'VIRTUAL': TokenType.VIRTUAL,
    'TABLE': TokenType.TABLE,
    'INDEX': TokenType.INDEX,
    'VIEW': TokenType.VIEW,
    'TRIGGER': TokenType.TRIGGER,
    'UNIQUE': TokenType.UNIQUE,
    'IF': TokenType.IF,
    'EXISTS': TokenType.EXISTS,
    'ON': TokenType.ON,
    'USING': TokenType.USING,
    'WITHOUT': TokenType.WITHOUT,
    'CONSTRAINT': TokenType.CONSTRAINT,
    'PRIMARY': TokenType.PRIMARY,
    'KEY': TokenType.KEY,
    'CHECK': TokenType.CHECK,
    'FOREIGN': TokenType.FOREIGN,
    'REFERENCES': TokenType.REFERENCES,
    'DEFAULT': TokenType.DEFAULT,
    'COLLATE': TokenType.COLLATE,
    'AUTOINCREMENT': TokenType.AUTOINCREMENT,
    'GENERATED': TokenType.GENERATED,
    'ASC': TokenType.ASC,
    'DESC': TokenType.DESC,
}


class Token:
    """A single token in the SQL stream"""

    def __init__(self, token_type: str, value: str, line: int, column: int):
        self.type = token_type
        self.value = value
        self.line = line
        self.column = column

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', {self.line}:{self.column})"

    def __eq__(self, other):
        return (self.type == other.type and
                self.value == other.value and
                self.line == other.line and
                self.column == other.column)


class Lexer:
    """SQL lexer/tokenizer"""

    # Token patterns, tried in order
    TOKEN_PATTERNS = [
        # Whitespace (ignored)
        (r'\s+', None),

        # Comments
        (r'--[^\n]*', None),
        (r'/\*[\s\S]*?(\*/|$)', None),

        # Blob literal (must come before identifiers)
        (r"[xX]'[0-9a-fA-F]*'", TokenType.BLOB_LITERAL),

        # Numbers
        (r'0[xX][0-9a-fA-F]+', TokenType.NUMBER),
        (r'(\d+\.\d*|\.\d+)([eE][+-]?\d+)?|\d+[eE][+-]?\d+', TokenType.FLOAT_LITERAL),
        (r'\d+', TokenType.NUMBER),

        # String literals, '' escapes a quote
        (r"'(?:[^']|'')*'", TokenType.STRING_LITERAL),

        # Quoted identifiers: "name", [name], `name`
        (r'"(?:[^"]|"")*"', TokenType.QUOTED_IDENTIFIER),
        (r'\[[^\]]*\]', TokenType.QUOTED_IDENTIFIER),
        (r'`(?:[^`]|``)*`', TokenType.QUOTED_IDENTIFIER),

        # Operators
        (r'!=', TokenType.NEQ),
        (r'<>', TokenType.NEQ),
        (r'<=', TokenType.LTE),
        (r'>=', TokenType.GTE),
        (r'==?', TokenType.EQ),
        (r'<', TokenType.LT),
        (r'>', TokenType.GT),
        (r'\|\|', TokenType.CONCAT),
        (r'\+', TokenType.PLUS),
        (r'-', TokenType.MINUS),
        (r'\*', TokenType.STAR),
        (r'/', TokenType.SLASH),
        (r'%', TokenType.PERCENT),

        # Punctuation
        (r',', TokenType.COMMA),
        (r';', TokenType.SEMICOLON),
        (r'\(', TokenType.LPAREN),
        (r'\)', TokenType.RPAREN),
        (r'\.', TokenType.DOT),

        # Identifiers and keywords
        (r'[^\W\d][\w$]*', TokenType.IDENTIFIER),
    ]

    _COMPILED = [(re.compile(pattern), token_type) for pattern, token_type in TOKEN_PATTERNS]

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens = []

    def tokenize(self) -> List[Token]:
        """Tokenize the input text"""
        self.tokens = []

        while self.position < len(self.text):
            token = self._next_token()
            if token:
                self.tokens.append(token)

        # Add EOF token
        self.tokens.append(Token(TokenType.EOF, '', self.line, self.column))
        return self.tokens

    def _next_token(self) -> Optional[Token]:
        """Get next token from input, or None for skipped text"""
        for regex, token_type in self._COMPILED:
            match = regex.match(self.text, self.position)
            if not match:
                continue

            value = match.group(0)
            start_line = self.line
            start_col = self.column
            self._update_position(value)

            # Skip whitespace and comments
            if token_type is None:
                return None

            if token_type == TokenType.IDENTIFIER:
                token_type = KEYWORDS.get(value.upper(), TokenType.IDENTIFIER)
            elif token_type == TokenType.STRING_LITERAL:
                value = value[1:-1].replace("''", "'")
            elif token_type == TokenType.QUOTED_IDENTIFIER:
                value = self._unquote(value)
            elif token_type == TokenType.BLOB_LITERAL:
                value = value[2:-1]

            return Token(token_type, value, start_line, start_col)

        # No pattern matched
        error_char = self.text[self.position]
        self.position += 1
        self.column += 1
        return Token(TokenType.ERROR, error_char, self.line, self.column - 1)

    @staticmethod
    def _unquote(value: str) -> str:
        """Strip identifier quotes, collapsing doubled quote characters"""
        opening = value[0]
        inner = value[1:-1]
        if opening == '"':
            return inner.replace('""', '"')
        if opening == '`':
            return inner.replace('``', '`')
        return inner

    def _update_position(self, text: str) -> None:
        """Update line and column based on consumed text"""
        for char in text:
            self.position += 1
            if char == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens"""
        return iter(self.tokens)
