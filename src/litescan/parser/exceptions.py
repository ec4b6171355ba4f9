"""
Parser Exceptions - Custom exceptions for parsing errors
"""

from ..exceptions import LiteScanError


class LiteScanParseError(LiteScanError):
    """Base class for parsing errors"""
    pass


class LiteScanLexerError(LiteScanParseError):
    """Lexer/tokenization errors"""
    pass


class LiteScanSyntaxError(LiteScanParseError):
    """Syntax errors in SQL statements"""
    pass
