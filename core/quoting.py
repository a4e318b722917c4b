"""
Identifier and literal quoting, one mapper per dialect.
"""

from abc import ABC
from typing import Any

from core.errors import ValidationError


class QuoteMapper(ABC):
    """Quotes identifiers, aliases and literal values for one dialect."""

    quote_char = '"'
    true_literal = 'TRUE'
    false_literal = 'FALSE'

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote a possibly dotted identifier segment by segment.

        Examples:
            >>> PostgreSQLQuoteMapper().quote_identifier("users.id")
            '"users"."id"'
            >>> MySQLQuoteMapper().quote_identifier("users.id")
            '`users`.`id`'
        """
        q = self.quote_char
        return '.'.join(
            f"{q}{part.replace(q, q + q)}{q}" for part in identifier.split('.')
        )

    def quote_alias(self, identifier: str, alias: str) -> str:
        return f"{self.quote_identifier(identifier)} AS {self.quote_identifier(alias)}"

    def quote_value(self, value: Any) -> str:
        """Render a literal value; only None, bool, int, float and str are accepted."""
        if value is None:
            return 'NULL'
        if isinstance(value, bool):
            return self.true_literal if value else self.false_literal
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            escaped = value.replace("'", "''")
            return f"'{escaped}'"
        raise ValidationError(
            f"Unsupported value type for quoting: {type(value).__name__}",
            {'value': repr(value)}
        )


class PostgreSQLQuoteMapper(QuoteMapper):
    pass


class MySQLQuoteMapper(QuoteMapper):
    quote_char = '`'


class SQLiteQuoteMapper(QuoteMapper):
    true_literal = '1'
    false_literal = '0'
