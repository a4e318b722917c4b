"""
Per-dialect ORDER BY rendering: direction plus null ordering.

    PostgreSQL  "f" DESC NULLS LAST       (native)
    MySQL       `f` IS NULL ASC, `f` DESC (emulated)
    SQLite      "f" DESC                  (nulls directive dropped)
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from core.errors import ValidationError
from core.quoting import QuoteMapper

logger = logging.getLogger(__name__)

DIRECTIONS = ('ASC', 'DESC')
NULLS_ORDERINGS = ('FIRST', 'LAST')


def normalize_direction(direction: str) -> str:
    if not isinstance(direction, str) or direction.strip().upper() not in DIRECTIONS:
        raise ValidationError(
            f"Invalid ORDER BY direction: {direction!r}. Expected ASC or DESC",
            {'direction': direction}
        )
    return direction.strip().upper()


def normalize_nulls(nulls: Optional[str]) -> Optional[str]:
    if nulls is None:
        return None
    if not isinstance(nulls, str) or nulls.strip().upper() not in NULLS_ORDERINGS:
        raise ValidationError(
            f"Invalid NULLS ordering: {nulls!r}. Expected FIRST or LAST",
            {'nulls': nulls}
        )
    return nulls.strip().upper()


class OrderByMapper(ABC):
    """Renders one ORDER BY entry for a dialect"""

    def __init__(self, quote: QuoteMapper):
        self.quote = quote

    def build_direction(self, direction: str) -> str:
        return normalize_direction(direction)

    @abstractmethod
    def build_nulls(self, quoted_field: str, direction: str, nulls: Optional[str]) -> List[str]:
        """Combine an already quoted field, a direction and a null ordering into fragments."""

    def build_clause(self, field: str, direction: str = 'ASC', nulls: Optional[str] = None) -> List[str]:
        """
        Build the comma-separated ORDER BY fragments for one field.

        Examples:
            >>> PostgreSQLOrderByMapper(PostgreSQLQuoteMapper()).build_clause('created_at', 'DESC', 'LAST')
            ['"created_at" DESC NULLS LAST']
            >>> MySQLOrderByMapper(MySQLQuoteMapper()).build_clause('created_at', 'DESC', 'LAST')
            ['`created_at` IS NULL ASC', '`created_at` DESC']
        """
        return self.build_nulls(
            self.quote.quote_identifier(field),
            self.build_direction(direction),
            normalize_nulls(nulls),
        )


class PostgreSQLOrderByMapper(OrderByMapper):

    def build_nulls(self, quoted_field: str, direction: str, nulls: Optional[str]) -> List[str]:
        suffix = f" NULLS {nulls}" if nulls else ''
        return [f"{quoted_field} {direction}{suffix}"]


class MySQLOrderByMapper(OrderByMapper):

    def build_nulls(self, quoted_field: str, direction: str, nulls: Optional[str]) -> List[str]:
        fragments = []
        if nulls:
            # IS NULL evaluates to 1 for nulls, so DESC puts them first
            order = 'DESC' if nulls == 'FIRST' else 'ASC'
            fragments.append(f"{quoted_field} IS NULL {order}")
        fragments.append(f"{quoted_field} {direction}")
        return fragments


class SQLiteOrderByMapper(OrderByMapper):

    def build_nulls(self, quoted_field: str, direction: str, nulls: Optional[str]) -> List[str]:
        if nulls:
            logger.warning(f"SQLite ignores NULLS {nulls} for {quoted_field}, ordering by direction only")
        return [f"{quoted_field} {direction}"]
