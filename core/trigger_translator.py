#!/usr/bin/env python3
"""
SQLWeave Trigger Mappers

Emits "touch a timestamp column on update" trigger DDL.

Only PostgreSQL needs (and supports) this through a trigger function:
- get_function_name: set_<table>_<column>
- get_function_body: assigns CURRENT_TIMESTAMP to NEW.<column> and returns NEW
- get_trigger_declaration: BEFORE UPDATE trigger bound to the function

MySQL covers the same need with ``ON UPDATE CURRENT_TIMESTAMP`` on the column
and SQLite is skipped; both return empty strings, which callers treat as a
silent no-op.
"""

import logging
from abc import ABC, abstractmethod

from core.quoting import QuoteMapper

logger = logging.getLogger(__name__)


class TriggerMapper(ABC):
    """Per-dialect trigger DDL fragments"""

    def __init__(self, quote: QuoteMapper):
        self.quote = quote

    @abstractmethod
    def supports_triggers(self) -> bool:
        ...

    @abstractmethod
    def get_function_name(self, table: str, column: str) -> str:
        ...

    @abstractmethod
    def get_function_body(self, column: str) -> str:
        ...

    @abstractmethod
    def get_trigger_declaration(self, table: str, function_name: str, column: str) -> str:
        ...

    @staticmethod
    def get_trigger_name(table: str, column: str) -> str:
        return f"trigger_{table}_{column}"


class PostgreSQLTriggerMapper(TriggerMapper):

    def supports_triggers(self) -> bool:
        return True

    def get_function_name(self, table: str, column: str) -> str:
        return f"set_{table}_{column}"

    def get_function_body(self, column: str) -> str:
        return (
            "BEGIN\n"
            f"  NEW.{self.quote.quote_identifier(column)} = CURRENT_TIMESTAMP;\n"
            "  RETURN NEW;\n"
            "END;"
        )

    def get_trigger_declaration(self, table: str, function_name: str, column: str) -> str:
        trigger_name = self.get_trigger_name(table, column)
        return (
            f"CREATE TRIGGER {self.quote.quote_identifier(trigger_name)} "
            f"BEFORE UPDATE ON {self.quote.quote_identifier(table)} "
            f"FOR EACH ROW EXECUTE FUNCTION {function_name}();"
        )


class _NoTriggerMapper(TriggerMapper):
    """Dialects where update triggers are not generated"""

    def supports_triggers(self) -> bool:
        return False

    def get_function_name(self, table: str, column: str) -> str:
        return ''

    def get_function_body(self, column: str) -> str:
        return ''

    def get_trigger_declaration(self, table: str, function_name: str, column: str) -> str:
        return ''


class MySQLTriggerMapper(_NoTriggerMapper):
    pass


class SQLiteTriggerMapper(_NoTriggerMapper):
    pass
