"""
Logical type -> dialect column type mapping.

Each dialect gets one TypeMapper that turns a ColumnDescriptor into a
column-type token and a constraints string:

    PostgreSQL  id INT primary autoincrement -> serial PRIMARY KEY NOT NULL
    MySQL       id INT primary autoincrement -> INT AUTO_INCREMENT PRIMARY KEY NOT NULL
    SQLite      id INT primary autoincrement -> INTEGER PRIMARY KEY AUTOINCREMENT
"""

from abc import ABC
from typing import Any, Dict, Optional

from core.quoting import QuoteMapper
from core.schema_ir import ColumnDescriptor, LogicalType

CURRENT_TIMESTAMP = 'CURRENT_TIMESTAMP'
ON_UPDATE_CURRENT_TIMESTAMP = 'ON UPDATE CURRENT_TIMESTAMP'


class TypeMapper(ABC):
    """Base type mapper; subclasses provide TYPE_MAP and dialect quirks."""

    # SQL keywords accepted verbatim as DEFAULT values
    SQL_FUNCTIONS = (ON_UPDATE_CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)

    TYPE_MAP: Dict[LogicalType, str] = {}
    FALLBACK_TYPE = 'TEXT'

    def __init__(self, quote: QuoteMapper):
        self.quote = quote

    def get_type(self, column: ColumnDescriptor) -> str:
        return self.TYPE_MAP.get(column.logical_type, self.FALLBACK_TYPE)

    def get_constraints(self, column: ColumnDescriptor) -> str:
        parts = []

        autoincrement = self.autoincrement_token(column)
        if autoincrement:
            parts.append(autoincrement)

        if column.primary:
            parts.append('PRIMARY KEY')

        if column.unique and not column.primary:
            parts.append('UNIQUE')

        default = self.default_clause(column)
        if default:
            parts.append(default)

        parts.append('NULL' if column.nullable else 'NOT NULL')

        return ' '.join(parts)

    def autoincrement_token(self, column: ColumnDescriptor) -> Optional[str]:
        return None

    def default_clause(self, column: ColumnDescriptor) -> Optional[str]:
        if column.default is None:
            return None
        return f"DEFAULT {self.format_default(column.default)}"

    def format_default(self, value: Any) -> str:
        if self.is_sql_function(value):
            return value.strip().upper()
        return self.quote.quote_value(value)

    @classmethod
    def is_sql_function(cls, value: Any) -> bool:
        return isinstance(value, str) and value.strip().upper() in cls.SQL_FUNCTIONS

    @staticmethod
    def is_on_update_default(value: Any) -> bool:
        return isinstance(value, str) and value.strip().upper() == ON_UPDATE_CURRENT_TIMESTAMP


class PostgreSQLTypeMapper(TypeMapper):
    TYPE_MAP = {
        LogicalType.INT: 'integer',
        LogicalType.FLOAT: 'double precision',
        LogicalType.STRING: 'varchar(255)',
        LogicalType.BOOL: 'boolean',
        LogicalType.DATETIME: 'timestamp',
        LogicalType.ARRAY: 'jsonb',
        LogicalType.OBJECT: 'jsonb',
        LogicalType.MIXED: 'text',
        LogicalType.UUID: 'uuid',
        LogicalType.TEXT: 'text',
    }
    FALLBACK_TYPE = 'text'

    def get_type(self, column: ColumnDescriptor) -> str:
        if column.is_serial:
            return 'serial'
        return super().get_type(column)

    def default_clause(self, column: ColumnDescriptor) -> Optional[str]:
        # MySQL-only phrase, PostgreSQL uses a trigger instead
        if self.is_on_update_default(column.default):
            return None
        return super().default_clause(column)


class MySQLTypeMapper(TypeMapper):
    TYPE_MAP = {
        LogicalType.INT: 'INT',
        LogicalType.FLOAT: 'DOUBLE',
        LogicalType.STRING: 'VARCHAR(255)',
        LogicalType.BOOL: 'TINYINT(1)',
        LogicalType.DATETIME: 'DATETIME',
        LogicalType.ARRAY: 'JSON',
        LogicalType.OBJECT: 'JSON',
        LogicalType.MIXED: 'TEXT',
        LogicalType.UUID: 'CHAR(36)',
        LogicalType.TEXT: 'TEXT',
    }

    def get_type(self, column: ColumnDescriptor) -> str:
        if column.logical_type is LogicalType.DATETIME and self.is_sql_function(column.default):
            return 'TIMESTAMP'
        return super().get_type(column)

    def autoincrement_token(self, column: ColumnDescriptor) -> Optional[str]:
        return 'AUTO_INCREMENT' if column.autoincrement else None

    def default_clause(self, column: ColumnDescriptor) -> Optional[str]:
        if self.is_on_update_default(column.default):
            return f"DEFAULT {CURRENT_TIMESTAMP} {ON_UPDATE_CURRENT_TIMESTAMP}"
        return super().default_clause(column)


class SQLiteTypeMapper(TypeMapper):
    TYPE_MAP = {
        LogicalType.INT: 'INTEGER',
        LogicalType.FLOAT: 'REAL',
        LogicalType.STRING: 'TEXT',
        LogicalType.BOOL: 'INTEGER',
        LogicalType.DATETIME: 'TEXT',
        LogicalType.ARRAY: 'TEXT',
        LogicalType.OBJECT: 'TEXT',
        LogicalType.MIXED: 'TEXT',
        LogicalType.UUID: 'TEXT',
        LogicalType.TEXT: 'TEXT',
    }

    def get_constraints(self, column: ColumnDescriptor) -> str:
        # SQLite only accepts AUTOINCREMENT as part of the PRIMARY KEY clause
        if column.is_serial:
            return 'PRIMARY KEY AUTOINCREMENT'
        return super().get_constraints(column)

    def default_clause(self, column: ColumnDescriptor) -> Optional[str]:
        if self.is_on_update_default(column.default):
            return None
        return super().default_clause(column)
