#!/usr/bin/env python3
"""
SQLWeave Dialect Registry

Resolves the active dialect once and hands out the matching mapper bundle.
Call sites never branch on the dialect themselves; they receive a
DialectMappers instance and use whatever it contains.

Usage:
    mappers = get_mappers(resolve_dialect(get_config()))
    mappers.quote.quote_identifier("users.id")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from core.errors import ConfigurationError, ValidationError
from core.order_by import MySQLOrderByMapper, OrderByMapper, PostgreSQLOrderByMapper, SQLiteOrderByMapper
from core.quoting import MySQLQuoteMapper, PostgreSQLQuoteMapper, QuoteMapper, SQLiteQuoteMapper
from core.trigger_translator import MySQLTriggerMapper, PostgreSQLTriggerMapper, SQLiteTriggerMapper, TriggerMapper
from core.type_registry import MySQLTypeMapper, PostgreSQLTypeMapper, SQLiteTypeMapper, TypeMapper

logger = logging.getLogger(__name__)


class Dialect(Enum):
    """Supported SQL dialects"""
    POSTGRESQL = "pgsql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_driver(cls, driver: str) -> 'Dialect':
        """
        Map a configured driver name to a dialect.

        Examples:
            >>> Dialect.from_driver("postgres")
            <Dialect.POSTGRESQL: 'pgsql'>
            >>> Dialect.from_driver("mariadb")
            <Dialect.MYSQL: 'mysql'>
        """
        normalized = (driver or '').strip().lower()
        if normalized in DRIVER_ALIASES:
            return DRIVER_ALIASES[normalized]
        raise ConfigurationError(
            f"Unsupported database driver: '{driver}'. "
            f"Supported: {', '.join(sorted(DRIVER_ALIASES))}",
            {'driver': driver}
        )


DRIVER_ALIASES = {
    'pgsql': Dialect.POSTGRESQL,
    'postgres': Dialect.POSTGRESQL,
    'postgresql': Dialect.POSTGRESQL,
    'mysql': Dialect.MYSQL,
    'mariadb': Dialect.MYSQL,
    'sqlite': Dialect.SQLITE,
    'sqlite3': Dialect.SQLITE,
}


class JoinType(Enum):
    """JOIN keywords"""
    JOIN = "JOIN"
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"
    FULL_OUTER = "FULL OUTER JOIN"
    CROSS = "CROSS JOIN"

    @classmethod
    def from_string(cls, raw: str) -> 'JoinType':
        """Accept 'LEFT', 'left join', 'FULL OUTER' and the like."""
        normalized = ' '.join(str(raw).strip().upper().split())
        if not normalized.endswith('JOIN'):
            normalized = f"{normalized} JOIN"
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(f"Unknown join type: '{raw}'", {'type': raw})


@dataclass(frozen=True)
class DialectCapabilities:
    """What a dialect can do natively"""
    supports_triggers: bool
    transactional_ddl: bool
    join_types: FrozenSet[JoinType]
    lock_acquire_sql: Optional[str] = None
    lock_release_sql: Optional[str] = None

    @property
    def supports_advisory_lock(self) -> bool:
        return self.lock_acquire_sql is not None


@dataclass(frozen=True)
class DialectMappers:
    """The mapper set for one dialect, injected into queries and the migration manager"""
    dialect: Dialect
    type: TypeMapper
    quote: QuoteMapper
    trigger: TriggerMapper
    order_by: OrderByMapper
    capabilities: DialectCapabilities


CAPABILITIES: Dict[Dialect, DialectCapabilities] = {
    Dialect.POSTGRESQL: DialectCapabilities(
        supports_triggers=True,
        transactional_ddl=True,
        join_types=frozenset(JoinType),
        lock_acquire_sql="SELECT 1 AS acquired FROM pg_advisory_lock(:lock_key)",
        lock_release_sql="SELECT pg_advisory_unlock(:lock_key)",
    ),
    Dialect.MYSQL: DialectCapabilities(
        supports_triggers=False,
        transactional_ddl=False,
        join_types=frozenset(JoinType) - {JoinType.FULL_OUTER},
        lock_acquire_sql="SELECT GET_LOCK(:lock_name, -1) AS acquired",
        lock_release_sql="SELECT RELEASE_LOCK(:lock_name)",
    ),
    Dialect.SQLITE: DialectCapabilities(
        supports_triggers=False,
        transactional_ddl=True,
        join_types=frozenset({JoinType.JOIN, JoinType.INNER, JoinType.LEFT, JoinType.CROSS}),
    ),
}


def _build(dialect: Dialect, quote: QuoteMapper, type_cls, trigger_cls, order_by_cls) -> DialectMappers:
    return DialectMappers(
        dialect=dialect,
        type=type_cls(quote),
        quote=quote,
        trigger=trigger_cls(quote),
        order_by=order_by_cls(quote),
        capabilities=CAPABILITIES[dialect],
    )


# Built once at import; mappers hold no per-query state
_REGISTRY: Dict[Dialect, DialectMappers] = {
    Dialect.POSTGRESQL: _build(Dialect.POSTGRESQL, PostgreSQLQuoteMapper(),
                               PostgreSQLTypeMapper, PostgreSQLTriggerMapper, PostgreSQLOrderByMapper),
    Dialect.MYSQL: _build(Dialect.MYSQL, MySQLQuoteMapper(),
                          MySQLTypeMapper, MySQLTriggerMapper, MySQLOrderByMapper),
    Dialect.SQLITE: _build(Dialect.SQLITE, SQLiteQuoteMapper(),
                           SQLiteTypeMapper, SQLiteTriggerMapper, SQLiteOrderByMapper),
}


def get_mappers(dialect) -> DialectMappers:
    """Return the mapper bundle for a Dialect (or a driver name)."""
    if not isinstance(dialect, Dialect):
        dialect = Dialect.from_driver(dialect)
    return _REGISTRY[dialect]


def resolve_dialect(config) -> Dialect:
    """Resolve the dialect from a config object exposing ``db_driver``."""
    dialect = Dialect.from_driver(config.db_driver)
    logger.debug(f"Resolved dialect {dialect.name} from driver '{config.db_driver}'")
    return dialect
