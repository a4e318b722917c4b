#!/usr/bin/env python3
"""
SQLWeave PostgreSQL Adapter

Executor over psycopg2. Placeholders are translated from ``:name`` to
psycopg2's ``%(name)s``; the connection runs in autocommit mode and
``transaction()`` issues BEGIN/COMMIT itself, so DDL from migration files
is transactional.

Usage:
    executor = PostgreSQLExecutor(ConnectionConfig(
        host='localhost',
        database='app',
        user='app_user',
        password='secure_password'
    ))
    rows = executor.execute('SELECT * FROM "users";')
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import psycopg2
import psycopg2.extras

from core.dialect import Dialect
from core.errors import ExecutionError
from core.executor import Executor, to_pyformat

logger = logging.getLogger(__name__)


@dataclass
class ConnectionConfig:
    """PostgreSQL connection configuration"""
    host: str = "localhost"
    port: int = 5432
    database: str = ""
    user: str = ""
    password: str = ""
    connect_timeout: int = 10
    application_name: str = "sqlweave"

    def to_connection_params(self) -> Dict[str, Any]:
        """Convert to psycopg2 connection parameters"""
        return {
            'host': self.host,
            'port': self.port,
            'dbname': self.database,
            'user': self.user,
            'password': self.password,
            'connect_timeout': self.connect_timeout,
            'application_name': self.application_name,
        }


class PostgreSQLExecutor(Executor):
    """psycopg2-backed executor"""

    dialect = Dialect.POSTGRESQL
    driver_errors = (psycopg2.Error,)

    def __init__(self, config: Optional[ConnectionConfig] = None, connection: Any = None):
        self.config = config or ConnectionConfig()
        if connection is None:
            target = f"{self.config.host}:{self.config.port}/{self.config.database}"
            try:
                connection = psycopg2.connect(
                    cursor_factory=psycopg2.extras.RealDictCursor,
                    **self.config.to_connection_params()
                )
            except psycopg2.Error as e:
                raise ExecutionError(f"Cannot connect to PostgreSQL at {target}: {e}",
                                     dialect=self.dialect.value, details={'target': target}) from e
            connection.autocommit = True
            logger.info(f"PostgreSQL executor connected to {target}")
        super().__init__(connection)

    def translate(self, sql: str) -> str:
        return to_pyformat(sql)

    def last_insert_id(self) -> str:
        rows = self.execute("SELECT lastval() AS id")
        return str(rows[0]['id'])


def create_executor(config: Any) -> PostgreSQLExecutor:
    """Build an executor from an EngineConfig."""
    config.require('db_host', 'db_port', 'db_name', 'db_user', 'db_password')
    return PostgreSQLExecutor(ConnectionConfig(
        host=config.db_host,
        port=config.db_port,
        database=config.db_name,
        user=config.db_user,
        password=config.db_password,
    ))
