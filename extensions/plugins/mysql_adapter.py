#!/usr/bin/env python3
"""
SQLWeave MySQL Adapter

Executor over PyMySQL. Placeholders are translated from ``:name`` to
``%(name)s``. Multi-statement scripts (migration files) are enabled through
``CLIENT.MULTI_STATEMENTS`` and every result set is drained.

MySQL commits DDL implicitly, so ``transaction()`` only protects DML.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import pymysql
import pymysql.cursors
from pymysql.constants import CLIENT

from core.dialect import Dialect
from core.errors import ExecutionError
from core.executor import Executor, to_pyformat

logger = logging.getLogger(__name__)


@dataclass
class ConnectionConfig:
    """MySQL connection configuration"""
    host: str = "localhost"
    port: int = 3306
    database: str = ""
    user: str = ""
    password: str = ""
    connect_timeout: int = 10
    read_timeout: int = 30
    write_timeout: int = 30
    charset: str = "utf8mb4"

    def to_connection_params(self) -> Dict[str, Any]:
        """Convert to PyMySQL connection parameters"""
        return {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'user': self.user,
            'password': self.password,
            'connect_timeout': self.connect_timeout,
            'read_timeout': self.read_timeout,
            'write_timeout': self.write_timeout,
            'charset': self.charset,
            'autocommit': True,
            'client_flag': CLIENT.MULTI_STATEMENTS,
            'cursorclass': pymysql.cursors.DictCursor,
        }


class MySQLExecutor(Executor):
    """PyMySQL-backed executor"""

    dialect = Dialect.MYSQL
    driver_errors = (pymysql.MySQLError,)

    def __init__(self, config: Optional[ConnectionConfig] = None, connection: Any = None):
        self.config = config or ConnectionConfig()
        if connection is None:
            target = f"{self.config.host}:{self.config.port}/{self.config.database}"
            try:
                connection = pymysql.connect(**self.config.to_connection_params())
            except pymysql.MySQLError as e:
                raise ExecutionError(f"Cannot connect to MySQL at {target}: {e}",
                                     dialect=self.dialect.value, details={'target': target}) from e
            logger.info(f"MySQL executor connected to {target}")
        super().__init__(connection)

    def translate(self, sql: str) -> str:
        return to_pyformat(sql)

    def _run_script(self, sql: str) -> None:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            # later statements only surface their errors when their result set is read
            while cursor.nextset():
                pass
        finally:
            cursor.close()

    def _begin(self) -> None:
        self.connection.begin()

    def _commit(self) -> None:
        self.connection.commit()

    def _rollback(self) -> None:
        self.connection.rollback()

    def last_insert_id(self) -> str:
        return str(self.connection.insert_id())


def create_executor(config: Any) -> MySQLExecutor:
    """Build an executor from an EngineConfig."""
    config.require('db_host', 'db_port', 'db_name', 'db_user', 'db_password')
    return MySQLExecutor(ConnectionConfig(
        host=config.db_host,
        port=config.db_port,
        database=config.db_name,
        user=config.db_user,
        password=config.db_password,
    ))
