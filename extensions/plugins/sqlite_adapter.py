#!/usr/bin/env python3
"""
SQLWeave SQLite Adapter

Executor over the standard-library ``sqlite3`` driver. The connection runs
in autocommit mode (``isolation_level=None``) so ``transaction()`` owns
BEGIN/COMMIT explicitly and DDL stays inside the transaction.

Usage:
    executor = SQLiteExecutor(database='app.db')
    rows = executor.execute('SELECT * FROM "users" WHERE "id" = :id_1;', {'id_1': 1})
"""

import logging
import os
import sqlite3
from typing import Any, List, Optional

from core.dialect import Dialect
from core.errors import ExecutionError
from core.executor import Executor

logger = logging.getLogger(__name__)


def split_statements(script: str) -> List[str]:
    """
    Split a script into complete statements.

    ``sqlite3.complete_statement`` decides where a statement ends, so
    semicolons inside literals or trigger bodies do not split it.
    """
    statements = []
    buffer = ''
    pieces = script.split(';')
    for index, piece in enumerate(pieces):
        buffer += piece
        if index < len(pieces) - 1:
            buffer += ';'
        if sqlite3.complete_statement(buffer):
            if buffer.strip().rstrip(';').strip():
                statements.append(buffer.strip())
            buffer = ''
    if buffer.strip().rstrip(';').strip():
        statements.append(buffer.strip())
    return statements


class SQLiteExecutor(Executor):
    """SQLite executor; ``:name`` placeholders are native to sqlite3."""

    dialect = Dialect.SQLITE
    driver_errors = (sqlite3.Error,)

    def __init__(
        self,
        database: str = ':memory:',
        timeout: float = 30.0,
        connection: Optional[sqlite3.Connection] = None,
    ):
        """
        Args:
            database: Path to SQLite database file or ':memory:' for in-memory
            timeout: Seconds to wait on a locked database
            connection: Existing connection to wrap instead of opening one
        """
        self.database = database
        if connection is None:
            try:
                connection = self._connect(database, timeout)
            except (sqlite3.Error, OSError) as e:
                raise ExecutionError(f"Cannot open SQLite database {database}: {e}",
                                     dialect=self.dialect.value, details={'target': database}) from e
        super().__init__(connection)
        logger.info(f"SQLite executor initialized for {database}")

    @staticmethod
    def _connect(database: str, timeout: float) -> sqlite3.Connection:
        dirname = os.path.dirname(database) if database != ':memory:' else ''
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        connection = sqlite3.connect(database, timeout=timeout, isolation_level=None)
        connection.execute("PRAGMA foreign_keys = ON")
        logger.debug(f"Connected to SQLite database: {database}")
        return connection

    def _run_script(self, sql: str) -> None:
        # executescript() would COMMIT an open transaction first; run statements one by one
        cursor = self.connection.cursor()
        try:
            for statement in split_statements(sql):
                cursor.execute(statement)
        finally:
            cursor.close()

    def last_insert_id(self) -> str:
        return str(self._last_row_id) if self._last_row_id is not None else ''

    def tables(self) -> List[str]:
        """User tables in the database, sorted."""
        rows = self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row['name'] for row in rows]

    def __repr__(self) -> str:
        return f"SQLiteExecutor(database={self.database!r})"


def create_executor(config: Any) -> SQLiteExecutor:
    """Build an executor from an EngineConfig; only ``db_name`` is needed."""
    config.require('db_name')
    return SQLiteExecutor(database=config.db_name)
