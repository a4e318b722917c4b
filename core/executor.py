#!/usr/bin/env python3
"""
SQLWeave Executor boundary

The engine only produces SQL text with ``:name`` placeholders plus a flat
parameter map. An Executor runs that against one DB-API connection. The
driver adapters in ``extensions/plugins`` subclass Executor and only supply
connection setup, the driver's exception types and placeholder translation.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from core.dialect import Dialect
from core.errors import ExecutionError

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


def to_pyformat(sql: str) -> str:
    """
    Translate ``:name`` placeholders to ``%(name)s`` for psycopg2 / PyMySQL.

    Quoted literals and identifiers are copied untouched, ``::`` casts are kept
    and literal ``%`` is doubled so the driver does not read it as a marker.

    Examples:
        >>> to_pyformat("SELECT * FROM t WHERE a = :a_1 AND b LIKE '50%:x'")
        "SELECT * FROM t WHERE a = %(a_1)s AND b LIKE '50%%:x'"
        >>> to_pyformat("SELECT :v_1::int")
        'SELECT %(v_1)s::int'
    """
    out = []
    i = 0
    length = len(sql)
    while i < length:
        char = sql[i]
        if char in ("'", '"', '`'):
            end = i + 1
            while end < length:
                if sql[end] == char:
                    # doubled quote is an escaped quote inside the literal
                    if end + 1 < length and sql[end + 1] == char:
                        end += 2
                        continue
                    break
                end += 1
            out.append(sql[i:end + 1].replace('%', '%%'))
            i = end + 1
        elif char == ':' and i + 1 < length and sql[i + 1] == ':':
            out.append('::')
            i += 2
        elif char == ':' and i + 1 < length and (sql[i + 1].isalpha() or sql[i + 1] == '_'):
            end = i + 1
            while end < length and (sql[end].isalnum() or sql[end] == '_'):
                end += 1
            out.append(f"%({sql[i + 1:end]})s")
            i = end
        elif char == '%':
            out.append('%%')
            i += 1
        else:
            out.append(char)
            i += 1
    return ''.join(out)


class Executor:
    """Base class for statement executors; one instance wraps one connection."""

    dialect: Dialect = None
    driver_errors: Tuple[type, ...] = ()

    def __init__(self, connection: Any):
        self.connection = connection
        self._last_row_id = None

    # Placeholder translation hook; sqlite3 understands :name natively
    def translate(self, sql: str) -> str:
        return sql

    def _wrap(self, exc: Exception, sql: str) -> ExecutionError:
        dialect = self.dialect.value if self.dialect else None
        return ExecutionError(f"{type(exc).__name__}: {exc}", dialect=dialect, sql=sql)

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Union[Rows, int]:
        """Run one statement; rows as dicts when it returns any, else the affected count."""
        logger.debug(f"Executing: {sql} ({len(params or {})} params)")
        cursor = self.connection.cursor()
        try:
            cursor.execute(self.translate(sql), dict(params or {}))
            if cursor.description:
                columns = [col[0] for col in cursor.description]
                return [self._row_to_dict(columns, row) for row in cursor.fetchall()]
            return cursor.rowcount
        except self.driver_errors as e:
            raise self._wrap(e, sql) from e
        finally:
            self._last_row_id = getattr(cursor, "lastrowid", None)
            cursor.close()

    @staticmethod
    def _row_to_dict(columns: List[str], row: Any) -> Dict[str, Any]:
        if isinstance(row, dict):
            return dict(row)
        return dict(zip(columns, row))

    def execute_raw(self, sql: str) -> bool:
        """Run a script with no bindable parameters (DDL, migration files)."""
        logger.debug(f"Executing raw SQL ({len(sql)} chars)")
        try:
            self._run_script(sql)
        except self.driver_errors as e:
            raise self._wrap(e, sql) from e
        return True

    def _run_script(self, sql: str) -> None:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
        finally:
            cursor.close()

    def last_insert_id(self) -> str:
        raise NotImplementedError("Subclasses must implement last_insert_id")

    # Transactions

    def _begin(self) -> None:
        self._run_script('BEGIN')

    def _commit(self) -> None:
        self._run_script('COMMIT')

    def _rollback(self) -> None:
        self._run_script('ROLLBACK')

    @contextmanager
    def transaction(self) -> Iterator['Executor']:
        """Run the block in one transaction; roll back and re-raise on any error."""
        try:
            self._begin()
        except self.driver_errors as e:
            raise self._wrap(e, 'BEGIN') from e
        try:
            yield self
        except BaseException:
            try:
                self._rollback()
            except self.driver_errors as e:
                logger.error(f"Rollback failed: {e}")
            raise
        try:
            self._commit()
        except self.driver_errors as e:
            raise self._wrap(e, 'COMMIT') from e

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None
            logger.info(f"{type(self).__name__} closed")

    def __enter__(self) -> 'Executor':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
