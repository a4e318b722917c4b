#!/usr/bin/env python3
"""
Migration run lock and per-dialect apply paths over a recording executor.

PostgreSQL and MySQL are not available in unit tests; the recording
executor answers the ledger and lock queries and logs every call in order.
"""

import logging
from contextlib import contextmanager

import pytest

from core.errors import ExecutionError, MigrationError
from core.migration import MIGRATION_LOCK_KEY, MIGRATION_LOCK_NAME, MigrationManager

LOCK_PARAMS = {'lock_key': MIGRATION_LOCK_KEY, 'lock_name': MIGRATION_LOCK_NAME}


class RecordingExecutor:
    def __init__(self, lock_result=1, applied=(), fail_on=None):
        self.lock_result = lock_result
        self.applied = list(applied)
        self.fail_on = fail_on
        self.log = []

    def execute(self, sql, params=None):
        self.log.append(('execute', sql, dict(params or {})))
        if 'AS acquired' in sql:
            return [{'acquired': self.lock_result}]
        if sql.startswith('SELECT') and 'migrations' in sql:
            return [{'filename': f} for f in self.applied]
        if sql.startswith('SELECT'):
            return [{'released': 1}]
        return 1

    def execute_raw(self, sql):
        self.log.append(('raw', sql))
        if self.fail_on and self.fail_on in sql:
            raise ExecutionError("statement failed", dialect='test', sql=sql)
        return True

    @contextmanager
    def transaction(self):
        self.log.append(('begin',))
        try:
            yield self
        except Exception:
            self.log.append(('rollback',))
            raise
        self.log.append(('commit',))

    def steps(self):
        return [entry[0] for entry in self.log]


@pytest.fixture
def one_file(migrations_dir):
    (migrations_dir / '001_a.sql').write_text('CREATE TABLE "a" ("id" INTEGER);')
    return migrations_dir


class TestRunLock:

    def test_postgres_lock_wraps_run(self, pg, one_file):
        executor = RecordingExecutor()
        assert MigrationManager(executor, pg, one_file).migrate() == ['001_a.sql']
        assert executor.log[0] == ('execute', 'SELECT 1 AS acquired FROM pg_advisory_lock(:lock_key)', LOCK_PARAMS)
        assert executor.log[-1] == ('execute', 'SELECT pg_advisory_unlock(:lock_key)', LOCK_PARAMS)
        # lock, ledger DDL, ledger read, file + record in one transaction, unlock
        assert executor.steps() == ['execute', 'raw', 'execute', 'begin', 'raw', 'execute', 'commit', 'execute']

    def test_mysql_lock_wraps_run(self, mysql, one_file):
        executor = RecordingExecutor()
        MigrationManager(executor, mysql, one_file).migrate()
        assert executor.log[0] == ('execute', 'SELECT GET_LOCK(:lock_name, -1) AS acquired', LOCK_PARAMS)
        assert executor.log[-1] == ('execute', 'SELECT RELEASE_LOCK(:lock_name)', LOCK_PARAMS)

    def test_lock_released_when_a_file_fails(self, pg, one_file):
        executor = RecordingExecutor(fail_on='CREATE TABLE "a"')
        with pytest.raises(MigrationError):
            MigrationManager(executor, pg, one_file).migrate()
        assert ('rollback',) in executor.log
        assert executor.log[-1] == ('execute', 'SELECT pg_advisory_unlock(:lock_key)', LOCK_PARAMS)

    @pytest.mark.parametrize("result", [0, None])
    def test_get_lock_refused(self, mysql, one_file, result):
        """GET_LOCK answers 0 on timeout and NULL on error; neither is a lock."""
        executor = RecordingExecutor(lock_result=result)
        with pytest.raises(MigrationError, match="Could not acquire the migration lock") as exc:
            MigrationManager(executor, mysql, one_file).migrate()
        assert exc.value.details['result'] == result
        # nothing scanned, nothing to release
        assert len(executor.log) == 1

    def test_lock_disabled(self, pg, one_file):
        executor = RecordingExecutor()
        MigrationManager(executor, pg, one_file, use_lock=False).migrate()
        assert not any('advisory' in entry[1] for entry in executor.log if len(entry) > 1)


class TestMySQLApply:
    """MySQL commits DDL implicitly, so files run outside a transaction."""

    def test_file_then_ledger_row_without_transaction(self, mysql, one_file):
        executor = RecordingExecutor()
        assert MigrationManager(executor, mysql, one_file).migrate() == ['001_a.sql']
        assert 'begin' not in executor.steps()
        raw_file = executor.log.index(('raw', 'CREATE TABLE "a" ("id" INTEGER);'))
        insert = executor.log[raw_file + 1]
        assert insert[1] == 'INSERT INTO `migrations` (`filename`) VALUES (:filename_1);'
        assert insert[2] == {'filename_1': '001_a.sql'}

    def test_failure_names_file_and_warns(self, mysql, one_file, caplog):
        executor = RecordingExecutor(fail_on='CREATE TABLE "a"')
        with caplog.at_level(logging.ERROR, logger='core.migration'):
            with pytest.raises(MigrationError) as exc:
                MigrationManager(executor, mysql, one_file).migrate()
        assert exc.value.filename == '001_a.sql'
        assert 'may be partially applied' in caplog.text
        assert 'begin' not in executor.steps()
        assert not any(entry[1].startswith('INSERT') for entry in executor.log if entry[0] == 'execute')

    def test_applied_files_skipped(self, mysql, one_file):
        executor = RecordingExecutor(applied=['001_a.sql'])
        assert MigrationManager(executor, mysql, one_file).migrate() == []
