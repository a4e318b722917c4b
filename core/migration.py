"""
SQLWeave Migration Manager
==========================

Generates one CREATE script per entity and applies pending ``.sql`` files
exactly once, in filename order, recording each in the ``migrations`` ledger.

Run shape, per pending file:

    scan -> execute(file) -> record(file) -> next file

Any failure aborts the run with a MigrationError naming the file. Files
already applied in that run stay applied. Where the dialect has
transactional DDL (PostgreSQL, SQLite) a file and its ledger row commit
together; on MySQL a failing file may be left half applied.

The scan-execute-record sequence holds an advisory lock when the dialect has
one (pg_advisory_lock, GET_LOCK). SQLite runs unlocked; the UNIQUE ledger
filename is the remaining guard.
"""

import datetime
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Union

from core.dialect import DialectMappers
from core.errors import MigrationError, SQLWeaveError
from core.executor import Executor
from core.query.builders import InsertQuery
from core.schema_builder import EntitySchemaBuilder
from core.schema_ir import EntityDescriptor, FieldDeclaration, LogicalType, list_entities

logger = logging.getLogger(__name__)

MIGRATION_ENTITY = EntityDescriptor.declare('Migration', {
    'id': FieldDeclaration(logical_type=LogicalType.INT, primary=True, autoincrement=True),
    'filename': FieldDeclaration(logical_type=LogicalType.STRING, unique=True),
    'executed_at': FieldDeclaration(logical_type=LogicalType.DATETIME, default='CURRENT_TIMESTAMP'),
})

MIGRATION_LOCK_KEY = 742_017_355
MIGRATION_LOCK_NAME = 'sqlweave_migrations'
FILE_HEADER = '-- Migration auto-generated'
TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


class MigrationManager:
    """Applies migration files against one executor."""

    def __init__(self, executor: Optional[Executor], mappers: DialectMappers,
                 migrations_dir: Union[str, Path], use_lock: bool = True):
        self.executor = executor
        self.mappers = mappers
        self.migrations_dir = Path(migrations_dir)
        self.use_lock = use_lock
        self._ledger = EntitySchemaBuilder(MIGRATION_ENTITY, mappers, executor)

    # Generation

    def generate(self, entities: Optional[Iterable[EntityDescriptor]] = None,
                 now: Optional[datetime.datetime] = None) -> List[Path]:
        """Write ``<timestamp>_create_<table>_table.sql`` for each entity (registry by default)."""
        entities = list(entities) if entities is not None else list_entities()
        if not entities:
            logger.warning("No entities registered; nothing to generate")
            return []

        timestamp = (now or datetime.datetime.now()).strftime(TIMESTAMP_FORMAT)
        self.migrations_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for entity in entities:
            filename = f"{timestamp}_create_{entity.table_name}_table.sql"
            path = self.migrations_dir / filename
            if path.exists():
                raise MigrationError(f"Migration file already exists: {filename}", filename=filename)

            sql = EntitySchemaBuilder(entity, self.mappers).create()
            path.write_text(f"{FILE_HEADER}\n{sql}\n", encoding='utf-8')
            logger.info(f"Migration generated: {filename}")
            written.append(path)
        return written

    # Ledger

    def ensure_ledger(self) -> None:
        self.executor.execute_raw(self._ledger.create())
        logger.debug(f"Ledger table {MIGRATION_ENTITY.table_name} ensured")

    def applied_migrations(self) -> Set[str]:
        rows = self._ledger.find_all({'filename': 'filename'})
        return {row['filename'] for row in rows}

    def record(self, filename: str) -> None:
        query = InsertQuery(MIGRATION_ENTITY, self.mappers, {'filename': filename})
        self.executor.execute(query.generate_sql(), query.get_params())

    # Scanning

    def migration_files(self) -> List[str]:
        if not self.migrations_dir.is_dir():
            logger.warning(f"Migrations directory {self.migrations_dir} does not exist")
            return []
        return sorted(p.name for p in self.migrations_dir.iterdir() if p.is_file() and p.suffix == '.sql')

    def scan_migrations(self) -> List[str]:
        """Pending filenames, in lexicographic (chronological) order."""
        self.ensure_ledger()
        applied = self.applied_migrations()
        return sorted(set(self.migration_files()) - applied)

    def status(self) -> Dict[str, List[str]]:
        """Applied and pending filenames; applies nothing."""
        self.ensure_ledger()
        applied = self.applied_migrations()
        pending = sorted(set(self.migration_files()) - applied)
        return {'applied': sorted(applied), 'pending': pending}

    # Execution

    def migrate(self) -> List[str]:
        """Apply every pending file in order; return the filenames applied."""
        applied = []
        with self._run_lock():
            pending = self.scan_migrations()
            if not pending:
                logger.info("No pending migrations")
            for filename in pending:
                self._apply(filename)
                applied.append(filename)
        return applied

    def _read(self, filename: str) -> str:
        path = self.migrations_dir / filename
        if not path.is_file():
            raise MigrationError(f"Migration file not found: {path}", filename=filename)
        try:
            sql = path.read_text(encoding='utf-8').strip()
        except (OSError, UnicodeDecodeError) as e:
            raise MigrationError(f"Cannot read migration file {path}: {e}", filename=filename) from e
        if not sql:
            raise MigrationError(f"Migration file is empty: {path}", filename=filename)
        return sql

    def _apply(self, filename: str) -> None:
        try:
            sql = self._read(filename)
            if self.mappers.capabilities.transactional_ddl:
                with self.executor.transaction():
                    self.executor.execute_raw(sql)
                    self.record(filename)
            else:
                self.executor.execute_raw(sql)
                self.record(filename)
        except MigrationError as e:
            logger.error(f"Migration {filename} aborted: {e}")
            raise
        except SQLWeaveError as e:
            logger.error(f"Migration {filename} failed: {e}")
            if not self.mappers.capabilities.transactional_ddl:
                logger.error(f"{self.mappers.dialect.name} commits DDL implicitly; {filename} may be partially applied")
            raise MigrationError(f"Migration {filename} failed: {e.message}", filename=filename,
                                 details=e.details) from e
        logger.info(f"[Migration] Applied: {filename}")

    @contextmanager
    def _run_lock(self) -> Iterator[None]:
        capabilities = self.mappers.capabilities
        if not self.use_lock:
            yield
            return
        if not capabilities.supports_advisory_lock:
            logger.warning(f"{self.mappers.dialect.name} has no advisory lock; migrating without run lock")
            yield
            return

        params = {'lock_key': MIGRATION_LOCK_KEY, 'lock_name': MIGRATION_LOCK_NAME}
        rows = self.executor.execute(capabilities.lock_acquire_sql, params)
        # GET_LOCK answers 0 on timeout and NULL on error
        acquired = rows[0].get('acquired') if isinstance(rows, list) and rows else None
        if acquired != 1:
            raise MigrationError("Could not acquire the migration lock",
                                 details={'lock': MIGRATION_LOCK_NAME, 'result': acquired})
        logger.debug("Migration lock acquired")
        try:
            yield
        finally:
            self.executor.execute(capabilities.lock_release_sql, params)
            logger.debug("Migration lock released")
