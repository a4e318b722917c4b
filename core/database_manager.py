#!/usr/bin/env python3
"""
SQLWeave Database Manager

Builds the executor for the configured dialect once per instance and hands
it out explicitly. There is no module-level connection: the process entry
point owns the manager and passes ``manager.executor`` / ``manager.mappers``
to whatever needs them.

Supported backends:
- SQLite (standard library sqlite3)
- PostgreSQL (psycopg2)
- MySQL (PyMySQL)

Usage:
    with DatabaseManager() as manager:
        MigrationManager(manager.executor, manager.mappers, config.migrations_dir).migrate()
"""

import importlib
import logging
import threading
from typing import Any, Dict, Optional

from config.secure_config import EngineConfig, get_config
from core.dialect import Dialect, DialectMappers, get_mappers, resolve_dialect
from core.errors import ConfigurationError
from core.executor import Executor

logger = logging.getLogger(__name__)

# Adapter modules expose create_executor(config); imported on first use
ADAPTER_MODULES: Dict[Dialect, str] = {
    Dialect.POSTGRESQL: 'extensions.plugins.postgresql_adapter',
    Dialect.MYSQL: 'extensions.plugins.mysql_adapter',
    Dialect.SQLITE: 'extensions.plugins.sqlite_adapter',
}


class DatabaseManager:
    """
    Dialect + executor owner for one process entry point.

    The executor is created lazily on first access and cached for the
    lifetime of this manager; ``close()`` releases it.
    """

    def __init__(self, config: Optional[EngineConfig] = None, executor: Optional[Executor] = None):
        """Initialize database manager"""
        self.config = config or get_config()
        self.dialect = resolve_dialect(self.config)
        self.mappers: DialectMappers = get_mappers(self.dialect)
        self._executor = executor
        self._lock = threading.RLock()
        logger.info(f"Database manager initialized for dialect: {self.dialect.name}")

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            with self._lock:
                if self._executor is None:
                    self._executor = self._create_executor()
        return self._executor

    def _create_executor(self) -> Executor:
        module_name = ADAPTER_MODULES[self.dialect]
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigurationError(
                f"Driver for {self.dialect.name} is not installed: {e}",
                {'driver': self.config.db_driver, 'module': module_name}
            ) from e

        executor = module.create_executor(self.config)
        logger.info(f"Opened {type(executor).__name__} for {self.dialect.name}")
        return executor

    def get_backend_info(self) -> Dict[str, Any]:
        capabilities = self.mappers.capabilities
        return {
            'dialect': self.dialect.value,
            'connected': self._executor is not None,
            'supports_triggers': capabilities.supports_triggers,
            'transactional_ddl': capabilities.transactional_ddl,
            'advisory_lock': capabilities.supports_advisory_lock,
            'join_types': sorted(j.value for j in capabilities.join_types),
        }

    def close(self) -> None:
        """Close the executor, if one was opened"""
        with self._lock:
            if self._executor is not None:
                self._executor.close()
                self._executor = None
                logger.info(f"Closed {self.dialect.name} executor")

    def __enter__(self) -> 'DatabaseManager':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
