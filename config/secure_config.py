#!/usr/bin/env python3
"""
Configuration Manager for SQLWeave
Handles the dialect selector, connection settings and paths centrally
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = 'SQLWEAVE_'

# attribute -> environment variable, used for error messages
ENV_NAMES = {
    'db_driver': 'SQLWEAVE_DB_DRIVER',
    'db_host': 'SQLWEAVE_DB_HOST',
    'db_port': 'SQLWEAVE_DB_PORT',
    'db_name': 'SQLWEAVE_DB_NAME',
    'db_user': 'SQLWEAVE_DB_USER',
    'db_password': 'SQLWEAVE_DB_PASSWORD',
    'migrations_dir': 'SQLWEAVE_MIGRATIONS_DIR',
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class EngineConfig:
    """SQLWeave configuration settings"""

    base_dir: Path = None
    migrations_dir: Path = None

    # Dialect selector: pgsql, mysql or sqlite (aliases accepted)
    db_driver: str = "pgsql"

    # Connection settings
    db_host: Optional[str] = None
    db_port: Optional[int] = None
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None

    # Runtime settings
    log_level: str = "INFO"
    profile: str = "dev"  # dev, prod
    migration_lock: bool = True

    def __post_init__(self):
        """Initialize paths and load environment variables"""
        self.profile = os.environ.get('SQLWEAVE_PROFILE', self.profile)

        if self.base_dir is None:
            self.base_dir = Path(os.environ.get('SQLWEAVE_HOME', Path.cwd()))
        else:
            self.base_dir = Path(self.base_dir)

        if self.migrations_dir is None:
            env_dir = os.environ.get('SQLWEAVE_MIGRATIONS_DIR')
            self.migrations_dir = Path(env_dir) if env_dir else self.base_dir / 'migrations'
        else:
            self.migrations_dir = Path(self.migrations_dir)

        self.db_driver = os.environ.get('SQLWEAVE_DB_DRIVER', self.db_driver)
        self.db_host = os.environ.get('SQLWEAVE_DB_HOST', self.db_host)
        self.db_name = os.environ.get('SQLWEAVE_DB_NAME', self.db_name)
        self.db_user = os.environ.get('SQLWEAVE_DB_USER', self.db_user)
        self.db_password = os.environ.get('SQLWEAVE_DB_PASSWORD', self.db_password)

        raw_port = os.environ.get('SQLWEAVE_DB_PORT')
        if raw_port:
            try:
                self.db_port = int(raw_port)
            except ValueError as e:
                raise ConfigurationError(
                    f"SQLWEAVE_DB_PORT must be an integer, got '{raw_port}'",
                    {'field': 'db_port', 'value': raw_port}
                ) from e

        self.log_level = os.environ.get('SQLWEAVE_LOG_LEVEL', self.log_level).upper()
        self.migration_lock = _env_bool('SQLWEAVE_MIGRATION_LOCK', self.migration_lock)

        # Apply profile defaults
        if self.profile == 'prod':
            self.log_level = 'WARNING'

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError naming every unset variable among ``fields``."""
        missing = [name for name in fields if getattr(self, name, None) in (None, '')]
        if missing:
            env_names = [ENV_NAMES.get(name, ENV_PREFIX + name.upper()) for name in missing]
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(env_names)}",
                {'missing': env_names, 'driver': self.db_driver}
            )

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration as dict without sensitive values (side-effect free)"""
        return {
            'base_dir': str(self.base_dir),
            'migrations_dir': str(self.migrations_dir),
            'db_driver': self.db_driver,
            'db_host': self.db_host,
            'db_port': self.db_port,
            'db_name': self.db_name,
            'db_user': self.db_user,
            'password_configured': bool(self.db_password),
            'log_level': self.log_level,
            'profile': self.profile,
            'migration_lock': self.migration_lock,
        }


class ConfigManager:
    """Singleton configuration manager"""

    _instance: Optional['ConfigManager'] = None
    _config: Optional[EngineConfig] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.load_config()

    def load_config(self):
        """Load configuration from the environment.

        Priority (highest to lowest):
        1. Environment variables (SQLWEAVE_*)
        2. .env file (loaded into os.environ before config creation)
        3. EngineConfig dataclass defaults
        """
        base_dir = Path(os.environ.get('SQLWEAVE_HOME', Path.cwd()))
        env_file = base_dir / '.env'
        if env_file.exists():
            self._load_env_file(env_file)

        ConfigManager._config = EngineConfig()

    def _load_env_file(self, env_file: Path):
        """Load environment variables from .env file.

        Only sets values for keys not already in os.environ,
        ensuring exported env vars take precedence over .env file.
        """
        try:
            with open(env_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        key = key.strip()
                        if key not in os.environ:
                            os.environ[key] = value.strip().strip('"').strip("'")
        except OSError as e:
            logger.warning(f"Could not load .env file {env_file}: {e}")

    @property
    def config(self) -> EngineConfig:
        """Get the current configuration"""
        if self._config is None:
            self.load_config()
        return self._config

    @classmethod
    def reset(cls) -> None:
        """Drop the cached configuration so the next access re-reads the environment."""
        cls._config = None
        cls._instance = None


def get_config() -> EngineConfig:
    """Get the global configuration instance"""
    return ConfigManager().config
