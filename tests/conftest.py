#!/usr/bin/env python3
"""
SQLWeave Test Configuration - PyTest Configuration and Fixtures

Shared fixtures: per-dialect mapper bundles, sample entity descriptors,
a temporary SQLite executor and a temporary migrations directory.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.secure_config import ConfigManager
from core.dialect import Dialect, get_mappers
from core.schema_ir import EntityDescriptor, FieldDeclaration, LogicalType, clear_entities
from extensions.plugins.sqlite_adapter import SQLiteExecutor


@pytest.fixture
def pg():
    """PostgreSQL mapper bundle"""
    return get_mappers(Dialect.POSTGRESQL)


@pytest.fixture
def mysql():
    """MySQL mapper bundle"""
    return get_mappers(Dialect.MYSQL)


@pytest.fixture
def sqlite():
    """SQLite mapper bundle"""
    return get_mappers(Dialect.SQLITE)


@pytest.fixture
def users_entity():
    """The users table used across query tests"""
    return EntityDescriptor.declare('UserEntity', {
        'id': FieldDeclaration(native_type=int, primary=True, autoincrement=True),
        'name': FieldDeclaration(native_type=str),
        'email': FieldDeclaration(native_type=str, unique=True),
        'status': FieldDeclaration(native_type=str, default='draft'),
        'age': FieldDeclaration(native_type=int, nullable=True),
        'created_at': FieldDeclaration(logical_type=LogicalType.DATETIME, default='CURRENT_TIMESTAMP'),
        'updated_at': FieldDeclaration(logical_type=LogicalType.DATETIME, nullable=True, update_trigger=True),
    })


@pytest.fixture
def posts_entity():
    return EntityDescriptor.declare('BlogPost', {
        'id': FieldDeclaration(native_type=int, primary=True, autoincrement=True),
        'user_id': FieldDeclaration(native_type=int),
        'title': FieldDeclaration(native_type=str),
        'body': FieldDeclaration(logical_type=LogicalType.TEXT, nullable=True),
        'published': FieldDeclaration(native_type=bool, default=False),
    })


@pytest.fixture
def sqlite_executor(tmp_path):
    """SQLite executor over a temporary database file"""
    executor = SQLiteExecutor(database=str(tmp_path / "test_sqlweave.db"))
    yield executor
    executor.close()


@pytest.fixture
def migrations_dir(tmp_path):
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def clean_registry():
    """Entity registry and cached config are process-wide; reset around each test"""
    clear_entities()
    ConfigManager.reset()
    yield
    clear_entities()
    ConfigManager.reset()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every SQLWEAVE_* variable so config defaults apply"""
    for key in list(os.environ):
        if key.startswith('SQLWEAVE_'):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interaction"
    )
    config.addinivalue_line(
        "markers", "database: Tests that run SQL against a real database"
    )
