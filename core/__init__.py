#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQLWeave Core Package Initialization
Exports the main components for clean imports
"""

from core.errors import (
    ConfigurationError, ErrorCode, ExecutionError, MigrationError,
    SchemaError, SQLWeaveError, ValidationError,
)
from core.schema_ir import (
    ColumnDescriptor, EntityDescriptor, FieldDeclaration, LogicalType,
    clear_entities, derive_table_name, get_entity, list_entities, register_entity,
)
from core.dialect import (
    Dialect, DialectCapabilities, DialectMappers, JoinType, get_mappers, resolve_dialect,
)
from core.query import (
    CreateQuery, InsertQuery, ParameterBag, SelectQuery, TriggerQuery, WhereOperator,
)
from core.schema_builder import EntitySchemaBuilder
from core.executor import Executor
from core.migration import MIGRATION_ENTITY, MigrationManager

__version__ = "0.1.0"

__all__ = [
    # Errors
    'SQLWeaveError', 'ErrorCode', 'ConfigurationError', 'ValidationError',
    'SchemaError', 'MigrationError', 'ExecutionError',

    # Schema
    'LogicalType', 'FieldDeclaration', 'ColumnDescriptor', 'EntityDescriptor',
    'derive_table_name', 'register_entity', 'get_entity', 'list_entities', 'clear_entities',

    # Dialects
    'Dialect', 'DialectCapabilities', 'DialectMappers', 'JoinType',
    'get_mappers', 'resolve_dialect',

    # Queries
    'CreateQuery', 'TriggerQuery', 'SelectQuery', 'InsertQuery',
    'ParameterBag', 'WhereOperator', 'EntitySchemaBuilder',

    # Execution and migrations
    'Executor', 'MigrationManager', 'MIGRATION_ENTITY',
]
