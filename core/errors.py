#!/usr/bin/env python3
"""
SQLWeave Error Hierarchy
Canonical exception classes for the SQL generation and migration engine.
"""

from enum import Enum


class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    MIGRATION_ERROR = "MIGRATION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"


class SQLWeaveError(Exception):
    """Base class for all SQLWeave exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(SQLWeaveError):
    """Raised when the configured driver/dialect or connection settings are unusable"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(SQLWeaveError, ValueError):
    """Raised when query or schema input is malformed"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class SchemaError(SQLWeaveError):
    """Raised when a query references a field the entity does not declare"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.SCHEMA_ERROR, details)


class MigrationError(SQLWeaveError):
    """Raised when a migration file is missing, empty or fails to apply"""
    def __init__(self, message: str, filename: str = None, details: dict = None):
        details = dict(details or {})
        if filename is not None:
            details['filename'] = filename
        super().__init__(message, ErrorCode.MIGRATION_ERROR, details)
        self.filename = filename


class ExecutionError(SQLWeaveError):
    """Raised when the database driver rejects a statement"""
    def __init__(self, message: str, dialect: str = None, sql: str = None, details: dict = None):
        details = dict(details or {})
        if dialect is not None:
            details['dialect'] = dialect
        if sql is not None:
            details['sql'] = sql
        super().__init__(message, ErrorCode.EXECUTION_ERROR, details)
        self.dialect = dialect
        self.sql = sql
