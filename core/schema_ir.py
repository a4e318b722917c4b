"""
SQLWeave Schema IR
==================

Dialect-independent description of an entity: its logical column types,
constraints and the table it maps to. Descriptors are declared once at
startup and are read-only afterwards.
"""

import datetime
import decimal
import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.errors import SchemaError, ValidationError

logger = logging.getLogger(__name__)

SNAKE_CASE_PATTERN = re.compile(r'^[a-z][a-z0-9]*(_[a-z0-9]+)*$')
_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


class LogicalType(Enum):
    """Column types independent of any SQL dialect"""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    DATETIME = "datetime"
    ARRAY = "array"
    OBJECT = "object"
    MIXED = "mixed"
    UUID = "uuid"
    TEXT = "text"

    @classmethod
    def from_python(cls, native_type: Any) -> 'LogicalType':
        """Infer the logical type from a native Python type; unknown types map to MIXED."""
        # bool must be tested before int (bool is an int subclass)
        if native_type is bool:
            return cls.BOOL
        if native_type is int:
            return cls.INT
        if native_type in (float, decimal.Decimal):
            return cls.FLOAT
        if native_type is str:
            return cls.STRING
        if native_type in (datetime.datetime, datetime.date):
            return cls.DATETIME
        if native_type in (list, tuple):
            return cls.ARRAY
        if native_type is dict:
            return cls.OBJECT
        if native_type is uuid.UUID:
            return cls.UUID
        return cls.MIXED

    @classmethod
    def from_string(cls, raw: str) -> 'LogicalType':
        normalized = raw.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(f"Unknown logical type: '{raw}'", {'type': raw})


def camel_to_snake(name: str) -> str:
    """BlogPost -> blog_post"""
    return _CAMEL_BOUNDARY.sub('_', name).lower()


def is_snake_case(name: str) -> bool:
    return bool(SNAKE_CASE_PATTERN.match(name))


def derive_table_name(entity_name: str) -> str:
    """
    Derive a table name from an entity name.

    Strips a trailing ``Entity``, converts to snake_case and pluralizes
    (trailing ``y`` becomes ``ies``).

    Examples:
        >>> derive_table_name("UserEntity")
        'users'
        >>> derive_table_name("Category")
        'categories'
        >>> derive_table_name("BlogPost")
        'blog_posts'
    """
    name = entity_name
    if name.endswith('Entity') and name != 'Entity':
        name = name[:-len('Entity')]
    snake = camel_to_snake(name)
    if snake.endswith('y'):
        return snake[:-1] + 'ies'
    return snake + 's'


@dataclass(frozen=True)
class FieldDeclaration:
    """Caller-supplied metadata for one entity field"""
    native_type: Any = None
    logical_type: Optional[LogicalType] = None
    primary: bool = False
    autoincrement: bool = False
    nullable: bool = False
    default: Any = None
    update_trigger: bool = False
    unique: bool = False

    def resolve_type(self) -> LogicalType:
        if self.logical_type is not None:
            if isinstance(self.logical_type, str):
                return LogicalType.from_string(self.logical_type)
            return self.logical_type
        return LogicalType.from_python(self.native_type)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Column definition in IR"""
    name: str
    logical_type: LogicalType
    primary: bool = False
    autoincrement: bool = False
    nullable: bool = False
    default: Any = None
    update_trigger: bool = False
    unique: bool = False

    def __post_init__(self):
        if self.autoincrement and not (self.primary and self.logical_type is LogicalType.INT):
            raise ValidationError(
                f"Column '{self.name}': autoincrement requires an INT primary key",
                {'column': self.name, 'type': self.logical_type.value}
            )

    @property
    def is_serial(self) -> bool:
        """INT primary key with autoincrement"""
        return self.logical_type is LogicalType.INT and self.primary and self.autoincrement

    @classmethod
    def from_declaration(cls, name: str, declaration: FieldDeclaration) -> 'ColumnDescriptor':
        return cls(
            name=name,
            logical_type=declaration.resolve_type(),
            primary=declaration.primary,
            autoincrement=declaration.autoincrement,
            nullable=declaration.nullable,
            default=declaration.default,
            update_trigger=declaration.update_trigger,
            unique=declaration.unique,
        )


@dataclass(frozen=True)
class EntityDescriptor:
    """Table definition in IR"""
    table_name: str
    columns: Tuple[ColumnDescriptor, ...] = field(default_factory=tuple)
    entity_name: Optional[str] = None

    def __post_init__(self):
        # accept any sequence but store an immutable tuple
        object.__setattr__(self, 'columns', tuple(self.columns))
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValidationError(
                    f"Duplicate column '{column.name}' in entity '{self.table_name}'",
                    {'table': self.table_name, 'column': column.name}
                )
            seen.add(column.name)

    @classmethod
    def declare(cls, entity_name: str, fields: Mapping[str, FieldDeclaration],
                table_name: Optional[str] = None) -> 'EntityDescriptor':
        """Build a descriptor from per-field declarations, in declaration order."""
        columns = [ColumnDescriptor.from_declaration(name, decl) for name, decl in fields.items()]
        return cls(
            table_name=table_name or derive_table_name(entity_name),
            columns=tuple(columns),
            entity_name=entity_name,
        )

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def has_column(self, name: str) -> bool:
        return any(c.name == name for c in self.columns)

    def get_column(self, name: str) -> ColumnDescriptor:
        for column in self.columns:
            if column.name == name:
                return column
        raise SchemaError(
            f"Entity '{self.table_name}' has no field '{name}'",
            {'table': self.table_name, 'field': name}
        )

    def trigger_columns(self) -> List[ColumnDescriptor]:
        return [c for c in self.columns if c.update_trigger]


_ENTITY_REGISTRY: Dict[str, EntityDescriptor] = {}


def register_entity(entity: EntityDescriptor) -> EntityDescriptor:
    """Register an entity descriptor for migration generation."""
    existing = _ENTITY_REGISTRY.get(entity.table_name)
    if existing is not None and existing != entity:
        raise SchemaError(
            f"Table '{entity.table_name}' is already registered with a different descriptor",
            {'table': entity.table_name}
        )
    _ENTITY_REGISTRY[entity.table_name] = entity
    logger.debug(f"Registered entity for table {entity.table_name}")
    return entity


def get_entity(table_name: str) -> EntityDescriptor:
    if table_name not in _ENTITY_REGISTRY:
        available = sorted(_ENTITY_REGISTRY)
        raise SchemaError(
            f"Entity for table '{table_name}' not found in registry. Available: {available}",
            {'table': table_name}
        )
    return _ENTITY_REGISTRY[table_name]


def list_entities() -> List[EntityDescriptor]:
    """Registered entities, sorted by table name."""
    return [_ENTITY_REGISTRY[name] for name in sorted(_ENTITY_REGISTRY)]


def clear_entities() -> None:
    _ENTITY_REGISTRY.clear()
