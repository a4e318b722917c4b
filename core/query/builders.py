#!/usr/bin/env python3
"""
SQLWeave Query Assemblers

CreateQuery / TriggerQuery produce DDL for an EntityDescriptor; SelectQuery
and InsertQuery produce parameterized DML plus the matching parameter map.
Assemblers only compose: validation errors raised by components propagate
unchanged.

Usage:
    query = SelectQuery(users, get_mappers(Dialect.POSTGRESQL))
    query.set_where({'status': 'published'}).set_limit(10)
    sql = query.generate_sql()   # SELECT * FROM "users" WHERE "status" = :status_1 LIMIT :limit_1;
    params = query.get_params()  # {'status_1': 'published', 'limit_1': 10}
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from core.dialect import DialectMappers
from core.errors import ValidationError
from core.query.components import (
    GroupByComponent, HavingComponent, JoinComponent, LimitComponent,
    OffsetComponent, OrderByComponent, WhereComponent,
)
from core.query.conditions import ConditionInput
from core.query.parameters import ParameterBag
from core.query.registers import ExpressionsRegister, FieldsRegister
from core.schema_ir import EntityDescriptor, is_snake_case

logger = logging.getLogger(__name__)


class AbstractQuery(ABC):
    """Base class for queries bound to one entity and one dialect"""

    def __init__(self, entity: EntityDescriptor, mappers: DialectMappers):
        self.entity = entity
        self.mappers = mappers

    @property
    def table_name(self) -> str:
        return self.entity.table_name

    @property
    def quoted_table(self) -> str:
        return self.mappers.quote.quote_identifier(self.entity.table_name)

    def check_field(self, reference: str) -> None:
        """Raise SchemaError when a driving-table field is not declared by the entity."""
        if '.' in reference:
            prefix, column = reference.split('.', 1)
            if prefix != self.table_name:
                return
        else:
            column = reference
        self.entity.get_column(column)

    @abstractmethod
    def generate_sql(self) -> Optional[str]:
        ...


class CreateQuery(AbstractQuery):
    """CREATE TABLE IF NOT EXISTS for an entity"""

    def generate_sql(self) -> str:
        if not self.entity.columns:
            raise ValidationError(f"Entity '{self.table_name}' declares no columns",
                                  {'table': self.table_name})

        quote = self.mappers.quote
        types = self.mappers.type
        lines = []
        for column in self.entity.columns:
            if not is_snake_case(column.name):
                raise ValidationError(
                    f"Column '{column.name}' of '{self.table_name}' must be snake_case",
                    {'table': self.table_name, 'column': column.name}
                )
            lines.append(
                f"  {quote.quote_identifier(column.name)} {types.get_type(column)} {types.get_constraints(column)}"
            )

        sql = f"CREATE TABLE IF NOT EXISTS {self.quoted_table} (\n" + ",\n".join(lines) + "\n);"
        logger.debug(f"Generated CREATE TABLE for {self.table_name}: {len(lines)} columns")
        return sql


class TriggerQuery(AbstractQuery):
    """
    Update-timestamp triggers for every column flagged ``update_trigger``.

    Returns None when no column asks for a trigger and an empty string when
    the dialect does not generate triggers.
    """

    def generate_sql(self) -> Optional[str]:
        columns = self.entity.trigger_columns()
        if not columns:
            return None

        trigger = self.mappers.trigger
        if not trigger.supports_triggers():
            logger.warning(
                f"{self.mappers.dialect.name} does not generate update triggers; "
                f"skipping {', '.join(c.name for c in columns)} on {self.table_name}"
            )
            return ''

        statements = []
        for column in columns:
            function_name = trigger.get_function_name(self.table_name, column.name)
            body = trigger.get_function_body(column.name)
            declaration = trigger.get_trigger_declaration(self.table_name, function_name, column.name)
            statements.append(
                f"CREATE OR REPLACE FUNCTION {function_name}() RETURNS TRIGGER AS $$\n"
                f"{body}\n"
                f"$$ LANGUAGE plpgsql;\n\n"
                f"{declaration}"
            )
        return "\n\n".join(statements)


class SelectQuery(AbstractQuery):
    """Fluent SELECT builder; every setter returns the query."""

    def __init__(self, entity: EntityDescriptor, mappers: DialectMappers):
        super().__init__(entity, mappers)
        self.fields = FieldsRegister(entity.table_name)
        self.expressions = ExpressionsRegister(entity.table_name)
        self.join = JoinComponent(mappers)
        self.where = WhereComponent(mappers)
        self.group_by = GroupByComponent(mappers)
        self.having = HavingComponent(mappers)
        self.order_by = OrderByComponent(mappers)
        self.limit = LimitComponent(mappers)
        self.offset = OffsetComponent(mappers)
        self._params: Optional[Dict[str, Any]] = None

    def set_fields(self, fields: Any) -> 'SelectQuery':
        if not fields:
            return self
        before = {(f.table, f.column) for f in self.fields.get_all()}
        self.fields.register(fields)
        for definition in self.fields.get_all():
            if (definition.table, definition.column) not in before:
                self.check_field(f"{definition.table}.{definition.column}")
        return self

    def set_expressions(self, expressions: Any) -> 'SelectQuery':
        if expressions:
            self.expressions.register(expressions)
        return self

    def set_join(self, joins: List[Mapping[str, Any]]) -> 'SelectQuery':
        self.join = JoinComponent(self.mappers, joins)
        return self

    def set_where(self, conditions: ConditionInput) -> 'SelectQuery':
        where = WhereComponent(self.mappers, conditions)
        for field in where.fields:
            self.check_field(field)
        self.where = where
        return self

    def set_group_by(self, fields: List[str]) -> 'SelectQuery':
        self.group_by = GroupByComponent(self.mappers, fields)
        return self

    def set_having(self, conditions: ConditionInput) -> 'SelectQuery':
        self.having = HavingComponent(self.mappers, conditions)
        return self

    def set_order_by(self, order: Any) -> 'SelectQuery':
        self.order_by = OrderByComponent(self.mappers, order)
        return self

    def set_limit(self, limit: Optional[int]) -> 'SelectQuery':
        self.limit = LimitComponent(self.mappers, limit)
        return self

    def set_offset(self, offset: Optional[int]) -> 'SelectQuery':
        self.offset = OffsetComponent(self.mappers, offset)
        return self

    def resolve(self, reference: str) -> str:
        """Map ``table.column`` onto its join alias; the driving table is never aliased."""
        if reference.split('.', 1)[0] == self.table_name:
            return reference
        return self.join.resolve(reference)

    def _select_list(self) -> str:
        quote = self.mappers.quote
        columns = self.fields.render(quote, self.resolve) + self.expressions.render(quote)
        return ', '.join(columns) if columns else '*'

    def generate_sql(self) -> str:
        bag = ParameterBag()
        parts = [f"SELECT {self._select_list()} FROM {self.quoted_table}"]
        for component in (self.join, self.where, self.group_by, self.having,
                          self.order_by, self.limit, self.offset):
            fragment = component.render(bag, self.resolve)
            if fragment:
                parts.append(fragment)

        self._params = bag.params
        sql = ' '.join(parts) + ';'
        logger.debug(f"Generated SELECT: {sql} ({len(bag)} params)")
        return sql

    def get_params(self) -> Dict[str, Any]:
        """Parameters matching the SQL the query renders right now."""
        self.generate_sql()
        return dict(self._params)


class InsertQuery(AbstractQuery):
    """INSERT of one row; every value is bound, every column checked against the entity."""

    def __init__(self, entity: EntityDescriptor, mappers: DialectMappers, values: Mapping[str, Any]):
        super().__init__(entity, mappers)
        if not values:
            raise ValidationError(f"INSERT into '{entity.table_name}' needs at least one value",
                                  {'table': entity.table_name})
        for column in values:
            self.check_field(column)
        self.values = dict(values)
        self._params: Optional[Dict[str, Any]] = None

    def generate_sql(self) -> str:
        quote = self.mappers.quote
        bag = ParameterBag()
        columns = ', '.join(quote.quote_identifier(c) for c in self.values)
        placeholders = ', '.join(bag.bind(c, v) for c, v in self.values.items())
        self._params = bag.params
        sql = f"INSERT INTO {self.quoted_table} ({columns}) VALUES ({placeholders});"
        logger.debug(f"Generated INSERT: {sql}")
        return sql

    def get_params(self) -> Dict[str, Any]:
        if self._params is None:
            self.generate_sql()
        return dict(self._params)
