"""
SQLWeave Query Components

One builder per SELECT clause. Every component validates its input when it
is constructed and renders later into a ParameterBag it is handed, which lets
SelectQuery share one placeholder allocator across all of them. Used alone,
``get_query()`` renders into a private bag exposed by ``get_params()``.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.dialect import DialectMappers, JoinType
from core.errors import ValidationError
from core.order_by import normalize_direction, normalize_nulls
from core.query.conditions import ConditionInput, Condition, Resolver, parse_conditions
from core.query.parameters import ParameterBag

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')
QUALIFIED_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*\.[a-zA-Z_][a-zA-Z0-9_]*$')
JOIN_OPERATORS = ('=', '<>', '!=')


class QueryComponent(ABC):
    """Base class for clause builders"""

    def __init__(self, mappers: DialectMappers):
        self.mappers = mappers
        self._local_params: Dict[str, Any] = {}

    @abstractmethod
    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        """
        Render the clause, binding values into ``bag``; empty string when unset.

        ``resolve`` maps a ``table.column`` reference onto its join alias.
        """

    def is_empty(self) -> bool:
        return False

    def get_query(self) -> str:
        bag = ParameterBag()
        sql = self.render(bag)
        self._local_params = bag.params
        return sql

    def get_params(self) -> Dict[str, Any]:
        return dict(self._local_params)


class WhereComponent(QueryComponent):
    """AND-joined conditions; the component never emits OR."""

    keyword = 'WHERE'

    def __init__(self, mappers: DialectMappers, conditions: ConditionInput = None):
        super().__init__(mappers)
        self.conditions: List[Condition] = parse_conditions(conditions)

    def is_empty(self) -> bool:
        return not self.conditions

    @property
    def fields(self) -> List[str]:
        return [c.field for c in self.conditions]

    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        if not self.conditions:
            return ''
        clauses = [c.render(self.mappers.quote, bag, resolve) for c in self.conditions]
        return f"{self.keyword} {' AND '.join(clauses)}"


class HavingComponent(WhereComponent):
    keyword = 'HAVING'


@dataclass(frozen=True)
class JoinDefinition:
    join_type: JoinType
    table: str
    alias: str
    left: Optional[str] = None
    operator: Optional[str] = None
    right: Optional[str] = None


class JoinComponent(QueryComponent):
    """
    JOIN clauses with per-occurrence table aliases.

    Input entries: ``{'type': 'LEFT JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}``
    with an optional ``'alias'``. Without one, aliases are ``<table>_1``,
    ``<table>_2``... per occurrence. ON sides are resolved through a
    table -> alias map: the joined table resolves to this join's alias, a
    table joined earlier resolves to its most recent alias, anything else
    (the driving table, an explicit alias) is kept as written. ``resolve()``
    applies the same map to references elsewhere in the query.
    """

    REQUIRED_KEYS = ('type', 'table')

    def __init__(self, mappers: DialectMappers, joins: Optional[List[Mapping[str, Any]]] = None):
        super().__init__(mappers)
        self.definitions: List[JoinDefinition] = []
        self._alias_counters: Dict[str, int] = defaultdict(int)
        self._table_aliases: Dict[str, str] = {}
        self._used_aliases = set()
        for join in joins or []:
            self.add(join)

    def is_empty(self) -> bool:
        return not self.definitions

    def add(self, join: Mapping[str, Any]) -> JoinDefinition:
        if not isinstance(join, Mapping):
            raise ValidationError(f"Join definition must be a mapping, got {type(join).__name__}",
                                  {'join': repr(join)})
        missing = [key for key in self.REQUIRED_KEYS if key not in join]
        if missing:
            raise ValidationError(f"Join definition missing required keys: {', '.join(missing)}",
                                  {'join': repr(join), 'missing': missing})

        join_type = JoinType.from_string(join['type'])
        supported = self.mappers.capabilities.join_types
        if join_type not in supported:
            raise ValidationError(
                f"{join_type.value} is not supported by {self.mappers.dialect.name}",
                {'type': join_type.value, 'dialect': self.mappers.dialect.value}
            )

        table = join['table']
        if not isinstance(table, str) or not IDENTIFIER_PATTERN.match(table):
            raise ValidationError(f"Invalid join table: {table!r}", {'table': table})

        alias = self._claim_alias(table, join.get('alias'))

        on = join.get('on')
        if on is None:
            if join_type is not JoinType.CROSS:
                raise ValidationError(f"{join_type.value} on '{table}' requires an 'on' condition",
                                      {'table': table, 'type': join_type.value})
            definition = JoinDefinition(join_type, table, alias)
        elif join_type is JoinType.CROSS:
            raise ValidationError(f"CROSS JOIN on '{table}' does not take an 'on' condition",
                                  {'table': table, 'on': repr(on)})
        else:
            left, operator, right = self._validate_on(table, on)
            definition = JoinDefinition(
                join_type, table, alias,
                left=self._resolve(left, table, alias),
                operator=operator,
                right=self._resolve(right, table, alias),
            )

        self._table_aliases[table] = alias
        self.definitions.append(definition)
        return definition

    def _claim_alias(self, table: str, alias: Optional[str]) -> str:
        if alias is not None:
            if not isinstance(alias, str) or not IDENTIFIER_PATTERN.match(alias):
                raise ValidationError(f"Invalid join alias: {alias!r}", {'table': table, 'alias': alias})
            if alias in self._used_aliases:
                raise ValidationError(f"Join alias '{alias}' is already in use", {'table': table, 'alias': alias})
        else:
            while True:
                self._alias_counters[table] += 1
                alias = f"{table}_{self._alias_counters[table]}"
                if alias not in self._used_aliases:
                    break
        self._used_aliases.add(alias)
        return alias

    @staticmethod
    def _validate_on(table: str, on: Any) -> Tuple[str, str, str]:
        if not isinstance(on, (list, tuple)) or len(on) != 3:
            raise ValidationError(
                f"Join 'on' for '{table}' must be [left, operator, right]",
                {'table': table, 'on': repr(on)}
            )
        left, operator, right = on
        if operator not in JOIN_OPERATORS:
            raise ValidationError(
                f"Invalid join operator {operator!r}; allowed: {', '.join(JOIN_OPERATORS)}",
                {'table': table, 'operator': operator}
            )
        for side in (left, right):
            if not isinstance(side, str) or not QUALIFIED_PATTERN.match(side):
                raise ValidationError(
                    f"Join condition side {side!r} must look like 'table.column'",
                    {'table': table, 'side': side}
                )
        return left, operator, right

    def _resolve(self, side: str, table: str, alias: str) -> str:
        prefix, column = side.split('.')
        if prefix == table:
            return f"{alias}.{column}"
        if prefix in self._table_aliases:
            return f"{self._table_aliases[prefix]}.{column}"
        return side

    def resolve(self, reference: str) -> str:
        """
        Rewrite a ``table.column`` reference to the latest alias of a joined table.

        Unqualified columns and tables that were never joined pass through.
        """
        if '.' not in reference:
            return reference
        prefix, column = reference.split('.', 1)
        alias = self._table_aliases.get(prefix)
        return f"{alias}.{column}" if alias else reference

    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        quote = self.mappers.quote
        clauses = []
        for d in self.definitions:
            clause = f"{d.join_type.value} {quote.quote_alias(d.table, d.alias)}"
            if d.left is not None:
                clause += f" ON {quote.quote_identifier(d.left)} {d.operator} {quote.quote_identifier(d.right)}"
            clauses.append(clause)
        return ' '.join(clauses)


class GroupByComponent(QueryComponent):

    def __init__(self, mappers: DialectMappers, fields: Optional[List[str]] = None):
        super().__init__(mappers)
        fields = [fields] if isinstance(fields, str) else list(fields or [])
        for field in fields:
            if not isinstance(field, str) or not field.strip():
                raise ValidationError("GroupBy field must be a non-empty string", {'field': repr(field)})
        self.fields = fields

    def is_empty(self) -> bool:
        return not self.fields

    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        if not self.fields:
            return ''
        quote = self.mappers.quote
        fields = [resolve(f) for f in self.fields] if resolve else self.fields
        return f"GROUP BY {', '.join(quote.quote_identifier(f) for f in fields)}"


@dataclass(frozen=True)
class OrderBySpec:
    field: str
    direction: str = 'ASC'
    nulls: Optional[str] = None


class OrderByComponent(QueryComponent):
    """
    Input: ``{'created_at': 'DESC'}`` or
    ``{'created_at': {'direction': 'DESC', 'nulls': 'LAST'}}``, or a list of
    such (field, spec) pairs when the order matters across calls.
    """

    def __init__(self, mappers: DialectMappers, order: Any = None):
        super().__init__(mappers)
        self.specs: List[OrderBySpec] = []
        if order is None:
            return
        items = order.items() if isinstance(order, Mapping) else order
        for item in items:
            try:
                field, spec = item
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Order by entries must be (field, spec) pairs, got {item!r}",
                                      {'entry': repr(item)}) from e
            self.specs.append(self._parse(field, spec))

    @staticmethod
    def _parse(field: Any, spec: Any) -> OrderBySpec:
        if not isinstance(field, str) or not field.strip():
            raise ValidationError("OrderBy field must be a non-empty string", {'field': repr(field)})
        if isinstance(spec, str):
            return OrderBySpec(field, normalize_direction(spec))
        if isinstance(spec, Mapping):
            return OrderBySpec(
                field,
                normalize_direction(spec.get('direction', 'ASC')),
                normalize_nulls(spec.get('nulls')),
            )
        raise ValidationError(
            f"OrderBy spec for '{field}' must be a direction or a mapping",
            {'field': field, 'spec': repr(spec)}
        )

    def is_empty(self) -> bool:
        return not self.specs

    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        if not self.specs:
            return ''
        fragments = []
        for spec in self.specs:
            field = resolve(spec.field) if resolve else spec.field
            fragments.extend(self.mappers.order_by.build_clause(field, spec.direction, spec.nulls))
        return f"ORDER BY {', '.join(fragments)}"


class _PagingComponent(QueryComponent):
    keyword = ''
    placeholder = ''

    def __init__(self, mappers: DialectMappers, value: Optional[int] = None):
        super().__init__(mappers)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise ValidationError(
                f"{self.keyword} must be a non-negative integer, got {value!r}",
                {self.placeholder: repr(value)}
            )
        self.value = value

    def is_empty(self) -> bool:
        return self.value is None

    def render(self, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        if self.value is None:
            return ''
        return f"{self.keyword} {bag.bind(self.placeholder, self.value)}"


class LimitComponent(_PagingComponent):
    keyword = 'LIMIT'
    placeholder = 'limit'


class OffsetComponent(_PagingComponent):
    keyword = 'OFFSET'
    placeholder = 'offset'
