"""
WHERE / HAVING conditions as a tagged union.

Raw caller input is normalized once, by ``parse_condition``, into exactly one
of the variants below. Each variant validates its own payload when it is
constructed, so a condition that exists can always be rendered.

    {'age': 30}                                        -> Equals
    {'deleted_at': None}                               -> IsNull
    {'age': {'operator': '>=', 'value': 18}}           -> Compare
    {'status': {'operator': 'IN', 'value': ['a']}}     -> In
    {'age': {'operator': 'BETWEEN', 'value': [1, 9]}} -> Between
    {'name': {'operator': 'LIKE', 'value': 'Jo%'}}     -> Like
"""

import datetime
import decimal
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import ValidationError
from core.query.parameters import ParameterBag
from core.quoting import QuoteMapper

SCALAR_TYPES = (str, int, float, decimal.Decimal, datetime.date)

# column or table.column
FIELD_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$')


class OperatorArity(Enum):
    UNARY = "unary"
    SCALAR = "scalar"
    STRING = "string"
    ARRAY = "array"
    RANGE = "range"


class WhereOperator(Enum):
    EQ = "="
    NEQ = "!="
    NEQ_ANSI = "<>"
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IN = "IN"
    NOT_IN = "NOT IN"
    BETWEEN = "BETWEEN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"

    @classmethod
    def from_string(cls, raw: str) -> 'WhereOperator':
        if isinstance(raw, WhereOperator):
            return raw
        normalized = ' '.join(str(raw).strip().upper().split())
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(f"Unknown WHERE operator: '{raw}'", {'operator': raw})

    @property
    def arity(self) -> OperatorArity:
        return _ARITY[self]


_ARITY = {
    WhereOperator.IS_NULL: OperatorArity.UNARY,
    WhereOperator.IS_NOT_NULL: OperatorArity.UNARY,
    WhereOperator.EQ: OperatorArity.SCALAR,
    WhereOperator.NEQ: OperatorArity.SCALAR,
    WhereOperator.NEQ_ANSI: OperatorArity.SCALAR,
    WhereOperator.LT: OperatorArity.SCALAR,
    WhereOperator.LTE: OperatorArity.SCALAR,
    WhereOperator.GT: OperatorArity.SCALAR,
    WhereOperator.GTE: OperatorArity.SCALAR,
    WhereOperator.LIKE: OperatorArity.STRING,
    WhereOperator.NOT_LIKE: OperatorArity.STRING,
    WhereOperator.IN: OperatorArity.ARRAY,
    WhereOperator.NOT_IN: OperatorArity.ARRAY,
    WhereOperator.BETWEEN: OperatorArity.RANGE,
}

_COMPARISONS = frozenset(op for op, arity in _ARITY.items() if arity is OperatorArity.SCALAR) - {WhereOperator.EQ}


def is_scalar(value: Any) -> bool:
    return isinstance(value, SCALAR_TYPES)


def validate_field(field: str) -> str:
    if not isinstance(field, str) or not FIELD_PATTERN.match(field):
        raise ValidationError(
            f"Invalid field reference: {field!r}. Expected 'column' or 'table.column'",
            {'field': field}
        )
    return field


def _arity_error(field: str, operator: WhereOperator, expected: str, value: Any) -> ValidationError:
    return ValidationError(
        f"Field '{field}': operator {operator.value} expects {expected}, got {value!r}",
        {'field': field, 'operator': operator.value, 'value': repr(value)}
    )


Resolver = Callable[[str], str]


@dataclass(frozen=True)
class Condition(ABC):
    field: str

    def __post_init__(self):
        validate_field(self.field)

    @property
    @abstractmethod
    def operator(self) -> WhereOperator:
        """Operator rendered by this variant."""

    @abstractmethod
    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        """
        Render the predicate, binding values into ``bag``.

        ``resolve`` rewrites the table prefix of the column (join aliases);
        placeholder names always follow the field as written.
        """

    def column(self, quote: QuoteMapper, resolve: Optional[Resolver] = None) -> str:
        return quote.quote_identifier(resolve(self.field) if resolve else self.field)


@dataclass(frozen=True)
class Equals(Condition):
    value: Any = None

    def __post_init__(self):
        super().__post_init__()
        if not is_scalar(self.value):
            raise _arity_error(self.field, WhereOperator.EQ, 'a scalar', self.value)

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.EQ

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        return f"{self.column(quote, resolve)} = {bag.bind(self.field, self.value)}"


@dataclass(frozen=True)
class Compare(Condition):
    op: WhereOperator = WhereOperator.NEQ
    value: Any = None

    def __post_init__(self):
        super().__post_init__()
        if self.op not in _COMPARISONS:
            raise ValidationError(
                f"Field '{self.field}': {self.op.value} is not a comparison operator",
                {'field': self.field, 'operator': self.op.value}
            )
        if not is_scalar(self.value):
            raise _arity_error(self.field, self.op, 'a scalar', self.value)

    @property
    def operator(self) -> WhereOperator:
        return self.op

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        return f"{self.column(quote, resolve)} {self.op.value} {bag.bind(self.field, self.value)}"


@dataclass(frozen=True)
class In(Condition):
    values: Tuple[Any, ...] = ()
    negated: bool = False

    def __post_init__(self):
        super().__post_init__()
        values = self.values
        if not isinstance(values, (list, tuple)) or not values or not all(is_scalar(v) for v in values):
            raise _arity_error(self.field, self.operator, 'a non-empty list of scalars', values)
        object.__setattr__(self, 'values', tuple(values))

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.NOT_IN if self.negated else WhereOperator.IN

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        placeholders = ', '.join(bag.bind(self.field, v) for v in self.values)
        return f"{self.column(quote, resolve)} {self.operator.value} ({placeholders})"


@dataclass(frozen=True)
class Between(Condition):
    low: Any = None
    high: Any = None

    def __post_init__(self):
        super().__post_init__()
        if not (is_scalar(self.low) and is_scalar(self.high)):
            raise _arity_error(self.field, WhereOperator.BETWEEN, 'two scalars', [self.low, self.high])

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.BETWEEN

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        low = bag.bind(f"{self.field}_min", self.low)
        high = bag.bind(f"{self.field}_max", self.high)
        return f"{self.column(quote, resolve)} BETWEEN {low} AND {high}"


@dataclass(frozen=True)
class Like(Condition):
    pattern: str = ''
    negated: bool = False

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.pattern, str):
            raise _arity_error(self.field, self.operator, 'a string pattern', self.pattern)

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.NOT_LIKE if self.negated else WhereOperator.LIKE

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        return f"{self.column(quote, resolve)} {self.operator.value} {bag.bind(self.field, self.pattern)}"


@dataclass(frozen=True)
class IsNull(Condition):

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.IS_NULL

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        return f"{self.column(quote, resolve)} IS NULL"


@dataclass(frozen=True)
class IsNotNull(Condition):

    @property
    def operator(self) -> WhereOperator:
        return WhereOperator.IS_NOT_NULL

    def render(self, quote: QuoteMapper, bag: ParameterBag, resolve: Optional[Resolver] = None) -> str:
        return f"{self.column(quote, resolve)} IS NOT NULL"


def parse_condition(field: str, raw: Any) -> Condition:
    """Normalize one raw field condition into its tagged variant."""
    if isinstance(raw, Condition):
        return raw
    if raw is None:
        return IsNull(field)
    if is_scalar(raw):
        return Equals(field, raw)
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Field '{field}': condition must be a scalar, None or a mapping with an 'operator', "
            f"got {type(raw).__name__}",
            {'field': field, 'value': repr(raw)}
        )
    if 'operator' not in raw:
        raise ValidationError(f"Field '{field}': condition mapping needs an 'operator' key", {'field': field})

    operator = WhereOperator.from_string(raw['operator'])
    value = raw.get('value')
    arity = operator.arity

    if arity is OperatorArity.UNARY:
        if value is not None:
            raise _arity_error(field, operator, 'no value', value)
        return IsNull(field) if operator is WhereOperator.IS_NULL else IsNotNull(field)

    if arity is OperatorArity.SCALAR:
        if operator is WhereOperator.EQ:
            return Equals(field, value)
        return Compare(field, operator, value)

    if arity is OperatorArity.STRING:
        return Like(field, value, negated=operator is WhereOperator.NOT_LIKE)

    if arity is OperatorArity.ARRAY:
        return In(field, value, negated=operator is WhereOperator.NOT_IN)

    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise _arity_error(field, operator, 'exactly two values', value)
    return Between(field, value[0], value[1])


ConditionInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def parse_conditions(conditions: ConditionInput) -> List[Condition]:
    """Parse a mapping (or iterable of pairs) of field -> raw condition."""
    if conditions is None:
        return []
    items = conditions.items() if isinstance(conditions, Mapping) else conditions
    parsed = []
    for item in items:
        if isinstance(item, Condition):
            parsed.append(item)
            continue
        try:
            field, raw = item
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"Condition entries must be (field, condition) pairs, got {item!r}",
                {'entry': repr(item)}
            ) from e
        parsed.append(parse_condition(field, raw))
    return parsed
