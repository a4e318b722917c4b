"""
Output-column registers for SELECT: plain fields and raw expressions.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from core.errors import ValidationError
from core.query.conditions import Resolver, validate_field
from core.quoting import QuoteMapper

_NON_ALIAS = re.compile(r'[^a-zA-Z0-9_]+')


@dataclass(frozen=True)
class FieldDefinition:
    table: str
    column: str
    alias: str


@dataclass(frozen=True)
class ExpressionDefinition:
    expression: str
    alias: str


class FieldsRegister:
    """
    Tracks requested output columns, deduplicated by (table, column).

    Accepted shapes, alone or in a list:
        "status"                          -> users.status AS users_status
        "posts.title"                     -> posts.title AS posts_title
        {"status": "state"}               -> users.status AS state
        {"posts": {"title": "headline"}}  -> posts.title AS headline
    """

    def __init__(self, table: str):
        self.table = table
        self._fields: 'OrderedDict[Tuple[str, str], FieldDefinition]' = OrderedDict()

    @staticmethod
    def generate_alias(table: str, column: str) -> str:
        return f"{table}_{column}"

    def register(self, fields: Any) -> None:
        if isinstance(fields, str):
            table, column = self._split(fields)
            self._add(table, column, None)
        elif isinstance(fields, Mapping):
            for key, value in fields.items():
                if isinstance(value, Mapping):
                    for column, alias in value.items():
                        self._add(key, column, alias)
                else:
                    table, column = self._split(key)
                    self._add(table, column, value)
        elif isinstance(fields, (list, tuple)):
            for entry in fields:
                self.register(entry)
        else:
            raise ValidationError(
                f"Unsupported field format: {type(fields).__name__}",
                {'fields': repr(fields)}
            )

    def _split(self, reference: str) -> Tuple[str, str]:
        validate_field(reference)
        if '.' in reference:
            table, column = reference.split('.', 1)
            return table, column
        return self.table, reference

    def _add(self, table: str, column: str, alias: Optional[str]) -> None:
        validate_field(f"{table}.{column}")
        if alias is not None and (not isinstance(alias, str) or not alias):
            raise ValidationError(f"Alias for '{table}.{column}' must be a non-empty string",
                                  {'table': table, 'column': column, 'alias': alias})
        alias = alias or self.generate_alias(table, column)

        key = (table, column)
        existing = self._fields.get(key)
        if existing is not None:
            if existing.alias != alias:
                raise ValidationError(
                    f"Field '{table}.{column}' already registered with alias "
                    f"'{existing.alias}', cannot re-register as '{alias}'",
                    {'table': table, 'column': column, 'alias': alias, 'existing_alias': existing.alias}
                )
            return
        self._fields[key] = FieldDefinition(table, column, alias)

    def get_all(self) -> List[FieldDefinition]:
        return list(self._fields.values())

    def render(self, quote: QuoteMapper, resolve: Optional[Resolver] = None) -> List[str]:
        """Quoted ``table.column AS alias`` list; ``resolve`` swaps in join aliases."""
        rendered = []
        for f in self._fields.values():
            reference = f"{f.table}.{f.column}"
            if resolve:
                reference = resolve(reference)
            rendered.append(quote.quote_alias(reference, f.alias))
        return rendered

    def __len__(self) -> int:
        return len(self._fields)


class ExpressionsRegister:
    """
    Raw SQL expressions emitted verbatim with a quoted alias.

    Accepted shapes: "COUNT(*)" (alias generated), {"COUNT(*)": "total"}, or a
    list of either.
    """

    def __init__(self, table: str):
        self.table = table
        self._expressions: List[ExpressionDefinition] = []

    @staticmethod
    def generate_alias(expression: str) -> str:
        """
        Examples:
            >>> ExpressionsRegister.generate_alias("COUNT(*)")
            'expr_count'
        """
        alias = _NON_ALIAS.sub('_', expression).strip('_')[:30]
        return f"expr_{alias.lower()}"

    def register(self, expressions: Any) -> None:
        if isinstance(expressions, str):
            self._add(expressions, None)
        elif isinstance(expressions, Mapping):
            for expression, alias in expressions.items():
                if not isinstance(expression, str) or not isinstance(alias, str):
                    raise ValidationError(
                        "Invalid expression => alias pair",
                        {'expression': repr(expression), 'alias': repr(alias)}
                    )
                self._add(expression, alias)
        elif isinstance(expressions, (list, tuple)):
            for entry in expressions:
                self.register(entry)
        else:
            raise ValidationError(
                f"Unsupported expression format: {type(expressions).__name__}",
                {'expressions': repr(expressions)}
            )

    def _add(self, expression: str, alias: Optional[str]) -> None:
        if not expression.strip():
            raise ValidationError("Expression must be a non-empty string", {'expression': expression})
        self._expressions.append(ExpressionDefinition(expression, alias or self.generate_alias(expression)))

    def get_all(self) -> List[ExpressionDefinition]:
        return list(self._expressions)

    def render(self, quote: QuoteMapper) -> List[str]:
        return [f"{e.expression} AS {quote.quote_identifier(e.alias)}" for e in self._expressions]

    def __len__(self) -> int:
        return len(self._expressions)
