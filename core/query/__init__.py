"""
Query components, registers and assemblers.
"""

from core.query.builders import CreateQuery, InsertQuery, SelectQuery, TriggerQuery
from core.query.components import (
    GroupByComponent, HavingComponent, JoinComponent, JoinDefinition, LimitComponent,
    OffsetComponent, OrderByComponent, OrderBySpec, WhereComponent,
)
from core.query.conditions import (
    Between, Compare, Condition, Equals, In, IsNotNull, IsNull, Like,
    WhereOperator, parse_condition, parse_conditions,
)
from core.query.parameters import ParameterBag
from core.query.registers import ExpressionsRegister, FieldsRegister

__all__ = [
    'CreateQuery', 'InsertQuery', 'SelectQuery', 'TriggerQuery',
    'GroupByComponent', 'HavingComponent', 'JoinComponent', 'JoinDefinition', 'LimitComponent',
    'OffsetComponent', 'OrderByComponent', 'OrderBySpec', 'WhereComponent',
    'Between', 'Compare', 'Condition', 'Equals', 'In', 'IsNotNull', 'IsNull', 'Like',
    'WhereOperator', 'parse_condition', 'parse_conditions',
    'ParameterBag', 'ExpressionsRegister', 'FieldsRegister',
]
