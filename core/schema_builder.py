"""
Entity-level DDL and data access.
"""

import logging
from typing import Any, Dict, List, Optional

from core.dialect import DialectMappers
from core.errors import ConfigurationError
from core.executor import Executor
from core.query.builders import CreateQuery, SelectQuery, TriggerQuery
from core.query.conditions import ConditionInput
from core.schema_ir import EntityDescriptor

logger = logging.getLogger(__name__)


class EntitySchemaBuilder:
    """
    Schema generation and SELECT access for one entity.

        builder = EntitySchemaBuilder(users, mappers, executor)
        builder.create()                                   # CREATE TABLE (+ triggers)
        builder.find_all(['id', 'email'], {'status': 'active'})
    """

    def __init__(self, entity: EntityDescriptor, mappers: DialectMappers,
                 executor: Optional[Executor] = None):
        self.entity = entity
        self.mappers = mappers
        self.executor = executor

    def create(self) -> str:
        """Full DDL script: CREATE TABLE, then trigger DDL where the dialect has it."""
        statements = [CreateQuery(self.entity, self.mappers).generate_sql()]
        triggers = TriggerQuery(self.entity, self.mappers).generate_sql()
        if triggers:
            statements.append(triggers)
        return "\n\n".join(statements)

    def find_all(self, fields: Any = None, where: ConditionInput = None) -> List[Dict[str, Any]]:
        if self.executor is None:
            raise ConfigurationError(
                f"EntitySchemaBuilder for '{self.entity.table_name}' has no executor",
                {'table': self.entity.table_name}
            )
        query = SelectQuery(self.entity, self.mappers).set_fields(fields)
        if where:
            query.set_where(where)
        sql = query.generate_sql()
        return self.executor.execute(sql, query.get_params())
