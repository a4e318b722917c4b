#!/usr/bin/env python3
"""
SELECT assembly across dialects, including full clause ordering and parameter maps.
"""

import pytest

from core.errors import SchemaError, ValidationError
from core.query.builders import SelectQuery


class TestSelectPostgres:
    """Reference outputs for the PostgreSQL dialect"""

    def test_bare_select(self, users_entity, pg):
        query = SelectQuery(users_entity, pg)
        assert query.generate_sql() == 'SELECT * FROM "users";'
        assert query.get_params() == {}

    def test_where_equals(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_where({'id': 1})
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "id" = :id_1;'
        assert query.get_params() == {'id_1': 1}

    def test_where_in(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_where({'status': {'operator': 'IN', 'value': ['published', 'draft']}})
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "status" IN (:status_1, :status_2);'
        assert query.get_params() == {'status_1': 'published', 'status_2': 'draft'}

    def test_order_by_nulls_last(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_order_by({'created_at': {'direction': 'DESC', 'nulls': 'LAST'}})
        assert query.generate_sql() == 'SELECT * FROM "users" ORDER BY "created_at" DESC NULLS LAST;'

    def test_limit_offset(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_limit(10).set_offset(20)
        assert query.generate_sql() == 'SELECT * FROM "users" LIMIT :limit_1 OFFSET :offset_1;'
        assert query.get_params() == {'limit_1': 10, 'offset_1': 20}

    def test_join(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_join([
            {'type': 'INNER JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}
        ])
        assert query.generate_sql() == (
            'SELECT * FROM "users" INNER JOIN "posts" AS "posts_1" ON "posts_1"."user_id" = "users"."id";'
        )

    def test_group_by_with_expression(self, users_entity, pg):
        query = (SelectQuery(users_entity, pg)
                 .set_fields(['status'])
                 .set_expressions({'COUNT(*)': 'total'})
                 .set_group_by(['status'])
                 .set_order_by({'total': 'DESC'}))
        assert query.generate_sql() == (
            'SELECT "users"."status" AS "users_status", COUNT(*) AS "total" '
            'FROM "users" GROUP BY "status" ORDER BY "total" DESC;'
        )

    def test_having_shares_placeholder_space(self, users_entity, pg):
        query = (SelectQuery(users_entity, pg)
                 .set_expressions({'COUNT(*)': 'total'})
                 .set_where({'age': {'operator': '>', 'value': 18}})
                 .set_group_by('status')
                 .set_having({'total': {'operator': '>', 'value': 2}})
                 .set_limit(5))
        assert query.generate_sql() == (
            'SELECT COUNT(*) AS "total" FROM "users" WHERE "age" > :age_1 '
            'GROUP BY "status" HAVING "total" > :total_1 LIMIT :limit_1;'
        )
        assert query.get_params() == {'age_1': 18, 'total_1': 2, 'limit_1': 5}

    def test_combined_clauses(self, users_entity, pg):
        query = (SelectQuery(users_entity, pg)
                 .set_where({'status': 'published'})
                 .set_order_by({'created_at': {'direction': 'DESC', 'nulls': 'LAST'}})
                 .set_limit(10))
        assert query.generate_sql() == (
            'SELECT * FROM "users" WHERE "status" = :status_1 '
            'ORDER BY "created_at" DESC NULLS LAST LIMIT :limit_1;'
        )
        assert query.get_params() == {'status_1': 'published', 'limit_1': 10}

    def test_between_where(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_where({'age': {'operator': 'BETWEEN', 'value': [18, 30]}})
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "age" BETWEEN :age_min_1 AND :age_max_1;'

    def test_regenerating_is_stable(self, users_entity, pg):
        """Each build starts a fresh placeholder counter."""
        query = SelectQuery(users_entity, pg).set_where({'id': 1})
        first = query.generate_sql()
        assert query.generate_sql() == first
        assert query.get_params() == {'id_1': 1}

    def test_get_params_generates_on_demand(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_limit(3)
        assert query.get_params() == {'limit_1': 3}

    def test_params_follow_latest_setters(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_where({'id': 1})
        query.generate_sql()
        query.set_where({'status': 'x'}).set_limit(5)
        assert query.get_params() == {'status_1': 'x', 'limit_1': 5}
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "status" = :status_1 LIMIT :limit_1;'

    def test_joined_table_references_use_alias(self, users_entity, pg):
        query = (SelectQuery(users_entity, pg)
                 .set_fields(['name', 'posts.title'])
                 .set_join([{'type': 'INNER JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}])
                 .set_where({'posts.title': 'x'})
                 .set_group_by(['posts.title'])
                 .set_order_by({'posts.title': 'DESC'}))
        assert query.generate_sql() == (
            'SELECT "users"."name" AS "users_name", "posts_1"."title" AS "posts_title" '
            'FROM "users" INNER JOIN "posts" AS "posts_1" ON "posts_1"."user_id" = "users"."id" '
            'WHERE "posts_1"."title" = :posts_title_1 GROUP BY "posts_1"."title" ORDER BY "posts_1"."title" DESC;'
        )
        assert query.get_params() == {'posts_title_1': 'x'}

    def test_driving_table_never_aliased(self, users_entity, pg):
        """A self-join leaves references to the driving table alone."""
        query = (SelectQuery(users_entity, pg)
                 .set_join([{'type': 'LEFT JOIN', 'table': 'users', 'on': ['users.id', '=', 'users.id']}])
                 .set_where({'users.id': 1}))
        assert query.generate_sql().endswith('WHERE "users"."id" = :users_id_1;')


class TestSelectOtherDialects:

    def test_mysql_quotes_and_nulls_emulation(self, users_entity, mysql):
        query = (SelectQuery(users_entity, mysql)
                 .set_where({'status': 'published'})
                 .set_order_by({'created_at': {'direction': 'DESC', 'nulls': 'LAST'}})
                 .set_limit(10))
        assert query.generate_sql() == (
            'SELECT * FROM `users` WHERE `status` = :status_1 '
            'ORDER BY `created_at` IS NULL ASC, `created_at` DESC LIMIT :limit_1;'
        )

    def test_sqlite_drops_nulls(self, users_entity, sqlite):
        query = SelectQuery(users_entity, sqlite).set_order_by({'created_at': {'direction': 'DESC', 'nulls': 'LAST'}})
        assert query.generate_sql() == 'SELECT * FROM "users" ORDER BY "created_at" DESC;'

    def test_sqlite_left_join(self, users_entity, sqlite):
        query = SelectQuery(users_entity, sqlite).set_join([
            {'type': 'LEFT JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}
        ])
        assert 'LEFT JOIN "posts" AS "posts_1"' in query.generate_sql()


class TestSelectValidation:

    def test_unknown_where_field(self, users_entity, pg):
        with pytest.raises(SchemaError, match="no field 'nickname'"):
            SelectQuery(users_entity, pg).set_where({'nickname': 'x'})

    def test_qualified_driving_table_field_checked(self, users_entity, pg):
        with pytest.raises(SchemaError):
            SelectQuery(users_entity, pg).set_where({'users.nickname': 'x'})

    def test_joined_table_field_not_checked(self, users_entity, pg):
        """Fields of other tables are outside this entity's schema."""
        query = SelectQuery(users_entity, pg).set_where({'posts.title': 'x'})
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "posts"."title" = :posts_title_1;'

    def test_unknown_select_field(self, users_entity, pg):
        with pytest.raises(SchemaError):
            SelectQuery(users_entity, pg).set_fields(['nickname'])

    def test_invalid_limit_propagates(self, users_entity, pg):
        with pytest.raises(ValidationError):
            SelectQuery(users_entity, pg).set_limit(-5)

    def test_failed_setter_keeps_previous_state(self, users_entity, pg):
        query = SelectQuery(users_entity, pg).set_where({'id': 1})
        with pytest.raises(SchemaError):
            query.set_where({'nickname': 'x'})
        assert query.generate_sql() == 'SELECT * FROM "users" WHERE "id" = :id_1;'


@pytest.mark.database
class TestSelectAgainstSQLite:

    @pytest.fixture
    def blog(self, sqlite_executor):
        sqlite_executor.execute_raw(
            'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY, "name" TEXT);\n'
            'CREATE TABLE "posts" ("id" INTEGER PRIMARY KEY, "user_id" INTEGER, "title" TEXT);\n'
            "INSERT INTO \"users\" VALUES (1, 'ada'), (2, 'bob');\n"
            "INSERT INTO \"posts\" VALUES (1, 1, 'Engines'), (2, 2, 'Gardens'), (3, 1, 'Looms');"
        )
        return sqlite_executor

    def test_where_and_order_on_joined_table(self, blog, users_entity, sqlite):
        query = (SelectQuery(users_entity, sqlite)
                 .set_fields(['name', 'posts.title'])
                 .set_join([{'type': 'INNER JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}])
                 .set_where({'posts.title': {'operator': 'LIKE', 'value': '%s'}})
                 .set_order_by({'posts.title': 'DESC'}))
        rows = blog.execute(query.generate_sql(), query.get_params())
        assert rows == [
            {'users_name': 'ada', 'posts_title': 'Looms'},
            {'users_name': 'bob', 'posts_title': 'Gardens'},
            {'users_name': 'ada', 'posts_title': 'Engines'},
        ]

    def test_group_by_joined_column(self, blog, users_entity, sqlite):
        query = (SelectQuery(users_entity, sqlite)
                 .set_fields(['name'])
                 .set_expressions({'COUNT(*)': 'total'})
                 .set_join([{'type': 'LEFT JOIN', 'table': 'posts', 'on': ['posts.user_id', '=', 'users.id']}])
                 .set_where({'posts.user_id': 1})
                 .set_group_by(['users.name']))
        assert blog.execute(query.generate_sql(), query.get_params()) == [{'users_name': 'ada', 'total': 2}]
