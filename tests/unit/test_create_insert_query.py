#!/usr/bin/env python3
"""
DDL generation (CREATE TABLE, update triggers) and INSERT assembly.
"""

import logging

import pytest

from core.errors import SchemaError, ValidationError
from core.query.builders import CreateQuery, InsertQuery, TriggerQuery
from core.schema_builder import EntitySchemaBuilder
from core.schema_ir import ColumnDescriptor, EntityDescriptor, FieldDeclaration, LogicalType


class TestCreateQuery:

    def test_postgres(self, posts_entity, pg):
        assert CreateQuery(posts_entity, pg).generate_sql() == (
            'CREATE TABLE IF NOT EXISTS "blog_posts" (\n'
            '  "id" serial PRIMARY KEY NOT NULL,\n'
            '  "user_id" integer NOT NULL,\n'
            '  "title" varchar(255) NOT NULL,\n'
            '  "body" text NULL,\n'
            '  "published" boolean DEFAULT FALSE NOT NULL\n'
            ');'
        )

    def test_mysql(self, posts_entity, mysql):
        assert CreateQuery(posts_entity, mysql).generate_sql() == (
            'CREATE TABLE IF NOT EXISTS `blog_posts` (\n'
            '  `id` INT AUTO_INCREMENT PRIMARY KEY NOT NULL,\n'
            '  `user_id` INT NOT NULL,\n'
            '  `title` VARCHAR(255) NOT NULL,\n'
            '  `body` TEXT NULL,\n'
            '  `published` TINYINT(1) DEFAULT FALSE NOT NULL\n'
            ');'
        )

    def test_sqlite(self, posts_entity, sqlite):
        assert CreateQuery(posts_entity, sqlite).generate_sql() == (
            'CREATE TABLE IF NOT EXISTS "blog_posts" (\n'
            '  "id" INTEGER PRIMARY KEY AUTOINCREMENT,\n'
            '  "user_id" INTEGER NOT NULL,\n'
            '  "title" TEXT NOT NULL,\n'
            '  "body" TEXT NULL,\n'
            '  "published" INTEGER DEFAULT 0 NOT NULL\n'
            ');'
        )

    def test_users_defaults(self, users_entity, pg):
        sql = CreateQuery(users_entity, pg).generate_sql()
        assert '  "email" varchar(255) UNIQUE NOT NULL,' in sql
        assert '''  "status" varchar(255) DEFAULT 'draft' NOT NULL,''' in sql
        assert '  "created_at" timestamp DEFAULT CURRENT_TIMESTAMP NOT NULL,' in sql

    def test_mysql_current_timestamp_column(self, users_entity, mysql):
        sql = CreateQuery(users_entity, mysql).generate_sql()
        assert '  `created_at` TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL,' in sql

    def test_camel_case_column_rejected(self, pg):
        entity = EntityDescriptor.declare('Account', {'createdAt': FieldDeclaration(native_type=str)})
        with pytest.raises(ValidationError, match="must be snake_case"):
            CreateQuery(entity, pg).generate_sql()

    def test_entity_without_columns(self, pg):
        with pytest.raises(ValidationError, match="declares no columns"):
            CreateQuery(EntityDescriptor('empties', []), pg).generate_sql()


class TestTriggerQuery:

    def test_no_trigger_columns(self, posts_entity, pg):
        assert TriggerQuery(posts_entity, pg).generate_sql() is None

    def test_unsupported_dialect_warns(self, users_entity, mysql, caplog):
        with caplog.at_level(logging.WARNING, logger='core.query.builders'):
            assert TriggerQuery(users_entity, mysql).generate_sql() == ''
        assert 'does not generate update triggers' in caplog.text

    def test_postgres_trigger(self, users_entity, pg):
        assert TriggerQuery(users_entity, pg).generate_sql() == (
            'CREATE OR REPLACE FUNCTION set_users_updated_at() RETURNS TRIGGER AS $$\n'
            'BEGIN\n'
            '  NEW."updated_at" = CURRENT_TIMESTAMP;\n'
            '  RETURN NEW;\n'
            'END;\n'
            '$$ LANGUAGE plpgsql;\n\n'
            'CREATE TRIGGER "trigger_users_updated_at" BEFORE UPDATE ON "users" '
            'FOR EACH ROW EXECUTE FUNCTION set_users_updated_at();'
        )


class TestEntitySchemaBuilder:

    def test_create_appends_triggers(self, users_entity, pg):
        sql = EntitySchemaBuilder(users_entity, pg).create()
        create, _, triggers = sql.partition('\n\n')
        assert create.startswith('CREATE TABLE IF NOT EXISTS "users"')
        assert triggers.startswith('CREATE OR REPLACE FUNCTION set_users_updated_at()')

    def test_create_without_triggers_on_sqlite(self, users_entity, sqlite):
        sql = EntitySchemaBuilder(users_entity, sqlite).create()
        assert sql == CreateQuery(users_entity, sqlite).generate_sql()


class TestInsertQuery:

    def test_postgres_insert(self, users_entity, pg):
        query = InsertQuery(users_entity, pg, {'name': 'Ada', 'email': 'ada@example.com'})
        assert query.generate_sql() == 'INSERT INTO "users" ("name", "email") VALUES (:name_1, :email_1);'
        assert query.get_params() == {'name_1': 'Ada', 'email_1': 'ada@example.com'}

    def test_mysql_insert(self, users_entity, mysql):
        query = InsertQuery(users_entity, mysql, {'name': 'Ada'})
        assert query.generate_sql() == 'INSERT INTO `users` (`name`) VALUES (:name_1);'

    def test_unknown_column(self, users_entity, pg):
        with pytest.raises(SchemaError):
            InsertQuery(users_entity, pg, {'nickname': 'x'})

    def test_empty_values(self, users_entity, pg):
        with pytest.raises(ValidationError, match="at least one value"):
            InsertQuery(users_entity, pg, {})

    def test_serial_column_only_entity(self, pg):
        entity = EntityDescriptor('counters', [
            ColumnDescriptor('id', LogicalType.INT, primary=True, autoincrement=True),
            ColumnDescriptor('label', LogicalType.STRING, nullable=True),
        ])
        query = InsertQuery(entity, pg, {'label': None})
        assert query.generate_sql() == 'INSERT INTO "counters" ("label") VALUES (:label_1);'
        assert query.get_params() == {'label_1': None}
