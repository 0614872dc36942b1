# ==============================================
# Tests for Relational Schema (Topic 3)
# ==============================================
#
# Type mapping, relational planning and DDL rendering.
# ==============================================

import pytest

from docsync.analysis import SchemaInferencer
from docsync.schema import (
    DDLEmitter,
    Dialect,
    RelationalSchemaPlanner,
    RelationshipKind,
    SqlKind,
    SqlType,
    TypeMapper,
    sanitize_identifier,
)


@pytest.fixture
def plan(sample_documents):
    analysis = SchemaInferencer().analyze(sample_documents)
    return RelationalSchemaPlanner(key_field="_id").plan(analysis, "orders")


class TestDialect:
    def test_parse_aliases(self):
        assert Dialect.parse("MySQL") is Dialect.MYSQL
        assert Dialect.parse("mssql") is Dialect.SQLSERVER
        assert Dialect.parse("sqlserver") is Dialect.SQLSERVER

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Dialect.parse("oracle")

    def test_quoting(self):
        assert Dialect.MYSQL.quote("a`b") == "`a``b`"
        assert Dialect.SQLSERVER.quote("a]b") == "[a]]b]"


class TestTypeMapper:
    @pytest.mark.parametrize("kind, mysql, sqlserver", [
        (SqlType(SqlKind.STRING, length=255), "VARCHAR(255)", "NVARCHAR(255)"),
        (SqlType(SqlKind.TEXT), "TEXT", "NVARCHAR(MAX)"),
        (SqlType(SqlKind.INTEGER), "INT", "INT"),
        (SqlType(SqlKind.BIGINT), "BIGINT", "BIGINT"),
        (SqlType(SqlKind.DECIMAL, precision=18, scale=2), "DECIMAL(18,2)", "DECIMAL(18,2)"),
        (SqlType(SqlKind.BOOLEAN), "BOOLEAN", "BIT"),
        (SqlType(SqlKind.TIMESTAMP), "TIMESTAMP", "DATETIME2"),
        (SqlType(SqlKind.IDENTIFIER, length=50), "VARCHAR(50)", "NVARCHAR(50)"),
    ])
    def test_render(self, kind, mysql, sqlserver):
        assert kind.render(Dialect.MYSQL) == mysql
        assert kind.render(Dialect.SQLSERVER) == sqlserver

    def test_long_strings_become_text(self):
        mapper = TypeMapper()
        assert mapper.for_value("x" * 10).kind is SqlKind.STRING
        assert mapper.for_value("x" * 300).kind is SqlKind.TEXT

    def test_large_integers_become_bigint(self):
        mapper = TypeMapper()
        assert mapper.for_value(5).kind is SqlKind.INTEGER
        assert mapper.for_value(2 ** 40).kind is SqlKind.BIGINT

    def test_other_values(self):
        mapper = TypeMapper()
        assert mapper.for_value(1.5).kind is SqlKind.DECIMAL
        assert mapper.for_value(True).kind is SqlKind.BOOLEAN
        assert mapper.for_value(None).kind is SqlKind.STRING


class TestSanitize:
    @pytest.mark.parametrize("raw, expected", [
        ("items[].sku", "items_sku"),
        ("address.geo.lat", "address_geo_lat"),
        ("first name", "first_name"),
        ("_id", "id"),
        ("9lives", "f_9lives"),
        ("***", "field"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_identifier(raw) == expected


class TestPlanner:
    def test_main_table_columns(self, plan):
        main = plan.main_table
        assert main.name == "orders"
        assert main.column_names == ["_id", "name", "age", "active", "created"]
        assert main.primary_key.name == "_id"

    def test_not_null_inference(self, plan):
        main = plan.main_table
        assert not main.column("_id").nullable
        assert not main.column("name").nullable
        assert main.column("age").nullable

    def test_main_column_types(self, plan):
        main = plan.main_table
        assert main.column("_id").sql_type.kind is SqlKind.IDENTIFIER
        assert main.column("age").sql_type.kind is SqlKind.INTEGER
        assert main.column("active").sql_type.kind is SqlKind.BOOLEAN
        assert main.column("created").sql_type.kind is SqlKind.TIMESTAMP

    def test_child_tables(self, plan):
        assert [t.name for t in plan.child_tables] == ["orders_address", "orders_tags", "orders_items"]
        kinds = {t.name: t.relationship for t in plan.child_tables}
        assert kinds["orders_address"] is RelationshipKind.NESTED_OBJECT
        assert kinds["orders_tags"] is RelationshipKind.ARRAY_OF_PRIMITIVE
        assert kinds["orders_items"] is RelationshipKind.ARRAY_OF_OBJECT

    def test_nested_object_table(self, plan):
        address = plan.table("orders_address")
        assert address.column_names == ["id", "orders_id", "city", "geo_lat", "geo_lng"]
        assert address.column("id").is_identity
        assert address.foreign_key_column == "orders_id"
        assert address.parent_table == "orders"
        assert address.column("geo_lat").source_path == "geo.lat"

    def test_primitive_array_junction(self, plan):
        tags = plan.table("orders_tags")
        assert tags.column_names == ["id", "orders_id", "array_index", "value"]
        assert tags.column("value").sql_type.is_text

    def test_object_array_junction(self, plan):
        items = plan.table("orders_items")
        assert items.column_names == ["id", "orders_id", "array_index", "sku", "qty"]
        assert items.column("qty").sql_type.kind is SqlKind.INTEGER

    def test_relationships(self, plan):
        assert [str(r) for r in plan.relationships] == [
            "orders_address → orders(_id)",
            "orders_tags → orders(_id)",
            "orders_items → orders(_id)",
        ]

    def test_numeric_array_keeps_type(self):
        analysis = SchemaInferencer().analyze([{"_id": 1, "scores": [1.5, 2.5]}])
        plan = RelationalSchemaPlanner().plan(analysis, "runs")
        assert plan.table("runs_scores").column("value").sql_type.kind is SqlKind.DECIMAL

    def test_name_collision_gets_suffix(self):
        docs = [{"_id": 1, "a b": {"c": 1}, "a_b": [1]}]
        analysis = SchemaInferencer().analyze(docs)
        plan = RelationalSchemaPlanner().plan(analysis, "t")
        assert [t.name for t in plan.child_tables] == ["t_a_b", "t_a_b_2"]

    def test_key_column_present_without_documents(self):
        analysis = SchemaInferencer().analyze([])
        plan = RelationalSchemaPlanner().plan(analysis, "empty")
        assert plan.main_table.column_names == ["_id"]
        assert plan.child_tables == []


class TestDDLEmitter:
    def test_mysql_main_table(self, plan):
        ddl = DDLEmitter(Dialect.MYSQL).create_table(plan.main_table)
        assert ddl.startswith("CREATE TABLE `orders` (")
        assert "`_id` VARCHAR(50) NOT NULL" in ddl
        assert "`age` INT NULL" in ddl
        assert "`active` BOOLEAN NOT NULL" in ddl
        assert "PRIMARY KEY (`_id`)" in ddl
        assert ddl.endswith(");")

    def test_sqlserver_child_table(self, plan):
        ddl = DDLEmitter(Dialect.SQLSERVER).create_table(plan.table("orders_tags"))
        assert "[id] INT IDENTITY(1,1) NOT NULL" in ddl
        assert "[value] NVARCHAR(255) NULL" in ddl
        assert (
            "CONSTRAINT [fk_orders_tags] FOREIGN KEY ([orders_id]) "
            "REFERENCES [orders] ([_id]) ON DELETE CASCADE"
        ) in ddl

    def test_mysql_identity(self, plan):
        ddl = DDLEmitter(Dialect.MYSQL).create_table(plan.table("orders_items"))
        assert "`id` INT NOT NULL AUTO_INCREMENT" in ddl

    def test_drop_statements(self):
        assert DDLEmitter(Dialect.MYSQL).drop_table("t") == "DROP TABLE IF EXISTS `t`;"
        assert DDLEmitter(Dialect.SQLSERVER).drop_table("t") == (
            "IF OBJECT_ID(N't', N'U') IS NOT NULL DROP TABLE [t];"
        )

    def test_add_column(self):
        string = SqlType(SqlKind.STRING, length=255)
        assert DDLEmitter(Dialect.MYSQL).add_column("t", "c", string) == (
            "ALTER TABLE `t` ADD COLUMN `c` VARCHAR(255) NULL;"
        )
        assert DDLEmitter(Dialect.SQLSERVER).add_column("t", "c", string) == (
            "ALTER TABLE [t] ADD [c] NVARCHAR(255) NULL;"
        )

    def test_drop_children_first_create_parents_first(self, plan):
        statements = DDLEmitter(Dialect.MYSQL).statements(plan.tables, include_drop=True)
        drops = [s for s in statements if s.startswith("DROP")]
        creates = [s for s in statements if s.startswith("CREATE")]
        assert drops[-1] == "DROP TABLE IF EXISTS `orders`;"
        assert creates[0].startswith("CREATE TABLE `orders` (")
        assert statements.index(drops[-1]) < statements.index(creates[0])

    def test_script_contains_alternate_dialect_commented(self, plan):
        script = DDLEmitter(Dialect.MYSQL).render_script(plan)
        assert "-- Dialect: mysql" in script
        assert "-- CREATE TABLE [orders] (" in script
        assert "\nCREATE TABLE [orders]" not in script

    def test_write(self, plan, tmp_path):
        path = DDLEmitter(Dialect.MYSQL).write(plan, tmp_path)
        assert path.name == "schema_orders.sql"
        assert "CREATE TABLE `orders_items`" in path.read_text(encoding="utf-8")
