"""Tests for the schema metadata reader."""

import pytest

from relscout.core.errors import SchemaUnavailableError
from relscout.schema.db_models import SchemaColumn
from relscout.schema.reader import SqlAlchemySchemaReader

PROJECT_ID = "proj-1"
DATASOURCE_ID = "ds-1"


class TestLoadColumns:
    """Tests for column loading."""

    def test_loads_profiles_with_features(self, manager, metadata):
        col = metadata.column
        metadata.add_table(
            "orders",
            col("id", "bigint", primary_key=True),
            col("user_id", "int4", role="foreign_key", fk_target_table="users", fk_confidence=0.9),
            schema_name="main",
        )

        columns = SqlAlchemySchemaReader(manager).load_columns(PROJECT_ID, DATASOURCE_ID)

        assert [c.qualified_name for c in columns] == ["orders.id", "orders.user_id"]
        pk, fk = columns
        assert pk.is_primary_key
        assert pk.features is None
        assert fk.schema_name == "main"
        assert fk.features.role == "foreign_key"
        assert fk.features.fk_target_table == "users"
        assert fk.features.fk_confidence == 0.9

    def test_ordered_by_table_then_position(self, manager, metadata):
        col = metadata.column
        metadata.add_table("users", col("id", "bigint"), col("email", "varchar"))
        metadata.add_table("accounts", col("id", "varchar"))

        columns = SqlAlchemySchemaReader(manager).load_columns(PROJECT_ID, DATASOURCE_ID)

        assert [c.qualified_name for c in columns] == ["accounts.id", "users.id", "users.email"]

    def test_scoped_to_datasource(self, manager, metadata):
        metadata.add_table("users", metadata.column("id", "bigint"))

        reader = SqlAlchemySchemaReader(manager)

        assert reader.load_columns(PROJECT_ID, "other") == []
        assert reader.load_declared_foreign_keys("other", DATASOURCE_ID) == []

    def test_invalid_features_are_dropped(self, manager, metadata):
        col = metadata.column
        metadata.add_table(
            "payments",
            col("id", "bigint", primary_key=True),
            col("order_id", "int4", role="foreign_key", fk_target_table="orders", fk_confidence=85),
        )

        columns = SqlAlchemySchemaReader(manager).load_columns(PROJECT_ID, DATASOURCE_ID)

        assert [c.qualified_name for c in columns] == ["payments.id", "payments.order_id"]
        assert columns[1].features is None

    def test_store_failure_raises(self, manager):
        reader = SqlAlchemySchemaReader(manager)
        SchemaColumn.__table__.drop(manager.engine)

        with pytest.raises(SchemaUnavailableError) as excinfo:
            reader.load_columns(PROJECT_ID, DATASOURCE_ID)

        assert excinfo.value.project_id == PROJECT_ID


class TestLoadDeclaredForeignKeys:
    """Tests for declared constraint loading."""

    def test_loads_declared(self, manager, metadata):
        metadata.add_foreign_key("payments", "order_id", "orders", "id")
        metadata.add_foreign_key("orders", "user_id", "users", "id")

        fks = SqlAlchemySchemaReader(manager).load_declared_foreign_keys(
            PROJECT_ID, DATASOURCE_ID
        )

        assert [(str(fk.source), str(fk.target)) for fk in fks] == [
            ("orders.user_id", "users.id"),
            ("payments.order_id", "orders.id"),
        ]
        assert fks[0].constraint_name == "fk_orders_user_id"
