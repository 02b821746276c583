"""Keep the initial migration in step with the models."""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest
import sqlalchemy as sa
from app.core.database import Base
import app.models  # noqa: F401

VERSIONS_DIR = Path(__file__).resolve().parent.parent / "alembic" / "versions"


def _load_migration(name):
    spec = importlib.util.spec_from_file_location(name, VERSIONS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.unit
class TestInitialMigration:
    def test_upgrade_creates_every_model_table(self):
        migration = _load_migration("20261018_0000-initial_schema")

        with patch.object(migration, "op") as op:
            migration.upgrade()

        created = {}
        for call in op.create_table.call_args_list:
            table_name, *elements = call.args
            created[table_name] = {
                element.name for element in elements if isinstance(element, sa.Column)
            }

        assert set(created) == set(Base.metadata.tables)
        for table_name, table in Base.metadata.tables.items():
            assert created[table_name] == {column.name for column in table.columns}

    def test_downgrade_drops_every_table(self):
        migration = _load_migration("20261018_0000-initial_schema")

        with patch.object(migration, "op") as op:
            migration.downgrade()

        dropped = [call.args[0] for call in op.drop_table.call_args_list]
        assert sorted(dropped) == sorted(Base.metadata.tables)
        # Dependent tables go first
        assert dropped.index("comments") < dropped.index("posts")
        assert dropped[-1] == "users"
