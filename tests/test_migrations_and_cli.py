"""
Tests for the Alembic schema and the command line entry points
"""

import json

import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine, inspect, text

from socialgraph.cli import cli
from socialgraph.database.cli import main as db_main
from socialgraph.database.connection import reset_database


@pytest.fixture
def migrated_database(test_database, alembic_migrate):
    """Migrated database URL with the shared pool reset around the test."""
    _ = alembic_migrate
    reset_database()
    yield test_database
    reset_database()


@pytest.mark.requires_db
def test_upgrade_creates_schema_and_member_types(migrated_database):
    engine = create_engine(migrated_database)
    try:
        tables = set(inspect(engine).get_table_names())
        assert {
            "member_types",
            "users",
            "profiles",
            "posts",
            "subscribers_on_authors",
        } <= tables

        with engine.connect() as conn:
            rows = conn.execute(
                text("SELECT id, discount, posts_limit_per_month FROM member_types ORDER BY id")
            ).all()
        assert [tuple(row) for row in rows] == [("basic", 2.3, 20), ("business", 7.7, 100)]
    finally:
        engine.dispose()


@pytest.mark.requires_db
def test_query_command_prints_result(migrated_database):
    runner = CliRunner()

    result = runner.invoke(cli, ["query", "-"], input="{ memberTypes { id } }")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output[result.output.index("{\n"):])
    assert payload["data"] == {"memberTypes": [{"id": "basic"}, {"id": "business"}]}


@pytest.mark.requires_db
def test_query_command_exits_nonzero_on_errors(migrated_database):
    runner = CliRunner()

    result = runner.invoke(cli, ["query", "-"], input="{ doesNotExist }")

    assert result.exit_code == 1
    assert "doesNotExist" in result.output


def test_query_command_rejects_bad_variables():
    runner = CliRunner()

    result = runner.invoke(cli, ["query", "-", "--variables", "{not json"], input="{ users { id } }")

    assert result.exit_code == 2
    assert "not valid JSON" in result.output


@pytest.mark.requires_db
def test_seed_command_is_idempotent(migrated_database):
    runner = CliRunner()

    result = runner.invoke(db_main, ["seed"])

    assert result.exit_code == 0, result.output
    assert "Member types already present" in result.output
