"""Tests for migration planning and guarded application."""

from unittest.mock import AsyncMock

import pytest

from surql_sync.adapters import SurrealQueryError
from surql_sync.schema.apply import MigrationPlan, apply_migration, plan_migration
from surql_sync.schema.models import Change, ChangeType, FieldAST, IndexAST, SchemaAST, TableAST

SOURCE = SchemaAST(
    tables=[
        TableAST(
            name="user",
            fields=[FieldAST(name="name", type="string")],
            indexes=[IndexAST(name="idx_bio", columns=["bio"], search=True, analyzer="ascii")],
        )
    ]
)

FIELD_ADDED = Change(type=ChangeType.FIELD_ADDED, table="user", field="name")
SEARCH_INDEX_ADDED = Change(type=ChangeType.INDEX_ADDED, table="user", index="idx_bio")


@pytest.fixture
def plan():
    """A plan with two statements."""
    return MigrationPlan(
        statements=[
            "DEFINE FIELD name ON TABLE user TYPE string;",
            "REMOVE INDEX idx_old ON TABLE user;",
        ]
    )


@pytest.fixture
def client():
    """Mock client whose execute_batch succeeds."""
    mock = AsyncMock()
    mock.execute_batch = AsyncMock()
    return mock


class TestPlanMigration:
    """Verify statement rendering and skip tracking."""

    def test_renders_and_skips(self):
        """Changes that render nothing are recorded as skipped."""
        plan = plan_migration([FIELD_ADDED, SEARCH_INDEX_ADDED], SOURCE, SchemaAST())
        assert plan.statements == ["DEFINE FIELD name ON TABLE user TYPE string;"]
        assert plan.skipped == [SEARCH_INDEX_ADDED]
        assert plan.changes == [FIELD_ADDED, SEARCH_INDEX_ADDED]
        assert plan.has_statements

    def test_to_script(self):
        """Script is one statement per line."""
        plan = plan_migration([FIELD_ADDED], SOURCE, SchemaAST())
        assert plan.to_script() == "DEFINE FIELD name ON TABLE user TYPE string;\n"
        assert MigrationPlan().to_script() == ""


class TestApplyMigration:
    """Verify the dry-run and confirm guards."""

    @pytest.mark.asyncio
    async def test_empty_plan(self, client):
        """Nothing to apply is a success."""
        result = await apply_migration(client, MigrationPlan(), dry_run=False, confirm=True)
        assert result.success
        assert result.statements_applied == 0
        client.execute_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_dry_run_default(self, client, plan):
        """The default run executes nothing."""
        result = await apply_migration(client, plan)
        assert result.success
        assert result.dry_run
        assert result.statements_applied == 2
        assert result.statements == plan.statements
        client.execute_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_required(self, client, plan):
        """A real run without confirm is refused."""
        result = await apply_migration(client, plan, dry_run=False)
        assert not result.success
        assert result.error == "Migration requires confirm=True"
        client.execute_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_applies_in_one_batch(self, client, plan):
        """All statements go to execute_batch together."""
        result = await apply_migration(client, plan, dry_run=False, confirm=True)
        assert result.success
        assert not result.dry_run
        assert result.statements_applied == 2
        client.execute_batch.assert_awaited_once_with(plan.statements)

    @pytest.mark.asyncio
    async def test_failure_reported(self, client, plan):
        """A failing batch is reported through error, not raised."""
        client.execute_batch = AsyncMock(side_effect=SurrealQueryError("field already exists"))
        result = await apply_migration(client, plan, dry_run=False, confirm=True)
        assert not result.success
        assert result.statements_applied == 0
        assert result.error == "Failed to apply migration: field already exists"
